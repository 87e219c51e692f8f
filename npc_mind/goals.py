"""
Goal registry: prioritized goals and current-goal selection.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from .logging_config import log_extra
from .types import GoalType
from .util import clamp

logger = logging.getLogger(__name__)


@dataclass
class Goal:
    """
    Something the agent is trying to achieve.

    Attributes:
        goal_id: Unique identifier (e.g. "goal_hunger")
        goal_type: Category that selects the plan template
        description: Human-readable description
        priority: Higher ranks first; 1 (low) to 10 (critical) by convention
        urgency: 0.0 to 1.0, breaks priority ties
        completed: Whether the goal has been achieved
        active: Whether the goal has been selected as current at least once
    """
    goal_id: str
    goal_type: GoalType
    description: str
    priority: int = 5
    urgency: float = 0.5
    completed: bool = False
    active: bool = False

    def __post_init__(self):
        self.goal_type = GoalType(self.goal_type)
        self.priority = int(self.priority)
        self.urgency = clamp(self.urgency, 0.0, 1.0)

    @property
    def rank(self):
        return (self.priority, self.urgency)


class GoalRegistry:
    """
    Active goals sorted by (priority, urgency), plus the completed set.

    Example:
        >>> goals = GoalRegistry()
        >>> _ = goals.add_goal("goal_explore", GoalType.EXPLORATION, "Look around", 3, 0.2)
        >>> _ = goals.add_goal("goal_hunger", GoalType.SURVIVAL, "Find food", 9, 0.8)
        >>> goals.current_goal().goal_id
        'goal_hunger'
    """

    def __init__(self, agent_id: Optional[str] = None):
        self.agent_id = agent_id
        self._active: List[Goal] = []
        self._completed: Dict[str, Goal] = {}
        self._current: Optional[Goal] = None

    def add_goal(
        self,
        goal_id: str,
        goal_type: GoalType,
        description: str,
        priority: int = 5,
        urgency: float = 0.5,
    ) -> Goal:
        """
        Add a goal, replacing any active goal with the same id.

        Returns:
            The new goal
        """
        goal = Goal(goal_id, goal_type, description, priority, urgency)
        existing = self._find_active(goal_id)
        if existing is not None:
            self._active.remove(existing)
            if self._current is existing:
                self._current = None
        self._active.append(goal)
        self._sort()
        logger.info(
            f"Goal added: {goal_id} ({goal.goal_type.value}, priority={goal.priority}, "
            f"urgency={goal.urgency:.2f})",
            extra=log_extra("goals", self.agent_id, event_type="goal_added"),
        )
        return goal

    def complete_goal(self, goal_id: str) -> bool:
        """
        Move a goal to the completed set.

        Returns:
            False if no active goal has that id
        """
        goal = self._find_active(goal_id)
        if goal is None:
            logger.debug(
                f"complete_goal: no active goal {goal_id}",
                extra=log_extra("goals", self.agent_id),
            )
            return False
        goal.completed = True
        self._active.remove(goal)
        self._completed[goal_id] = goal
        if self._current is goal:
            self._current = None
        logger.info(
            f"Goal completed: {goal_id}",
            extra=log_extra("goals", self.agent_id, event_type="goal_completed"),
        )
        return True

    def current_goal(self) -> Optional[Goal]:
        """The highest ranked active goal, reselected when the current one is done."""
        if self._current is None or self._current.completed:
            self._current = self._active[0] if self._active else None
            if self._current is not None:
                self._current.active = True
        return self._current

    def update_urgency(self, goal_id: str, urgency: float) -> bool:
        goal = self._find_active(goal_id)
        if goal is None:
            return False
        goal.urgency = clamp(urgency, 0.0, 1.0)
        self._sort()
        return True

    def get(self, goal_id: str) -> Optional[Goal]:
        return self._find_active(goal_id) or self._completed.get(goal_id)

    def active_goals(self) -> List[Goal]:
        return list(self._active)

    def completed_goals(self) -> List[Goal]:
        return list(self._completed.values())

    def is_completed(self, goal_id: str) -> bool:
        return goal_id in self._completed and self._find_active(goal_id) is None

    def _find_active(self, goal_id: str) -> Optional[Goal]:
        for goal in self._active:
            if goal.goal_id == goal_id:
                return goal
        return None

    def _sort(self) -> None:
        self._active.sort(key=lambda g: g.rank, reverse=True)
        # a goal that now outranks the current one preempts it
        if self._current is not None and self._active and self._active[0] is not self._current:
            self._current.active = False
            self._current = None

    def __len__(self) -> int:
        return len(self._active)
