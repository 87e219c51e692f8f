"""
Action planner: expands a goal into a queue of primitive actions.

The planner owns the queue and the single in-flight action. Plans come
from fixed templates per goal type; the plan-local scratch register
carries the item found by ``search_food`` to the actions that follow it.
"""
from __future__ import annotations

import logging
import uuid
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, List, Optional

from .goals import Goal
from .knowledge import KnowledgeBase
from .logging_config import log_extra
from .types import ActionType, GoalType, Position
from .util import round_position

logger = logging.getLogger(__name__)

SURVIVAL_KEYWORDS = ("hunger", "hungry", "food", "eat")


@dataclass
class PlannedAction:
    """
    One primitive step of a plan.

    Attributes:
        action_id: Unique identifier
        action_type: What to do
        description: Human-readable description (also used in prompts)
        target_position: Where to do it, if anywhere
        target_item_id: Which item it concerns, if any
        completed: Set once the action has finished
    """
    action_id: str
    action_type: ActionType
    description: str
    target_position: Optional[Position] = None
    target_item_id: Optional[str] = None
    completed: bool = False


@dataclass
class PlanScratch:
    """Plan-local register written by search_food and read by later steps."""
    found_item_id: Optional[str] = None
    found_position: Optional[Position] = None

    def remember(self, item_id: str, position: Position) -> None:
        self.found_item_id = item_id
        self.found_position = tuple(position)

    def clear(self) -> None:
        self.found_item_id = None
        self.found_position = None

    @property
    def has_item(self) -> bool:
        return self.found_item_id is not None


class ActionPlanner:
    """
    Serves a plan one action at a time.

    Invariants:
        - At most one action is in flight
        - The in-flight action must be completed before the next is dequeued

    Example:
        >>> planner = ActionPlanner()
        >>> goal = Goal("goal_explore", GoalType.EXPLORATION, "Look around")
        >>> planner.plan_for(goal, KnowledgeBase())
        3
        >>> planner.next_action().action_type
        <ActionType.THINK: 'think'>
    """

    def __init__(self, agent_id: Optional[str] = None):
        self.agent_id = agent_id
        self._queue: Deque[PlannedAction] = deque()
        self._current: Optional[PlannedAction] = None
        self.scratch = PlanScratch()
        self._templates: Dict[GoalType, Callable[[Goal, KnowledgeBase], None]] = {
            GoalType.SURVIVAL: self._plan_survival,
            GoalType.EXPLORATION: self._plan_exploration,
            GoalType.LEARNING: self._plan_learning,
            GoalType.SOCIAL: self._plan_social,
        }

    def plan_for(self, goal: Goal, knowledge: KnowledgeBase) -> int:
        """
        Replace the pending queue with the template for ``goal``.

        Returns:
            Number of queued actions
        """
        self._queue.clear()
        self.scratch.clear()
        self._templates[goal.goal_type](goal, knowledge)
        logger.info(
            f"Planned {len(self._queue)} actions for {goal.goal_id}: "
            f"{[a.action_type.value for a in self._queue]}",
            extra=log_extra("planner", self.agent_id, event_type="plan"),
        )
        return len(self._queue)

    def next_action(self) -> Optional[PlannedAction]:
        if self._current is not None and not self._current.completed:
            return self._current
        if self._queue:
            self._current = self._queue.popleft()
            return self._current
        self._current = None
        return None

    @property
    def current_action(self) -> Optional[PlannedAction]:
        if self._current is not None and not self._current.completed:
            return self._current
        return None

    def complete_current_action(self) -> Optional[PlannedAction]:
        """Mark the in-flight action completed and release it."""
        action = self._current
        if action is not None:
            action.completed = True
            logger.debug(
                f"Completed {action.action_type.value} ({action.action_id})",
                extra=log_extra("planner", self.agent_id, event_type="action_done"),
            )
        self._current = None
        return action

    def has_pending(self) -> bool:
        return bool(self._queue) or self.current_action is not None

    def clear(self) -> None:
        self._queue.clear()
        self._current = None
        self.scratch.clear()

    def pending(self) -> List[PlannedAction]:
        """The queued actions, not including the in-flight one."""
        return list(self._queue)

    def _add(
        self,
        action_type: ActionType,
        description: str,
        target_position: Optional[Position] = None,
        target_item_id: Optional[str] = None,
    ) -> None:
        self._queue.append(PlannedAction(
            action_id=f"action_{uuid.uuid4().hex[:8]}",
            action_type=action_type,
            description=description,
            target_position=target_position,
            target_item_id=target_item_id,
        ))

    def _plan_survival(self, goal: Goal, knowledge: KnowledgeBase) -> None:
        text = goal.description.lower()
        if not any(k in text for k in SURVIVAL_KEYWORDS):
            return
        self._add(ActionType.THINK, "I am hungry. Where could I find something to eat?")
        self._add(ActionType.SEARCH_FOOD, "Look for food I know about")
        self._add(ActionType.MOVE_TO_ITEM, "Walk to the food")
        self._add(ActionType.COLLECT_EAT, "Pick up the food and eat it")

    def _plan_exploration(self, goal: Goal, knowledge: KnowledgeBase) -> None:
        self._add(ActionType.THINK, "What is around me?")
        self._add(ActionType.MOVE_EXPLORE, "Explore the surroundings")
        self._add(ActionType.OBSERVE, "Observe the surroundings")

    def _plan_learning(self, goal: Goal, knowledge: KnowledgeBase) -> None:
        self._add(ActionType.IDENTIFY_UNKNOWN, "Pick something I do not understand yet")
        item = knowledge.first_unknown()
        if item is None:
            return
        position = round_position(item.position)
        self._add(
            ActionType.MOVE_TO_ITEM,
            f"Walk to item {item.item_id}",
            target_position=position,
            target_item_id=item.item_id,
        )
        self._add(
            ActionType.ASK_ABOUT_ITEM,
            f"Ask about item {item.item_id}",
            target_item_id=item.item_id,
        )

    def _plan_social(self, goal: Goal, knowledge: KnowledgeBase) -> None:
        self._add(ActionType.THINK, "Who could I talk to?")
        self._add(ActionType.INITIATE_CONVERSATION, "Start a conversation")
