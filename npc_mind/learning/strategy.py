"""
Strategies: named action templates per goal type, with learned effectiveness.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..types import ActionType, GoalType

logger = logging.getLogger(__name__)


@dataclass
class Strategy:
    """
    An ordered action template for one goal type.

    Attributes:
        strategy_id: Unique name (e.g. "survival_basic")
        goal_type: Goal type the strategy serves
        action_sequence: Ordered action types
        effectiveness: Running mean of outcomes (0.0 to 1.0, starts at 0.5)
        usage_count: Number of outcomes folded into the mean
        average_duration: Running mean of seconds from start to outcome
        prerequisites: Free-form conditions required before use
    """
    strategy_id: str
    goal_type: GoalType
    action_sequence: List[ActionType]
    effectiveness: float = 0.5
    usage_count: int = 0
    average_duration: float = 0.0
    prerequisites: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.goal_type = GoalType(self.goal_type)
        self.action_sequence = [ActionType(a) for a in self.action_sequence]

    def update_effectiveness(self, success: bool, duration: float) -> None:
        """Fold one outcome into the running effectiveness and duration means."""
        self.usage_count += 1
        n = self.usage_count
        reward = 1.0 if success else 0.0
        self.effectiveness = (self.effectiveness * (n - 1) + reward) / n
        self.average_duration = (self.average_duration * (n - 1) + duration) / n

    def to_dict(self) -> Dict:
        return {
            "strategy_id": self.strategy_id,
            "goal_type": self.goal_type.value,
            "action_sequence": [a.value for a in self.action_sequence],
            "effectiveness": self.effectiveness,
            "usage_count": self.usage_count,
            "average_duration": self.average_duration,
            "prerequisites": list(self.prerequisites),
        }


def basic_strategies() -> List[Strategy]:
    """The strategies every agent starts with."""
    return [
        Strategy(
            "survival_basic",
            GoalType.SURVIVAL,
            [ActionType.THINK, ActionType.SEARCH_FOOD, ActionType.MOVE_TO_ITEM, ActionType.COLLECT_EAT],
        ),
        Strategy(
            "learning_basic",
            GoalType.LEARNING,
            [ActionType.MOVE_TO_ITEM, ActionType.ASK_ABOUT_ITEM],
        ),
        Strategy(
            "exploration_basic",
            GoalType.EXPLORATION,
            [ActionType.THINK, ActionType.MOVE_EXPLORE, ActionType.OBSERVE],
        ),
    ]


class StrategyBook:
    """
    Registered strategies plus the single running strategy window.
    """

    def __init__(self, max_strategies: int = 20, strategies: Optional[List[Strategy]] = None):
        self.max_strategies = max_strategies
        self._strategies: Dict[str, Strategy] = {}
        self._running: Optional[str] = None
        self._started_at: float = 0.0
        for strategy in basic_strategies() if strategies is None else strategies:
            self.register(strategy)

    def register(self, strategy: Strategy) -> bool:
        """Add or replace a strategy. Returns False when the book is full."""
        if strategy.strategy_id not in self._strategies and len(self._strategies) >= self.max_strategies:
            logger.warning(
                f"Strategy limit reached ({self.max_strategies}); dropping {strategy.strategy_id}",
                extra={"subsystem": "learning"},
            )
            return False
        self._strategies[strategy.strategy_id] = strategy
        return True

    def get(self, strategy_id: str) -> Optional[Strategy]:
        return self._strategies.get(strategy_id)

    def for_goal(self, goal_type: GoalType) -> List[Strategy]:
        goal_type = GoalType(goal_type)
        return [s for s in self._strategies.values() if s.goal_type == goal_type]

    @property
    def running(self) -> Optional[Strategy]:
        return self._strategies.get(self._running) if self._running else None

    @property
    def started_at(self) -> float:
        return self._started_at

    def start(self, strategy_id: str, now: float) -> bool:
        if strategy_id not in self._strategies:
            logger.warning(f"Unknown strategy: {strategy_id}", extra={"subsystem": "learning"})
            return False
        self._running = strategy_id
        self._started_at = now
        return True

    def stop(self) -> None:
        self._running = None
        self._started_at = 0.0

    def all(self) -> List[Strategy]:
        return list(self._strategies.values())

    def __len__(self) -> int:
        return len(self._strategies)
