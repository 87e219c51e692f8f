"""
Learned state: the action value table and the bounded pattern table.

Both are keyed on ``(context, action)`` where context is a compact key
such as ``"satiety:2|moving"`` and action is a plain action name.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, asdict
from typing import Dict, Iterable, List, Optional, Tuple

from ..util import clamp

logger = logging.getLogger(__name__)

Key = Tuple[str, str]


@dataclass
class LearningPattern:
    """
    Success statistics for one action taken in one context.

    Attributes:
        context: Context key the action was taken in
        action: Action name
        success_rate: successful_attempts / total_attempts (0.5 before any attempt)
        total_attempts: Number of recorded outcomes
        successful_attempts: Number of successful outcomes
        confidence: min(1, total_attempts / confidence_attempts)
        conditions: Condition strings observed alongside successes
    """
    context: str
    action: str
    success_rate: float = 0.5
    total_attempts: int = 0
    successful_attempts: int = 0
    confidence: float = 0.0
    conditions: List[str] = field(default_factory=list)

    @property
    def key(self) -> Key:
        return (self.context, self.action)

    def update(
        self,
        success: bool,
        conditions: Optional[Iterable[str]] = None,
        confidence_attempts: int = 10,
    ) -> None:
        self.total_attempts += 1
        if success:
            self.successful_attempts += 1
            for condition in conditions or ():
                if condition not in self.conditions:
                    self.conditions.append(condition)
        self.success_rate = self.successful_attempts / self.total_attempts
        self.confidence = min(1.0, self.total_attempts / confidence_attempts)

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> "LearningPattern":
        return cls(**data)


class ActionValueTable:
    """
    Scalar favorability per (context, action), kept in [0, 1].

    Updates move the value a fraction ``learning_rate`` of the way toward the
    reward, so with rewards in {0, 1} a value can never leave [0, 1].
    """

    def __init__(self, learning_rate: float = 0.1, default_value: float = 0.5):
        self.learning_rate = learning_rate
        self.default_value = default_value
        self._values: Dict[Key, float] = {}

    def get(self, context: str, action: str) -> Optional[float]:
        """Stored value, or None if the pair has never been updated."""
        return self._values.get((context, action))

    def update(self, context: str, action: str, reward: float) -> float:
        """
        Move the value toward ``reward``.

        Returns:
            The new value
        """
        old = self._values.get((context, action), self.default_value)
        new = clamp(old + self.learning_rate * (reward - old), 0.0, 1.0)
        self._values[(context, action)] = new
        return new

    def snapshot(self) -> Dict[Key, float]:
        return dict(self._values)

    def __contains__(self, key: Key) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)


class PatternTable:
    """
    Bounded collection of learning patterns.

    When full, a new pattern displaces the one with the fewest attempts.
    """

    def __init__(self, max_patterns: int = 50, confidence_attempts: int = 10):
        self.max_patterns = max_patterns
        self.confidence_attempts = confidence_attempts
        self._patterns: Dict[Key, LearningPattern] = {}

    def get(self, context: str, action: str) -> Optional[LearningPattern]:
        return self._patterns.get((context, action))

    def record(
        self,
        context: str,
        action: str,
        success: bool,
        conditions: Optional[Iterable[str]] = None,
    ) -> LearningPattern:
        """Find or create the pattern for (context, action) and fold in one outcome."""
        pattern = self._patterns.get((context, action))
        if pattern is None:
            if len(self._patterns) >= self.max_patterns:
                self._evict()
            pattern = LearningPattern(context=context, action=action)
            self._patterns[pattern.key] = pattern
        pattern.update(success, conditions, self.confidence_attempts)
        return pattern

    def _evict(self) -> None:
        victim = min(self._patterns.values(), key=lambda p: p.total_attempts)
        del self._patterns[victim.key]
        logger.debug(
            f"Evicted pattern {victim.context}/{victim.action} ({victim.total_attempts} attempts)",
            extra={"subsystem": "learning", "event_type": "pattern_evict"},
        )

    def for_action(self, action: str) -> List[LearningPattern]:
        return [p for p in self._patterns.values() if p.action == action]

    def all(self) -> List[LearningPattern]:
        return list(self._patterns.values())

    def mean_confidence(self) -> float:
        if not self._patterns:
            return 0.0
        return sum(p.confidence for p in self._patterns.values()) / len(self._patterns)

    def __len__(self) -> int:
        return len(self._patterns)
