"""
Learning engine: action values, patterns and strategy effectiveness.

Every recorded outcome updates three things at once: the action value
for (context, action), the matching learning pattern, and, while a
strategy is running, that strategy's effectiveness. The outcome is also
written to memory so later reasoning can recall it.
"""
from __future__ import annotations

import logging
import random
import time
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar, Union

from ..logging_config import log_extra
from ..memory import MemoryRecord, MemoryStore
from ..types import GoalType, Position, enum_value
from .learning_config import LearningConfig
from .learning_state import ActionValueTable, LearningPattern, PatternTable
from .strategy import Strategy, StrategyBook

logger = logging.getLogger(__name__)

A = TypeVar("A")


class LearningEngine:
    """
    Reinforcement-style learner for one agent.

    Example:
        >>> engine = LearningEngine(MemoryStore(), LearningConfig(prng_seed=1))
        >>> engine.record_outcome("think", "satiety:3", success=True)
        0.55
    """

    def __init__(
        self,
        memory: MemoryStore,
        config: Optional[LearningConfig] = None,
        clock: Optional[Callable[[], float]] = None,
        locator: Optional[Callable[[], Position]] = None,
        rng: Optional[random.Random] = None,
        agent_id: Optional[str] = None,
    ):
        """
        Args:
            memory: Store that receives outcome memories
            config: Learning configuration
            clock: Time source for strategy durations
            locator: Returns the agent's position for outcome memories
            rng: Random source (defaults to one seeded from ``config.prng_seed``)
            agent_id: Identifier for logs
        """
        self.memory = memory
        self.config = config or LearningConfig()
        self._clock = clock or time.monotonic
        self._locator = locator or (lambda: (0, 0, 0))
        self.rng = rng or random.Random(self.config.prng_seed)
        self.agent_id = agent_id

        self.values = ActionValueTable(
            learning_rate=self.config.learning_rate,
            default_value=self.config.default_value,
        )
        self.patterns = PatternTable(
            max_patterns=self.config.max_patterns,
            confidence_attempts=self.config.confidence_attempts,
        )
        self.strategies = StrategyBook(max_strategies=self.config.max_strategies)

    # ------------------------------------------------------------------
    # Outcomes
    # ------------------------------------------------------------------

    def record_outcome(
        self,
        action: Union[str, object],
        context: str,
        success: bool,
        conditions: Optional[Iterable[str]] = None,
    ) -> float:
        """
        Learn from one outcome.

        Args:
            action: Action name or ActionType
            context: Context key the action was taken in
            success: Whether it worked
            conditions: Conditions to remember alongside a success

        Returns:
            The updated action value
        """
        action = enum_value(action)
        value = self.values.update(context, action, 1.0 if success else 0.0)
        self.patterns.record(context, action, success, conditions)
        self.memory.store_action_outcome(
            action,
            "success" if success else "failure",
            success,
            self._locator(),
        )

        running = self.strategies.running
        if running is not None:
            running.update_effectiveness(success, self._clock() - self.strategies.started_at)

        logger.debug(
            f"Outcome {action} in {context}: {'success' if success else 'failure'} -> {value:.3f}",
            extra=log_extra("learning", self.agent_id, event_type="outcome"),
        )
        return value

    def adapt_to_failure(self, action: Union[str, object], context: str) -> Optional[str]:
        """
        Record a failure, then look for a remembered success nearby.

        Returns:
            The action name of a successful past experience, if one exists
        """
        action = enum_value(action)
        self.record_outcome(action, context, success=False)
        for experience in self.relevant_experiences(action):
            if experience.payload.get("success"):
                alternative = experience.payload.get("action")
                logger.info(
                    f"Recalled a past success with {alternative} after {action} failed",
                    extra=log_extra("learning", self.agent_id, event_type="adapt"),
                )
                return alternative
        return None

    def relevant_experiences(self, action: Union[str, object]) -> List[MemoryRecord]:
        return self.memory.relevant_experiences(enum_value(action), self._locator())

    # ------------------------------------------------------------------
    # Recommendations
    # ------------------------------------------------------------------

    def action_value(self, context: str, action: Union[str, object]) -> float:
        """
        Favorability of ``action`` in ``context``.

        Falls back to the mean of success_rate * confidence over patterns for
        the same action whose context shares the leading token, then to the
        configured default.
        """
        action = enum_value(action)
        direct = self.values.get(context, action)
        if direct is not None:
            return direct

        leading = self._leading_token(context)
        related = [
            p for p in self.patterns.for_action(action)
            if self._leading_token(p.context) == leading
        ]
        if not related:
            return self.config.default_value
        return sum(p.success_rate * p.confidence for p in related) / len(related)

    def recommend_action(self, context: str, candidates: Sequence[A]) -> A:
        """
        Epsilon-greedy choice among ``candidates``.

        Raises:
            ValueError: If there are no candidates
        """
        if not candidates:
            raise ValueError("recommend_action needs at least one candidate")
        if self.rng.random() < self.config.exploration_rate:
            return self.rng.choice(list(candidates))
        return max(candidates, key=lambda a: self.action_value(context, a))

    def recommend_strategy(self, goal_type: GoalType) -> Optional[Strategy]:
        """Epsilon-greedy choice among the strategies for ``goal_type``."""
        options = self.strategies.for_goal(goal_type)
        if not options:
            return None
        if self.rng.random() < self.config.exploration_rate:
            return self.rng.choice(options)
        return max(options, key=lambda s: s.effectiveness)

    # ------------------------------------------------------------------
    # Strategy window
    # ------------------------------------------------------------------

    def register_strategy(self, strategy: Strategy) -> bool:
        return self.strategies.register(strategy)

    def start_strategy(self, strategy_id: str) -> bool:
        started = self.strategies.start(strategy_id, self._clock())
        if started:
            logger.info(
                f"Strategy started: {strategy_id}",
                extra=log_extra("learning", self.agent_id, event_type="strategy_start"),
            )
        return started

    def end_strategy(self, success: bool) -> None:
        """Close the running strategy window, folding in its final outcome."""
        running = self.strategies.running
        if running is None:
            return
        running.update_effectiveness(success, self._clock() - self.strategies.started_at)
        self.strategies.stop()
        logger.info(
            f"Strategy ended: {running.strategy_id} "
            f"({'success' if success else 'failure'}, effectiveness={running.effectiveness:.2f})",
            extra=log_extra("learning", self.agent_id, event_type="strategy_end"),
        )

    @property
    def current_strategy(self) -> Optional[Strategy]:
        return self.strategies.running

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def learning_progress(self) -> float:
        """Mean pattern confidence (0.0 with no patterns)."""
        return self.patterns.mean_confidence()

    def pattern_count(self) -> int:
        return len(self.patterns)

    def strategy_count(self) -> int:
        return len(self.strategies)

    def action_values(self) -> Dict[Tuple[str, str], float]:
        return self.values.snapshot()

    def get_pattern(self, context: str, action: Union[str, object]) -> Optional[LearningPattern]:
        return self.patterns.get(context, enum_value(action))

    def _leading_token(self, context: str) -> str:
        return context.split(self.config.context_separator, 1)[0]
