"""
Tests for the learning engine, its tables and strategies.
"""
import random

import pytest

from npc_mind.learning import (
    ActionValueTable,
    LearningConfig,
    LearningEngine,
    LearningPattern,
    LearningPresets,
    PatternTable,
    Strategy,
)
from npc_mind.memory import MemoryStore
from npc_mind.sandbox import ManualClock
from npc_mind.types import ActionType, GoalType, MemoryKind


@pytest.fixture
def clock():
    return ManualClock(0.0)


@pytest.fixture
def memory(clock):
    return MemoryStore(clock=clock)


@pytest.fixture
def engine(memory, clock):
    """Greedy engine with a fixed seed."""
    config = LearningConfig(exploration_rate=0.0, prng_seed=1)
    return LearningEngine(memory, config, clock=clock)


class TestActionValueTable:
    """Test value updates."""

    def test_unseen_pair_is_none(self):
        """Unseen context/action pairs have no value."""
        assert ActionValueTable().get("satiety:3", "think") is None

    def test_success_moves_toward_one(self):
        """Success moves the value toward 1."""
        table = ActionValueTable(learning_rate=0.1, default_value=0.5)
        assert table.update("ctx", "eat", 1.0) == pytest.approx(0.55)

    def test_failure_moves_toward_zero(self):
        """Failure moves the value toward 0."""
        table = ActionValueTable(learning_rate=0.1, default_value=0.5)
        assert table.update("ctx", "eat", 0.0) == pytest.approx(0.45)

    def test_values_stay_bounded_and_monotone(self):
        """Successes never lower a value; failures never raise it."""
        table = ActionValueTable(learning_rate=0.3)
        rng = random.Random(5)
        for _ in range(500):
            old = table.get("ctx", "eat")
            old = 0.5 if old is None else old
            reward = 1.0 if rng.random() < 0.5 else 0.0
            new = table.update("ctx", "eat", reward)
            assert 0.0 <= new <= 1.0
            if reward == 1.0:
                assert new >= old
            else:
                assert new <= old


class TestLearningPattern:
    """Test pattern statistics."""

    def test_confidence_grows_with_attempts(self):
        """Confidence rises by 0.1 per attempt up to 1."""
        pattern = LearningPattern("ctx", "eat")
        for _ in range(4):
            pattern.update(True)
        assert pattern.confidence == pytest.approx(0.4)

        for _ in range(10):
            pattern.update(False)
        assert pattern.confidence == 1.0

    def test_success_rate(self):
        """Success rate is successes over attempts."""
        pattern = LearningPattern("ctx", "eat")
        pattern.update(True)
        pattern.update(False)
        pattern.update(True)
        assert pattern.success_rate == pytest.approx(2 / 3)
        assert pattern.total_attempts == 3
        assert pattern.successful_attempts == 2

    def test_conditions_only_kept_on_success(self):
        """Conditions are collected from successes only."""
        pattern = LearningPattern("ctx", "eat")
        pattern.update(False, ["daytime"])
        pattern.update(True, ["near_food", "daytime"])
        pattern.update(True, ["near_food"])
        assert pattern.conditions == ["near_food", "daytime"]


class TestPatternTable:
    """Test the bounded pattern collection."""

    def test_capacity_never_exceeded(self):
        """The table never exceeds its capacity."""
        table = PatternTable(max_patterns=5)
        for i in range(40):
            table.record(f"ctx{i}", "eat", True)
            assert len(table) <= 5

    def test_evicts_pattern_with_fewest_attempts(self):
        """The least tried pattern is evicted first."""
        table = PatternTable(max_patterns=3)
        table.record("a", "eat", True)
        table.record("a", "eat", True)
        table.record("b", "eat", True)
        table.record("c", "eat", True)
        table.record("c", "eat", False)

        table.record("d", "eat", True)

        assert len(table) == 3
        assert table.get("b", "eat") is None
        assert table.get("a", "eat") is not None
        assert table.get("d", "eat") is not None


class TestStrategy:
    """Test strategy effectiveness."""

    def test_running_mean(self):
        """Effectiveness and duration are running means."""
        strategy = Strategy("s", GoalType.SURVIVAL, [ActionType.THINK])
        strategy.update_effectiveness(True, 4.0)
        strategy.update_effectiveness(False, 2.0)

        assert strategy.usage_count == 2
        assert strategy.effectiveness == pytest.approx(0.5)
        assert strategy.average_duration == pytest.approx(3.0)

    def test_accepts_plain_strings(self):
        """Goal and action types may be given as strings."""
        strategy = Strategy("s", "survival", ["think", "collect_eat"])
        assert strategy.goal_type == GoalType.SURVIVAL
        assert strategy.action_sequence == [ActionType.THINK, ActionType.COLLECT_EAT]


class TestRecordOutcome:
    """Test the learning engine's outcome path."""

    def test_returns_updated_value(self, engine):
        """Recording returns the updated action value."""
        assert engine.record_outcome(ActionType.THINK, "satiety:4", True) == pytest.approx(0.55)
        assert engine.action_values() == {("satiety:4", "think"): pytest.approx(0.55)}

    def test_writes_outcome_memory(self, engine, memory):
        """Each outcome is stored as an outcome memory."""
        engine.record_outcome("search_food", "satiety:2", False)

        outcomes = [r for r in memory.working if r.kind == MemoryKind.OUTCOME]
        assert len(outcomes) == 1
        assert outcomes[0].importance == pytest.approx(0.9)
        assert outcomes[0].payload == {"action": "search_food", "outcome": "failure", "success": False}

    def test_updates_pattern(self, engine):
        """Outcomes update the matching pattern."""
        engine.record_outcome("think", "ctx", True, conditions=["daytime"])
        pattern = engine.get_pattern("ctx", ActionType.THINK)
        assert pattern.total_attempts == 1
        assert pattern.conditions == ["daytime"]
        assert engine.pattern_count() == 1

    def test_values_bounded_under_random_outcomes(self, engine):
        """Values stay within [0, 1]."""
        rng = random.Random(9)
        for _ in range(200):
            value = engine.record_outcome("eat", "ctx", rng.random() < 0.3)
            assert 0.0 <= value <= 1.0

    def test_learning_progress(self, engine):
        """Progress grows with successful patterns."""
        assert engine.learning_progress() == 0.0
        for _ in range(5):
            engine.record_outcome("eat", "ctx", True)
        assert engine.learning_progress() == pytest.approx(0.5)


class TestActionValue:
    """Test the value lookup and its fallback."""

    def test_unseen_uses_default(self, engine):
        """Unseen pairs fall back to the default value."""
        assert engine.action_value("satiety:1", "eat") == 0.5

    def test_falls_back_on_leading_token(self, engine):
        """Patterns sharing the leading token are used as a fallback."""
        for _ in range(10):
            engine.record_outcome("eat", "satiety:2|moving", True)

        assert engine.action_value("satiety:2", "eat") == pytest.approx(1.0)
        assert engine.action_value("satiety:3", "eat") == 0.5

    def test_fallback_averages_success_and_confidence(self, engine):
        """The fallback averages success rate and confidence."""
        for success in (True, True, False, False, False):
            engine.record_outcome("eat", "satiety:2|moving", success)

        # success_rate 0.4, confidence 0.5
        assert engine.action_value("satiety:2|items_nearby", "eat") == pytest.approx(0.2)


class TestRecommendations:
    """Test epsilon-greedy selection."""

    def test_greedy_picks_best(self, engine):
        """Without exploration the best action is chosen."""
        for _ in range(5):
            engine.record_outcome("eat", "ctx", True)
            engine.record_outcome("walk", "ctx", False)

        assert engine.recommend_action("ctx", ["walk", "eat"]) == "eat"

    def test_returns_candidate_objects(self, engine):
        """The chosen candidate itself is returned."""
        engine.record_outcome(ActionType.OBSERVE, "ctx", True)
        choice = engine.recommend_action("ctx", [ActionType.THINK, ActionType.OBSERVE])
        assert choice is ActionType.OBSERVE

    def test_empty_candidates_rejected(self, engine):
        """An empty candidate list raises ValueError."""
        with pytest.raises(ValueError):
            engine.recommend_action("ctx", [])

    def test_full_exploration_samples_all(self, memory, clock):
        """Full exploration eventually picks every candidate."""
        config = LearningConfig(exploration_rate=1.0, prng_seed=3)
        engine = LearningEngine(memory, config, clock=clock)
        for _ in range(5):
            engine.record_outcome("eat", "ctx", True)

        picks = {engine.recommend_action("ctx", ["walk", "eat"]) for _ in range(50)}
        assert picks == {"walk", "eat"}

    def test_seeded_exploration_is_reproducible(self, memory, clock):
        """The same seed gives the same choices."""
        def picks(seed):
            config = LearningConfig(exploration_rate=0.5, prng_seed=seed)
            engine = LearningEngine(MemoryStore(clock=clock), config, clock=clock)
            return [engine.recommend_action("ctx", ["a", "b", "c"]) for _ in range(20)]

        assert picks(7) == picks(7)

    def test_recommend_strategy(self, engine):
        """Strategies are recommended by goal type."""
        assert engine.recommend_strategy(GoalType.SURVIVAL).strategy_id == "survival_basic"
        assert engine.recommend_strategy(GoalType.SOCIAL) is None

    def test_recommend_most_effective_strategy(self, engine):
        """The most effective strategy wins."""
        better = Strategy(
            "survival_forage",
            GoalType.SURVIVAL,
            [ActionType.SEARCH_FOOD, ActionType.COLLECT_EAT],
            effectiveness=0.9,
        )
        assert engine.register_strategy(better)
        assert engine.recommend_strategy(GoalType.SURVIVAL) is better


class TestStrategyWindow:
    """Test starting and ending strategies."""

    def test_outcomes_feed_running_strategy(self, engine, clock):
        """Outcomes update the running strategy."""
        clock.advance(5)
        assert engine.start_strategy("survival_basic")
        clock.advance(5)

        engine.record_outcome("think", "ctx", True)

        strategy = engine.current_strategy
        assert strategy.strategy_id == "survival_basic"
        assert strategy.usage_count == 1
        assert strategy.effectiveness == pytest.approx(1.0)
        assert strategy.average_duration == pytest.approx(5.0)

    def test_end_strategy_folds_outcome_and_stops(self, engine):
        """Ending a strategy folds in its outcome and stops it."""
        engine.start_strategy("survival_basic")
        engine.record_outcome("think", "ctx", True)

        engine.end_strategy(False)

        strategy = engine.strategies.get("survival_basic")
        assert strategy.usage_count == 2
        assert strategy.effectiveness == pytest.approx(0.5)
        assert engine.current_strategy is None

    def test_end_without_running_is_noop(self, engine):
        """Ending with nothing running does nothing."""
        engine.end_strategy(True)
        assert all(s.usage_count == 0 for s in engine.strategies.all())

    def test_outcomes_without_strategy_leave_strategies_alone(self, engine):
        """Outcomes outside a strategy window leave strategies alone."""
        engine.record_outcome("think", "ctx", True)
        assert all(s.usage_count == 0 for s in engine.strategies.all())

    def test_unknown_strategy_not_started(self, engine):
        """Unknown strategies cannot be started."""
        assert not engine.start_strategy("does_not_exist")
        assert engine.current_strategy is None

    def test_strategy_limit(self, memory, clock):
        """Registration stops at the strategy limit."""
        engine = LearningEngine(memory, LearningConfig(max_strategies=3), clock=clock)
        extra = Strategy("extra", GoalType.SOCIAL, [ActionType.THINK])

        assert not engine.register_strategy(extra)
        assert engine.strategy_count() == 3


class TestAdaptToFailure:
    """Test recalling past successes after a failure."""

    def test_returns_remembered_success(self, engine):
        """A remembered success is suggested after a failure."""
        engine.record_outcome("search_food", "ctx", True)
        assert engine.adapt_to_failure("search_food", "ctx") == "search_food"

    def test_none_without_success(self, engine):
        """Nothing is suggested without a past success."""
        assert engine.adapt_to_failure("search_food", "ctx") is None
        assert engine.get_pattern("ctx", "search_food").success_rate == 0.0


class TestLearningConfig:
    """Test config clamping and presets."""

    def test_clamps(self):
        """Out-of-range values are clamped."""
        config = LearningConfig(learning_rate=2.0, exploration_rate=-1.0, max_patterns=0)
        assert config.learning_rate == 1.0
        assert config.exploration_rate == 0.0
        assert config.max_patterns == 1

    def test_round_trip(self):
        """A config survives to_dict and from_dict."""
        config = LearningConfig(exploration_rate=0.3, prng_seed=4)
        assert LearningConfig.from_dict(config.to_dict()) == config

    def test_presets(self):
        """Presets carry their tuning."""
        assert LearningPresets.greedy().exploration_rate == 0.0
        assert LearningPresets.deterministic_test().prng_seed == 42


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
