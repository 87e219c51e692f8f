"""
Learning configuration.

Controls the value learner, the pattern table and strategy selection
through bounded parameters with the defaults the agent was tuned with.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class LearningConfig:
    """
    Configuration for the learning engine.
    
    Attributes:
        learning_rate: Step size for action value updates (0.0 to 1.0)
        exploration_rate: Epsilon-greedy exploration probability (0.0 to 1.0)
        max_patterns: Maximum number of (context, action) patterns kept
        max_strategies: Maximum number of registered strategies
        confidence_attempts: Attempts needed for full pattern confidence
        default_value: Value of an unseen (context, action) pair
        context_separator: Separator between context tokens
        prng_seed: Seed for deterministic exploration (None = random)
    """
    learning_rate: float = 0.1
    exploration_rate: float = 0.2
    
    # Bounded storage
    max_patterns: int = 50
    max_strategies: int = 20
    
    confidence_attempts: int = 10
    default_value: float = 0.5
    context_separator: str = "|"
    
    # Determinism
    prng_seed: Optional[int] = None
    
    def __post_init__(self):
        """Clamp all parameters to safe ranges."""
        self.learning_rate = max(0.0, min(1.0, self.learning_rate))
        self.exploration_rate = max(0.0, min(1.0, self.exploration_rate))
        self.max_patterns = max(1, min(10000, self.max_patterns))
        self.max_strategies = max(1, min(1000, self.max_strategies))
        self.confidence_attempts = max(1, self.confidence_attempts)
        self.default_value = max(0.0, min(1.0, self.default_value))
        if not self.context_separator:
            self.context_separator = "|"
    
    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {
            "learning_rate": self.learning_rate,
            "exploration_rate": self.exploration_rate,
            "max_patterns": self.max_patterns,
            "max_strategies": self.max_strategies,
            "confidence_attempts": self.confidence_attempts,
            "default_value": self.default_value,
            "context_separator": self.context_separator,
            "prng_seed": self.prng_seed,
        }
    
    @classmethod
    def from_dict(cls, data: dict) -> "LearningConfig":
        """Deserialize from dictionary."""
        return cls(**{k: v for k, v in data.items() if k in cls.__annotations__})


DEFAULT_LEARNING_CONFIG = LearningConfig()


class LearningPresets:
    """Pre-configured learning presets."""
    
    @staticmethod
    def default() -> LearningConfig:
        """Rates the agent ships with."""
        return LearningConfig()
    
    @staticmethod
    def greedy() -> LearningConfig:
        """Never explores; always exploits the best known value."""
        return LearningConfig(exploration_rate=0.0)
    
    @staticmethod
    def curious() -> LearningConfig:
        """Explores more and adapts faster."""
        return LearningConfig(exploration_rate=0.4, learning_rate=0.2)
    
    @staticmethod
    def deterministic_test(seed: int = 42) -> LearningConfig:
        """Deterministic configuration for testing."""
        return LearningConfig(prng_seed=seed)
