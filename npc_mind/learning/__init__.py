"""
Learning layer for npc_mind.

Key principles:
- Values and pattern statistics stay within [0, 1]
- Storage is bounded (patterns and strategies are capped)
- Exploration is epsilon-greedy and seedable for deterministic tests
- Every outcome is also remembered as an Outcome memory
"""

from .learning_config import LearningConfig, LearningPresets, DEFAULT_LEARNING_CONFIG
from .learning_state import ActionValueTable, LearningPattern, PatternTable
from .strategy import Strategy, StrategyBook, basic_strategies
from .engine import LearningEngine


__all__ = [
    # Engine
    "LearningEngine",
    
    # State
    "ActionValueTable",
    "LearningPattern",
    "PatternTable",
    
    # Strategies
    "Strategy",
    "StrategyBook",
    "basic_strategies",
    
    # Configuration
    "LearningConfig",
    "LearningPresets",
    "DEFAULT_LEARNING_CONFIG",
]
