"""
Configuration for the agent and its memory.

Configurations are plain dataclasses that can be created in code, loaded
from YAML/JSON files, or taken from the built-in presets.
"""
from __future__ import annotations

import copy
import json
import logging
import os
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

import yaml

from .learning.learning_config import LearningConfig
from .memory import MemoryConfig

logger = logging.getLogger(__name__)


@dataclass
class AgentConfig:
    """
    Configuration for one simulated character.
    
    Attributes:
        agent_id: Identifier used in logs
        initial_satiety: Starting satiety (0 to 100)
        hunger_threshold: Satiety at or below which a survival goal is raised
        eat_amount: Satiety restored by eating one food item
        move_cost: Satiety consumed by one completed movement
        day_vision: Perception radius during the day
        night_vision: Perception radius at night
        nearby_radius: Distance that counts as "items nearby" in contexts
        reach: Distance within which food can be collected without a plan target
        maintenance_interval: Simulated seconds between memory maintenance runs
        max_history: Dialogue turns kept for prompts
        food_keywords: Category substrings that mark an item as food
        intro_message: First thing the agent says
        fallback_reply: Shown when the language model returns nothing usable
        error_reply: Shown when a language model request fails
    """
    agent_id: str = "npc"
    initial_satiety: float = 80.0
    hunger_threshold: float = 70.0
    eat_amount: float = 20.0
    move_cost: float = 1.0
    
    day_vision: float = 5.0
    night_vision: float = 1.0
    nearby_radius: float = 3.0
    reach: float = 1.0
    maintenance_interval: float = 10.0
    max_history: int = 50
    
    food_keywords: List[str] = field(default_factory=lambda: ["apple", "food"])
    
    intro_message: str = "Where am I? Who am I?"
    fallback_reply: str = "Hmm, I see."
    error_reply: str = "Sorry, my mind went blank for a moment."
    reasoning_system_prompt: str = (
        "You are a newly awakened person in a small world. You know nothing "
        "about your surroundings and learn by observing and asking. "
        "Answer briefly, in the first person."
    )
    tools_system_prompt: str = (
        "You are a newly awakened person talking with the player. Use the "
        "tools to record what you learn about items, to move, and to eat. "
        "Reply briefly, in the first person."
    )
    
    memory: MemoryConfig = field(default_factory=MemoryConfig)
    learning: LearningConfig = field(default_factory=LearningConfig)
    
    def __post_init__(self):
        self.initial_satiety = max(0.0, min(100.0, self.initial_satiety))
        if isinstance(self.memory, dict):
            self.memory = MemoryConfig.from_dict(self.memory)
        if isinstance(self.learning, dict):
            self.learning = LearningConfig.from_dict(self.learning)
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        data = asdict(self)
        data["learning"] = self.learning.to_dict()
        return data
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AgentConfig":
        """Create from dictionary."""
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})
    
    @classmethod
    def load(cls, path: str) -> Optional["AgentConfig"]:
        """Load config from a JSON or YAML file."""
        if not os.path.exists(path):
            logger.warning(f"Config file not found: {path}")
            return None
        
        with open(path, "r", encoding="utf-8") as f:
            content = f.read()
        
        if path.endswith((".yaml", ".yml")):
            data = yaml.safe_load(content) or {}
        else:
            data = json.loads(content)
        
        return cls.from_dict(data)


PRESETS: Dict[str, AgentConfig] = {
    "default": AgentConfig(),
    "hungry": AgentConfig(
        agent_id="hungry",
        initial_satiety=60.0,
    ),
    "curious": AgentConfig(
        agent_id="curious",
        day_vision=8.0,
        night_vision=2.0,
        learning=LearningConfig(exploration_rate=0.4, learning_rate=0.2),
    ),
    "test": AgentConfig(
        agent_id="test",
        learning=LearningConfig(exploration_rate=0.0, prng_seed=42),
    ),
}


def get_preset(name: str) -> Optional[AgentConfig]:
    """Get a fresh copy of a built-in agent preset by name."""
    preset = PRESETS.get(name.lower())
    return copy.deepcopy(preset) if preset else None


def list_presets() -> List[str]:
    """List available preset names."""
    return list(PRESETS.keys())
