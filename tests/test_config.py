"""
Tests for agent configuration and presets.
"""
import json

import pytest

from npc_mind.config import PRESETS, AgentConfig, get_preset, list_presets
from npc_mind.learning import LearningConfig
from npc_mind.memory import MemoryConfig


class TestAgentConfig:
    """Test AgentConfig dataclass."""

    def test_default_values(self):
        """Should match the tuned defaults."""
        config = AgentConfig()

        assert config.initial_satiety == 80.0
        assert config.hunger_threshold == 70.0
        assert config.eat_amount == 20.0
        assert config.day_vision == 5.0
        assert config.night_vision == 1.0
        assert config.food_keywords == ["apple", "food"]
        assert config.memory.max_working == 7
        assert config.learning.exploration_rate == 0.2

    def test_satiety_clamped(self):
        """Initial satiety is clamped to [0, 100]."""
        assert AgentConfig(initial_satiety=140).initial_satiety == 100.0
        assert AgentConfig(initial_satiety=-5).initial_satiety == 0.0

    def test_nested_dicts_converted(self):
        """Nested sections given as dicts become config objects."""
        config = AgentConfig.from_dict({
            "agent_id": "mira",
            "memory": {"max_working": 5, "bogus": 1},
            "learning": {"exploration_rate": 0.0, "prng_seed": 3},
            "unknown_field": True,
        })

        assert config.agent_id == "mira"
        assert isinstance(config.memory, MemoryConfig)
        assert config.memory.max_working == 5
        assert isinstance(config.learning, LearningConfig)
        assert config.learning.prng_seed == 3

    def test_to_dict_roundtrip(self):
        """A config survives to_dict and from_dict unchanged."""
        original = AgentConfig(
            agent_id="mira",
            initial_satiety=55.0,
            learning=LearningConfig(exploration_rate=0.1),
        )
        restored = AgentConfig.from_dict(original.to_dict())
        assert restored == original


class TestLoad:
    """Test loading configs from files."""

    def test_load_yaml(self, tmp_path):
        """YAML files load, including nested sections."""
        path = tmp_path / "agent.yaml"
        path.write_text(
            "agent_id: mira\n"
            "initial_satiety: 60\n"
            "food_keywords: [apple, berry]\n"
            "learning:\n"
            "  exploration_rate: 0.0\n"
            "  prng_seed: 7\n",
            encoding="utf-8",
        )

        config = AgentConfig.load(str(path))

        assert config.agent_id == "mira"
        assert config.initial_satiety == 60
        assert config.food_keywords == ["apple", "berry"]
        assert config.learning.prng_seed == 7

    def test_load_json(self, tmp_path):
        """JSON files load by extension."""
        path = tmp_path / "agent.json"
        path.write_text(json.dumps({"agent_id": "json", "memory": {"max_long_term": 10}}))

        config = AgentConfig.load(str(path))

        assert config.agent_id == "json"
        assert config.memory.max_long_term == 10

    def test_empty_yaml_gives_defaults(self, tmp_path):
        """An empty YAML file yields the defaults."""
        path = tmp_path / "empty.yml"
        path.write_text("")
        assert AgentConfig.load(str(path)) == AgentConfig()

    def test_missing_file(self, tmp_path):
        """A missing file returns None."""
        assert AgentConfig.load(str(tmp_path / "missing.yaml")) is None


class TestPresets:
    """Test built-in presets."""

    def test_list_presets(self):
        """All built-in presets are listed."""
        assert set(list_presets()) == {"default", "hungry", "curious", "test"}

    def test_get_preset_case_insensitive(self):
        """Preset lookup ignores case."""
        assert get_preset("HUNGRY").initial_satiety == 60.0

    def test_unknown_preset(self):
        """Unknown preset names return None."""
        assert get_preset("sleepy") is None

    def test_preset_is_a_copy(self):
        """Mutating a returned preset leaves the registry intact."""
        config = get_preset("test")
        config.learning.exploration_rate = 0.9
        config.food_keywords.append("bread")

        assert PRESETS["test"].learning.exploration_rate == 0.0
        assert "bread" not in PRESETS["test"].food_keywords

    def test_test_preset_is_deterministic(self):
        """The test preset never explores."""
        config = get_preset("test")
        assert config.learning.exploration_rate == 0.0
        assert config.learning.prng_seed == 42


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
