"""
Tests for structured logging.
"""
import json
import logging

import pytest

from npc_mind.logging_config import HumanFormatter, JSONFormatter, configure_logging, log_extra


def _record(**extra):
    record = logging.LogRecord("npc_mind.memory", logging.INFO, __file__, 1, "Evicted %s", ("mem_1",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestFormatters:
    """Test JSON and human formatting."""

    def test_json_includes_structured_fields(self):
        """JSON output carries the structured fields."""
        record = _record(**log_extra("memory", "npc", event_type="evict", tick=4))

        data = json.loads(JSONFormatter().format(record))

        assert data["message"] == "Evicted mem_1"
        assert data["level"] == "INFO"
        assert data["subsystem"] == "memory"
        assert data["agent_id"] == "npc"
        assert data["event"] == "evict"
        assert data["tick"] == 4

    def test_json_omits_missing_fields(self):
        """Absent fields are left out of JSON output."""
        data = json.loads(JSONFormatter().format(_record()))
        assert "subsystem" not in data
        assert "agent_id" not in data

    def test_human_prefix(self):
        """Human output is prefixed with subsystem, agent and tick."""
        record = _record(**log_extra("controller", "npc", tick=2))
        line = HumanFormatter(use_colors=False).format(record)
        assert "[controller] agent=npc tick=2: Evicted mem_1" in line


class TestConfigureLogging:
    """Test handler setup."""

    def test_writes_rotating_files(self, tmp_path):
        """Logging writes both rotating files."""
        root = logging.getLogger()
        saved_level, saved_handlers = root.level, list(root.handlers)
        configure_logging(level="DEBUG", log_dir=str(tmp_path))
        try:
            logging.getLogger("npc_mind.test").info("hello", extra=log_extra("test"))
            for handler in logging.getLogger().handlers:
                handler.flush()

            assert (tmp_path / "npc_mind.log").exists()
            line = (tmp_path / "npc_mind.json.log").read_text().strip().splitlines()[-1]
            assert json.loads(line)["subsystem"] == "test"
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers = saved_handlers
            root.setLevel(saved_level)

    def test_log_extra_skips_empty_agent(self):
        """An empty agent id is not included."""
        assert log_extra("goals") == {"subsystem": "goals"}
        assert log_extra("goals", "npc", tick=1) == {"subsystem": "goals", "agent_id": "npc", "tick": 1}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
