"""
Structured logging configuration.

Emits human-readable logs on stderr and, optionally, rotating human and
JSON log files. Records may carry these structured fields via ``extra=``:
- subsystem (memory, learning, goals, planner, controller, tools, llm)
- agent_id
- event_type
- tick
"""
from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional


class JSONFormatter(logging.Formatter):
    """Format log records as JSON."""
    
    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        
        if hasattr(record, "subsystem"):
            log_data["subsystem"] = record.subsystem
        if getattr(record, "agent_id", None):
            log_data["agent_id"] = record.agent_id
        if getattr(record, "event_type", None):
            log_data["event"] = record.event_type
        if getattr(record, "tick", None) is not None:
            log_data["tick"] = record.tick
        
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        
        return json.dumps(log_data)


class HumanFormatter(logging.Formatter):
    """Human-readable format with colors."""
    
    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"
    
    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors
    
    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S.%f")[:-3]
        prefix_parts = [f"{timestamp} {record.levelname[:4]}"]
        
        subsystem = getattr(record, "subsystem", None)
        if subsystem:
            prefix_parts.append(f"[{subsystem}]")
        if getattr(record, "agent_id", None):
            prefix_parts.append(f"agent={record.agent_id}")
        if getattr(record, "tick", None) is not None:
            prefix_parts.append(f"tick={record.tick}")
        
        line = f"{' '.join(prefix_parts)}: {record.getMessage()}"
        
        if self.use_colors and sys.stderr.isatty():
            color = self.COLORS.get(record.levelname, "")
            line = f"{color}{line}{self.RESET}"
        
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        
        return line


def configure_logging(
    level: str = "INFO",
    log_dir: Optional[str] = None,
    json_file: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """
    Configure structured logging for the application.
    
    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directory for log files (no files when None)
        json_file: Path for JSON logs (in log_dir if relative)
        max_bytes: Max size per log file
        backup_count: Number of backup files to keep
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers = []
    
    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(HumanFormatter())
    root_logger.addHandler(console)
    
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        
        human_handler = RotatingFileHandler(
            os.path.join(log_dir, "npc_mind.log"),
            maxBytes=max_bytes,
            backupCount=backup_count,
        )
        human_handler.setFormatter(HumanFormatter(use_colors=False))
        root_logger.addHandler(human_handler)
        
        json_path = json_file or "npc_mind.json.log"
        if not os.path.isabs(json_path):
            json_path = os.path.join(log_dir, json_path)
        
        json_handler = RotatingFileHandler(
            json_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
        )
        json_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(json_handler)


def log_extra(subsystem: str, agent_id: Optional[str] = None, **fields: Any) -> Dict[str, Any]:
    """Build the ``extra`` mapping for a structured log call."""
    extra: Dict[str, Any] = {"subsystem": subsystem}
    if agent_id:
        extra["agent_id"] = agent_id
    extra.update(fields)
    return extra
