"""
Shared value types for the cognition core.

Every "type" field that drives dispatch is a closed ``str`` enum so the
controller and planner can build exhaustive tables instead of comparing
free-form strings.
"""
from __future__ import annotations

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Tuple, Union

Position = Tuple[float, float, float]


class MemoryKind(str, Enum):
    ACTION = "action"
    OBSERVATION = "observation"
    INTERACTION = "interaction"
    EMOTION = "emotion"
    OUTCOME = "outcome"
    LEARNING = "learning"


class MemoryTier(str, Enum):
    WORKING = "working"
    LONG_TERM = "long_term"
    EPISODIC = "episodic"


class GoalType(str, Enum):
    SURVIVAL = "survival"
    EXPLORATION = "exploration"
    LEARNING = "learning"
    SOCIAL = "social"


class ActionType(str, Enum):
    THINK = "think"
    SEARCH_FOOD = "search_food"
    MOVE_TO_ITEM = "move_to_item"
    COLLECT_EAT = "collect_eat"
    MOVE_EXPLORE = "move_explore"
    OBSERVE = "observe"
    IDENTIFY_UNKNOWN = "identify_unknown"
    ASK_ABOUT_ITEM = "ask_about_item"
    INITIATE_CONVERSATION = "initiate_conversation"


class AgentState(str, Enum):
    UNINITIALIZED = "uninitialized"
    DECIDING = "deciding"
    AWAITING_PLAYER_RESPONSE = "awaiting_player_response"
    EXECUTING_ACTION = "executing_action"


def enum_value(value: Union[Enum, str]) -> str:
    """Plain string form of an enum member or string, usable as a dict key."""
    return value.value if isinstance(value, Enum) else str(value)


@dataclass(frozen=True)
class WorldItem:
    """An item reported by world perception."""
    item_id: str
    category_id: str
    item_type: str
    position: Position


@dataclass
class ToolInvocation:
    """
    One tool call requested by the language model.

    Attributes:
        name: Tool name from the catalog (e.g. "UpdateKnowledges")
        arguments: Raw JSON string or an already-decoded mapping
    """
    name: str
    arguments: Union[str, Dict[str, Any]] = field(default_factory=dict)


@dataclass
class ModelReply:
    """Text plus zero or more tool invocations from a tool-enabled call."""
    text: str = ""
    tool_calls: List[ToolInvocation] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
