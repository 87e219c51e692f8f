"""
npc_mind: cognition core for a simulated autonomous character.

The agent notices what it needs, turns the need into a goal, expands the
goal into primitive actions, executes them one at a time against its
collaborators, remembers what happened and learns from the outcomes.

Components (leaf first):
- MemoryStore: bounded working / long-term / episodic memory
- LearningEngine: action values, learned patterns, strategy effectiveness
- GoalRegistry: prioritized goals and current-goal selection
- ActionPlanner: goal templates served one action at a time
- AgentController: the decision state machine tying them together
"""

from .config import AgentConfig, get_preset, list_presets
from .controller import AgentController
from .errors import MalformedToolArguments, NPCMindError, RemoteCallFailure, UnreachableTarget
from .goals import Goal, GoalRegistry
from .knowledge import KnowledgeBase, KnowledgeItem
from .learning import LearningConfig, LearningEngine, Strategy
from .memory import MemoryConfig, MemoryRecord, MemoryStore
from .planner import ActionPlanner, PlannedAction, PlanScratch
from .types import (
    ActionType,
    AgentState,
    GoalType,
    MemoryKind,
    MemoryTier,
    ModelReply,
    ToolInvocation,
    WorldItem,
)

__version__ = "0.1.0"

__all__ = [
    # Orchestration
    "AgentController",
    
    # Components
    "MemoryStore",
    "MemoryRecord",
    "LearningEngine",
    "Strategy",
    "GoalRegistry",
    "Goal",
    "ActionPlanner",
    "PlannedAction",
    "PlanScratch",
    "KnowledgeBase",
    "KnowledgeItem",
    
    # Types
    "ActionType",
    "AgentState",
    "GoalType",
    "MemoryKind",
    "MemoryTier",
    "ModelReply",
    "ToolInvocation",
    "WorldItem",
    
    # Configuration
    "AgentConfig",
    "MemoryConfig",
    "LearningConfig",
    "get_preset",
    "list_presets",
    
    # Errors
    "NPCMindError",
    "MalformedToolArguments",
    "UnreachableTarget",
    "RemoteCallFailure",
]
