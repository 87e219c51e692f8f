"""
Exception hierarchy for the cognition core.

None of these is fatal to the tick loop: each is raised at a
collaborator boundary and caught by the component that owns recovery.
"""
from __future__ import annotations

from typing import Optional, Sequence


class NPCMindError(Exception):
    """Base class for all npc_mind errors."""
    pass


class MalformedToolArguments(NPCMindError):
    """Raised when a tool invocation is unknown or its arguments do not parse."""

    def __init__(self, tool: str, reason: str):
        self.tool = tool
        self.reason = reason
        super().__init__(f"{tool}: {reason}")


class UnreachableTarget(NPCMindError):
    """Raised when the navigator cannot route to a position."""

    def __init__(self, position: Sequence[float], reason: Optional[str] = None):
        self.position = tuple(position)
        self.reason = reason or "no route"
        super().__init__(f"cannot reach {self.position}: {self.reason}")


class RemoteCallFailure(NPCMindError):
    """Raised (or set on a future) when a language model request fails."""
    pass
