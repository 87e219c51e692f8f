"""
Contracts for the collaborators the cognition core depends on.

The core never renders, routes or talks to a model server itself; the
host that composes the simulation supplies objects satisfying these
protocols.
"""
from __future__ import annotations

from concurrent.futures import Future
from typing import Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable

from .types import ModelReply, Position, WorldItem


@runtime_checkable
class Navigator(Protocol):
    """
    Moves the agent on the grid.

    Arrival is reported asynchronously through the controller's
    ``on_movement_finished``; a route lost after departure is reported
    through ``on_movement_failed``.
    """

    def move_to(self, position: Position) -> bool:
        """Start walking toward ``position``. False if no route exists."""
        ...

    def current_position(self) -> Position:
        ...

    def is_moving(self) -> bool:
        ...


@runtime_checkable
class LanguageModelClient(Protocol):
    """Asynchronous text generation."""

    def send_reasoning(self, prompt: str, system: Optional[str] = None) -> "Future[str]":
        ...

    def send_with_tools(
        self,
        prompt: str,
        tools: List[Dict[str, Any]],
        system: Optional[str] = None,
    ) -> "Future[ModelReply]":
        ...


@runtime_checkable
class Display(Protocol):
    """Shows a transient message above the agent. Fire-and-forget."""

    def show_message(self, text: str) -> None:
        ...


@runtime_checkable
class WorldPerception(Protocol):
    """What the agent can see."""

    def items_within(self, position: Position, radius: float) -> Sequence[WorldItem]:
        ...

    def is_day(self) -> bool:
        ...
