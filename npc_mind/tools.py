"""
Tools the language model may call during a conversation.

Each tool's arguments are a pydantic model; the catalog handed to the
model is generated from those models in the function-calling format.
The dispatcher parses invocations, routes them to the controller, and
holds back ``CollectAndEat`` while a tool-initiated walk is in progress.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, Tuple, Type, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import MalformedToolArguments
from .logging_config import log_extra
from .types import Position, ToolInvocation

logger = logging.getLogger(__name__)


class ToolArguments(BaseModel):
    """Base for tool argument models; accepts both camelCase and snake_case keys."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class UpdateKnowledgesArgs(ToolArguments):
    item_id: str = Field(..., alias="itemId", min_length=1, description="ID")
    category: Optional[str] = Field(None, description="Category / name of the item")
    description: Optional[str] = Field(None, description="Description of the item")


class MoveToPositionArgs(ToolArguments):
    item_id: str = Field(..., alias="itemId", min_length=1, description="ID")
    position: Tuple[int, int, int] = Field(..., description="Grid position x,y,z")

    @field_validator("position", mode="before")
    @classmethod
    def _parse_position(cls, value: Any) -> Tuple[int, int, int]:
        if isinstance(value, str):
            value = [c.strip() for c in value.split(",")]
        if not isinstance(value, (list, tuple)) or not 2 <= len(value) <= 3:
            raise ValueError("position must be 'x,y,z' or a list of 2-3 numbers")
        coords = [int(round(float(c))) for c in value]
        if len(coords) == 2:
            coords.append(0)
        return tuple(coords)


class CollectAndEatArgs(ToolArguments):
    item_id: str = Field(..., alias="itemId", min_length=1, description="ID")
    category: str = Field(..., min_length=1, description="Category of the item")


TOOL_MODELS: Dict[str, Type[ToolArguments]] = {
    "UpdateKnowledges": UpdateKnowledgesArgs,
    "MoveToPosition": MoveToPositionArgs,
    "CollectAndEat": CollectAndEatArgs,
}

TOOL_DESCRIPTIONS: Dict[str, str] = {
    "UpdateKnowledges": "Update the knowledge base when the player tells you something new about an item.",
    "MoveToPosition": "Move to a position when you need to interact with an item.",
    "CollectAndEat": "Collect an item and eat it.",
}


def tool_catalog() -> List[Dict[str, Any]]:
    """Tool definitions in function-calling format."""
    catalog = []
    for name, model in TOOL_MODELS.items():
        catalog.append({
            "type": "function",
            "function": {
                "name": name,
                "description": TOOL_DESCRIPTIONS[name],
                "parameters": model.model_json_schema(by_alias=True),
            },
        })
    return catalog


def parse_arguments(name: str, arguments: Union[str, Dict[str, Any], None]) -> ToolArguments:
    """
    Validate one invocation's arguments.

    Raises:
        MalformedToolArguments: Unknown tool, undecodable JSON or invalid fields
    """
    model = TOOL_MODELS.get(name)
    if model is None:
        raise MalformedToolArguments(name, "unknown tool")

    if arguments is None or arguments == "":
        data: Any = {}
    elif isinstance(arguments, str):
        try:
            data = json.loads(arguments)
        except json.JSONDecodeError as e:
            raise MalformedToolArguments(name, f"invalid JSON: {e}") from e
    else:
        data = arguments

    if not isinstance(data, dict):
        raise MalformedToolArguments(name, "arguments must be an object")

    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise MalformedToolArguments(name, str(e)) from e


class ToolTarget(Protocol):
    """The entry points tools are routed into (implemented by the controller)."""

    def update_knowledge(
        self,
        item_id: str,
        category: Optional[str] = None,
        description: Optional[str] = None,
    ) -> bool:
        ...

    def move_to_position(self, item_id: str, position: Position) -> bool:
        """Start walking; True only if a movement is now in progress."""
        ...

    def collect_and_eat(self, item_id: str, category: str) -> bool:
        ...


class ToolDispatcher:
    """
    Routes tool invocations into a ToolTarget.

    A ``CollectAndEat`` that arrives while a tool-initiated movement is in
    flight is queued and runs when that movement finishes.
    """

    def __init__(self, target: ToolTarget, agent_id: Optional[str] = None):
        self.target = target
        self.agent_id = agent_id
        self.moving_to_target = False
        self._queued_collect: Optional[CollectAndEatArgs] = None
        self._handlers: Dict[Type[ToolArguments], Callable[[Any], None]] = {
            UpdateKnowledgesArgs: self._update_knowledges,
            MoveToPositionArgs: self._move_to_position,
            CollectAndEatArgs: self._collect_and_eat,
        }

    @property
    def queued_collect(self) -> Optional[CollectAndEatArgs]:
        return self._queued_collect

    def dispatch(self, invocation: ToolInvocation) -> bool:
        """
        Execute one invocation.

        Returns:
            False if the invocation was malformed and skipped
        """
        try:
            args = parse_arguments(invocation.name, invocation.arguments)
        except MalformedToolArguments as e:
            logger.warning(
                f"Skipping tool call: {e}",
                extra=log_extra("tools", self.agent_id, event_type="malformed_tool"),
            )
            return False

        logger.info(
            f"Tool call {invocation.name}({args.model_dump()})",
            extra=log_extra("tools", self.agent_id, event_type="tool_call"),
        )
        self._handlers[type(args)](args)
        return True

    def dispatch_all(self, invocations: Iterable[ToolInvocation]) -> int:
        """Execute invocations in order; returns how many were executed."""
        return sum(1 for invocation in invocations if self.dispatch(invocation))

    def on_movement_finished(self) -> None:
        """Run a queued consumption once the tool-initiated walk has ended."""
        if not self.moving_to_target:
            return
        self.moving_to_target = False
        queued, self._queued_collect = self._queued_collect, None
        if queued is not None:
            self.target.collect_and_eat(queued.item_id, queued.category)

    def on_movement_failed(self) -> None:
        if not self.moving_to_target:
            return
        self.moving_to_target = False
        if self._queued_collect is not None:
            logger.info(
                f"Dropping queued CollectAndEat for {self._queued_collect.item_id}: movement failed",
                extra=log_extra("tools", self.agent_id),
            )
            self._queued_collect = None

    def _update_knowledges(self, args: UpdateKnowledgesArgs) -> None:
        self.target.update_knowledge(args.item_id, args.category, args.description)

    def _move_to_position(self, args: MoveToPositionArgs) -> None:
        if self.target.move_to_position(args.item_id, args.position):
            self.moving_to_target = True

    def _collect_and_eat(self, args: CollectAndEatArgs) -> None:
        if self.moving_to_target:
            self._queued_collect = args
            logger.info(
                f"Movement in progress; queued CollectAndEat for {args.item_id}",
                extra=log_extra("tools", self.agent_id, event_type="tool_queued"),
            )
        else:
            self.target.collect_and_eat(args.item_id, args.category)
