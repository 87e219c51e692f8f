"""
In-memory sandbox for running an agent without a game engine.

Provides a grid world, a step-wise navigator, a scripted language model,
a recording display and a manual clock, plus a Simulation that wires
them to an AgentController. Everything here is deterministic, so it
doubles as the test harness.
"""
from __future__ import annotations

import logging
from collections import deque
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Deque, Dict, Iterable, List, Optional, Sequence, Set, Tuple, Union

from .config import AgentConfig
from .controller import AgentController
from .types import ModelReply, Position, WorldItem

logger = logging.getLogger(__name__)


def manhattan(a: Sequence[float], b: Sequence[float]) -> float:
    return abs(a[0] - b[0]) + abs(a[1] - b[1])


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now

    def __call__(self) -> float:
        return self.now


class GridWorld:
    """
    Items on a flat grid, seen by Manhattan distance on x/y.
    """

    def __init__(self, items: Optional[Iterable[WorldItem]] = None, day: bool = True):
        self.items: List[WorldItem] = list(items or [])
        self.day = day

    def add(self, item_id: str, category_id: str, item_type: str, position: Position) -> WorldItem:
        item = WorldItem(item_id, category_id, item_type, tuple(position))
        self.items.append(item)
        return item

    def items_within(self, position: Position, radius: float) -> List[WorldItem]:
        return [i for i in self.items if manhattan(i.position, position) <= radius]

    def is_day(self) -> bool:
        return self.day


class StepNavigator:
    """
    Walks one grid cell per ``advance()`` and reports arrival to a listener.

    Destinations in ``blocked`` (or outside ``bounds`` when given) have no route.
    """

    def __init__(
        self,
        start: Position = (0, 0, 0),
        blocked: Optional[Iterable[Position]] = None,
        bounds: Optional[Tuple[int, int]] = None,
    ):
        self.position: Tuple[int, int, int] = tuple(int(c) for c in start)
        self.blocked: Set[Tuple[int, int, int]] = {tuple(int(c) for c in p) for p in blocked or ()}
        self.bounds = bounds
        self.target: Optional[Tuple[int, int, int]] = None
        self.listener: Optional[Any] = None

    def move_to(self, position: Position) -> bool:
        target = tuple(int(c) for c in position)
        if target in self.blocked:
            return False
        if self.bounds is not None:
            width, height = self.bounds
            if not (0 <= target[0] < width and 0 <= target[1] < height):
                return False
        self.target = target
        return True

    def current_position(self) -> Position:
        return self.position

    def is_moving(self) -> bool:
        return self.target is not None

    def advance(self) -> bool:
        """Take one step; returns True on arrival."""
        if self.target is None:
            return False
        x, y, z = self.position
        tx, ty, _ = self.target
        if x != tx:
            x += 1 if tx > x else -1
        elif y != ty:
            y += 1 if ty > y else -1
        self.position = (x, y, z)
        if (x, y) == (tx, ty):
            self.target = None
            if self.listener is not None:
                self.listener.on_movement_finished()
            return True
        return False

    def fail(self, reason: str = "path blocked") -> None:
        """Abandon the current route and report it."""
        self.target = None
        if self.listener is not None:
            self.listener.on_movement_failed(reason)


Reply = Union[str, ModelReply, Exception]


class ScriptedLanguageModel:
    """
    Language model double that answers from queues.

    Queued replies are consumed in order; once a queue is empty the default
    is used. An Exception in a queue fails that request. With
    ``auto_resolve=False`` futures stay pending until ``resolve_all()``.
    """

    def __init__(
        self,
        reasoning: Optional[Iterable[Reply]] = None,
        dialogue: Optional[Iterable[Reply]] = None,
        default_reasoning: str = "Let me think.",
        default_dialogue: Union[str, ModelReply] = "I see.",
        auto_resolve: bool = True,
    ):
        self.reasoning: Deque[Reply] = deque(reasoning or [])
        self.dialogue: Deque[Reply] = deque(dialogue or [])
        self.default_reasoning = default_reasoning
        self.default_dialogue = default_dialogue
        self.auto_resolve = auto_resolve
        self.prompts: List[Dict[str, Any]] = []
        self._unresolved: List[Tuple[Future, Reply]] = []

    def send_reasoning(self, prompt: str, system: Optional[str] = None) -> "Future[str]":
        self.prompts.append({"kind": "reasoning", "prompt": prompt, "system": system})
        reply = self.reasoning.popleft() if self.reasoning else self.default_reasoning
        return self._future(reply)

    def send_with_tools(
        self,
        prompt: str,
        tools: List[Dict[str, Any]],
        system: Optional[str] = None,
    ) -> "Future[ModelReply]":
        self.prompts.append({"kind": "dialogue", "prompt": prompt, "system": system, "tools": tools})
        reply = self.dialogue.popleft() if self.dialogue else self.default_dialogue
        if isinstance(reply, str):
            reply = ModelReply(text=reply)
        return self._future(reply)

    def resolve_all(self) -> int:
        unresolved, self._unresolved = self._unresolved, []
        for future, reply in unresolved:
            self._settle(future, reply)
        return len(unresolved)

    def _future(self, reply: Reply) -> Future:
        future: Future = Future()
        if self.auto_resolve:
            self._settle(future, reply)
        else:
            self._unresolved.append((future, reply))
        return future

    @staticmethod
    def _settle(future: Future, reply: Reply) -> None:
        if isinstance(reply, Exception):
            future.set_exception(reply)
        else:
            future.set_result(reply)


class RecordingDisplay:
    """Display double that keeps every message."""

    def __init__(self):
        self.messages: List[str] = []

    def show_message(self, text: str) -> None:
        self.messages.append(text)

    @property
    def last(self) -> Optional[str]:
        return self.messages[-1] if self.messages else None


@dataclass
class Simulation:
    """
    A complete agent in a sandbox world.

    Each ``step()`` advances the clock, moves the navigator one cell and
    ticks the controller.
    """
    controller: AgentController
    world: GridWorld
    navigator: StepNavigator
    llm: ScriptedLanguageModel
    display: RecordingDisplay
    clock: ManualClock
    dt: float = 1.0

    @classmethod
    def create(
        cls,
        config: Optional[AgentConfig] = None,
        world: Optional[GridWorld] = None,
        navigator: Optional[StepNavigator] = None,
        llm: Optional[ScriptedLanguageModel] = None,
        dt: float = 1.0,
    ) -> "Simulation":
        world = world or GridWorld()
        navigator = navigator or StepNavigator()
        llm = llm or ScriptedLanguageModel()
        display = RecordingDisplay()
        clock = ManualClock()
        controller = AgentController(navigator, llm, display, world, config=config, clock=clock)
        navigator.listener = controller
        return cls(controller, world, navigator, llm, display, clock, dt)

    def step(self) -> None:
        self.clock.advance(self.dt)
        self.navigator.advance()
        self.controller.tick()

    def run(self, steps: int) -> None:
        for _ in range(steps):
            self.step()

    def say(self, text: str) -> None:
        self.controller.receive_player_message(text)
