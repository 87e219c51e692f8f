"""
Agent controller: the decision state machine.

One ``tick()`` per scheduler invocation. Each tick resolves a finished
language model request (continuations always run on the tick thread),
issues a buffered player message if the agent is free, then runs the
handler for the current state. At most one asynchronous operation
(a language model request or a movement) is outstanding at a time; while
one is, the agent neither plans nor dispatches.
"""
from __future__ import annotations

import logging
import time
from collections import deque
from concurrent.futures import Future
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional, Sequence

from .config import AgentConfig
from .dialogue import DialogueHistory
from .errors import UnreachableTarget
from .goals import Goal, GoalRegistry
from .interfaces import Display, LanguageModelClient, Navigator, WorldPerception
from .knowledge import UNKNOWN, KnowledgeBase, KnowledgeItem, is_food
from .learning import LearningEngine
from .logging_config import log_extra
from .memory import MemoryStore
from .planner import ActionPlanner, PlannedAction
from .context import build_context_key
from .prompting import build_system_text
from .tools import ToolDispatcher, tool_catalog
from .types import (
    ActionType,
    AgentState,
    GoalType,
    MemoryKind,
    ModelReply,
    Position,
)
from .util import clamp, distance, round_position

logger = logging.getLogger(__name__)

SELF_ID = "id001"
SELF_CATEGORY_ID = "cid01"
PLAYER_ID = "id000"
PLAYER_CATEGORY_ID = "cid00"
PLAYER_POSITION: Position = (0, 0, 1)


class CallKind(str, Enum):
    REASONING = "reasoning"
    DIALOGUE = "dialogue"


class MoveOwner(str, Enum):
    PLAN = "plan"
    TOOL = "tool"


@dataclass
class PendingCall:
    """The single outstanding language model request."""
    kind: CallKind
    future: Future
    on_result: Callable[[Any], None]
    on_failure: Callable[[BaseException], None]


class AgentController:
    """
    Orchestrates perception, need assessment, planning and action execution.

    Example:
        >>> controller = AgentController(navigator, llm, display, world)
        >>> controller.tick()                      # introduces itself, then waits
        >>> controller.receive_player_message("Hello!")
        >>> controller.tick()                      # reply shown, deciding again
    """

    def __init__(
        self,
        navigator: Navigator,
        llm: LanguageModelClient,
        display: Display,
        world: WorldPerception,
        config: Optional[AgentConfig] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Args:
            navigator: Moves the agent; reports back via on_movement_finished/failed
            llm: Asynchronous language model client
            display: Shows messages above the agent
            world: Reports items in view and whether it is day
            config: Agent configuration
            clock: Time source shared with memory and learning
        """
        self.config = config or AgentConfig()
        self.navigator = navigator
        self.llm = llm
        self.display = display
        self.world = world
        self._clock = clock or time.monotonic
        agent_id = self.config.agent_id
        self.agent_id = agent_id

        self.memory = MemoryStore(self.config.memory, clock=self._clock, agent_id=agent_id)
        self.learning = LearningEngine(
            self.memory,
            self.config.learning,
            clock=self._clock,
            locator=self.position,
            agent_id=agent_id,
        )
        self.goals = GoalRegistry(agent_id=agent_id)
        self.planner = ActionPlanner(agent_id=agent_id)
        self.knowledge = KnowledgeBase()
        self.history = DialogueHistory(self.config.max_history)
        self.tools = ToolDispatcher(self, agent_id=agent_id)

        self._satiety = self.config.initial_satiety
        self._state = AgentState.UNINITIALIZED
        self._pending: Optional[PendingCall] = None
        self._movement: Optional[MoveOwner] = None
        self._inbox: Deque[str] = deque()
        self._waiting_on: Optional[str] = None
        self._planned_goal_id: Optional[str] = None
        self._tick_count = 0
        self._last_maintenance = self._clock()

        self._state_handlers: Dict[AgentState, Callable[[], None]] = {
            AgentState.UNINITIALIZED: self._initialize,
            AgentState.DECIDING: self._deciding,
            AgentState.AWAITING_PLAYER_RESPONSE: self._hold,
            AgentState.EXECUTING_ACTION: self._hold,
        }
        self._action_handlers: Dict[ActionType, Callable[[PlannedAction], None]] = {
            ActionType.THINK: self._do_think,
            ActionType.SEARCH_FOOD: self._do_search_food,
            ActionType.MOVE_TO_ITEM: self._do_move_to_item,
            ActionType.COLLECT_EAT: self._do_collect_eat,
            ActionType.ASK_ABOUT_ITEM: self._do_ask_about_item,
            ActionType.MOVE_EXPLORE: self._do_immediate,
            ActionType.OBSERVE: self._do_immediate,
            ActionType.IDENTIFY_UNKNOWN: self._do_immediate,
            ActionType.INITIATE_CONVERSATION: self._do_immediate,
        }

    # ------------------------------------------------------------------
    # Public state
    # ------------------------------------------------------------------

    @property
    def state(self) -> AgentState:
        return self._state

    @property
    def satiety(self) -> float:
        return self._satiety

    @property
    def busy(self) -> bool:
        """True while a language model request or a movement is outstanding."""
        return self._pending is not None or self._movement is not None

    @property
    def pending_call(self) -> Optional[PendingCall]:
        return self._pending

    @property
    def inbox_size(self) -> int:
        return len(self._inbox)

    @property
    def chat_history(self) -> List[str]:
        return self.history.lines()

    def position(self) -> Position:
        return tuple(self.navigator.current_position())

    def context_key(self) -> str:
        position = self.position()
        nearby = bool(self.knowledge.near(position, self.config.nearby_radius))
        return build_context_key(self._satiety, self.navigator.is_moving(), nearby)

    def snapshot(self) -> Dict[str, Any]:
        """Debug view of the agent's situation."""
        goal = self.goals.current_goal()
        action = self.planner.current_action
        return {
            "state": self._state.value,
            "satiety": self._satiety,
            "position": list(self.position()),
            "goal": goal.goal_id if goal else None,
            "action": action.action_type.value if action else None,
            "pending_call": self._pending.kind.value if self._pending else None,
            "movement": self._movement.value if self._movement else None,
            "inbox": len(self._inbox),
            "known_items": len(self.knowledge),
            "memory": self.memory.counts(),
            "learning_progress": self.learning.learning_progress(),
            "tick": self._tick_count,
        }

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def tick(self) -> None:
        """Advance the agent by one scheduling step."""
        self._tick_count += 1
        self._maybe_maintain()
        self._poll_pending()
        self._drain_inbox()
        self._state_handlers[self._state]()

    def _hold(self) -> None:
        pass

    def _maybe_maintain(self) -> None:
        now = self._clock()
        if now - self._last_maintenance >= self.config.maintenance_interval:
            self._last_maintenance = now
            self.memory.maintain(now)

    def _initialize(self) -> None:
        self.knowledge.add(KnowledgeItem(
            item_id=SELF_ID,
            position=round_position(self.position()),
            category_id=SELF_CATEGORY_ID,
            category=UNKNOWN,
            description="self",
        ))
        self._say(self.config.intro_message)
        self._wait_for_player("initial")

    def _deciding(self) -> None:
        if self.busy:
            return
        self._decide()
        self._perceive()

    def _decide(self) -> None:
        goal = self.goals.current_goal()
        if goal is None:
            self._assess_needs()
            return

        if not self.planner.has_pending():
            if self._goal_satisfied(goal):
                self.goals.complete_goal(goal.goal_id)
                self.learning.end_strategy(True)
                self._planned_goal_id = None
                return
            self._plan(goal)

        action = self.planner.next_action()
        if action is None:
            return
        self._set_state(AgentState.EXECUTING_ACTION)
        logger.info(
            f"Executing {action.action_type.value}: {action.description}",
            extra=self._extra("action_start"),
        )
        self._action_handlers[action.action_type](action)

    def _goal_satisfied(self, goal: Goal) -> bool:
        if goal.goal_type == GoalType.SURVIVAL:
            return self._satiety > self.config.hunger_threshold
        if goal.goal_type == GoalType.LEARNING:
            return self.knowledge.first_unknown() is None
        if goal.goal_type == GoalType.EXPLORATION:
            # an exploration plan that has run its course satisfies its goal
            return self._planned_goal_id == goal.goal_id
        return False

    def _assess_needs(self) -> None:
        if self._satiety <= self.config.hunger_threshold:
            self.goals.add_goal("goal_hunger", GoalType.SURVIVAL, "Find food to relieve hunger", 9, 0.8)
            return

        item = self.knowledge.first_unknown()
        if item is not None:
            self.goals.add_goal(
                f"goal_learn_{item.item_id}",
                GoalType.LEARNING,
                f"Learn about unknown item {item.item_id}",
                6,
                0.5,
            )
            return

        if not self.goals.active_goals():
            self.goals.add_goal("goal_explore", GoalType.EXPLORATION, "Explore the surroundings", 3, 0.2)

    def _plan(self, goal: Goal) -> None:
        strategy = self.learning.recommend_strategy(goal.goal_type)
        if strategy is not None:
            logger.info(
                f"Using strategy {strategy.strategy_id} (effectiveness {strategy.effectiveness:.2f})",
                extra=self._extra("strategy"),
            )
            self.learning.start_strategy(strategy.strategy_id)
        self.planner.plan_for(goal, self.knowledge)
        self._planned_goal_id = goal.goal_id

    def _perceive(self) -> None:
        position = self.position()
        radius = self.config.day_vision if self.world.is_day() else self.config.night_vision
        for item in self.world.items_within(position, radius):
            if item.item_id in self.knowledge:
                continue
            known = self.knowledge.learn_new_item(item.item_id, item.position, item.category_id)
            self.memory.store(
                MemoryKind.OBSERVATION,
                f"Discovered new item: {item.item_id}",
                item.position,
                0.7,
                {"item_id": item.item_id, "category_id": item.category_id},
            )
            logger.info(
                f"Discovered {item.item_id} (category {item.category_id}: {known.category})",
                extra=self._extra("perceive"),
            )

    # ------------------------------------------------------------------
    # Action handlers
    # ------------------------------------------------------------------

    def _do_immediate(self, action: PlannedAction) -> None:
        self._finish_action()

    def _do_think(self, action: PlannedAction) -> None:
        details = action.description
        memories = self.memory.recall(MemoryKind.OUTCOME, None, self.position(), 10.0)
        if memories:
            details += f" I remember {memories[0].text}."

        def on_reply(reply: Optional[str]) -> None:
            text = (reply or "").strip()
            if text:
                self._say(text)
                self.memory.store(MemoryKind.ACTION, f"Thought: {text}", self.position(), 0.6)
            else:
                self._say(self.config.fallback_reply if reply is not None else self.config.error_reply)
            self._record(ActionType.THINK, bool(text))
            self._finish_action()

        self._reason(details, on_reply)

    def _do_search_food(self, action: PlannedAction) -> None:
        found: Optional[KnowledgeItem] = None
        for record in self.memory.recall(MemoryKind.OBSERVATION, "food", self.position(), 20.0):
            item_id = record.payload.get("item_id")
            if item_id and item_id in self.knowledge:
                found = self.knowledge.get(item_id)
                break

        if found is None:
            found = self.knowledge.find_food(self.config.food_keywords)
            if found is not None:
                self.memory.store(
                    MemoryKind.OBSERVATION,
                    f"Found food: {found.category}",
                    found.position,
                    0.8,
                    {"item_id": found.item_id},
                )

        if found is not None:
            self.planner.scratch.remember(found.item_id, found.position)
        else:
            self.planner.scratch.clear()
        self._record(ActionType.SEARCH_FOOD, found is not None)
        self._finish_action()

    def _do_move_to_item(self, action: PlannedAction) -> None:
        scratch = self.planner.scratch
        if action.target_position is not None and action.target_item_id:
            target = tuple(action.target_position)
        elif scratch.has_item and scratch.found_position is not None:
            target = scratch.found_position
        else:
            logger.warning("move_to_item has no target", extra=self._extra("move"))
            self._record(ActionType.MOVE_TO_ITEM, False)
            self._finish_action()
            return

        # off the navigable plane: held, carried, or otherwise not on the grid
        if round(target[2]) != 0:
            self._record(ActionType.MOVE_TO_ITEM, True)
            self._finish_action()
            return

        destination = round_position((target[0], target[1], 0))
        if round_position(self.position()) == destination:
            self._record(ActionType.MOVE_TO_ITEM, True)
            self._finish_action()
            return

        try:
            self._start_movement(destination, MoveOwner.PLAN)
        except UnreachableTarget as e:
            logger.warning(str(e), extra=self._extra("unreachable"))
            self._record(ActionType.MOVE_TO_ITEM, False)
            self._finish_action()

    def _do_collect_eat(self, action: PlannedAction) -> None:
        scratch = self.planner.scratch
        food = self.knowledge.get(scratch.found_item_id) if scratch.has_item else None
        if food is None:
            position = self.position()
            for item in self.knowledge:
                if (
                    is_food(item.category, self.config.food_keywords)
                    and distance(item.position, position) <= self.config.reach
                ):
                    food = item
                    break

        success = False
        if food is not None:
            self.collect_and_eat(food.item_id, food.category)
            self.memory.store(
                MemoryKind.ACTION,
                f"Collected and ate: {food.category}",
                food.position,
                0.9,
            )
            for goal in self.goals.active_goals():
                if goal.goal_type == GoalType.SURVIVAL:
                    self.goals.complete_goal(goal.goal_id)
            self.learning.end_strategy(True)
            scratch.clear()
            success = True

        self._record(ActionType.COLLECT_EAT, success)
        self._finish_action()

    def _do_ask_about_item(self, action: PlannedAction) -> None:
        item = self.knowledge.get(action.target_item_id) if action.target_item_id else None
        if item is None:
            item = self.knowledge.first_unknown()
        if item is None:
            self._record(ActionType.ASK_ABOUT_ITEM, False)
            self._finish_action()
            return

        question = f"I want to learn about item {item.item_id}. Compose a question to ask about it."
        if self.memory.recall(MemoryKind.INTERACTION, "Asked about", item.position, 5.0):
            question = f"I want to learn more details about item {item.item_id}."

        def on_reply(reply: Optional[str]) -> None:
            text = (reply or "").strip()
            if not text:
                self._say(self.config.fallback_reply if reply is not None else self.config.error_reply)
                self._record(ActionType.ASK_ABOUT_ITEM, False)
                self._finish_action()
                return

            self._say(text)
            self.memory.store(
                MemoryKind.INTERACTION,
                f"Asked about item {item.item_id}: {text}",
                item.position,
                0.7,
                {"item_id": item.item_id, "question": text, "waiting_for_answer": True},
            )
            self._record(ActionType.ASK_ABOUT_ITEM, True)
            self._finish_action()
            self.planner.clear()
            self._wait_for_player(item.item_id)

        self._reason(question, on_reply)

    def _finish_action(self) -> None:
        self.planner.complete_current_action()
        if self._state == AgentState.EXECUTING_ACTION:
            self._set_state(AgentState.DECIDING)

    # ------------------------------------------------------------------
    # External entry points
    # ------------------------------------------------------------------

    def receive_player_message(self, text: str) -> None:
        """
        Accept a message from the player.

        The message is logged immediately; the tool-enabled model request is
        issued as soon as no other request or movement is outstanding.
        """
        self.history.add("user", text)
        if PLAYER_ID not in self.knowledge:
            self.knowledge.add(KnowledgeItem(
                item_id=PLAYER_ID,
                position=PLAYER_POSITION,
                category_id=PLAYER_CATEGORY_ID,
                category=UNKNOWN,
                description="player",
            ))
        self.memory.store(
            MemoryKind.INTERACTION,
            f"Player said: {text}",
            PLAYER_POSITION,
            0.8,
            {"player_message": text},
        )
        self._inbox.append(text)
        self._drain_inbox()

    def update_knowledge(
        self,
        item_id: str,
        category: Optional[str] = None,
        description: Optional[str] = None,
    ) -> bool:
        """
        Record what was learned about an item and every item sharing its category id.

        Returns:
            False if ``item_id`` is not known
        """
        changed = self.knowledge.update(item_id, category, description)
        if not changed:
            logger.debug(f"update_knowledge: unknown item {item_id}", extra=self._extra())
            return False

        item = self.knowledge.get(item_id)
        self.memory.store(
            MemoryKind.LEARNING,
            f"Learned: {item_id} is {item.category}",
            item.position,
            0.9,
            {"item_id": item_id, "category": item.category, "description": item.description},
        )
        self._record("learn_item", True)
        logger.info(
            f"Knowledge updated: {item_id} - {item.category} - {item.description} "
            f"({len(changed)} items)",
            extra=self._extra("learn"),
        )
        return True

    def move_to_position(self, item_id: str, position: Sequence[float]) -> bool:
        """Walk toward ``position`` on request; True if a movement started."""
        if self._movement is not None:
            logger.warning(
                f"Ignoring move to {item_id}: already moving",
                extra=self._extra("move"),
            )
            return False
        destination = round_position(position)
        if round_position(self.position()) == destination:
            return False
        try:
            self._start_movement(destination, MoveOwner.TOOL)
        except UnreachableTarget as e:
            logger.warning(str(e), extra=self._extra("unreachable"))
            return False
        return True

    def collect_and_eat(self, item_id: str, category: str) -> bool:
        """Eat ``item_id`` if it is known under ``category``."""
        item = self.knowledge.get(item_id)
        if item is None or item.category != category:
            logger.debug(f"Cannot eat {item_id} as {category}", extra=self._extra())
            return False
        self._say(f"Collecting and eating: {category}")
        self.consume_satiety(-self.config.eat_amount)
        return True

    def consume_satiety(self, amount: float = 1.0) -> float:
        self._satiety = clamp(self._satiety - amount, 0.0, 100.0)
        if self._satiety <= 0:
            logger.warning("Satiety exhausted", extra=self._extra("starving"))
        return self._satiety

    def on_movement_finished(self) -> None:
        """Navigator callback: the agent has arrived."""
        owner, self._movement = self._movement, None
        self.consume_satiety(self.config.move_cost)
        self.memory.store(MemoryKind.ACTION, "Finished moving", self.position(), 0.5)

        if owner == MoveOwner.TOOL:
            self.tools.on_movement_finished()
            return
        action = self.planner.current_action
        if action is not None and action.action_type == ActionType.MOVE_TO_ITEM:
            self._record(ActionType.MOVE_TO_ITEM, True)
            self._finish_action()

    def on_movement_failed(self, reason: Optional[str] = None) -> None:
        """Navigator callback: the route was lost before arrival."""
        owner, self._movement = self._movement, None
        logger.warning(
            str(UnreachableTarget(self.position(), reason)),
            extra=self._extra("unreachable"),
        )
        if owner == MoveOwner.TOOL:
            self.tools.on_movement_failed()
            return
        action = self.planner.current_action
        if action is not None and action.action_type == ActionType.MOVE_TO_ITEM:
            self._record(ActionType.MOVE_TO_ITEM, False)
            self._finish_action()

    # ------------------------------------------------------------------
    # Outstanding operations
    # ------------------------------------------------------------------

    def _start_movement(self, destination: Position, owner: MoveOwner) -> None:
        if self.busy:
            raise RuntimeError("another asynchronous operation is outstanding")
        if not self.navigator.move_to(destination):
            raise UnreachableTarget(destination)
        self._movement = owner

    def _start_call(
        self,
        kind: CallKind,
        future: Future,
        on_result: Callable[[Any], None],
        on_failure: Callable[[BaseException], None],
    ) -> None:
        if self.busy:
            raise RuntimeError("another asynchronous operation is outstanding")
        self._pending = PendingCall(kind, future, on_result, on_failure)

    def _poll_pending(self) -> None:
        pending = self._pending
        if pending is None or not pending.future.done():
            return
        self._pending = None
        try:
            result = pending.future.result()
        except Exception as e:
            logger.warning(
                f"{pending.kind.value} request failed: {e}",
                extra=self._extra("remote_failure"),
            )
            pending.on_failure(e)
            return
        pending.on_result(result)

    def _reason(self, prompt: str, on_reply: Callable[[Optional[str]], None]) -> None:
        """Issue a reasoning request; ``on_reply`` gets None if it fails."""
        system = build_system_text(
            self.config.reasoning_system_prompt,
            self.knowledge,
            self.history.turns,
        )
        future = self.llm.send_reasoning(prompt, system)
        self._start_call(CallKind.REASONING, future, on_reply, lambda e: on_reply(None))

    def _drain_inbox(self) -> None:
        if not self._inbox or self.busy:
            return
        text = self._inbox.popleft()
        system = build_system_text(
            self.config.tools_system_prompt,
            self.knowledge,
            self.history.turns,
            self.position(),
        )
        future = self.llm.send_with_tools(text, tool_catalog(), system)
        self._start_call(CallKind.DIALOGUE, future, self._on_dialogue_reply, self._on_dialogue_failure)

    def _on_dialogue_reply(self, reply: Any) -> None:
        if not isinstance(reply, ModelReply):
            reply = ModelReply(text=str(reply or ""))
        self.tools.dispatch_all(reply.tool_calls)

        text = reply.text.strip()
        if text:
            self._say(text)
            self.memory.store(MemoryKind.INTERACTION, f"Replied: {text}", self.position(), 0.7)
        else:
            self._say(self.config.fallback_reply)
        self._resolve_wait()

    def _on_dialogue_failure(self, error: BaseException) -> None:
        self._say(self.config.error_reply)
        self._record("respond", False)
        self._resolve_wait()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _wait_for_player(self, topic: str) -> None:
        self._waiting_on = topic
        self._set_state(AgentState.AWAITING_PLAYER_RESPONSE)

    def _resolve_wait(self) -> None:
        if self._state != AgentState.AWAITING_PLAYER_RESPONSE:
            return
        logger.debug(f"Player answered ({self._waiting_on})", extra=self._extra())
        self._waiting_on = None
        goal = self.goals.current_goal()
        if goal is not None and goal.goal_type == GoalType.LEARNING:
            self.goals.complete_goal(goal.goal_id)
            self.learning.end_strategy(True)
        self._set_state(AgentState.DECIDING)

    def _say(self, text: str) -> None:
        self.display.show_message(text)
        self.history.add("assistant", text)

    def _record(self, action: Any, success: bool) -> None:
        self.learning.record_outcome(action, self.context_key(), success)

    def _set_state(self, state: AgentState) -> None:
        if state != self._state:
            logger.info(
                f"State {self._state.value} -> {state.value}",
                extra=self._extra("state"),
            )
            self._state = state

    def _extra(self, event_type: Optional[str] = None) -> Dict[str, Any]:
        extra = log_extra("controller", self.agent_id, tick=self._tick_count)
        if event_type:
            extra["event_type"] = event_type
        return extra
