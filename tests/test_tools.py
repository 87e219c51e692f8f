"""
Tests for tool argument parsing and dispatch.
"""
import json

import pytest

from npc_mind.errors import MalformedToolArguments
from npc_mind.llm_client import parse_chat_message
from npc_mind.tools import (
    CollectAndEatArgs,
    MoveToPositionArgs,
    ToolDispatcher,
    UpdateKnowledgesArgs,
    parse_arguments,
    tool_catalog,
)
from npc_mind.types import ToolInvocation


class FakeTarget:
    """Records every call routed to it."""

    def __init__(self, movement_starts=True):
        self.calls = []
        self.movement_starts = movement_starts

    def update_knowledge(self, item_id, category=None, description=None):
        self.calls.append(("update", item_id, category, description))
        return True

    def move_to_position(self, item_id, position):
        self.calls.append(("move", item_id, position))
        return self.movement_starts

    def collect_and_eat(self, item_id, category):
        self.calls.append(("eat", item_id, category))
        return True


@pytest.fixture
def target():
    return FakeTarget()


@pytest.fixture
def dispatcher(target):
    return ToolDispatcher(target, agent_id="test")


def _call(name, **arguments):
    return ToolInvocation(name=name, arguments=json.dumps(arguments))


class TestCatalog:
    """Test the tool definitions handed to the model."""

    def test_names(self):
        """The catalog lists the three tools in order."""
        names = [t["function"]["name"] for t in tool_catalog()]
        assert names == ["UpdateKnowledges", "MoveToPosition", "CollectAndEat"]

    def test_schema_uses_camel_case(self):
        """Schemas use camelCase names and required fields."""
        by_name = {t["function"]["name"]: t["function"] for t in tool_catalog()}

        update = by_name["UpdateKnowledges"]["parameters"]
        assert "itemId" in update["properties"]
        assert update["required"] == ["itemId"]
        assert set(by_name["CollectAndEat"]["parameters"]["required"]) == {"itemId", "category"}

    def test_function_calling_format(self):
        """Every tool uses the function-calling format."""
        for tool in tool_catalog():
            assert tool["type"] == "function"
            assert tool["function"]["description"]


class TestParseArguments:
    """Test argument validation."""

    def test_json_string(self):
        """JSON argument strings are parsed."""
        args = parse_arguments("UpdateKnowledges", '{"itemId": "id001", "category": "apple"}')
        assert isinstance(args, UpdateKnowledgesArgs)
        assert args.item_id == "id001"
        assert args.category == "apple"
        assert args.description is None

    def test_decoded_mapping_and_snake_case(self):
        """Decoded mappings with snake_case keys are accepted."""
        args = parse_arguments("CollectAndEat", {"item_id": "a1", "category": "apple"})
        assert isinstance(args, CollectAndEatArgs)
        assert args.item_id == "a1"

    def test_position_string(self):
        """Positions may be comma-separated strings."""
        args = parse_arguments("MoveToPosition", {"itemId": "a1", "position": "3, 4, 0"})
        assert isinstance(args, MoveToPositionArgs)
        assert args.position == (3, 4, 0)

    def test_position_two_coordinates(self):
        """Two coordinates get z = 0."""
        args = parse_arguments("MoveToPosition", {"itemId": "a1", "position": "3,4"})
        assert args.position == (3, 4, 0)

    def test_position_list_is_rounded(self):
        """Position lists are rounded to the grid."""
        args = parse_arguments("MoveToPosition", {"itemId": "a1", "position": [2.6, 1.2, 0]})
        assert args.position == (3, 1, 0)

    @pytest.mark.parametrize("name,arguments", [
        ("Fly", "{}"),
        ("UpdateKnowledges", "{not json"),
        ("UpdateKnowledges", "[1, 2]"),
        ("UpdateKnowledges", '{"category": "apple"}'),
        ("MoveToPosition", '{"itemId": "a1", "position": "north"}'),
        ("MoveToPosition", '{"itemId": "a1", "position": [1]}'),
        ("CollectAndEat", '{"itemId": "a1"}'),
    ])
    def test_malformed(self, name, arguments):
        """Bad names or arguments raise MalformedToolArguments."""
        with pytest.raises(MalformedToolArguments) as exc:
            parse_arguments(name, arguments)
        assert exc.value.tool == name


class TestDispatcher:
    """Test routing invocations to the controller."""

    def test_update_knowledges(self, dispatcher, target):
        """UpdateKnowledges reaches the controller."""
        assert dispatcher.dispatch(_call("UpdateKnowledges", itemId="id001", description="me"))
        assert target.calls == [("update", "id001", None, "me")]

    def test_malformed_skipped(self, dispatcher, target):
        """A malformed call does not stop the rest."""
        invocations = [
            ToolInvocation("UpdateKnowledges", "{broken"),
            _call("CollectAndEat", itemId="a1", category="apple"),
        ]
        assert dispatcher.dispatch_all(invocations) == 1
        assert target.calls == [("eat", "a1", "apple")]

    def test_collect_queued_while_moving(self, dispatcher, target):
        """CollectAndEat waits for the tool walk to finish."""
        dispatcher.dispatch_all([
            _call("MoveToPosition", itemId="a1", position="2,0,0"),
            _call("CollectAndEat", itemId="a1", category="apple"),
        ])

        assert target.calls == [("move", "a1", (2, 0, 0))]
        assert dispatcher.moving_to_target
        assert dispatcher.queued_collect.item_id == "a1"

        dispatcher.on_movement_finished()

        assert target.calls[-1] == ("eat", "a1", "apple")
        assert not dispatcher.moving_to_target
        assert dispatcher.queued_collect is None

    def test_collect_runs_immediately_when_move_did_not_start(self):
        """CollectAndEat runs at once if no walk started."""
        target = FakeTarget(movement_starts=False)
        dispatcher = ToolDispatcher(target)
        dispatcher.dispatch_all([
            _call("MoveToPosition", itemId="a1", position="2,0,0"),
            _call("CollectAndEat", itemId="a1", category="apple"),
        ])
        assert target.calls[-1] == ("eat", "a1", "apple")

    def test_failed_movement_drops_queued_collect(self, dispatcher, target):
        """A failed walk drops the queued CollectAndEat."""
        dispatcher.dispatch(_call("MoveToPosition", itemId="a1", position="2,0,0"))
        dispatcher.dispatch(_call("CollectAndEat", itemId="a1", category="apple"))

        dispatcher.on_movement_failed()

        assert dispatcher.queued_collect is None
        assert not dispatcher.moving_to_target
        assert all(call[0] != "eat" for call in target.calls)

    def test_finish_without_tool_movement_is_ignored(self, dispatcher, target):
        """Arrival without a tool walk is ignored."""
        dispatcher.on_movement_finished()
        assert target.calls == []


class TestParseChatMessage:
    """Test converting chat-completion messages."""

    def test_text_only(self):
        """Plain text content is stripped."""
        reply = parse_chat_message({"role": "assistant", "content": "  Hello!  "})
        assert reply.text == "Hello!"
        assert reply.tool_calls == []

    def test_tool_calls(self):
        """Tool calls are converted to invocations."""
        reply = parse_chat_message({
            "role": "assistant",
            "content": None,
            "tool_calls": [{
                "id": "call_0",
                "type": "function",
                "function": {"name": "UpdateKnowledges", "arguments": '{"itemId": "id001"}'},
            }],
        })
        assert reply.text == ""
        assert reply.tool_calls == [ToolInvocation("UpdateKnowledges", '{"itemId": "id001"}')]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
