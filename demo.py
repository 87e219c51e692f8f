#!/usr/bin/env python3
"""
npc_mind sandbox demo

Runs an agent in a small grid world with a scripted language model:
1. The agent wakes up and asks where it is
2. The player answers; the agent learns about an item it asks about
3. Hunger sets in; the agent finds food, walks to it and eats

Run with:
    python demo.py

No model required - replies are scripted.
"""
from npc_mind import AgentConfig, ModelReply, ToolInvocation
from npc_mind.logging_config import configure_logging
from npc_mind.sandbox import GridWorld, ScriptedLanguageModel, Simulation, StepNavigator


def print_header(text: str):
    """Print a styled header."""
    print(f"\n{'='*60}")
    print(f"  {text}")
    print(f"{'='*60}\n")


def print_status(sim: Simulation):
    snap = sim.controller.snapshot()
    print(
        f"  state={snap['state']:<26} satiety={snap['satiety']:5.1f} "
        f"pos={tuple(snap['position'])} goal={snap['goal']} action={snap['action']}"
    )


def flush_messages(sim: Simulation, seen: int) -> int:
    for message in sim.display.messages[seen:]:
        print(f"  💬 {message}")
    return len(sim.display.messages)


def main():
    configure_logging("WARNING")

    world = GridWorld()
    world.add("item_apple_1", "cid0001", "plant", (3, 1, 0))
    world.add("item_apple_2", "cid0001", "plant", (4, 4, 0))

    llm = ScriptedLanguageModel(
        reasoning=[
            "What is this thing next to me? Could you tell me about it?",
        ],
        dialogue=[
            ModelReply(text="Hello! I will look around."),
            ModelReply(
                text="An apple! I will remember that.",
                tool_calls=[ToolInvocation(
                    "UpdateKnowledges",
                    '{"itemId": "item_apple_1", "category": "apple", "description": "a red fruit"}',
                )],
            ),
        ],
        default_reasoning="I am hungry; the apple I learned about should help.",
    )

    config = AgentConfig(agent_id="demo", initial_satiety=75.0, move_cost=3.0)
    sim = Simulation.create(config=config, world=world, navigator=StepNavigator((1, 1, 0)), llm=llm)
    seen = 0

    print_header("Waking up")
    sim.step()
    seen = flush_messages(sim, seen)
    print_status(sim)

    print_header("Player says hello")
    sim.say("Hi there, welcome to the village.")
    for _ in range(4):
        sim.step()
        seen = flush_messages(sim, seen)
        print_status(sim)

    print_header("Learning about items")
    for _ in range(12):
        sim.step()
        seen = flush_messages(sim, seen)
        print_status(sim)
        if sim.controller.state.value == "awaiting_player_response":
            sim.say("That is an apple, a red fruit you can eat.")

    print_header("Getting hungry")
    sim.controller.consume_satiety(20)
    for _ in range(20):
        sim.step()
        seen = flush_messages(sim, seen)
        print_status(sim)

    print_header("What the agent learned")
    for (context, action), value in sorted(sim.controller.learning.action_values().items()):
        print(f"  {context:<28} {action:<16} {value:.3f}")
    print(f"\n  memory: {sim.controller.memory.counts()}")
    print(f"  learning progress: {sim.controller.learning.learning_progress():.2f}")


if __name__ == "__main__":
    main()
