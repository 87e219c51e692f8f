from npc_mind.dialogue import DialogueHistory, Turn
from npc_mind.knowledge import KnowledgeItem
from npc_mind.prompting import (
    build_system_text,
    default_template_for_model,
    render,
    render_llama3,
    render_phi3_chatml,
    stop_tokens_for_template,
)


def test_default_template_llama3():
    assert default_template_for_model("Meta-Llama-3-8B-Instruct.Q4_K_M.gguf") == "llama3"

def test_default_template_phi3():
    assert default_template_for_model("phi-3-mini-4k-instruct.Q4_K_M.gguf") == "phi3_chatml"

def test_stop_tokens():
    assert stop_tokens_for_template("llama3") == ["<|eot_id|>"]
    assert stop_tokens_for_template("phi3_chatml") == ["<|end|>"]

def test_render_llama3_contains_headers():
    p = render_llama3("sys", "what is this?")
    assert "<|start_header_id|>system" in p
    assert "<|start_header_id|>user" in p
    assert p.endswith("<|start_header_id|>assistant<|end_header_id|>\n\n")
    assert "sys" in p and "what is this?" in p

def test_render_phi3_contains_tags():
    p = render_phi3_chatml("sys", "yo")
    assert "<|system|>sys<|end|>" in p
    assert "<|user|>yo<|end|>" in p
    assert p.endswith("<|assistant|>")

def test_render_dispatches_on_template():
    assert render("phi3_chatml", "s", "u") == render_phi3_chatml("s", "u")
    assert render("llama3", "s", "u") == render_llama3("s", "u")

def test_system_text_lists_knowledge():
    items = [KnowledgeItem("apple1", (3.2, 4.0, 0), "cid0001", "apple", "a red fruit")]
    text = build_system_text("You are a villager.", items, [])
    assert text.startswith("You are a villager.")
    assert "<id>apple1</id>" in text
    assert "<position>3,4,0</position>" in text
    assert "<category>apple</category>" in text
    assert "<chat_history>" not in text
    assert "<current_position>" not in text

def test_system_text_includes_history_and_position():
    history = DialogueHistory()
    history.add("user", "hello")
    history.add("assistant", "hi there")
    text = build_system_text("base", [], history.turns, position=(1, 2, 0))
    assert "<message>user: hello</message>" in text
    assert "<message>assistant: hi there</message>" in text
    assert "<current_position>\n  <position>1,2,0</position>" in text

def test_history_is_bounded():
    history = DialogueHistory(max_turns=3)
    for i in range(5):
        history.add("user", f"m{i}")
    assert len(history) == 3
    assert history.lines() == ["user: m2", "user: m3", "user: m4"]
    assert [t.content for t in history.last_n(2)] == ["m3", "m4"]
    assert history.last_n(0) == []

def test_turn_as_line():
    assert Turn(role="assistant", content="ok", time="t").as_line() == "assistant: ok"
