from __future__ import annotations

from typing import Iterable, List, Literal, Optional, Sequence

from .dialogue import Turn
from .knowledge import KnowledgeItem

PromptTemplate = Literal["llama3", "phi3_chatml"]


def _fmt_position(pos: Sequence[float]) -> str:
    return ",".join(str(int(round(float(c)))) for c in pos)


def build_system_text(
    base_prompt: str,
    knowledge: Iterable[KnowledgeItem],
    history: Iterable[Turn],
    position: Optional[Sequence[float]] = None,
) -> str:
    """
    System prompt: the base instructions plus what the agent knows.

    Knowledge, chat history and (for tool-enabled calls) the agent's own
    position are appended as tagged blocks so the model can cite item ids.
    """
    lines: List[str] = [base_prompt.strip()]

    items = list(knowledge)
    if items:
        lines.append("")
        lines.append("<knowledge_base>")
        for item in items:
            lines.extend([
                "  <item>",
                f"    <id>{item.item_id}</id>",
                f"    <position>{_fmt_position(item.position)}</position>",
                f"    <category>{item.category}</category>",
                f"    <description>{item.description}</description>",
                "  </item>",
            ])
        lines.append("</knowledge_base>")

    turns = list(history)
    if turns:
        lines.append("")
        lines.append("<chat_history>")
        lines.extend(f"  <message>{t.as_line()}</message>" for t in turns)
        lines.append("</chat_history>")

    if position is not None:
        lines.append("")
        lines.append("<current_position>")
        lines.append(f"  <position>{_fmt_position(position)}</position>")
        lines.append("</current_position>")

    return "\n".join(lines)


def render_llama3(system_text: str, user_text: str) -> str:
    parts: List[str] = []
    parts.append("<|begin_of_text|><|start_header_id|>system<|end_header_id|>\n\n")
    parts.append(system_text.strip() + "\n<|eot_id|>")
    parts.append("<|start_header_id|>user<|end_header_id|>\n\n")
    parts.append(user_text.strip() + "\n<|eot_id|>")
    parts.append("<|start_header_id|>assistant<|end_header_id|>\n\n")
    return "".join(parts)


def render_phi3_chatml(system_text: str, user_text: str) -> str:
    return (
        f"<|system|>{system_text.strip()}<|end|>\n"
        f"<|user|>{user_text.strip()}<|end|>\n<|assistant|>"
    )


def default_template_for_model(model_path: str) -> PromptTemplate:
    p = model_path.lower()
    if "phi-3" in p or "phi3" in p:
        return "phi3_chatml"
    return "llama3"


def render(template: PromptTemplate, system_text: str, user_text: str) -> str:
    if template == "phi3_chatml":
        return render_phi3_chatml(system_text, user_text)
    return render_llama3(system_text, user_text)


def stop_tokens_for_template(tpl: PromptTemplate) -> List[str]:
    return ["<|eot_id|>"] if tpl == "llama3" else ["<|end|>"]
