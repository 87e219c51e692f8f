"""
Dialogue history between the agent and the player.
"""
from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Deque, List, Literal, Optional

Role = Literal["user", "assistant"]


@dataclass
class Turn:
    role: Role
    content: str
    time: str

    def as_line(self) -> str:
        return f"{self.role}: {self.content}"


class DialogueHistory:
    """Bounded, in-memory list of turns; oldest turns fall off first."""

    def __init__(self, max_turns: Optional[int] = 50):
        self.turns: Deque[Turn] = deque(maxlen=max_turns)

    def add(self, role: Role, content: str) -> Turn:
        turn = Turn(role=role, content=content, time=datetime.now().strftime("%Y-%m-%d %H:%M"))
        self.turns.append(turn)
        return turn

    def last_n(self, n: int) -> List[Turn]:
        return list(self.turns)[-n:] if n > 0 else []

    def lines(self) -> List[str]:
        return [t.as_line() for t in self.turns]

    def __len__(self) -> int:
        return len(self.turns)
