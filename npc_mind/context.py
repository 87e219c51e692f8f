"""
Context keys for learned values and patterns.

A context is a compact, stable string such as ``"satiety:2|moving"``.
The leading token always encodes satiety, so contexts that share it can
pool their statistics.
"""
from __future__ import annotations

from dataclasses import dataclass

SEPARATOR = "|"


@dataclass(frozen=True)
class DecisionContext:
    """
    Coarse description of the agent's situation.

    Attributes:
        satiety_bucket: satiety // 25 (0 to 4)
        moving: Whether the agent is currently walking
        items_nearby: Whether any known item is close by
    """
    satiety_bucket: int
    moving: bool = False
    items_nearby: bool = False

    def to_key(self) -> str:
        parts = [f"satiety:{self.satiety_bucket}"]
        if self.moving:
            parts.append("moving")
        if self.items_nearby:
            parts.append("items_nearby")
        return SEPARATOR.join(parts)


def satiety_to_bucket(satiety: float) -> int:
    """
    Bucket satiety into quarters.

    Examples:
        >>> satiety_to_bucket(80)
        3
        >>> satiety_to_bucket(100)
        4
    """
    return int(max(0.0, satiety) // 25)


def build_context_key(satiety: float, moving: bool = False, items_nearby: bool = False) -> str:
    """
    Build a context key directly from agent state.

    Examples:
        >>> build_context_key(60, moving=True)
        'satiety:2|moving'
    """
    return DecisionContext(satiety_to_bucket(satiety), moving, items_nearby).to_key()
