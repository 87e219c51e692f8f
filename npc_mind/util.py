from __future__ import annotations

import math
from typing import Sequence


def clamp(x: float, lo: float, hi: float) -> float:
    return lo if x < lo else hi if x > hi else x


def distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Euclidean distance between two (x, y, z) positions."""
    return math.sqrt(sum((float(p) - float(q)) ** 2 for p, q in zip(a, b)))


def round_position(pos: Sequence[float]) -> tuple:
    """Snap a position to the integer grid."""
    return tuple(int(round(float(c))) for c in pos)
