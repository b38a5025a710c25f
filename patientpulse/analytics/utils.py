"""Small numeric helpers shared by the scorers."""

from __future__ import annotations

import math
from datetime import datetime


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives (2.5 → 3), unlike round()."""
    return math.floor(value + 0.5)


def whole_days_since(then: datetime, now: datetime) -> int:
    """Whole days elapsed from ``then`` to ``now``, floored (negative if in the future)."""
    return math.floor((now - then).total_seconds() / 86400)


def clamp_score(value: float, low: int = 0, high: int = 100) -> int:
    return int(max(low, min(high, value)))
