from __future__ import annotations

import math
from typing import Any, Optional


def safe_float(value: Any, default: Optional[float] = 0.0) -> Optional[float]:
    """Coerce numbers and numeric strings to float; anything else gives ``default``."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else default
    if isinstance(value, str):
        s = value.strip().replace(",", "")
        if not s:
            return default
        try:
            parsed = float(s)
        except ValueError:
            return default
        return parsed if math.isfinite(parsed) else default
    return default


def is_finite_number(*values: Any) -> bool:
    """True when every value is a real, finite number (bools excluded)."""
    for v in values:
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            return False
        if not math.isfinite(v):
            return False
    return True


def round_half_away(x: float, decimals: int = 0) -> float:
    """
    Round half away from zero.

    Python's round() is banker's rounding; money figures in a compounding
    chain should not drift toward even.
    """
    m = 10 ** decimals
    return math.copysign(math.floor(abs(x) * m + 0.5) / m, x)


def round_money(x: float) -> int:
    return int(round_half_away(x))


def clamp(x: float, low: float, high: float) -> float:
    return min(max(x, low), high)
