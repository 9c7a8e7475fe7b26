"""
Value coercion for untyped database and query-string values.

Rows coming out of SQLite (or a query string) may carry numbers as int,
float, str or NULL. Everything that feeds the scorers goes through here so
missing or malformed values turn into None instead of raising.
"""

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional


def coerce_float(raw: Any) -> Optional[float]:
    """Return raw as a float, or None when it is absent or not numeric."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
    elif isinstance(raw, str):
        text = raw.strip()
        if not text:
            return None
        try:
            value = float(text)
        except ValueError:
            return None
    else:
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return value


def coerce_integer(raw: Any) -> Optional[int]:
    """Return raw as an int, truncating toward zero. None when not numeric."""
    if isinstance(raw, int) and not isinstance(raw, bool):
        return raw
    if isinstance(raw, str):
        text = raw.strip()
        try:
            return int(text)
        except ValueError:
            pass
    value = coerce_float(raw)
    if value is None:
        return None
    return int(value)


def round_half_away(value: float, digits: int = 0) -> float:
    """Round with halves going away from zero (2.5 -> 3, -2.5 -> -3).

    Works on the shortest decimal form of the float, so 1.005 rounds to
    1.01 even though its binary value sits just below the half.
    """
    if not value:
        return 0.0
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))
