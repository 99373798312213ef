"""Value coercion shared by the filter, sort, pivot and chart engines.

Cell values arrive untyped (whatever the decoder produced or the user typed),
so every engine goes through these helpers instead of calling float()/str()
directly. None of them raise.
"""
from __future__ import annotations

import math
import re
from datetime import date, datetime
from typing import Any

NAN = float("nan")

# Longest numeric prefix, e.g. "12.5kg" -> 12.5, "  -3e2x" -> -300
_NUMERIC_PREFIX = re.compile(
    r"^\s*([+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?))"
)


def is_number(value: Any) -> bool:
    """True for real numeric values (bools are not numbers here)."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def to_number(value: Any) -> float:
    """Parse a value as a float, reading only its leading numeric text.

    Returns NaN when no number can be read; NaN compares false against
    everything, which is what the numeric filters rely on.
    """
    if is_number(value):
        return float(value)
    if value is None or isinstance(value, bool):
        return NAN

    match = _NUMERIC_PREFIX.match(str(value))
    if not match:
        return NAN
    return float(match.group(1).replace("Infinity", "inf"))


def to_number_or_zero(value: Any) -> float:
    """Numeric coercion used by aggregations: failures count as 0."""
    number = to_number(value)
    return 0.0 if math.isnan(number) else number


def to_text(value: Any) -> str:
    """Display text of a cell value. None becomes the empty string."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def strict_equals(left: Any, right: Any) -> bool:
    """Equality without cross-type coercion ("5" != 5, True != 1)."""
    if is_number(left) and is_number(right):
        return left == right
    if type(left) is not type(right):
        return False
    return left == right
