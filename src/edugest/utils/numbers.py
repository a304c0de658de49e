"""Numeric helpers shared by the grading modules."""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal, localcontext


def round_half_up(value: float, digits: int = 2) -> float:
    """Round with half-up semantics (2.345 -> 2.35), unlike built-in round()."""
    if not math.isfinite(value):
        return value
    quantum = Decimal(1).scaleb(-digits)
    with localcontext() as ctx:
        # Room for the 309 integer digits of the largest float
        ctx.prec = 320 + max(digits, 0)
        return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def round_to_int(value: float) -> int:
    """Round to nearest integer, halves going up (9.5 -> 10)."""
    return int(math.floor(value + 0.5))


def format_number(value: float) -> str:
    """Render a number without a trailing '.0' for integral values."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))
