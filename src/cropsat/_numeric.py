"""Clamping and rounding helpers shared by the analysis stages.

Rounding is half-up on the exact binary value of the float, so a
stored ``0.125`` rounds to ``0.13`` rather than to the even neighbour.
"""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal


def clamp(value: float, lower: float, upper: float) -> float:
    """Limit *value* to the closed interval ``[lower, upper]``."""
    return min(upper, max(lower, value))


def round_to(value: float, decimals: int = 2) -> float:
    """Round *value* half-up to a fixed number of decimals.

    Args:
        value: Number to round.
        decimals: Digits kept after the decimal point.

    Returns:
        The rounded value as a float.

    Example:
        >>> round_to(0.125)
        0.13
        >>> round_to(0.38215, 3)
        0.382
    """
    quantum = Decimal(1).scaleb(-decimals)
    return float(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def round_half_up(value: float) -> int:
    """Round to the nearest integer, ties toward positive infinity."""
    return math.floor(value + 0.5)
