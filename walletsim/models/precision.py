"""Fixed-precision numeric helpers shared by the currency and asset engines."""

import math
from decimal import ROUND_DOWN, Decimal, localcontext

# Decimal places kept by every converted or revalued amount
PRECISION = 6


def truncate(value: float, places: int = PRECISION) -> float:
    """
    Truncate a value toward zero at a fixed number of decimal places.

    The value is read through its shortest repr so that, for example,
    ``0.3`` stays ``0.3`` instead of losing its last digit to binary noise.

    Args:
        value: Value to truncate
        places: Decimal places to keep

    Returns:
        Truncated value
    """
    if not math.isfinite(value):
        return value
    with localcontext() as ctx:
        ctx.prec = 60
        quantum = Decimal(1).scaleb(-places)
        return float(Decimal(repr(float(value))).quantize(quantum, rounding=ROUND_DOWN))


def round_half_up(value: float) -> int:
    """Round to the nearest integer, with halves rounded up."""
    return int(math.floor(value + 0.5))


def multiply(left: float, right: float) -> float:
    """Multiply two values through their shortest reprs, without binary noise."""
    if not (math.isfinite(left) and math.isfinite(right)):
        return left * right
    with localcontext() as ctx:
        ctx.prec = 60
        return float(Decimal(repr(float(left))) * Decimal(repr(float(right))))
