"""Numeric helpers."""
from decimal import ROUND_HALF_UP, Decimal


def round_half_up(value: float, digits: int = 0) -> float:
    """Round like a UI would (0.5 goes up), not banker's rounding."""
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def percent(part: float, whole: float, digits: int = 2) -> float:
    """part/whole as a percentage capped to [0, 100]; 0 when whole <= 0."""
    if whole <= 0:
        return 0.0
    return min(max(round_half_up(part / whole * 100, digits), 0.0), 100.0)
