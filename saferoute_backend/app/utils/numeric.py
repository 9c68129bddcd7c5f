import math


def round_half_up(value: float) -> int:
    """Round .5 upwards (towards +inf), unlike Python's banker's rounding."""
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))
