"""
Utility Functions

Small helpers shared by the sampler, the submission service and the
aggregation engine.
"""

import math
import datetime
from typing import Union

Number = Union[int, float]


def utc_now() -> datetime.datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.datetime.now(datetime.timezone.utc)


def round_half_up(value: Number) -> int:
    """
    Round to the nearest integer, halves away from zero for positives.

    Python's ``round`` uses banker's rounding (``round(2.5) == 2``); point and
    allocation arithmetic needs ``2.5 -> 3``.

    Args:
        value: Number to round

    Returns:
        Rounded integer
    """
    return int(math.floor(value + 0.5))


def safe_divide(numerator: Number, denominator: Number, default: Number = 0) -> float:
    """
    Safely divide two numbers, returning a default value if denominator is zero.

    Args:
        numerator: Number to divide
        denominator: Number to divide by
        default: Value to return if denominator is zero

    Returns:
        Result of division or default value
    """
    if not denominator:
        return default
    return numerator / denominator


def percent(part: Number, whole: Number) -> float:
    """Percentage of ``part`` in ``whole``; 0 when ``whole`` is 0."""
    return safe_divide(part, whole) * 100


def format_duration(seconds: float) -> str:
    """
    Format a duration in seconds as ``M:SS`` (or ``H:MM:SS``).

    Args:
        seconds: Duration in seconds; negative values clamp to zero

    Returns:
        Clock-style duration string
    """
    total = max(0, int(seconds))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"
