"""Utilities for formatting aggregate values."""

from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal
from typing import Any


def round_half_up(value: float, digits: int = 0) -> float:
    """Round the way SQL ``ROUND`` does: halves go away from zero.

    Args:
        value: Number to round.
        digits: Decimal places to keep.

    Returns:
        float: The rounded value.
    """
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def format_duration(seconds: float | None) -> str | None:
    """Format a duration in seconds as ``HH:MM:SS``.

    The value is rounded to whole seconds first. Hours are not wrapped at 24.

    Args:
        seconds: Duration in seconds, or None.

    Returns:
        str | None: Formatted duration, or None when there is no value.
    """
    if seconds is None:
        return None

    total = int(round_half_up(seconds))
    sign = "-" if total < 0 else ""
    hours, remainder = divmod(abs(total), 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{sign}{hours:02d}:{minutes:02d}:{secs:02d}"


def hour_columns(values: Sequence[Any]) -> dict[str, Any]:
    """Spread hourly values into ``hour_0`` .. ``hour_N`` columns."""
    return {f"hour_{hour}": value for hour, value in enumerate(values)}
