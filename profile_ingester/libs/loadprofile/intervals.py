"""Sampling interval detection."""

from collections import Counter
from collections.abc import Iterable
from datetime import datetime

STANDARD_INTERVALS = (1, 5, 10, 15, 30, 60, 120, 180, 240)
DEFAULT_INTERVAL_MINUTES = 60
MAX_INTERVAL_MINUTES = 240


def round_to_standard(minutes: float) -> int:
    """Nearest standard interval; ties go to the shorter one."""
    return min(STANDARD_INTERVALS, key=lambda standard: abs(minutes - standard))


def detect_interval(timestamps: Iterable[datetime]) -> int:
    """
    Infer the sampling resolution of a series in minutes.

    Gaps between consecutive (sorted) timestamps are rounded to the nearest
    standard interval and the most common one wins. Duplicate timestamps and
    gaps longer than four hours (missing days, outages) are ignored.

    Returns:
        Interval in minutes, DEFAULT_INTERVAL_MINUTES when it cannot be judged
    """
    ordered = sorted(timestamps)
    if len(ordered) < 2:
        return DEFAULT_INTERVAL_MINUTES

    counts: Counter[int] = Counter()
    for previous, current in zip(ordered, ordered[1:], strict=False):
        minutes = (current - previous).total_seconds() / 60
        if 0 < minutes <= MAX_INTERVAL_MINUTES:
            counts[round_to_standard(minutes)] += 1

    if not counts:
        return DEFAULT_INTERVAL_MINUTES

    # Highest count first, shortest interval on ties
    return min(counts, key=lambda interval: (-counts[interval], interval))
