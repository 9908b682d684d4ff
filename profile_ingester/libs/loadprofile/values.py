"""
Interval value reconstruction: cumulative deltas and negative-value policy.

A reading lower than its predecessor on a cumulative meter is taken to be a
rollover or reset, and the post-rollover reading itself becomes the delta.
The rollover modulus of the meter is unknown, so this is an approximation;
historical profiles depend on it and it is kept as-is pending product review.
"""

from .models import NegativeHandling


def cumulative_delta(current: float, previous: float | None) -> float | None:
    """
    Difference between two cumulative readings of the same meter.

    Returns:
        The consumption since the previous reading, the current reading after
        a rollover, or None for the first reading (no previous value).
    """
    if previous is None:
        return None
    if current < previous:
        return current
    return current - previous


def apply_negative_policy(value: float, handling: NegativeHandling) -> float | None:
    """Apply the negative-value policy. None means the row must be dropped."""
    if value >= 0:
        return value
    if handling == NegativeHandling.FILTER:
        return None
    if handling == NegativeHandling.ABSOLUTE:
        return abs(value)
    return value
