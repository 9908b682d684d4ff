"""
Hour-of-day accumulation and profile validation.

Power readings (kW) are averaged per hour. Energy readings (kWh) are summed
per hour and divided by the number of distinct days of that day type, which
gives the mean energy used in that hour of a typical day, i.e. its average kW.
The two rules are not interchangeable: averaging 30-minute kWh readings would
halve the profile.
"""

from datetime import date, datetime

from .intervals import detect_interval
from .models import HOURS_PER_DAY, LoadProfile, ParsedDataPoint, UnitKind

EXTREME_OUTLIER_KW = 10_000_000
MIN_DATA_POINTS = 48
FLAT_LINE_TOLERANCE = 1e-4

REJECT_ALL_ZEROS = "all_zeros"
REJECT_FLAT_LINE = "flat_line"
REJECT_EXTREME_OUTLIER = "extreme_outlier"
REJECT_TOO_FEW_POINTS = "too_few_points"


def is_weekend(timestamp: datetime) -> bool:
    return timestamp.weekday() >= 5


def validate_profile(
    weekday_profile: tuple[float, ...],
    weekend_profile: tuple[float, ...],
    data_point_count: int,
) -> tuple[str, ...]:
    """
    Return every rejection reason that applies, in rule order.

    An empty tuple means the profile is valid.
    """
    values = [*weekday_profile, *weekend_profile]
    non_zero = [v for v in values if v != 0]
    reasons = []

    if not non_zero:
        reasons.append(REJECT_ALL_ZEROS)
    elif all(abs(v - non_zero[0]) < FLAT_LINE_TOLERANCE for v in non_zero):
        reasons.append(REJECT_FLAT_LINE)

    if any(v > EXTREME_OUTLIER_KW for v in values):
        reasons.append(REJECT_EXTREME_OUTLIER)
    if data_point_count < MIN_DATA_POINTS:
        reasons.append(REJECT_TOO_FEW_POINTS)

    return tuple(reasons)


class ProfileAccumulator:
    """
    Running per-hour totals for one meter (or a whole file) during a single pass.

    Only sums, counts, day sets and timestamps are kept; data points themselves
    are not retained.
    """

    def __init__(self, unit_kind: UnitKind, meter_id: str | None = None) -> None:
        self.unit_kind = unit_kind
        self.meter_id = meter_id
        # Index 0 = weekday, 1 = weekend
        self._sums = ([0.0] * HOURS_PER_DAY, [0.0] * HOURS_PER_DAY)
        self._counts = ([0] * HOURS_PER_DAY, [0] * HOURS_PER_DAY)
        self._days: tuple[set[date], set[date]] = (set(), set())
        self._timestamps: list[datetime] = []
        self._total = 0.0

    @property
    def count(self) -> int:
        return len(self._timestamps)

    def add(self, point: ParsedDataPoint) -> None:
        bucket = 1 if is_weekend(point.timestamp) else 0
        hour = point.timestamp.hour
        self._sums[bucket][hour] += point.value
        self._counts[bucket][hour] += 1
        self._days[bucket].add(point.date)
        self._timestamps.append(point.timestamp)
        self._total += point.value

    def _hourly(self, bucket: int) -> tuple[float, ...]:
        sums = self._sums[bucket]
        if self.unit_kind == UnitKind.ENERGY:
            day_count = len(self._days[bucket])
            return tuple(s / day_count if day_count else 0.0 for s in sums)
        counts = self._counts[bucket]
        return tuple(s / c if c else 0.0 for s, c in zip(sums, counts, strict=True))

    def build(self) -> LoadProfile:
        weekday = self._hourly(0)
        weekend = self._hourly(1)
        interval = detect_interval(self._timestamps)

        if self.unit_kind == UnitKind.ENERGY:
            total_energy = self._total
        else:
            total_energy = self._total * interval / 60

        positive = [v for v in (*weekday, *weekend) if v > 0]
        all_days = self._days[0] | self._days[1]
        reasons = validate_profile(weekday, weekend, self.count)

        return LoadProfile(
            weekday_profile=weekday,
            weekend_profile=weekend,
            weekday_day_count=len(self._days[0]),
            weekend_day_count=len(self._days[1]),
            total_energy=total_energy,
            date_range=(min(all_days), max(all_days)) if all_days else None,
            data_point_count=self.count,
            peak_kw=max(positive, default=0.0),
            avg_kw=sum(positive) / len(positive) if positive else 0.0,
            detected_interval_minutes=interval,
            is_valid=not reasons,
            rejection_reason=reasons[0] if reasons else None,
            warnings=reasons,
            meter_id=self.meter_id,
        )
