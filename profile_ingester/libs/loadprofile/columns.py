"""
Column role detection.

Roles (date, time, value, meter_id) are resolved by walking COLUMN_CASCADE,
an ordered list of rules. Each rule either names a column index for its role
or has no opinion; the first opinion for a role wins and later rules for that
role are skipped. A column claimed by one role is never offered to another.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from .models import ColumnMapping, ExtractionConfig
from .units import parse_number

log = logging.getLogger(__name__)

DATE_KEYWORDS = ("rdate", "date", "datetime", "timestamp", "day", "datum")
TIME_KEYWORDS = ("rtime", "time", "hour", "zeit")
VALUE_KEYWORDS = (
    "kwh+",
    "kwh-",
    "kwh",
    "kw",
    "energy",
    "consumption",
    "reading",
    "value",
    "power",
    "load",
    "demand",
    "active",
)
METER_KEYWORDS = ("meter", "meter_id", "meterid", "device", "channel", "point", "site")

SAMPLE_SIZE = 20
MIN_NUMERIC_CELLS = 10


@dataclass
class ColumnContext:
    """Inputs every rule sees, plus the roles resolved so far."""

    headers: tuple[str, ...]
    sample: tuple[tuple[str, ...], ...]
    overrides: dict[str, int]
    decimal_comma: bool = False
    resolved: dict[str, int] = field(default_factory=dict)

    @property
    def lowered(self) -> list[str]:
        return [h.lower().strip() for h in self.headers]

    @property
    def width(self) -> int:
        return max([len(self.headers), *(len(row) for row in self.sample)], default=0)

    def is_claimed(self, index: int) -> bool:
        return index in self.resolved.values()


ColumnRule = Callable[[ColumnContext], int | None]


@dataclass(frozen=True)
class CascadeStep:
    role: str
    name: str
    rule: ColumnRule
    auto_only: bool = True


def explicit(role: str) -> ColumnRule:
    def rule(ctx: ColumnContext) -> int | None:
        return ctx.overrides.get(role)

    return rule


def header_match(keywords: Sequence[str], exclude: Sequence[str] = ()) -> ColumnRule:
    def rule(ctx: ColumnContext) -> int | None:
        for index, header in enumerate(ctx.lowered):
            if ctx.is_claimed(index) or not header:
                continue
            if any(word in header for word in exclude):
                continue
            if any(keyword in header for keyword in keywords):
                return index
        return None

    return rule


def numeric_profile(ctx: ColumnContext) -> int | None:
    """Pick the unclaimed column that looks most like a stream of readings."""
    best_index: int | None = None
    best_score = -1

    for index in range(ctx.width):
        if ctx.is_claimed(index):
            continue

        numeric_count = 0
        total = 0.0
        has_variation = False
        previous: float | None = None

        for row in ctx.sample[:SAMPLE_SIZE]:
            value = parse_number(row[index], ctx.decimal_comma) if index < len(row) else None
            if value is None:
                continue
            numeric_count += 1
            total += abs(value)
            if previous is not None and value != previous:
                has_variation = True
            previous = value

        if numeric_count < MIN_NUMERIC_CELLS:
            continue

        score = numeric_count + (10 if has_variation else 0) + (5 if total > 0 else 0)
        if score > best_score:
            best_index, best_score = index, score

    return best_index


def fixed(index: int) -> ColumnRule:
    def rule(ctx: ColumnContext) -> int | None:
        return index

    return rule


def value_fallback(ctx: ColumnContext) -> int | None:
    return 1 if ctx.width > 1 else 0


COLUMN_CASCADE: tuple[CascadeStep, ...] = (
    CascadeStep("date", "explicit", explicit("date"), auto_only=False),
    CascadeStep("time", "explicit", explicit("time"), auto_only=False),
    CascadeStep("value", "explicit", explicit("value"), auto_only=False),
    CascadeStep("meter_id", "explicit", explicit("meter_id"), auto_only=False),
    CascadeStep("date", "header", header_match(DATE_KEYWORDS)),
    CascadeStep("time", "header", header_match(TIME_KEYWORDS, exclude=("date",))),
    CascadeStep("value", "header", header_match(VALUE_KEYWORDS)),
    CascadeStep("meter_id", "header", header_match(METER_KEYWORDS)),
    CascadeStep("value", "data", numeric_profile),
    CascadeStep("date", "fallback", fixed(0), auto_only=False),
    CascadeStep("value", "fallback", value_fallback, auto_only=False),
)


def locate_columns(
    headers: Sequence[str],
    sample: Sequence[Sequence[str]],
    config: ExtractionConfig | None = None,
    decimal_comma: bool = False,
) -> ColumnMapping:
    """
    Map header cells (and, failing that, sample statistics) to column roles.

    Never fails: when nothing matches, the date column defaults to 0 and the
    value column to 1 (or 0 for single-column files).

    Args:
        headers: Header row cells, possibly empty
        sample: Up to 20 data rows
        config: Supplies explicit column overrides and the auto_detect switch
        decimal_comma: Passed through to numeric parsing of the sample

    Returns:
        ColumnMapping
    """
    config = config or ExtractionConfig()
    ctx = ColumnContext(
        headers=tuple(headers),
        sample=tuple(tuple(row) for row in sample[:SAMPLE_SIZE]),
        overrides=config.explicit_columns(),
        decimal_comma=decimal_comma,
    )

    for step in COLUMN_CASCADE:
        if step.role in ctx.resolved:
            continue
        if step.auto_only and not config.auto_detect:
            continue
        index = step.rule(ctx)
        if index is not None:
            ctx.resolved[step.role] = index
            log.debug(f"Column '{step.role}' -> {index} ({step.name})")

    return ColumnMapping(
        date_col=ctx.resolved["date"],
        value_col=ctx.resolved["value"],
        time_col=ctx.resolved.get("time"),
        meter_id_col=ctx.resolved.get("meter_id"),
    )
