"""Tests for column role detection."""

from profile_ingester.libs.loadprofile.columns import (
    COLUMN_CASCADE,
    ColumnContext,
    DATE_KEYWORDS,
    header_match,
    locate_columns,
    numeric_profile,
)
from profile_ingester.libs.loadprofile.models import ColumnMapping, ExtractionConfig


def numeric_rows(count: int, columns: list[list[str]]) -> list[list[str]]:
    """Zip per-column value lists into rows."""
    return [[column[i] for column in columns] for i in range(count)]


class TestHeaderMatching:
    """Header keywords resolve roles case-insensitively."""

    def test_date_time_value(self) -> None:
        mapping = locate_columns(["Date", "Time", "kWh"], [])
        assert mapping == ColumnMapping(date_col=0, value_col=2, time_col=1, meter_id_col=None)

    def test_pnp_scada_header(self) -> None:
        mapping = locate_columns(["rdate", "rtime", "kwh", "kva", "status"], [])
        assert mapping == ColumnMapping(date_col=0, value_col=2, time_col=1, meter_id_col=None)

    def test_timestamp_is_not_also_the_time_column(self) -> None:
        mapping = locate_columns(["Timestamp", "Value"], [])
        assert mapping.date_col == 0
        assert mapping.time_col is None
        assert mapping.value_col == 1

    def test_meter_column(self) -> None:
        mapping = locate_columns(["Meter", "Date", "kWh"], [])
        assert mapping == ColumnMapping(date_col=1, value_col=2, time_col=None, meter_id_col=0)

    def test_header_whitespace_and_case(self) -> None:
        mapping = locate_columns(["  READING DATE ", " Consumption "], [])
        assert mapping.date_col == 0
        assert mapping.value_col == 1

    def test_first_keyword_match_wins(self) -> None:
        mapping = locate_columns(["Date", "Power", "Energy"], [])
        assert mapping.value_col == 1


class TestDataFallback:
    """Without a value header, the most reading-like column is chosen."""

    def test_varying_column_beats_constant_column(self) -> None:
        rows = numeric_rows(
            12,
            [
                [f"2024-01-01 {i:02d}:00" for i in range(12)],
                ["1"] * 12,
                [str(i + 1) for i in range(12)],
            ],
        )
        mapping = locate_columns(["a", "b", "c"], rows)
        assert mapping.date_col == 0
        assert mapping.value_col == 2

    def test_too_few_numeric_cells(self) -> None:
        ctx = ColumnContext(headers=("a", "b"), sample=(("x", "1"),) * 5, overrides={})
        assert numeric_profile(ctx) is None

    def test_claimed_columns_are_skipped(self) -> None:
        sample = tuple((str(i), str(i * 2)) for i in range(12))
        ctx = ColumnContext(headers=(), sample=sample, overrides={}, resolved={"date": 1})
        assert numeric_profile(ctx) == 0

    def test_decimal_comma_sample(self) -> None:
        rows = numeric_rows(10, [[f"0{i}.01.2024" for i in range(10)], [f"0,{i}5" for i in range(10)]])
        mapping = locate_columns(["x", "y"], rows, decimal_comma=True)
        assert mapping.value_col == 1


class TestFallbacks:
    """The locator never fails."""

    def test_empty_input(self) -> None:
        assert locate_columns([], []) == ColumnMapping(date_col=0, value_col=0)

    def test_unrecognised_headers(self) -> None:
        mapping = locate_columns(["foo", "bar"], [["x", "y"]])
        assert mapping.date_col == 0
        assert mapping.value_col == 1

    def test_single_column(self) -> None:
        mapping = locate_columns(["foo"], [["2024-01-01"]])
        assert mapping == ColumnMapping(date_col=0, value_col=0)


class TestExplicitColumns:
    """Caller-supplied indices take priority over detection."""

    def test_explicit_value_column(self) -> None:
        mapping = locate_columns(["Date", "kWh", "Other"], [], ExtractionConfig(value_column=2))
        assert mapping.date_col == 0
        assert mapping.value_col == 2

    def test_explicit_column_is_not_reused(self) -> None:
        mapping = locate_columns(["kWh", "Date"], [], ExtractionConfig(value_column=1))
        assert mapping.value_col == 1
        assert mapping.date_col == 0

    def test_auto_detect_off_uses_fixed_fallbacks(self) -> None:
        mapping = locate_columns(["Date", "Time", "kWh"], [], ExtractionConfig(auto_detect=False))
        assert mapping == ColumnMapping(date_col=0, value_col=1)

    def test_auto_detect_off_keeps_explicit_columns(self) -> None:
        config = ExtractionConfig(auto_detect=False, time_column=1, value_column=2, meter_id_column=3)
        mapping = locate_columns(["a", "b", "c", "d"], [], config)
        assert mapping == ColumnMapping(date_col=0, value_col=2, time_col=1, meter_id_col=3)


class TestCascade:
    """The cascade is data and each rule can be exercised on its own."""

    def test_explicit_steps_come_first(self) -> None:
        assert [step.name for step in COLUMN_CASCADE[:4]] == ["explicit"] * 4

    def test_header_rule_has_no_opinion(self) -> None:
        rule = header_match(DATE_KEYWORDS)
        assert rule(ColumnContext(headers=("kWh", "Status"), sample=(), overrides={})) is None

    def test_header_rule_match(self) -> None:
        rule = header_match(DATE_KEYWORDS)
        assert rule(ColumnContext(headers=("kWh", "Datum"), sample=(), overrides={})) == 1
