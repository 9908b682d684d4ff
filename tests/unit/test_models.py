"""Tests for the data objects and request configuration."""

import pytest

from profile_ingester.libs.loadprofile.models import (
    DateOrder,
    ErrorLog,
    ExtractionConfig,
    ExtractionConfigError,
    ExtractionResult,
    LoadProfile,
    NegativeHandling,
    ProcessingStats,
    Unit,
)

ZEROS = (0.0,) * 24


def make_profile(**overrides: object) -> LoadProfile:
    fields: dict = {
        "weekday_profile": ZEROS,
        "weekend_profile": ZEROS,
        "weekday_day_count": 0,
        "weekend_day_count": 0,
        "total_energy": 0.0,
        "date_range": None,
        "data_point_count": 0,
        "peak_kw": 0.0,
        "avg_kw": 0.0,
        "detected_interval_minutes": 60,
        "is_valid": False,
        "rejection_reason": "all_zeros",
    }
    fields.update(overrides)
    return LoadProfile(**fields)


class TestErrorLog:
    """The error log is bounded and drops silently past capacity."""

    def test_drops_past_capacity(self) -> None:
        log = ErrorLog(capacity=2)

        assert log.append("a") is True
        assert log.append("b") is True
        assert log.append("c") is False
        assert list(log) == ["a", "b"]
        assert len(log) == 2
        assert log.dropped == 1

    def test_default_capacity(self) -> None:
        log = ProcessingStats().parse_errors
        for i in range(150):
            log.append(str(i))

        assert len(log) == 100
        assert log.dropped == 50


class TestLoadProfile:
    """Construction-time invariants."""

    def test_requires_24_entries(self) -> None:
        with pytest.raises(ValueError, match="24"):
            make_profile(weekday_profile=(0.0,) * 23)

    def test_rejected_profile_needs_reason(self) -> None:
        with pytest.raises(ValueError, match="rejection reason"):
            make_profile(rejection_reason=None)

    def test_valid_profile_without_reason(self) -> None:
        assert make_profile(is_valid=True, rejection_reason=None).is_valid is True


class TestExtractionResult:
    """Convenience accessors on results without a profile."""

    def test_failed_result_defaults(self) -> None:
        result = ExtractionResult(success=False, stats=ProcessingStats(), error="boom")

        assert result.data_point_count == 0
        assert result.date_range is None
        assert result.weekday_profile == ZEROS
        assert result.unit_kind is None
        assert result.detected_columns["value_column"] is None

    def test_unit_kind(self) -> None:
        result = ExtractionResult(success=True, stats=ProcessingStats(), unit=Unit.W)
        assert result.unit_kind.value == "power"


class TestExtractionConfigFromRequest:
    """Tests for building a config from camelCase request keys."""

    def test_empty_body_is_default(self) -> None:
        assert ExtractionConfig.from_request({}) == ExtractionConfig()

    def test_full_body(self) -> None:
        config = ExtractionConfig.from_request(
            {
                "separator": "semicolon",
                "headerRowNumber": "2",
                "dateColumn": 0,
                "timeColumn": "1",
                "valueColumn": 3,
                "meterIdColumn": -1,
                "kvaColumn": 4,
                "autoDetect": "false",
                "handleNegatives": "ABSOLUTE",
                "handleCumulative": True,
                "dateFormat": "mdy",
                "valueUnit": "kwh",
                "voltageV": "230",
                "powerFactor": 0.95,
            }
        )

        assert config.separator == "semicolon"
        assert config.header_row_number == 2
        assert config.date_column == 0
        assert config.time_column == 1
        assert config.value_column == 3
        assert config.meter_id_column is None
        assert config.kva_column == 4
        assert config.auto_detect is False
        assert config.handle_negatives == NegativeHandling.ABSOLUTE
        assert config.handle_cumulative is True
        assert config.date_format == DateOrder.MDY
        assert config.value_unit == Unit.KWH
        assert config.voltage_v == 230.0
        assert config.power_factor == 0.95

    def test_auto_unit(self) -> None:
        assert ExtractionConfig.from_request({"valueUnit": "auto"}).value_unit is None

    def test_unit_case_insensitive(self) -> None:
        assert ExtractionConfig.from_request({"valueUnit": "KVA"}).value_unit == Unit.KVA

    def test_explicit_columns(self) -> None:
        config = ExtractionConfig(date_column=0, value_column=2)
        assert config.explicit_columns() == {"date": 0, "value": 2}

    @pytest.mark.parametrize(
        "body",
        [
            {"headerRowNumber": 0},
            {"valueColumn": "abc"},
            {"handleNegatives": "drop"},
            {"dateFormat": "YDM"},
            {"valueUnit": "furlongs"},
            {"autoDetect": "maybe"},
            {"voltageV": "high"},
            {"powerFactor": 0},
            {"voltageV": -230},
        ],
    )
    def test_invalid(self, body: dict) -> None:
        with pytest.raises(ExtractionConfigError):
            ExtractionConfig.from_request(body)

    def test_config_error_is_value_error(self) -> None:
        assert issubclass(ExtractionConfigError, ValueError)
