"""
Adapter module for the loadprofile library.

This module turns extraction results into the shapes the rest of the
service consumes:
- pandas DataFrames (one 24-row frame per meter, plus the parsed sample)
- camelCase JSON payloads for the HTTP contract
- the persisted meter/import record shape
"""

from datetime import date
from typing import Any

import pandas as pd
from aws_lambda_powertools import Logger, Metrics
from aws_lambda_powertools.metrics import MetricUnit

from profile_ingester.libs.loadprofile import (
    DetectionPreview,
    ExtractionResult,
    FormatDetectionResult,
    LoadProfile,
    ProcessingStats,
)
from profile_ingester.libs.loadprofile.models import HOURS_PER_DAY, ParsedDataPoint

logger = Logger(service="profile-adapter", child=True)

ALL_METERS = "all"
SAMPLE_COLUMNS = ["t_start", "value", "meter_id", "kva", "source_line"]


def profile_as_data_frame(profile: LoadProfile) -> pd.DataFrame:
    """
    Build a 24-row DataFrame (index "hour") with weekday_kw and weekend_kw columns.
    """
    return pd.DataFrame(
        {
            "weekday_kw": list(profile.weekday_profile),
            "weekend_kw": list(profile.weekend_profile),
        },
        index=pd.RangeIndex(HOURS_PER_DAY, name="hour"),
    )


def result_as_data_frames(result: ExtractionResult) -> list[tuple[str, pd.DataFrame]]:
    """
    Return (name, DataFrame) pairs for an extraction result.

    The whole-file profile comes first under "all", followed by one entry per
    meter in sorted order when the file was split by meter.

    Args:
        result: A successful extraction result

    Returns:
        List of tuples: (meter name, 24-row profile DataFrame); empty when
        the result carries no profile
    """
    if result.profile is None:
        return []

    data_frames = [(ALL_METERS, profile_as_data_frame(result.profile))]
    for meter_id in sorted(result.meter_data or {}):
        data_frames.append((meter_id, profile_as_data_frame(result.meter_data[meter_id])))

    logger.debug("Built profile data frames", extra={"frames": len(data_frames)})
    return data_frames


def sample_as_data_frame(result: ExtractionResult) -> pd.DataFrame:
    """Return the retained data point sample as a DataFrame indexed by t_start."""
    records = [
        {
            "t_start": point.timestamp,
            "value": point.value,
            "meter_id": point.meter_id,
            "kva": point.kva,
            "source_line": point.source_line,
        }
        for point in result.sample
    ]
    df = pd.DataFrame(records, columns=SAMPLE_COLUMNS)
    return df.set_index("t_start", drop=False)


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value else None


def _date_range_payload(date_range: tuple[date, date] | None) -> dict[str, str | None]:
    start, end = date_range if date_range else (None, None)
    return {"start": _iso(start), "end": _iso(end)}


def format_to_payload(detected: FormatDetectionResult | None) -> dict[str, Any] | None:
    if detected is None:
        return None

    declared = None
    if detected.declared_date_range:
        declared = {"start": detected.declared_date_range[0], "end": detected.declared_date_range[1]}

    return {
        "layout": detected.layout.value,
        "delimiter": detected.delimiter,
        "headerRowIndex": detected.header_row_index,
        "hasNegativeValues": detected.has_negative_values,
        "isCumulative": detected.is_cumulative,
        "confidence": detected.confidence,
        "meterIds": sorted(detected.meter_ids) if detected.meter_ids is not None else None,
        "meterName": detected.meter_name,
        "declaredDateRange": declared,
    }


def stats_to_payload(stats: ProcessingStats) -> dict[str, Any]:
    return {
        "totalRows": stats.total_rows,
        "processedRows": stats.processed_rows,
        "skippedRows": stats.skipped_rows,
        "negativeValues": stats.negative_value_count,
        "parseErrors": list(stats.parse_errors),
    }


def profile_to_payload(profile: LoadProfile) -> dict[str, Any]:
    return {
        "weekdayProfile": list(profile.weekday_profile),
        "weekendProfile": list(profile.weekend_profile),
        "weekdayDays": profile.weekday_day_count,
        "weekendDays": profile.weekend_day_count,
        "dataPoints": profile.data_point_count,
        "dateRange": _date_range_payload(profile.date_range),
        "totalEnergy": profile.total_energy,
        "peakKw": profile.peak_kw,
        "avgKw": profile.avg_kw,
        "detectedIntervalMinutes": profile.detected_interval_minutes,
        "isValid": profile.is_valid,
        "rejectionReason": profile.rejection_reason,
        "warnings": list(profile.warnings),
    }


def _point_to_payload(point: ParsedDataPoint) -> dict[str, Any]:
    return {
        "timestamp": point.timestamp.isoformat(),
        "date": point.date.isoformat(),
        "time": point.timestamp.strftime("%H:%M:%S"),
        "value": point.value,
        "kva": point.kva,
        "meterId": point.meter_id,
        "originalLine": point.source_line,
    }


def result_to_payload(result: ExtractionResult) -> dict[str, Any]:
    """
    Serialise an extraction result to the camelCase JSON contract.

    Failed results carry only success, error, format and stats.
    """
    payload: dict[str, Any] = {
        "success": result.success,
        "format": format_to_payload(result.format),
        "stats": stats_to_payload(result.stats),
    }
    if not result.success:
        payload["error"] = result.error
        return payload

    columns = result.detected_columns
    payload.update(
        {
            "dataPoints": result.data_point_count,
            "dateRange": _date_range_payload(result.date_range),
            "weekdayDays": result.weekday_day_count,
            "weekendDays": result.weekend_day_count,
            "weekdayProfile": list(result.weekday_profile),
            "weekendProfile": list(result.weekend_profile),
            "detectedColumns": {
                "dateColumn": columns["date_column"],
                "timeColumn": columns["time_column"],
                "valueColumn": columns["value_column"],
                "meterIdColumn": columns["meter_id_column"],
                "headers": columns["headers"],
            },
            "unit": result.unit.value if result.unit else None,
            "unitKind": result.unit_kind.value if result.unit_kind else None,
            "profile": profile_to_payload(result.profile) if result.profile else None,
            "meterData": (
                {meter_id: profile_to_payload(profile) for meter_id, profile in result.meter_data.items()}
                if result.meter_data
                else None
            ),
            "rawData": [_point_to_payload(point) for point in result.sample],
        }
    )
    return payload


def preview_to_payload(preview: DetectionPreview) -> dict[str, Any]:
    """Serialise a detect-only preview to the camelCase JSON contract."""
    columns = preview.columns
    payload: dict[str, Any] = {
        "success": preview.success,
        "format": format_to_payload(preview.format),
        "columns": {
            "dateColumn": columns.date_col,
            "timeColumn": columns.time_col,
            "valueColumn": columns.value_col,
            "meterIdColumn": columns.meter_id_col,
        },
        "headers": list(preview.headers),
        "sampleRows": [list(row) for row in preview.sample_rows],
    }
    if preview.error is not None:
        payload["error"] = preview.error
    return payload


def to_meter_record(profile: LoadProfile) -> dict[str, Any]:
    """
    Map a load profile onto the persisted meter/import record.

    Args:
        profile: Whole-file or per-meter profile

    Returns:
        Dict with the load_profile_* arrays, data point count, date range
        and detected interval
    """
    start, end = profile.date_range if profile.date_range else (None, None)
    return {
        "load_profile_weekday": list(profile.weekday_profile),
        "load_profile_weekend": list(profile.weekend_profile),
        "data_points": profile.data_point_count,
        "date_range_start": _iso(start),
        "date_range_end": _iso(end),
        "detected_interval_minutes": profile.detected_interval_minutes,
    }


def record_result_metrics(metrics: Metrics, result: ExtractionResult) -> None:
    """Publish row counts, and a rejection count when the whole-file profile is invalid."""
    metrics.add_metric(name="ProcessedRows", unit=MetricUnit.Count, value=result.stats.processed_rows)
    metrics.add_metric(name="SkippedRows", unit=MetricUnit.Count, value=result.stats.skipped_rows)
    if result.profile is not None and not result.profile.is_valid:
        metrics.add_metric(name="RejectedProfiles", unit=MetricUnit.Count, value=1)
