"""
Load profile extraction: the single pass from raw CSV text to hourly profiles.

extract_load_profile() never raises for bad data. Row-level problems are
counted in ProcessingStats and the row is skipped; degenerate output is
returned as an invalid LoadProfile; only unusable input (no text, a header
row past the end of the file, a configured column no row reaches) produces
ExtractionResult(success=False).
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from .aggregate import ProfileAccumulator
from .columns import SAMPLE_SIZE, locate_columns
from .dates import parse_timestamp
from .dialect import detect_delimiter, detect_format, preprocess, resolve_separator, tokenize_lines
from .models import (
    ColumnMapping,
    DetectionPreview,
    ExtractionConfig,
    ExtractionResult,
    FormatDetectionResult,
    ParsedDataPoint,
    ProcessingStats,
    RawRow,
    Unit,
)
from .units import detect_unit, normalize, parse_number
from .values import apply_negative_policy, cumulative_delta

log = logging.getLogger(__name__)

DEFAULT_SAMPLE_LIMIT = 5000
PREVIEW_ROWS = 5
NO_CONTENT_ERROR = "No CSV content provided"


@dataclass(frozen=True)
class _Prepared:
    delimiter: str
    rows: tuple[RawRow, ...]
    format: FormatDetectionResult
    header_index: int

    @property
    def headers(self) -> tuple[str, ...]:
        if self.header_index < len(self.rows):
            return self.rows[self.header_index].cells
        return ()

    @property
    def data_rows(self) -> tuple[RawRow, ...]:
        return self.rows[self.header_index + 1 :]

    @property
    def decimal_comma(self) -> bool:
        return self.delimiter == ";"

    @property
    def width(self) -> int:
        return max((len(row.cells) for row in self.rows), default=0)


def _prepare(csv_text: str, config: ExtractionConfig) -> _Prepared:
    lines = preprocess(csv_text)
    delimiter = resolve_separator(config.separator) or detect_delimiter([line.text for line in lines])
    rows = tuple(row for row in tokenize_lines(lines, delimiter) if not row.is_blank())
    detected = detect_format(rows, delimiter)

    if config.header_row_number is not None:
        header_index = config.header_row_number - 1
    else:
        header_index = detected.header_row_index

    return _Prepared(delimiter=delimiter, rows=rows, format=detected, header_index=header_index)


def _cell(cells: Sequence[str], index: int | None) -> str | None:
    if index is None or index >= len(cells):
        return None
    return cells[index]


def _resolve_unit(config: ExtractionConfig, headers: Sequence[str], columns: ColumnMapping) -> Unit:
    if config.value_unit is not None:
        return config.value_unit
    return detect_unit(_cell(headers, columns.value_col) or "")


def _input_error(prepared: _Prepared, config: ExtractionConfig) -> str | None:
    """Return why the prepared input cannot be processed at all, if it cannot."""
    if not prepared.rows:
        return "CSV contains no data lines"
    if prepared.header_index >= len(prepared.rows):
        return f"Header row {prepared.header_index + 1} is beyond the end of the file ({len(prepared.rows)} lines)"
    for role, index in config.explicit_columns().items():
        if index >= prepared.width:
            return f"Configured {role} column {index} is beyond the widest row ({prepared.width} columns)"
    return None


def preview_csv(csv_text: str, config: ExtractionConfig | None = None) -> DetectionPreview:
    """
    Detect the dialect and columns of a CSV export without processing it.

    Only the format detector and column locator run; dates and values are
    never parsed.

    Args:
        csv_text: Raw CSV text
        config: Optional separator, header row and column overrides

    Returns:
        DetectionPreview with the first few data rows; error is set when
        extract_load_profile would reject the same input and config
    """
    config = config or ExtractionConfig()
    prepared = _prepare(csv_text, config)
    if not csv_text or not csv_text.strip():
        error = NO_CONTENT_ERROR
    else:
        error = _input_error(prepared, config)
    data_rows = prepared.data_rows
    columns = locate_columns(
        prepared.headers,
        [row.cells for row in data_rows[:SAMPLE_SIZE]],
        config,
        prepared.decimal_comma,
    )
    return DetectionPreview(
        format=prepared.format,
        columns=columns,
        headers=prepared.headers,
        sample_rows=tuple(row.cells for row in data_rows[:PREVIEW_ROWS]),
        error=error,
    )


def extract_load_profile(
    csv_text: str,
    config: ExtractionConfig | None = None,
    sample_limit: int = DEFAULT_SAMPLE_LIMIT,
) -> ExtractionResult:
    """
    Turn a meter CSV export into weekday/weekend 24-hour load profiles.

    Args:
        csv_text: Raw CSV text (BOM and "sep=" lines are tolerated)
        config: Overrides for anything that would otherwise be detected
        sample_limit: Number of parsed data points kept on the result

    Returns:
        ExtractionResult; success=False with an error message when the
        input cannot be used at all
    """
    config = config or ExtractionConfig()
    stats = ProcessingStats()

    if not csv_text or not csv_text.strip():
        return ExtractionResult(success=False, stats=stats, error=NO_CONTENT_ERROR)

    prepared = _prepare(csv_text, config)
    error = _input_error(prepared, config)
    if error:
        return ExtractionResult(success=False, stats=stats, format=prepared.format, error=error)

    headers = prepared.headers
    data_rows = prepared.data_rows
    decimal_comma = prepared.decimal_comma
    columns = locate_columns(headers, [row.cells for row in data_rows[:SAMPLE_SIZE]], config, decimal_comma)

    unit = _resolve_unit(config, headers, columns)
    is_cumulative = prepared.format.is_cumulative if config.handle_cumulative is None else config.handle_cumulative
    log.info(
        f"Extracting {len(data_rows)} rows: delimiter={prepared.delimiter!r}, layout={prepared.format.layout.value}, "
        f"unit={unit.value}, cumulative={is_cumulative}, columns={columns}"
    )

    whole_file = ProfileAccumulator(unit.kind)
    per_meter: dict[str, ProfileAccumulator] = {}
    previous_by_meter: dict[str | None, float] = {}
    sample: list[ParsedDataPoint] = []
    min_width = max(columns.date_col, columns.value_col)

    for row in data_rows:
        stats.total_rows += 1
        cells = row.cells

        if len(cells) <= min_width:
            stats.skipped_rows += 1
            log.debug(f"Line {row.line_number}: {len(cells)} cells, too few for column mapping")
            continue

        date_str = cells[columns.date_col]
        timestamp = parse_timestamp(date_str, _cell(cells, columns.time_col), config.date_format)
        if timestamp is None:
            stats.skipped_rows += 1
            stats.parse_errors.append(f'Line {row.line_number}: Invalid date "{date_str}"')
            continue

        raw = parse_number(cells[columns.value_col], decimal_comma)
        if raw is None:
            stats.skipped_rows += 1
            continue

        reading, _ = normalize(raw, unit, config.voltage_v, config.power_factor)
        meter_id = _cell(cells, columns.meter_id_col) or None

        if is_cumulative:
            previous = previous_by_meter.get(meter_id)
            previous_by_meter[meter_id] = reading
            delta = cumulative_delta(reading, previous)
            if delta is None:
                # First reading of this meter only seeds the running total
                stats.skipped_rows += 1
                continue
            value = delta
        else:
            value = reading

        if value < 0:
            stats.negative_value_count += 1
            kept = apply_negative_policy(value, config.handle_negatives)
            if kept is None:
                stats.skipped_rows += 1
                continue
            value = kept

        kva = None
        if config.kva_column is not None:
            kva = parse_number(_cell(cells, config.kva_column), decimal_comma)

        point = ParsedDataPoint(
            timestamp=timestamp,
            date=timestamp.date(),
            value=value,
            source_line=row.line_number,
            meter_id=meter_id,
            kva=kva,
        )
        whole_file.add(point)
        if meter_id is not None:
            if meter_id not in per_meter:
                per_meter[meter_id] = ProfileAccumulator(unit.kind, meter_id)
            per_meter[meter_id].add(point)
        if len(sample) < sample_limit:
            sample.append(point)
        stats.processed_rows += 1

    meter_data = None
    if columns.meter_id_col is not None and len(per_meter) > 1:
        meter_data = {meter_id: per_meter[meter_id].build() for meter_id in sorted(per_meter)}

    profile = whole_file.build()
    log.info(
        f"Processed {stats.processed_rows}/{stats.total_rows} rows, skipped {stats.skipped_rows}, "
        f"negatives {stats.negative_value_count}, parse errors {len(stats.parse_errors)} "
        f"(+{stats.parse_errors.dropped} dropped)"
    )
    if meter_data:
        log.info(f"Split into {len(meter_data)} meters")
    if not profile.is_valid:
        log.info(f"Profile rejected: {', '.join(profile.warnings)}")

    return ExtractionResult(
        success=True,
        stats=stats,
        format=prepared.format,
        columns=columns,
        headers=headers,
        profile=profile,
        meter_data=meter_data,
        unit=unit,
        sample=tuple(sample),
    )
