"""
Text preprocessing, tokenizing and format (dialect/layout) detection.

detect_format() never raises: an export it cannot make sense of is reported
as Layout.UNKNOWN with zero confidence, and callers fall back accordingly.
"""

import csv
import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from .columns import locate_columns
from .models import FormatDetectionResult, Layout, RawRow
from .units import parse_number

log = logging.getLogger(__name__)

CANDIDATE_DELIMITERS = ("\t", ";", ",", "|")
DEFAULT_DELIMITER = ","
DELIMITER_SAMPLE_LINES = 10
HEADER_SEARCH_LINES = 5
FORMAT_SAMPLE_ROWS = 200
CUMULATIVE_THRESHOLD = 0.9

SEPARATOR_NAMES = {
    "tab": "\t",
    "semicolon": ";",
    "comma": ",",
    "pipe": "|",
    "space": " ",
}

_PNP_FIRST_LINE = re.compile(r'^,?"([^"]+)"?,(\d{4}-\d{2}-\d{2}),(\d{4}-\d{2}-\d{2})')
_PNP_HEADER_TOKENS = ("rdate", "rtime", "kwh")


@dataclass(frozen=True)
class SourceLine:
    number: int
    text: str


def preprocess(content: str) -> list[SourceLine]:
    """
    Strip the byte-order mark, trim lines and drop blanks and "sep=" hints.

    Line numbers are 1-based positions in the original text.
    """
    if content.startswith("\ufeff"):
        content = content[1:]

    lines = []
    for number, raw in enumerate(content.split("\n"), start=1):
        text = raw.replace("\ufeff", "").strip()
        if not text or text.lower().startswith("sep="):
            continue
        lines.append(SourceLine(number, text))
    return lines


def detect_delimiter(lines: Sequence[str]) -> str:
    """Return the candidate delimiter seen most often in the first 10 lines."""
    sample = "\n".join(lines[:DELIMITER_SAMPLE_LINES])
    counts = {delimiter: sample.count(delimiter) for delimiter in CANDIDATE_DELIMITERS}
    best = max(CANDIDATE_DELIMITERS, key=lambda d: counts[d])
    return best if counts[best] > 0 else DEFAULT_DELIMITER


def resolve_separator(separator: str | None) -> str | None:
    """Translate a configured separator name ("tab", "semicolon", ...) to its character."""
    if not separator:
        return None
    return SEPARATOR_NAMES.get(separator.lower(), separator)


def _unquote(cell: str) -> str:
    cell = cell.strip()
    if len(cell) >= 2 and cell[0] == cell[-1] and cell[0] in "\"'":
        cell = cell[1:-1].strip()
    return cell


def tokenize(text: str, delimiter: str) -> tuple[str, ...]:
    if delimiter == " ":
        cells = text.split()
    else:
        cells = next(csv.reader([text], delimiter=delimiter), [])
    return tuple(_unquote(cell) for cell in cells)


def tokenize_lines(lines: Sequence[SourceLine], delimiter: str) -> list[RawRow]:
    return [RawRow(tokenize(line.text, delimiter), line.number, line.text) for line in lines]


def find_header_row(rows: Sequence[RawRow]) -> int | None:
    """Index of the first of the first five rows whose first cell does not start with a digit."""
    for index, row in enumerate(rows[:HEADER_SEARCH_LINES]):
        first = row.cells[0] if row.cells else ""
        if first and not first[0].isdigit():
            return index
    return None


def match_pnp_scada(rows: Sequence[RawRow]) -> tuple[str, str, str] | None:
    """Return (meter name, start date, end date) when the rows carry a PnP SCADA preamble."""
    if len(rows) < 2:
        return None
    match = _PNP_FIRST_LINE.match(rows[0].text)
    second = rows[1].text.lower()
    if match and all(token in second for token in _PNP_HEADER_TOKENS):
        return match.group(1), match.group(2), match.group(3)
    return None


@dataclass(frozen=True)
class FormatSample:
    """What the layout rules look at: the first data rows and their readings."""

    pnp_match: tuple[str, str, str] | None
    data_rows: tuple[RawRow, ...]
    meter_ids: frozenset[str]
    is_cumulative: bool


LayoutRule = Callable[[FormatSample], Layout | None]


def _pnp_scada_rule(sample: FormatSample) -> Layout | None:
    return Layout.PNP_SCADA if sample.pnp_match else None


def _empty_rule(sample: FormatSample) -> Layout | None:
    return Layout.UNKNOWN if not sample.data_rows else None


def _multi_meter_rule(sample: FormatSample) -> Layout | None:
    return Layout.MULTI_METER if len(sample.meter_ids) > 1 else None


def _cumulative_rule(sample: FormatSample) -> Layout | None:
    return Layout.CUMULATIVE if sample.is_cumulative else Layout.STANDARD


LAYOUT_RULES: tuple[LayoutRule, ...] = (
    _pnp_scada_rule,
    _empty_rule,
    _multi_meter_rule,
    _cumulative_rule,
)


def classify_layout(sample: FormatSample) -> Layout:
    for rule in LAYOUT_RULES:
        layout = rule(sample)
        if layout is not None:
            return layout
    return Layout.UNKNOWN


def is_mostly_increasing(series: dict[str | None, list[float]]) -> bool:
    """True when at least 90% of consecutive reading pairs strictly increase."""
    pairs = 0
    increasing = 0
    for values in series.values():
        for previous, current in zip(values, values[1:], strict=False):
            pairs += 1
            if current > previous:
                increasing += 1
    return pairs > 0 and increasing >= pairs * CUMULATIVE_THRESHOLD


def detect_format(rows: Sequence[RawRow], delimiter: str) -> FormatDetectionResult:
    """
    Classify tokenized rows into a known export layout.

    Args:
        rows: Tokenized, non-blank source rows
        delimiter: Delimiter the rows were tokenized with

    Returns:
        FormatDetectionResult (Layout.UNKNOWN when there is no data to judge)
    """
    pnp_match = match_pnp_scada(rows)

    if pnp_match:
        header_index: int | None = 1
    else:
        header_index = find_header_row(rows)
    header_found = header_index is not None
    header_index = header_index or 0

    headers = rows[header_index].cells if header_index < len(rows) else ()
    data_rows = tuple(row for row in rows[header_index + 1 :] if not row.is_blank())[:FORMAT_SAMPLE_ROWS]

    decimal_comma = delimiter == ";"
    mapping = locate_columns(headers, [row.cells for row in data_rows], decimal_comma=decimal_comma)

    series: dict[str | None, list[float]] = {}
    meter_ids: set[str] = set()
    has_negative = False
    for row in data_rows:
        meter_id = None
        if mapping.meter_id_col is not None and mapping.meter_id_col < len(row.cells):
            meter_id = row.cells[mapping.meter_id_col] or None
            if meter_id:
                meter_ids.add(meter_id)
        if mapping.value_col >= len(row.cells):
            continue
        value = parse_number(row.cells[mapping.value_col], decimal_comma)
        if value is None:
            continue
        has_negative = has_negative or value < 0
        series.setdefault(meter_id, []).append(value)

    sample = FormatSample(
        pnp_match=pnp_match,
        data_rows=data_rows,
        meter_ids=frozenset(meter_ids),
        is_cumulative=not pnp_match and is_mostly_increasing(series),
    )
    layout = classify_layout(sample)

    if layout == Layout.PNP_SCADA:
        confidence = 0.95
    elif layout == Layout.UNKNOWN:
        confidence = 0.0
    else:
        confidence = 0.8 if header_found else 0.5

    result = FormatDetectionResult(
        layout=layout,
        delimiter=delimiter,
        header_row_index=header_index,
        has_negative_values=has_negative,
        is_cumulative=sample.is_cumulative,
        confidence=confidence,
        meter_ids=sample.meter_ids if layout == Layout.MULTI_METER else None,
        meter_name=pnp_match[0] if pnp_match else None,
        declared_date_range=(pnp_match[1], pnp_match[2]) if pnp_match else None,
    )
    log.info(
        f"Detected layout {layout.value} (delimiter={delimiter!r}, header_row={header_index}, "
        f"confidence={confidence})"
    )
    return result
