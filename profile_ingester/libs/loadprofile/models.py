"""
Data objects shared by the load profile extraction pipeline.

Everything produced by a run is immutable except ProcessingStats, which is
filled in incrementally during the single pass over the rows.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any

HOURS_PER_DAY = 24
MAX_PARSE_ERRORS = 100


class ExtractionConfigError(ValueError):
    """Raised when a request carries a configuration value that cannot be honoured."""


class Layout(Enum):
    PNP_SCADA = "pnp_scada"
    STANDARD = "standard"
    MULTI_METER = "multi_meter"
    CUMULATIVE = "cumulative"
    UNKNOWN = "unknown"


class NegativeHandling(Enum):
    FILTER = "filter"
    ABSOLUTE = "absolute"
    KEEP = "keep"


class DateOrder(Enum):
    DMY = "DMY"
    MDY = "MDY"
    YMD = "YMD"


class UnitKind(Enum):
    POWER = "power"
    ENERGY = "energy"


class Unit(Enum):
    KW = "kW"
    W = "W"
    MW = "MW"
    KVA = "kVA"
    A = "A"
    KWH = "kWh"
    WH = "Wh"
    MWH = "MWh"
    KVAH = "kVAh"

    @property
    def kind(self) -> UnitKind:
        if self in (Unit.KWH, Unit.WH, Unit.MWH, Unit.KVAH):
            return UnitKind.ENERGY
        return UnitKind.POWER


@dataclass(frozen=True)
class RawRow:
    """One tokenized line of the source text."""

    cells: tuple[str, ...]
    line_number: int
    text: str = ""

    def is_blank(self) -> bool:
        return not any(cell.strip() for cell in self.cells)


@dataclass(frozen=True)
class FormatDetectionResult:
    layout: Layout
    delimiter: str
    header_row_index: int
    has_negative_values: bool
    is_cumulative: bool
    confidence: float
    meter_ids: frozenset[str] | None = None
    meter_name: str | None = None
    declared_date_range: tuple[str, str] | None = None


@dataclass(frozen=True)
class ColumnMapping:
    date_col: int
    value_col: int
    time_col: int | None = None
    meter_id_col: int | None = None


@dataclass(frozen=True)
class ParsedDataPoint:
    timestamp: datetime
    date: date
    value: float
    source_line: int
    meter_id: str | None = None
    kva: float | None = None


@dataclass
class ErrorLog:
    """
    Fixed-capacity, append-only message buffer.

    Entries past the capacity are dropped silently, so a full log means
    "capacity or more" errors occurred, not exactly that many. The number
    of dropped messages is kept for logging only.
    """

    capacity: int = MAX_PARSE_ERRORS
    entries: list[str] = field(default_factory=list)
    dropped: int = 0

    def append(self, message: str) -> bool:
        if len(self.entries) >= self.capacity:
            self.dropped += 1
            return False
        self.entries.append(message)
        return True

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)


@dataclass
class ProcessingStats:
    total_rows: int = 0
    processed_rows: int = 0
    skipped_rows: int = 0
    negative_value_count: int = 0
    parse_errors: ErrorLog = field(default_factory=ErrorLog)


@dataclass(frozen=True)
class LoadProfile:
    weekday_profile: tuple[float, ...]
    weekend_profile: tuple[float, ...]
    weekday_day_count: int
    weekend_day_count: int
    total_energy: float
    date_range: tuple[date, date] | None
    data_point_count: int
    peak_kw: float
    avg_kw: float
    detected_interval_minutes: int
    is_valid: bool
    rejection_reason: str | None = None
    warnings: tuple[str, ...] = ()
    meter_id: str | None = None

    def __post_init__(self) -> None:
        if len(self.weekday_profile) != HOURS_PER_DAY or len(self.weekend_profile) != HOURS_PER_DAY:
            raise ValueError("Load profiles must have exactly 24 hourly entries")
        if not self.is_valid and not self.rejection_reason:
            raise ValueError("A rejected load profile must carry a rejection reason")


@dataclass(frozen=True)
class DetectionPreview:
    format: FormatDetectionResult
    columns: ColumnMapping
    headers: tuple[str, ...]
    sample_rows: tuple[tuple[str, ...], ...]
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ExtractionResult:
    success: bool
    stats: ProcessingStats
    format: FormatDetectionResult | None = None
    columns: ColumnMapping | None = None
    headers: tuple[str, ...] = ()
    profile: LoadProfile | None = None
    meter_data: dict[str, LoadProfile] | None = None
    unit: Unit | None = None
    sample: tuple[ParsedDataPoint, ...] = ()
    error: str | None = None

    @property
    def unit_kind(self) -> UnitKind | None:
        return self.unit.kind if self.unit else None

    @property
    def data_point_count(self) -> int:
        return self.profile.data_point_count if self.profile else 0

    @property
    def date_range(self) -> tuple[date, date] | None:
        return self.profile.date_range if self.profile else None

    @property
    def weekday_day_count(self) -> int:
        return self.profile.weekday_day_count if self.profile else 0

    @property
    def weekend_day_count(self) -> int:
        return self.profile.weekend_day_count if self.profile else 0

    @property
    def weekday_profile(self) -> tuple[float, ...]:
        return self.profile.weekday_profile if self.profile else (0.0,) * HOURS_PER_DAY

    @property
    def weekend_profile(self) -> tuple[float, ...]:
        return self.profile.weekend_profile if self.profile else (0.0,) * HOURS_PER_DAY

    @property
    def detected_columns(self) -> dict[str, Any]:
        columns = self.columns
        return {
            "date_column": columns.date_col if columns else None,
            "time_column": columns.time_col if columns else None,
            "value_column": columns.value_col if columns else None,
            "meter_id_column": columns.meter_id_col if columns else None,
            "headers": list(self.headers),
        }


# Request keys accepted by ExtractionConfig.from_request, in the camelCase of the HTTP contract.
_COLUMN_KEYS = {
    "dateColumn": "date_column",
    "timeColumn": "time_column",
    "valueColumn": "value_column",
    "meterIdColumn": "meter_id_column",
    "kvaColumn": "kva_column",
}


@dataclass(frozen=True)
class ExtractionConfig:
    """
    Caller-supplied settings for one extraction run.

    Every field is optional; an absent value means "detect it". Column
    indices are 0-based, header_row_number is 1-based.
    """

    separator: str | None = None
    header_row_number: int | None = None
    date_column: int | None = None
    time_column: int | None = None
    value_column: int | None = None
    meter_id_column: int | None = None
    kva_column: int | None = None
    auto_detect: bool = True
    handle_negatives: NegativeHandling = NegativeHandling.FILTER
    handle_cumulative: bool | None = None
    date_format: DateOrder = DateOrder.DMY
    value_unit: Unit | None = None
    voltage_v: float = 400.0
    power_factor: float = 0.9

    def explicit_columns(self) -> dict[str, int]:
        """Return the column overrides that were actually supplied."""
        columns = {
            "date": self.date_column,
            "time": self.time_column,
            "value": self.value_column,
            "meter_id": self.meter_id_column,
            "kva": self.kva_column,
        }
        return {role: index for role, index in columns.items() if index is not None}

    @classmethod
    def from_request(cls, body: dict[str, Any]) -> "ExtractionConfig":
        """
        Build a configuration from a request body.

        Args:
            body: Request dict using the camelCase keys of the HTTP contract

        Returns:
            ExtractionConfig

        Raises:
            ExtractionConfigError: If a value has the wrong type or an unknown option
        """
        kwargs: dict[str, Any] = {}

        if body.get("separator"):
            kwargs["separator"] = str(body["separator"])

        header_row = _optional_int(body, "headerRowNumber")
        if header_row is not None:
            if header_row < 1:
                raise ExtractionConfigError("headerRowNumber must be 1 or greater")
            kwargs["header_row_number"] = header_row

        for key, attr in _COLUMN_KEYS.items():
            index = _optional_int(body, key)
            if index is not None and index >= 0:
                kwargs[attr] = index

        if "autoDetect" in body and body["autoDetect"] is not None:
            kwargs["auto_detect"] = _as_bool(body["autoDetect"], "autoDetect")
        if "handleCumulative" in body and body["handleCumulative"] is not None:
            kwargs["handle_cumulative"] = _as_bool(body["handleCumulative"], "handleCumulative")

        if body.get("handleNegatives"):
            handling = str(body["handleNegatives"]).lower()
            kwargs["handle_negatives"] = _as_enum(NegativeHandling, handling, "handleNegatives")
        if body.get("dateFormat"):
            kwargs["date_format"] = _as_enum(DateOrder, str(body["dateFormat"]).upper(), "dateFormat")
        if body.get("valueUnit") and str(body["valueUnit"]).lower() != "auto":
            kwargs["value_unit"] = _as_unit(body["valueUnit"])

        for key, attr in (("voltageV", "voltage_v"), ("powerFactor", "power_factor")):
            if body.get(key) is None:
                continue
            try:
                number = float(body[key])
            except (TypeError, ValueError) as e:
                raise ExtractionConfigError(f"{key} must be a number") from e
            if number <= 0:
                raise ExtractionConfigError(f"{key} must be positive")
            kwargs[attr] = number

        return cls(**kwargs)


def _optional_int(body: dict[str, Any], key: str) -> int | None:
    value = body.get(key)
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ExtractionConfigError(f"{key} must be an integer, got {value!r}") from e


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    raise ExtractionConfigError(f"{key} must be a boolean, got {value!r}")


def _as_enum(enum_cls: type[Enum], value: Any, key: str) -> Any:
    try:
        return enum_cls(value)
    except ValueError as e:
        options = ", ".join(member.value for member in enum_cls)
        raise ExtractionConfigError(f"{key} must be one of {options}, got {value!r}") from e


def _as_unit(value: Any) -> Unit:
    lowered = str(value).strip().lower()
    for unit in Unit:
        if unit.value.lower() == lowered:
            return unit
    options = ", ".join(unit.value for unit in Unit)
    raise ExtractionConfigError(f"valueUnit must be one of {options} or auto, got {value!r}")
