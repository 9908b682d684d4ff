"""
Unit detection and conversion to canonical kW / kWh.

Power units are converted to kW, energy units to kWh. Current (A) is
treated as a balanced three-phase supply.
"""

import math
import re

from .models import Unit, UnitKind

DEFAULT_VOLTAGE_V = 400.0
DEFAULT_POWER_FACTOR = 0.9

_NON_NUMERIC = re.compile(r"[^\d.\-]")
_SCIENTIFIC = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)[eE][-+]?\d+")
_STANDALONE_W = re.compile(r"\bw\b")
_STANDALONE_A = re.compile(r"\ba\b")


def detect_unit(header: str) -> Unit:
    """
    Infer the unit of a value column from its header text.

    Checks run from the most to the least specific token so that "kWh"
    is never mistaken for "kW" or "Wh". Interval meter exports are
    overwhelmingly energy readings, hence the kWh default.
    """
    h = header.lower()

    if "mwh" in h:
        return Unit.MWH
    if "mw" in h:
        return Unit.MW
    if "kvah" in h:
        return Unit.KVAH
    if "kva" in h:
        return Unit.KVA
    if "kwh" in h or "energy" in h or "consumption" in h:
        return Unit.KWH
    if "kw" in h:
        return Unit.KW
    if "wh" in h:
        return Unit.WH
    if _STANDALONE_W.search(h) or "watt" in h:
        return Unit.W
    if "amp" in h or _STANDALONE_A.search(h) or "current" in h:
        return Unit.A

    return Unit.KWH


def normalize(
    value: float,
    unit: Unit,
    voltage_v: float = DEFAULT_VOLTAGE_V,
    power_factor: float = DEFAULT_POWER_FACTOR,
) -> tuple[float, UnitKind]:
    """
    Convert a reading to kW (power units) or kWh (energy units).

    Args:
        value: Reading in the declared unit
        unit: Declared unit
        voltage_v: Line voltage used for current readings
        power_factor: Power factor used for apparent power/energy and current

    Returns:
        Tuple of (converted value, unit kind)
    """
    if unit in (Unit.W, Unit.WH):
        converted = value / 1000
    elif unit in (Unit.MW, Unit.MWH):
        converted = value * 1000
    elif unit in (Unit.KVA, Unit.KVAH):
        converted = value * power_factor
    elif unit == Unit.A:
        converted = (math.sqrt(3) * voltage_v * value * power_factor) / 1000
    else:
        converted = value

    return converted, unit.kind


def _to_float(text: str) -> float | None:
    try:
        return float(text)
    except ValueError:
        return None


def parse_number(cell: str | None, decimal_comma: bool = False) -> float | None:
    """
    Parse a numeric meter reading, tolerating unit suffixes and thousands separators.

    Args:
        cell: Raw cell text, e.g. "1,234.5" or "12.5 kWh"
        decimal_comma: Treat a lone comma as the decimal separator ("0,25")

    Returns:
        The value, or None when the cell holds no number
    """
    if cell is None:
        return None

    text = cell.strip()
    if decimal_comma and text.count(",") == 1 and "." not in text:
        text = text.replace(",", ".")

    number = _to_float(text.replace(",", ""))
    if number is None:
        scientific = _SCIENTIFIC.search(text)
        cleaned = scientific.group() if scientific else _NON_NUMERIC.sub("", text)
        number = _to_float(cleaned)
    if number is None:
        return None

    if not math.isfinite(number):
        return None
    return number
