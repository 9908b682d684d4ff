"""
loadprofile
~~~~~
Infer the structure of utility meter CSV exports and reduce them to
weekday/weekend 24-hour load profiles.

The package is pure: it performs no I/O and receives already-materialized text.
"""

import logging
from logging import NullHandler

from .dialect import detect_format
from .extract import extract_load_profile, preview_csv
from .models import (
    ColumnMapping,
    DateOrder,
    DetectionPreview,
    ExtractionConfig,
    ExtractionConfigError,
    ExtractionResult,
    FormatDetectionResult,
    Layout,
    LoadProfile,
    NegativeHandling,
    ParsedDataPoint,
    ProcessingStats,
    Unit,
    UnitKind,
)
from .version import __version__

__all__ = [
    "ColumnMapping",
    "DateOrder",
    "DetectionPreview",
    "ExtractionConfig",
    "ExtractionConfigError",
    "ExtractionResult",
    "FormatDetectionResult",
    "Layout",
    "LoadProfile",
    "NegativeHandling",
    "ParsedDataPoint",
    "ProcessingStats",
    "Unit",
    "UnitKind",
    "__version__",
    "detect_format",
    "extract_load_profile",
    "preview_csv",
]

# Set default logging handler to avoid "No handler found" warnings.
logging.getLogger(__name__).addHandler(NullHandler())
