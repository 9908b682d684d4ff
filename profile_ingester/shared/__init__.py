"""
Shared utilities for Profile Ingester.

This package provides deployment constants and the adapters that turn
extraction results into DataFrames and JSON payloads.
"""

from profile_ingester.shared.common import (
    BACKGROUND_ROW_THRESHOLD,
    METRICS_NAMESPACE,
    PROFILE_QUEUE_URL,
    PROFILE_RESULTS_BUCKET,
    PROFILE_RESULTS_PREFIX,
    PROFILE_STAGING_BUCKET,
    PROFILE_STAGING_PREFIX,
    RAW_SAMPLE_LIMIT,
)
from profile_ingester.shared.profile_adapter import (
    preview_to_payload,
    profile_as_data_frame,
    record_result_metrics,
    result_as_data_frames,
    result_to_payload,
    sample_as_data_frame,
    to_meter_record,
)

__all__ = [
    "BACKGROUND_ROW_THRESHOLD",
    "METRICS_NAMESPACE",
    "PROFILE_QUEUE_URL",
    "PROFILE_RESULTS_BUCKET",
    "PROFILE_RESULTS_PREFIX",
    "PROFILE_STAGING_BUCKET",
    "PROFILE_STAGING_PREFIX",
    "RAW_SAMPLE_LIMIT",
    "preview_to_payload",
    "profile_as_data_frame",
    "record_result_metrics",
    "result_as_data_frames",
    "result_to_payload",
    "sample_as_data_frame",
    "to_meter_record",
]
