"""Deployment constants for the load profile extraction service."""

import os

# Files with at least this many lines are processed by the queue-backed worker
BACKGROUND_ROW_THRESHOLD = int(os.environ.get("BACKGROUND_ROW_THRESHOLD", "10000"))

# Staging area for large uploads awaiting the worker
PROFILE_STAGING_BUCKET = os.environ.get("PROFILE_STAGING_BUCKET", "load-profile-ingester")
PROFILE_STAGING_PREFIX = os.environ.get("PROFILE_STAGING_PREFIX", "staging/")

# Where the worker writes finished extraction payloads
PROFILE_RESULTS_BUCKET = os.environ.get("PROFILE_RESULTS_BUCKET", "load-profile-ingester")
PROFILE_RESULTS_PREFIX = os.environ.get("PROFILE_RESULTS_PREFIX", "results/")

PROFILE_QUEUE_URL = os.environ.get(
    "PROFILE_QUEUE_URL",
    "https://sqs.ap-southeast-2.amazonaws.com/000000000000/load-profile-jobs",
)

# Parsed data points returned alongside a profile for display
RAW_SAMPLE_LIMIT = int(os.environ.get("RAW_SAMPLE_LIMIT", "5000"))

METRICS_NAMESPACE = "LoadProfile/Extractor"
