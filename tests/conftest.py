"""Pytest configuration for profile-ingester tests."""

import os
from collections.abc import Callable
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Credentials and Powertools settings must exist before handler modules are imported
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_SECURITY_TOKEN", "testing")
os.environ.setdefault("AWS_SESSION_TOKEN", "testing")
os.environ.setdefault("AWS_DEFAULT_REGION", "ap-southeast-2")
os.environ.setdefault("POWERTOOLS_METRICS_NAMESPACE", "test")
os.environ.setdefault("POWERTOOLS_TRACE_DISABLED", "true")

FIXTURES_DIR = Path(__file__).parent / "unit" / "fixtures"

ValueFn = Callable[[datetime, str | None], float]


def build_interval_csv(
    header: str,
    start: datetime,
    days: int,
    value_for: ValueFn,
    interval_minutes: int = 30,
    meter_ids: tuple[str | None, ...] = (None,),
    timestamp_format: str = "%Y-%m-%d %H:%M",
) -> str:
    """
    Build an interval meter export.

    Each meter gets a full run of rows from start; a meter id, when given,
    is written as the first cell. A comma inside timestamp_format splits
    date and time into separate columns.
    """
    lines = [header]
    end = start + timedelta(days=days)
    for meter_id in meter_ids:
        t = start
        while t < end:
            cells = [t.strftime(timestamp_format), f"{value_for(t, meter_id):.4f}"]
            if meter_id is not None:
                cells.insert(0, meter_id)
            lines.append(",".join(cells))
            t += timedelta(minutes=interval_minutes)
    return "\n".join(lines) + "\n"


@pytest.fixture
def interval_csv() -> Callable[..., str]:
    """Factory for generated interval exports."""
    return build_interval_csv


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR


@pytest.fixture
def pnp_csv() -> str:
    """Two-row PnP SCADA export for Shop1 (2024-01-01 is a Monday)."""
    return (FIXTURES_DIR / "pnp_scada_sample.csv").read_text()


@pytest.fixture
def mock_context() -> MagicMock:
    """Create a mock Lambda context."""
    context = MagicMock()
    context.function_name = "test-profile-function"
    context.memory_limit_in_mb = 512
    context.invoked_function_arn = "arn:aws:lambda:ap-southeast-2:123456789012:function:test"
    context.aws_request_id = "test-request-id"
    return context
