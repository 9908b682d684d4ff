#!/usr/bin/env python3
"""
Local load profile extractor.

Runs the extraction pipeline on a meter CSV export on disk and prints a
summary. Use this to check how an unfamiliar export will be interpreted
before uploading it, or to process files too large for the inline tier.

Usage:
    uv run scripts/process_profile_locally.py <csv_file> [options]

Example:
    uv run scripts/process_profile_locally.py /path/to/scada_export.csv
    uv run scripts/process_profile_locally.py export.csv --separator semicolon --date-format MDY --json out.json
"""

import argparse
import json
import sys
import time
from pathlib import Path
from typing import Any

import pandas as pd

# Add repository root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from profile_ingester.libs.loadprofile import ExtractionConfig, ExtractionConfigError, extract_load_profile
from profile_ingester.libs.loadprofile.models import ExtractionResult
from profile_ingester.shared.profile_adapter import result_as_data_frames, result_to_payload


def format_duration(seconds: float) -> str:
    """Format duration in human-readable format."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes}m {secs}s"


def build_config(args: argparse.Namespace) -> ExtractionConfig:
    """Translate command line options into an extraction config."""
    request: dict[str, Any] = {
        "separator": args.separator,
        "dateFormat": args.date_format,
        "valueUnit": args.unit,
        "handleNegatives": args.negatives,
    }
    return ExtractionConfig.from_request(request)


def profiles_as_csv_frame(result: ExtractionResult) -> pd.DataFrame:
    """Stack every profile of a result into one frame with a meter column."""
    frames = []
    for name, df in result_as_data_frames(result):
        frame = df.reset_index()
        frame.insert(0, "meter", name)
        frames.append(frame)
    if not frames:
        return pd.DataFrame(columns=["meter", "hour", "weekday_kw", "weekend_kw"])
    return pd.concat(frames, ignore_index=True)


def print_summary(result: ExtractionResult, duration: float, verbose: bool = True) -> None:
    print("\n" + "=" * 60)
    print("Extraction Summary")
    print("=" * 60)

    if result.format is not None:
        print(f"Layout:               {result.format.layout.value}")
        print(f"Confidence:           {result.format.confidence:.2f}")
        if result.format.meter_name:
            print(f"Meter name:           {result.format.meter_name}")

    if not result.success:
        print(f"Failed:               {result.error}")
        print("=" * 60)
        return

    stats = result.stats
    print(f"Unit:                 {result.unit.value if result.unit else '-'}")
    print(f"Rows processed:       {stats.processed_rows:,} / {stats.total_rows:,}")
    print(f"Rows skipped:         {stats.skipped_rows:,}")
    print(f"Negative values:      {stats.negative_value_count:,}")
    print(f"Duration:             {format_duration(duration)}")

    profile = result.profile
    if profile is not None:
        start, end = profile.date_range if profile.date_range else ("-", "-")
        print(f"Date range:           {start} to {end}")
        print(f"Interval:             {profile.detected_interval_minutes} min")
        print(f"Peak / average kW:    {profile.peak_kw:.2f} / {profile.avg_kw:.2f}")
        print(f"Valid:                {profile.is_valid}")
        if not profile.is_valid:
            print(f"Rejected:             {', '.join(profile.warnings)}")

    if verbose and result.meter_data:
        print(f"\nMeters ({len(result.meter_data)}):")
        for meter_id, meter_profile in result.meter_data.items():
            status = "ok" if meter_profile.is_valid else meter_profile.rejection_reason
            points = meter_profile.data_point_count
            print(f"  - {meter_id}: {points:,} points, peak {meter_profile.peak_kw:.2f} kW ({status})")

    if verbose and stats.parse_errors:
        print(f"\nParse errors ({len(stats.parse_errors)} shown):")
        for message in list(stats.parse_errors)[:10]:
            print(f"  - {message}")

    print("=" * 60)


def main() -> None:
    parser = argparse.ArgumentParser(description="Extract a load profile from a meter CSV export")
    parser.add_argument("file", help="Path to CSV file")
    parser.add_argument("--separator", help="Delimiter character or name (tab, semicolon, comma, pipe, space)")
    parser.add_argument("--date-format", choices=["DMY", "MDY", "YMD"], help="Order for ambiguous NN/NN/YYYY dates")
    parser.add_argument("--unit", help="Value unit (kW, kWh, W, Wh, MW, MWh, kVA, kVAh, A); detected when omitted")
    parser.add_argument("--negatives", choices=["filter", "absolute", "keep"], help="Negative value policy")
    parser.add_argument("--json", dest="json_out", help="Write the result payload to this JSON file")
    parser.add_argument("--csv", dest="csv_out", help="Write the hourly profiles to this CSV file")
    parser.add_argument("-q", "--quiet", action="store_true", help="Minimal output (no per-meter lines)")
    args = parser.parse_args()

    file_path = Path(args.file)
    if not file_path.exists():
        print(f"Error: File not found: {file_path}")
        sys.exit(1)

    try:
        config = build_config(args)
    except ExtractionConfigError as e:
        print(f"Error: {e}")
        sys.exit(2)

    print("=" * 60)
    print("Local Load Profile Extractor")
    print(f"File: {file_path}")
    print("=" * 60)

    start = time.time()
    result = extract_load_profile(file_path.read_text(encoding="utf-8-sig"), config)
    print_summary(result, time.time() - start, verbose=not args.quiet)

    if args.json_out:
        Path(args.json_out).write_text(json.dumps(result_to_payload(result), indent=2))
        print(f"Wrote payload to {args.json_out}")
    if args.csv_out:
        profiles_as_csv_frame(result).to_csv(args.csv_out, index=False)
        print(f"Wrote profiles to {args.csv_out}")

    if not result.success:
        sys.exit(1)


if __name__ == "__main__":
    main()
