"""
Lambda function that detects and extracts load profiles from meter CSV exports.

Invoked through API Gateway (proxy integration) or directly with a JSON body:
    {"csvContent": "...", "action": "detect" | "process", ...config keys}

Small files are processed inline. Files at or above BACKGROUND_ROW_THRESHOLD
lines are staged in S3 and handed to the profile_worker function via SQS;
the caller gets a job id and polls for the result object.
"""

import base64
import json
import uuid
from typing import Any

import boto3
from aws_lambda_powertools import Logger, Metrics
from aws_lambda_powertools.metrics import MetricUnit

from profile_ingester.libs.loadprofile import (
    ExtractionConfig,
    ExtractionConfigError,
    extract_load_profile,
    preview_csv,
)
from profile_ingester.shared import (
    BACKGROUND_ROW_THRESHOLD,
    METRICS_NAMESPACE,
    PROFILE_QUEUE_URL,
    PROFILE_RESULTS_BUCKET,
    PROFILE_RESULTS_PREFIX,
    PROFILE_STAGING_BUCKET,
    PROFILE_STAGING_PREFIX,
    RAW_SAMPLE_LIMIT,
    preview_to_payload,
    record_result_metrics,
    result_to_payload,
)

logger = Logger(service="profile-extractor")
metrics = Metrics(namespace=METRICS_NAMESPACE)

ACTIONS = ("detect", "process")
REQUEST_ONLY_KEYS = ("csvContent", "action", "fileName")


class BadRequestError(Exception):
    """Raised when the request cannot be understood."""


def _response(status_code: int, payload: dict[str, Any]) -> dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(payload),
    }


def _error(status_code: int, message: str) -> dict[str, Any]:
    return _response(status_code, {"success": False, "error": message})


def parse_request(event: dict[str, Any]) -> dict[str, Any]:
    """
    Extract the request body from an API Gateway proxy event or a direct invocation.

    Raises:
        BadRequestError: If the body is not a JSON object
    """
    if "body" not in event:
        return event

    body = event["body"]
    if body is None:
        raise BadRequestError("Request body is required")
    if isinstance(body, str):
        if event.get("isBase64Encoded"):
            body = base64.b64decode(body).decode("utf-8")
        try:
            body = json.loads(body)
        except json.JSONDecodeError as e:
            raise BadRequestError(f"Request body is not valid JSON: {e.msg}") from e

    if not isinstance(body, dict):
        raise BadRequestError("Request body must be a JSON object")
    return body


def count_lines(csv_content: str) -> int:
    """Count non-blank lines, the measure the background threshold applies to."""
    return sum(1 for line in csv_content.splitlines() if line.strip())


def config_keys(body: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in body.items() if key not in REQUEST_ONLY_KEYS}


def enqueue_extraction(s3_client: Any, sqs_client: Any, csv_content: str, body: dict[str, Any]) -> dict[str, Any]:
    """
    Stage a large CSV in S3 and queue it for the background worker.

    Args:
        s3_client: boto3 S3 client
        sqs_client: boto3 SQS client
        csv_content: Raw CSV text
        body: Original request body; its config keys travel with the job

    Returns:
        dict with jobId and the location the result will be written to
    """
    job_id = uuid.uuid4().hex
    key = f"{PROFILE_STAGING_PREFIX}{job_id}.csv"

    s3_client.put_object(Bucket=PROFILE_STAGING_BUCKET, Key=key, Body=csv_content.encode("utf-8"))
    sqs_client.send_message(
        QueueUrl=PROFILE_QUEUE_URL,
        MessageBody=json.dumps(
            {
                "jobId": job_id,
                "bucket": PROFILE_STAGING_BUCKET,
                "key": key,
                "config": config_keys(body),
            }
        ),
    )
    logger.info("Queued background extraction", extra={"job_id": job_id, "bucket": PROFILE_STAGING_BUCKET, "key": key})

    return {
        "jobId": job_id,
        "resultBucket": PROFILE_RESULTS_BUCKET,
        "resultKey": f"{PROFILE_RESULTS_PREFIX}{job_id}.json",
    }


def handle_request(body: dict[str, Any]) -> dict[str, Any]:
    csv_content = body.get("csvContent")
    if not csv_content or not isinstance(csv_content, str):
        return _error(400, "CSV content is required")

    action = body.get("action", "process")
    if action not in ACTIONS:
        return _error(400, "Invalid action. Use 'detect' or 'process'")

    try:
        config = ExtractionConfig.from_request(body)
    except ExtractionConfigError as e:
        logger.warning("Invalid extraction config", extra={"error": str(e)})
        return _error(400, str(e))

    if action == "detect":
        preview = preview_csv(csv_content, config)
        logger.info(
            "Detected format",
            extra={"layout": preview.format.layout.value, "confidence": preview.format.confidence},
        )
        if not preview.success:
            logger.warning("Detection failed", extra={"error": preview.error})
            return _response(422, preview_to_payload(preview))
        return _response(200, preview_to_payload(preview))

    line_count = count_lines(csv_content)
    if line_count >= BACKGROUND_ROW_THRESHOLD:
        job = enqueue_extraction(boto3.client("s3"), boto3.client("sqs"), csv_content, body)
        metrics.add_metric(name="BackgroundJobsQueued", unit=MetricUnit.Count, value=1)
        return _response(202, {"success": True, "status": "queued", "lines": line_count, **job})

    result = extract_load_profile(csv_content, config, sample_limit=RAW_SAMPLE_LIMIT)
    if not result.success:
        logger.warning("Extraction failed", extra={"error": result.error})
        return _response(422, result_to_payload(result))

    record_result_metrics(metrics, result)
    logger.info(
        "Extraction complete",
        extra={
            "processed_rows": result.stats.processed_rows,
            "total_rows": result.stats.total_rows,
            "is_valid": result.profile.is_valid if result.profile else None,
        },
    )
    return _response(200, result_to_payload(result))


@metrics.log_metrics
@logger.inject_lambda_context
def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """
    Detect or extract a load profile from the CSV text in the request.

    Args:
        event: API Gateway proxy event or a direct request dict
        context: Lambda context

    Returns:
        API Gateway proxy response (200, 202, 400, 422 or 500)
    """
    try:
        body = parse_request(event)
    except BadRequestError as e:
        return _error(400, str(e))

    try:
        return handle_request(body)
    except Exception as e:
        logger.error("Profile extraction failed", exc_info=True, extra={"error": str(e)})
        metrics.add_metric(name="ErrorExecutionCount", unit=MetricUnit.Count, value=1)
        return _error(500, str(e))
