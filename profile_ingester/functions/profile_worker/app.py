"""
Background worker for large load profile extractions.

Triggered by SQS. Each message names a CSV staged in S3 by profile_extractor:
    {"jobId": "...", "bucket": "...", "key": "...", "config": {...}}

The extraction payload is written to PROFILE_RESULTS_BUCKET as
<PROFILE_RESULTS_PREFIX><jobId>.json. Records that fail are reported back
through batchItemFailures so only they are retried.
"""

import json
from typing import Any

import boto3
from aws_lambda_powertools import Logger, Metrics
from aws_lambda_powertools.metrics import MetricUnit

from profile_ingester.libs.loadprofile import ExtractionConfig, extract_load_profile
from profile_ingester.shared import (
    METRICS_NAMESPACE,
    PROFILE_RESULTS_BUCKET,
    PROFILE_RESULTS_PREFIX,
    RAW_SAMPLE_LIMIT,
    record_result_metrics,
    result_to_payload,
)

logger = Logger(service="profile-worker")
metrics = Metrics(namespace=METRICS_NAMESPACE)


def result_key(job_id: str) -> str:
    return f"{PROFILE_RESULTS_PREFIX}{job_id}.json"


def process_job(s3_client: Any, job: dict[str, Any]) -> dict[str, Any]:
    """
    Run one queued extraction and store its payload.

    Args:
        s3_client: boto3 S3 client
        job: Decoded SQS message body

    Returns:
        The stored payload

    Raises:
        KeyError: If the message lacks jobId, bucket or key
        ExtractionConfigError: If the queued config is invalid
    """
    job_id = job["jobId"]
    config = ExtractionConfig.from_request(job.get("config") or {})

    response = s3_client.get_object(Bucket=job["bucket"], Key=job["key"])
    csv_content = response["Body"].read().decode("utf-8-sig")

    result = extract_load_profile(csv_content, config, sample_limit=RAW_SAMPLE_LIMIT)
    payload = {"jobId": job_id, **result_to_payload(result)}

    s3_client.put_object(
        Bucket=PROFILE_RESULTS_BUCKET,
        Key=result_key(job_id),
        Body=json.dumps(payload).encode("utf-8"),
        ContentType="application/json",
    )

    record_result_metrics(metrics, result)

    logger.info(
        "Background extraction complete",
        extra={
            "job_id": job_id,
            "success": result.success,
            "processed_rows": result.stats.processed_rows,
            "total_rows": result.stats.total_rows,
        },
    )
    return payload


@metrics.log_metrics
@logger.inject_lambda_context
def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    s3 = boto3.client("s3")
    failures: list[dict[str, str]] = []

    for record in event.get("Records", []):
        message_id = record.get("messageId", "")
        try:
            job = json.loads(record["body"])
            logger.info("Processing job", extra={"job_id": job.get("jobId"), "key": job.get("key")})
            process_job(s3, job)
        except Exception as e:
            logger.error(
                "Error processing SQS record", exc_info=True, extra={"message_id": message_id, "error": str(e)}
            )
            metrics.add_metric(name="FailedJobs", unit=MetricUnit.Count, value=1)
            failures.append({"itemIdentifier": message_id})

    return {"batchItemFailures": failures}
