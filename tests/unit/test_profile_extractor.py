"""Unit tests for profile_extractor Lambda function."""

import base64
import json
from typing import Any
from unittest.mock import MagicMock

import boto3
import pytest
from moto import mock_aws
from mypy_boto3_s3 import S3Client
from mypy_boto3_sqs import SQSClient

from profile_ingester.functions.profile_extractor import app
from profile_ingester.functions.profile_extractor.app import (
    BadRequestError,
    config_keys,
    count_lines,
    lambda_handler,
    parse_request,
)

REGION = "ap-southeast-2"


def body_of(response: dict[str, Any]) -> dict[str, Any]:
    return json.loads(response["body"])


class TestParseRequest:
    """Tests for parse_request function."""

    def test_direct_invocation(self) -> None:
        """A dict without a body key is the request itself."""
        event = {"csvContent": "a,b"}
        assert parse_request(event) is event

    def test_api_gateway_string_body(self) -> None:
        assert parse_request({"body": '{"csvContent": "a,b"}'}) == {"csvContent": "a,b"}

    def test_base64_body(self) -> None:
        encoded = base64.b64encode(b'{"action": "detect"}').decode("ascii")
        assert parse_request({"body": encoded, "isBase64Encoded": True}) == {"action": "detect"}

    def test_already_decoded_body(self) -> None:
        assert parse_request({"body": {"action": "detect"}}) == {"action": "detect"}

    @pytest.mark.parametrize("body", [None, "not json", "[1, 2]"])
    def test_bad_bodies(self, body: str | None) -> None:
        with pytest.raises(BadRequestError):
            parse_request({"body": body})


class TestHelpers:
    """Tests for request helpers."""

    def test_count_lines_ignores_blank_lines(self) -> None:
        assert count_lines("a\n\n  \nb\r\nc") == 3

    def test_config_keys_drop_request_fields(self) -> None:
        body = {"csvContent": "x", "action": "process", "fileName": "f.csv", "separator": ";", "valueColumn": 2}
        assert config_keys(body) == {"separator": ";", "valueColumn": 2}


class TestLambdaHandler:
    """Tests for lambda_handler function."""

    def test_detect(self, pnp_csv: str, mock_context: MagicMock) -> None:
        response = lambda_handler({"csvContent": pnp_csv, "action": "detect"}, mock_context)

        assert response["statusCode"] == 200
        payload = body_of(response)
        assert payload["success"] is True
        assert payload["format"]["layout"] == "pnp_scada"
        assert payload["columns"]["valueColumn"] == 2
        assert "weekdayProfile" not in payload

    def test_detect_rejects_unreachable_column(self, pnp_csv: str, mock_context: MagicMock) -> None:
        response = lambda_handler({"csvContent": pnp_csv, "action": "detect", "valueColumn": 9}, mock_context)

        assert response["statusCode"] == 422
        payload = body_of(response)
        assert payload["success"] is False
        assert payload["error"] == "Configured value column 9 is beyond the widest row (5 columns)"

    def test_process_is_default_action(self, pnp_csv: str, mock_context: MagicMock) -> None:
        response = lambda_handler({"csvContent": pnp_csv}, mock_context)

        assert response["statusCode"] == 200
        assert response["headers"]["Content-Type"] == "application/json"
        payload = body_of(response)
        assert payload["dataPoints"] == 2
        assert payload["weekdayProfile"][0] == pytest.approx(2.2)

    def test_api_gateway_event(self, pnp_csv: str, mock_context: MagicMock) -> None:
        event = {"body": json.dumps({"csvContent": pnp_csv, "action": "process"})}

        response = lambda_handler(event, mock_context)

        assert response["statusCode"] == 200
        assert body_of(response)["format"]["meterName"] == "Shop1"

    def test_config_is_applied(self, pnp_csv: str, mock_context: MagicMock) -> None:
        response = lambda_handler({"csvContent": pnp_csv, "kvaColumn": 3}, mock_context)

        raw = body_of(response)["rawData"]
        assert [point["kva"] for point in raw] == [pytest.approx(1.1), pytest.approx(1.3)]

    @pytest.mark.parametrize("event", [{}, {"csvContent": ""}, {"csvContent": 42}])
    def test_missing_csv(self, event: dict[str, Any], mock_context: MagicMock) -> None:
        response = lambda_handler(event, mock_context)

        assert response["statusCode"] == 400
        assert body_of(response) == {"success": False, "error": "CSV content is required"}

    def test_invalid_action(self, pnp_csv: str, mock_context: MagicMock) -> None:
        response = lambda_handler({"csvContent": pnp_csv, "action": "delete"}, mock_context)

        assert response["statusCode"] == 400
        assert body_of(response)["error"] == "Invalid action. Use 'detect' or 'process'"

    def test_invalid_config(self, pnp_csv: str, mock_context: MagicMock) -> None:
        response = lambda_handler({"csvContent": pnp_csv, "handleNegatives": "ignore"}, mock_context)

        assert response["statusCode"] == 400
        assert body_of(response)["success"] is False

    def test_invalid_json_body(self, mock_context: MagicMock) -> None:
        response = lambda_handler({"body": "{not json"}, mock_context)

        assert response["statusCode"] == 400
        assert body_of(response)["error"].startswith("Request body is not valid JSON")

    def test_failed_extraction_is_unprocessable(self, mock_context: MagicMock) -> None:
        response = lambda_handler({"csvContent": "sep=,\n"}, mock_context)

        assert response["statusCode"] == 422
        payload = body_of(response)
        assert payload["success"] is False
        assert payload["error"] == "CSV contains no data lines"

    def test_unexpected_error_returns_500(
        self, pnp_csv: str, mock_context: MagicMock, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def explode(*args: Any, **kwargs: Any) -> None:
            raise RuntimeError("boom")

        monkeypatch.setattr(app, "extract_load_profile", explode)

        response = lambda_handler({"csvContent": pnp_csv}, mock_context)

        assert response["statusCode"] == 500
        assert body_of(response) == {"success": False, "error": "boom"}


class TestBackgroundTier:
    """Large files are staged in S3 and queued for the worker."""

    @mock_aws
    def test_large_file_is_queued(
        self, pnp_csv: str, mock_context: MagicMock, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        s3: S3Client = boto3.client("s3", region_name=REGION)
        s3.create_bucket(
            Bucket=app.PROFILE_STAGING_BUCKET,
            CreateBucketConfiguration={"LocationConstraint": REGION},
        )
        sqs: SQSClient = boto3.client("sqs", region_name=REGION)
        queue_url = sqs.create_queue(QueueName="profile-jobs")["QueueUrl"]

        monkeypatch.setattr(app, "BACKGROUND_ROW_THRESHOLD", 4)
        monkeypatch.setattr(app, "PROFILE_QUEUE_URL", queue_url)

        response = lambda_handler(
            {"csvContent": pnp_csv, "fileName": "shop1.csv", "separator": ","}, mock_context
        )

        assert response["statusCode"] == 202
        payload = body_of(response)
        assert payload["status"] == "queued"
        assert payload["lines"] == 4
        assert payload["resultKey"] == f"results/{payload['jobId']}.json"

        staged = s3.get_object(Bucket=app.PROFILE_STAGING_BUCKET, Key=f"staging/{payload['jobId']}.csv")
        assert staged["Body"].read().decode("utf-8") == pnp_csv

        messages = sqs.receive_message(QueueUrl=queue_url)["Messages"]
        job = json.loads(messages[0]["Body"])
        assert job == {
            "jobId": payload["jobId"],
            "bucket": app.PROFILE_STAGING_BUCKET,
            "key": f"staging/{payload['jobId']}.csv",
            "config": {"separator": ","},
        }

    def test_detect_is_never_queued(
        self, pnp_csv: str, mock_context: MagicMock, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(app, "BACKGROUND_ROW_THRESHOLD", 1)

        response = lambda_handler({"csvContent": pnp_csv, "action": "detect"}, mock_context)

        assert response["statusCode"] == 200
