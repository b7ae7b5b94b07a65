"""Unit tests for HTTP and requests exception classifiers."""

import pytest
import requests

from infrastructure.operations import (
    OperationStatus,
    classify_http_status,
    classify_request_exception,
)


def _response(status_code: int, body: bytes = b"", headers=None) -> requests.Response:
    response = requests.Response()
    response.status_code = status_code
    response._content = body
    if headers:
        response.headers.update(headers)
    return response


@pytest.mark.unit
class TestClassifyHttpStatus:
    """Tests for classify_http_status."""

    def test_rate_limited_uses_retry_after(self):
        result = classify_http_status(429, "twilio", retry_after_header="7")

        assert result.status is OperationStatus.TRANSIENT_ERROR
        assert result.error_code == "RATE_LIMITED"
        assert result.retry_after == 7

    def test_rate_limited_invalid_header_defaults(self):
        result = classify_http_status(429, "twilio", retry_after_header="soon")

        assert result.retry_after == 60

    @pytest.mark.parametrize("status_code", [401, 403])
    def test_credentials_rejected(self, status_code):
        result = classify_http_status(status_code, "vonage")

        assert result.status is OperationStatus.CONFIGURATION_ERROR
        assert result.error_code == "UNAUTHORIZED"

    def test_not_found(self):
        assert classify_http_status(404, "twilio").status is OperationStatus.NOT_FOUND

    @pytest.mark.parametrize("status_code", [500, 502, 503])
    def test_server_errors_are_transient(self, status_code):
        result = classify_http_status(status_code, "twilio", detail="upstream")

        assert result.is_retryable is True
        assert result.message == f"twilio server error ({status_code}): upstream"

    def test_client_errors_are_permanent(self):
        result = classify_http_status(400, "twilio", detail="invalid 'To' number")

        assert result.status is OperationStatus.PERMANENT_ERROR
        assert "invalid 'To' number" in result.message


@pytest.mark.unit
class TestClassifyRequestException:
    """Tests for classify_request_exception."""

    def test_timeout(self):
        result = classify_request_exception(requests.Timeout("slow"), provider="twilio")

        assert result.is_retryable is True
        assert result.error_code == "TIMEOUT"

    def test_connection_error(self):
        result = classify_request_exception(
            requests.ConnectionError("refused"), provider="vonage"
        )

        assert result.is_retryable is True
        assert result.error_code == "CONNECTION_ERROR"

    def test_http_error_uses_response_status(self):
        error = requests.HTTPError(response=_response(403, b"forbidden"))

        result = classify_request_exception(error, provider="vonage")

        assert result.status is OperationStatus.CONFIGURATION_ERROR
        assert "forbidden" in result.message

    def test_http_error_rate_limit_header(self):
        error = requests.HTTPError(response=_response(429, headers={"Retry-After": "3"}))

        result = classify_request_exception(error, provider="vonage")

        assert result.retry_after == 3
