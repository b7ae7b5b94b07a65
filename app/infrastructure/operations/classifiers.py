"""Error classifiers for provider exceptions.

Converts HTTP responses and ``requests`` exceptions raised by REST-based
providers (Twilio, Vonage) into OperationResult objects so retry decisions
are made in one place.

Usage:
    from infrastructure.operations.classifiers import classify_request_exception

    try:
        response = session.post(url, data=form, timeout=10)
    except requests.RequestException as exc:
        return classify_request_exception(exc, provider="twilio")
"""

from typing import Optional

import requests

from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus


def classify_http_status(
    status_code: int,
    provider: str,
    detail: Optional[str] = None,
    retry_after_header: Optional[str] = None,
) -> OperationResult:
    """Classify a non-2xx HTTP status code into OperationResult.

    Status Code Mapping:
    - 429: Rate limiting -> TRANSIENT_ERROR with retry_after
    - 401/403: Credentials rejected -> CONFIGURATION_ERROR
    - 404: Not found -> NOT_FOUND
    - 5xx: Server error -> TRANSIENT_ERROR
    - Other 4xx: Rejected request -> PERMANENT_ERROR

    Args:
        status_code: HTTP status returned by the provider
        provider: Provider name used in messages
        detail: Optional error text extracted from the response body
        retry_after_header: Raw Retry-After header value, if any

    Returns:
        OperationResult with the matching error status
    """
    suffix = f": {detail}" if detail else ""

    if status_code == 429:
        retry_after = 60
        if retry_after_header:
            try:
                retry_after = int(retry_after_header)
            except (TypeError, ValueError):
                pass
        return OperationResult.error(
            OperationStatus.TRANSIENT_ERROR,
            f"{provider} rate limited{suffix}",
            error_code="RATE_LIMITED",
            retry_after=retry_after,
        )

    if status_code in (401, 403):
        return OperationResult.configuration_error(
            f"{provider} rejected credentials ({status_code}){suffix}",
            error_code="UNAUTHORIZED",
        )

    if status_code == 404:
        return OperationResult.error(
            OperationStatus.NOT_FOUND,
            f"{provider} resource not found{suffix}",
            error_code="NOT_FOUND",
        )

    if 500 <= status_code < 600:
        return OperationResult.transient_error(
            f"{provider} server error ({status_code}){suffix}",
            error_code="SERVER_ERROR",
        )

    return OperationResult.permanent_error(
        f"{provider} client error ({status_code}){suffix}",
        error_code="HTTP_ERROR",
    )


def classify_request_exception(exc: Exception, provider: str) -> OperationResult:
    """Classify an exception raised while calling a REST provider.

    Timeouts and connection problems are transient; an HTTPError is mapped
    through its response status; anything else is treated as transient since
    it usually comes from the network stack.

    Args:
        exc: Exception raised by requests
        provider: Provider name used in messages

    Returns:
        OperationResult describing the failure
    """
    if isinstance(exc, requests.HTTPError) and exc.response is not None:
        return classify_http_status(
            exc.response.status_code,
            provider,
            detail=exc.response.text[:200] if exc.response.text else None,
            retry_after_header=exc.response.headers.get("Retry-After"),
        )

    if isinstance(exc, requests.Timeout):
        return OperationResult.transient_error(
            f"{provider} request timed out", error_code="TIMEOUT"
        )

    return OperationResult.transient_error(
        f"{provider} connection error: {type(exc).__name__}: {exc}",
        error_code="CONNECTION_ERROR",
    )
