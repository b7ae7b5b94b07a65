"""Operation status enumeration.

Status codes used to classify provider and channel outcomes so callers can
decide between retrying, reporting, or giving up.
"""

from enum import Enum


class OperationStatus(Enum):
    """Status codes for operation results.

    Attributes:
        SUCCESS: Operation completed successfully
        TRANSIENT_ERROR: Retryable error (network, timeout, rate limit, 5xx)
        PERMANENT_ERROR: Non-retryable error (validation, rejected input)
        CONFIGURATION_ERROR: Provider selected but not configured (credentials)
        NOT_FOUND: Resource not found (unknown template, unknown recipient)
    """

    SUCCESS = "success"
    TRANSIENT_ERROR = "transient_error"
    PERMANENT_ERROR = "permanent_error"
    CONFIGURATION_ERROR = "configuration_error"
    NOT_FOUND = "not_found"

    @property
    def is_retryable(self) -> bool:
        """Only transient errors are worth another attempt."""
        return self is OperationStatus.TRANSIENT_ERROR
