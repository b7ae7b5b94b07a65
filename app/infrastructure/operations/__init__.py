"""Operation result types and status enums.

Standardized result types shared by providers and channels, including the
status enum and error classifiers for REST provider exceptions.
"""

from infrastructure.operations.classifiers import (
    classify_http_status,
    classify_request_exception,
)
from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

__all__ = [
    "OperationResult",
    "OperationStatus",
    "classify_http_status",
    "classify_request_exception",
]
