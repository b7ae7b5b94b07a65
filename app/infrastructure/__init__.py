"""Infrastructure modules for the Notification Center.

Centralized infrastructure components:
- configuration: Settings management (Settings, MailSettings, QueueSettings, ...)
- logging: Structured logging (configure_logging, get_module_logger)
- operations: Operation results and error classification
- i18n: Translation catalog and locale resolution
- notifications: Email, push and SMS channels with their providers
- queue: Per-channel job queues with retrying worker pools
- services: Dependency providers (get_settings, get_queue_manager, ...)
"""

from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

__all__ = [
    "OperationResult",
    "OperationStatus",
]
