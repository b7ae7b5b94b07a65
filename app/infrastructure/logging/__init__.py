"""Structured logging infrastructure.

Centralized structlog configuration for the notification center.

Public API:
    - configure_logging(): Initialize logging for the application
    - get_module_logger(): Get a logger for the calling module
    - bind_dispatch_context(): Context manager for dispatch-scoped logging
    - get_correlation_id(): Get current correlation ID from context

Example:
    from infrastructure.logging import get_module_logger, bind_dispatch_context

    logger = get_module_logger()

    with bind_dispatch_context(notification_type="order_placed"):
        logger.info("dispatching_notification")
"""

from infrastructure.logging.setup import configure_logging, get_module_logger
from infrastructure.logging.context import bind_dispatch_context, get_correlation_id
from infrastructure.logging.formatters import (
    SENSITIVE_PATTERNS,
    add_app_info,
    mask_sensitive_data,
    truncate_large_values,
)

__all__ = [
    "configure_logging",
    "get_module_logger",
    "bind_dispatch_context",
    "get_correlation_id",
    "add_app_info",
    "mask_sensitive_data",
    "truncate_large_values",
    "SENSITIVE_PATTERNS",
]
