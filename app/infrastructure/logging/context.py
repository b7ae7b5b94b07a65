"""Dispatch context binding for structured logging.

Binds per-dispatch metadata (correlation id, notification type, recipient)
to structlog's context variables so every log line emitted while a
notification is resolved, sent and persisted carries the same identifiers.

Usage:
    from infrastructure.logging import bind_dispatch_context

    with bind_dispatch_context(notification_type="order_shipped"):
        logger.info("dispatching_notification")
"""

import uuid
from contextlib import contextmanager
from typing import Any, Generator, Optional

import structlog


@contextmanager
def bind_dispatch_context(
    correlation_id: Optional[str] = None,
    notification_type: Optional[str] = None,
    notifiable_type: Optional[str] = None,
    notifiable_id: Optional[Any] = None,
    **extra_context: Any,
) -> Generator[str, None, None]:
    """Bind dispatch-scoped context to all logs within the block.

    Args:
        correlation_id: Identifier shared by all logs of one dispatch.
            Generated when not provided.
        notification_type: Notification type tag (e.g. "auth_welcome").
        notifiable_type: Recipient type (e.g. "user").
        notifiable_id: Recipient identifier.
        **extra_context: Additional key-value pairs to include in logs.

    Yields:
        The correlation id in effect for the block.
    """
    context: dict[str, Any] = {"correlation_id": correlation_id or str(uuid.uuid4())}

    if notification_type is not None:
        context["notification_type"] = notification_type
    if notifiable_type is not None:
        context["notifiable_type"] = notifiable_type
    if notifiable_id is not None:
        context["notifiable_id"] = str(notifiable_id)

    context.update(extra_context)

    # Restores the enclosing values on exit so nested dispatches keep the outer ids
    with structlog.contextvars.bound_contextvars(**context):
        yield context["correlation_id"]


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID from the logging context."""
    return structlog.contextvars.get_contextvars().get("correlation_id")
