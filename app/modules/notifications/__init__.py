"""Notifications module.

Multi-channel notification dispatch: the NotificationCenter orchestrates
localized delivery over email, push and SMS; the NotificationService sends
registered notification types and serves the recipient inbox.

Example:
    from infrastructure.services import get_notification_service

    service = get_notification_service()
    service.send_notification(42, "order_placed", {"orderId": 1001})
"""

from modules.notifications.center import NotificationCenter
from modules.notifications.formatter import (
    format_for_locale,
    parse_payload,
    pick_localized_value,
)
from modules.notifications.models import (
    DispatchSummary,
    LocalizedNotification,
    LocalizedVariant,
    NotificationData,
    NotificationIntent,
    NotificationRecord,
    QueuedJobs,
    QueueOptions,
    RecipientProfile,
    SendNotificationResult,
    StoredPayload,
)
from modules.notifications.registry import (
    NotificationTypeDescriptor,
    NotificationTypeRegistry,
    build_notification,
    get_notification_type,
    register_notification_type,
)
from modules.notifications.service import (
    InMemoryRecipientDirectory,
    NotificationNotFoundError,
    NotificationService,
    RecipientDirectory,
)
from modules.notifications.store import (
    InMemoryNotificationStore,
    NotificationFilter,
    NotificationStore,
)

__all__ = [
    "NotificationCenter",
    "NotificationService",
    "NotificationNotFoundError",
    "RecipientDirectory",
    "InMemoryRecipientDirectory",
    "NotificationStore",
    "InMemoryNotificationStore",
    "NotificationFilter",
    "NotificationTypeDescriptor",
    "NotificationTypeRegistry",
    "register_notification_type",
    "get_notification_type",
    "build_notification",
    "parse_payload",
    "pick_localized_value",
    "format_for_locale",
    "DispatchSummary",
    "LocalizedNotification",
    "LocalizedVariant",
    "NotificationData",
    "NotificationIntent",
    "NotificationRecord",
    "QueuedJobs",
    "QueueOptions",
    "RecipientProfile",
    "SendNotificationResult",
    "StoredPayload",
]
