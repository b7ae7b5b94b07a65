"""Notification type registry.

Each notification type is a NotificationTypeDescriptor row: translation keys
for title, message and email subject, an optional email template id, an
optional action URL pattern and an optional metadata builder. Types are
registered once and looked up by name.

Example:
    register_notification_type(
        NotificationTypeDescriptor(
            type="invoice_ready",
            title_key="messages.push_notification.invoice.ready.title",
            message_key="messages.push_notification.invoice.ready.message",
            action_url="/invoices/{invoiceId}",
        )
    )
    data = build_notification("invoice_ready", {"invoiceId": 7})
"""

import string
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import structlog

from modules.notifications.models import NotificationData

logger = structlog.get_logger()

MetadataBuilder = Callable[[Dict[str, Any]], Dict[str, Any]]

_PUSH = "messages.push_notification"
_EMAIL = "messages.email"


@dataclass(frozen=True)
class NotificationTypeDescriptor:
    """Static description of a notification type.

    Attributes:
        type: Unique type name, e.g. "order_placed".
        title_key: Translation key of the title.
        message_key: Translation key of the message.
        email_subject_key: Translation key of the email subject.
        email_template_id: Email template to render, if any.
        action_url: Deep link; ``{name}`` fields are filled from variables.
        metadata_builder: Builds type-specific metadata from variables.
    """

    type: str
    title_key: str
    message_key: str
    email_subject_key: Optional[str] = None
    email_template_id: Optional[str] = None
    action_url: Optional[str] = None
    metadata_builder: Optional[MetadataBuilder] = None

    def build(self, variables: Optional[Dict[str, Any]] = None) -> NotificationData:
        variables = dict(variables or {})
        metadata = self.metadata_builder(variables) if self.metadata_builder else {}
        return NotificationData(
            type=self.type,
            title=self.title_key,
            message=self.message_key,
            variables=variables,
            metadata={k: v for k, v in metadata.items() if v is not None},
            action_url=self._format_action_url(variables),
            email_subject_key=self.email_subject_key,
            email_template_id=self.email_template_id,
        )

    def _format_action_url(self, variables: Dict[str, Any]) -> Optional[str]:
        if not self.action_url:
            return None
        fields = [name for _, name, _, _ in string.Formatter().parse(self.action_url) if name]
        if any(variables.get(name) is None for name in fields):
            logger.warning(
                "action_url_variables_missing",
                notification_type=self.type,
                action_url=self.action_url,
            )
            return None
        return self.action_url.format(**{name: variables[name] for name in fields})


def _pick(*names: str) -> MetadataBuilder:
    def builder(variables: Dict[str, Any]) -> Dict[str, Any]:
        return {name: variables.get(name) for name in names}

    return builder


def _auth(name: str, key: str, template: str, **kwargs: Any) -> NotificationTypeDescriptor:
    return NotificationTypeDescriptor(
        type=name,
        title_key=f"{_PUSH}.auth.{key}.title",
        message_key=f"{_PUSH}.auth.{key}.message",
        email_subject_key=f"{_EMAIL}.auth.{key}.subject",
        email_template_id=template,
        **kwargs,
    )


def _order(name: str, key: str, template: str, **kwargs: Any) -> NotificationTypeDescriptor:
    return NotificationTypeDescriptor(
        type=name,
        title_key=f"{_PUSH}.order.{key}.title",
        message_key=f"{_PUSH}.order.{key}.message",
        email_subject_key=f"{_EMAIL}.order.{key}.subject",
        email_template_id=template,
        action_url="/orders/{orderId}",
        **kwargs,
    )


BUILTIN_TYPES: List[NotificationTypeDescriptor] = [
    # auth
    _auth("auth_welcome", "welcome", "welcome", action_url="/profile"),
    _auth(
        "auth_password_reset_request",
        "password_reset",
        "password-reset",
        metadata_builder=_pick("resetToken", "expiresAt"),
    ),
    _auth(
        "auth_password_changed",
        "password_changed",
        "password-changed",
        action_url="/profile/security",
    ),
    _auth(
        "auth_new_device_login",
        "new_device",
        "new-device-login",
        action_url="/profile/security",
        metadata_builder=_pick("deviceInfo", "location", "loginAt"),
    ),
    _auth(
        "auth_account_status_changed",
        "account_status",
        "account-status-changed",
        metadata_builder=_pick("status", "reason"),
    ),
    _auth("auth_logged_out", "logout", "logged-out"),
    # order
    _order("order_placed", "placed", "order-placed"),
    _order("order_confirmed", "confirmed", "order-confirmed"),
    _order(
        "order_shipped",
        "shipped",
        "order-shipped",
        metadata_builder=_pick("trackingNumber"),
    ),
    _order("order_delivered", "delivered", "order-delivered"),
    _order(
        "order_cancelled", "cancelled", "order-cancelled", metadata_builder=_pick("reason")
    ),
    _order(
        "payment_received",
        "payment_received",
        "payment-received",
        metadata_builder=_pick("amount", "paymentMethod"),
    ),
    # shipment
    NotificationTypeDescriptor(
        type="shipment_requested",
        title_key=f"{_PUSH}.shipment.new_request.title",
        message_key=f"{_PUSH}.shipment.new_request.message",
        email_subject_key=f"{_EMAIL}.shipment.new_request.subject",
        email_template_id="shipment-requested",
        action_url="/shipments/{id}",
    ),
    # system
    NotificationTypeDescriptor(
        type="system_maintenance",
        title_key=f"{_PUSH}.system.maintenance.title",
        message_key=f"{_PUSH}.system.maintenance.message",
        email_subject_key=f"{_EMAIL}.system.maintenance.subject",
    ),
    NotificationTypeDescriptor(
        type="system_app_update",
        title_key=f"{_PUSH}.system.app_update.title",
        message_key=f"{_PUSH}.system.app_update.message",
        metadata_builder=_pick("version", "isRequired"),
    ),
    NotificationTypeDescriptor(
        type="system_announcement",
        title_key=f"{_PUSH}.system.announcement.title",
        message_key=f"{_PUSH}.system.announcement.message",
        email_subject_key=f"{_EMAIL}.system.announcement.subject",
    ),
]


class NotificationTypeRegistry:
    """Thread-safe table of notification types."""

    def __init__(self, descriptors: Optional[List[NotificationTypeDescriptor]] = None):
        self._types: Dict[str, NotificationTypeDescriptor] = {}
        self._lock = threading.Lock()
        for descriptor in descriptors or []:
            self.register(descriptor)

    def register(
        self, descriptor: NotificationTypeDescriptor, replace: bool = False
    ) -> None:
        """Register a type.

        Raises:
            ValueError: If the type is already registered and replace is False.
        """
        if not descriptor.type:
            raise ValueError("Notification type name cannot be empty")
        with self._lock:
            if descriptor.type in self._types and not replace:
                raise ValueError(f"Notification type already registered: {descriptor.type}")
            self._types[descriptor.type] = descriptor
        logger.debug("notification_type_registered", notification_type=descriptor.type)

    def get(self, notification_type: str) -> NotificationTypeDescriptor:
        """Look up a type.

        Raises:
            KeyError: If the type is not registered.
        """
        with self._lock:
            descriptor = self._types.get(notification_type)
        if descriptor is None:
            raise KeyError(f"Unknown notification type: {notification_type}")
        return descriptor

    def has(self, notification_type: str) -> bool:
        with self._lock:
            return notification_type in self._types

    def types(self) -> List[str]:
        with self._lock:
            return sorted(self._types)

    def build(
        self, notification_type: str, variables: Optional[Dict[str, Any]] = None
    ) -> NotificationData:
        return self.get(notification_type).build(variables)


_default_registry = NotificationTypeRegistry(BUILTIN_TYPES)


def get_registry() -> NotificationTypeRegistry:
    return _default_registry


def register_notification_type(
    descriptor: NotificationTypeDescriptor, replace: bool = False
) -> None:
    _default_registry.register(descriptor, replace=replace)


def get_notification_type(notification_type: str) -> NotificationTypeDescriptor:
    return _default_registry.get(notification_type)


def build_notification(
    notification_type: str, variables: Optional[Dict[str, Any]] = None
) -> NotificationData:
    """Build NotificationData for a registered type.

    Raises:
        KeyError: If the type is not registered.
    """
    return _default_registry.build(notification_type, variables)
