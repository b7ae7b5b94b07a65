"""Test factories for the notification center.

Factory functions returning Pydantic models with sensible defaults; every
field can be overridden through keyword arguments.
"""

from typing import Any, Dict, List, Optional

from modules.notifications.models import (
    NotificationIntent,
    NotificationRecord,
    RecipientProfile,
    StoredPayload,
)


def make_intent(
    title: str = "Welcome {{name}}",
    message: str = "Hi {{name}}",
    variables: Optional[Dict[str, Any]] = None,
    push_tokens: Optional[List[str]] = None,
    notifiable_id: Optional[str] = "42",
    **overrides: Any,
) -> NotificationIntent:
    """Create a NotificationIntent addressed to user 42.

    Args:
        title: Title, literal unless ``title_is_key`` is overridden
        message: Message, literal unless ``message_is_key`` is overridden
        variables: Interpolation values (default: {"name": "Ada"})
        push_tokens: Push tokens; a push payload is only added when given
        notifiable_id: Recipient id; None disables persistence
        **overrides: Any other NotificationIntent field

    Returns:
        NotificationIntent instance

    Example:
        >>> intent = make_intent(push_tokens=["tok-1"], target_locale="ar")
    """
    data: Dict[str, Any] = {
        "title": title,
        "message": message,
        "variables": {"name": "Ada"} if variables is None else variables,
        "notifiable_type": "user" if notifiable_id is not None else None,
        "notifiable_id": notifiable_id,
    }
    if push_tokens is not None:
        data["push"] = {"tokens": push_tokens}
    data.update(overrides)
    return NotificationIntent(**data)


def make_recipient(
    id: str = "42",
    email: Optional[str] = "ada@example.com",
    phone: Optional[str] = "+15550100",
    locale: Optional[str] = "en",
    device_tokens: Optional[List[str]] = None,
    notifications_enabled: bool = True,
) -> RecipientProfile:
    """Create a RecipientProfile.

    Example:
        >>> profile = make_recipient(locale="ar", device_tokens=["tok-ada"])
    """
    return RecipientProfile(
        id=id,
        email=email,
        phone=phone,
        locale=locale,
        device_tokens=["tok-ada"] if device_tokens is None else device_tokens,
        notifications_enabled=notifications_enabled,
    )


def make_record(
    notifiable_id: str = "42",
    type: str = "order_placed",
    title: str = "messages.push_notification.order.placed.title",
    message: str = "messages.push_notification.order.placed.message",
    variables: Optional[Dict[str, Any]] = None,
    **payload: Any,
) -> NotificationRecord:
    """Create a NotificationRecord holding key-based content.

    Extra keyword arguments are StoredPayload fields.
    """
    metadata = dict(payload.pop("metadata", {}))
    metadata.setdefault("variables", {"orderId": 1001} if variables is None else variables)
    payload.setdefault("title_is_key", True)
    payload.setdefault("message_is_key", True)
    return NotificationRecord(
        type=type,
        notifiable_type="user",
        notifiable_id=notifiable_id,
        data=StoredPayload(title=title, message=message, metadata=metadata, **payload),
    )
