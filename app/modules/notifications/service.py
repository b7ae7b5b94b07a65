"""Notification service: type-driven sends and the recipient inbox.

Sends look up the recipient, build the notification from the type registry
and hand a key-based intent to the NotificationCenter. Records store the
translation keys and variables, so the inbox renders them in whatever locale
the reader uses.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Protocol

from infrastructure.i18n import Translator, normalize_locale
from infrastructure.logging import get_module_logger
from infrastructure.notifications import (
    EmailOptions,
    EmailTemplateRef,
    EmailTemplateRenderer,
    PushOptions,
    SmsOptions,
)
from infrastructure.notifications.templates import DEFAULT_TEMPLATE_ID
from modules.notifications.center import DEFAULT_NOTIFIABLE_TYPE, NotificationCenter
from modules.notifications.formatter import format_for_locale
from modules.notifications.models import (
    LocalizedNotification,
    NotificationData,
    NotificationIntent,
    NotificationRecord,
    RecipientProfile,
    SendNotificationResult,
)
from modules.notifications.registry import NotificationTypeRegistry, get_registry
from modules.notifications.store import NotificationFilter, NotificationStore

logger = get_module_logger()


class NotificationNotFoundError(LookupError):
    """Raised when a notification does not exist for the given recipient."""

    def __init__(self, notification_id: str):
        super().__init__(f"Notification not found: {notification_id}")
        self.notification_id = notification_id


class RecipientDirectory(Protocol):
    """Recipient lookup supplied by the surrounding application."""

    def get(self, user_id: Any) -> Optional[RecipientProfile]:
        ...


class InMemoryRecipientDirectory:
    """Dictionary-backed RecipientDirectory for tests and local development."""

    def __init__(self, profiles: Optional[List[RecipientProfile]] = None):
        self._profiles: Dict[str, RecipientProfile] = {}
        self._lock = threading.Lock()
        for profile in profiles or []:
            self.add(profile)

    def add(self, profile: RecipientProfile) -> None:
        with self._lock:
            self._profiles[profile.id] = profile

    def get(self, user_id: Any) -> Optional[RecipientProfile]:
        with self._lock:
            return self._profiles.get(str(user_id))


class NotificationService:
    """Sends registered notification types and serves the inbox.

    Attributes:
        center: NotificationCenter used for delivery.
        store: NotificationStore holding the records.
        directory: RecipientDirectory for recipient lookup.
        translator: Translator for subjects and inbox rendering.
        registry: Notification type registry.
        renderer: Email template renderer, used to check template ids.
    """

    def __init__(
        self,
        center: NotificationCenter,
        store: NotificationStore,
        directory: RecipientDirectory,
        translator: Translator,
        registry: Optional[NotificationTypeRegistry] = None,
        renderer: Optional[EmailTemplateRenderer] = None,
        notifiable_type: str = DEFAULT_NOTIFIABLE_TYPE,
        max_workers: int = 10,
    ):
        self.center = center
        self.store = store
        self.directory = directory
        self.translator = translator
        self.registry = registry or get_registry()
        self.renderer = renderer
        self.notifiable_type = notifiable_type
        self.max_workers = max_workers

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    def _template_id(self, data: NotificationData) -> str:
        template_id = data.email_template_id
        if template_id and self.renderer is not None and self.renderer.has_template(template_id):
            return template_id
        return DEFAULT_TEMPLATE_ID

    def _build_email(
        self,
        data: NotificationData,
        to: str,
        locale: str,
        email_context: Optional[Dict[str, Any]],
    ) -> EmailOptions:
        subject = None
        if data.email_subject_key:
            subject = self.translator.translate(data.email_subject_key, locale, data.variables)
        context = {
            **data.variables,
            **(email_context or {}),
            "title": self.translator.translate(data.title, locale, data.variables),
            "message": self.translator.translate(data.message, locale, data.variables),
        }
        if data.action_url and "ctas" not in context:
            context["ctas"] = [
                {
                    "label": self.translator.translate("common.view_details", locale),
                    "url": data.action_url,
                }
            ]
        return EmailOptions(
            to=[to],
            subject=subject,
            template=EmailTemplateRef(
                id=self._template_id(data), locale=locale, context=context
            ),
        )

    def send_notification(
        self,
        user_id: Any,
        notification_type: str,
        variables: Optional[Dict[str, Any]] = None,
        locale: Optional[str] = None,
        send_push: bool = True,
        send_email: bool = False,
        send_sms: bool = False,
        email_to: Optional[str] = None,
        mark_as_read: bool = False,
        use_queue: bool = False,
        email_context: Optional[Dict[str, Any]] = None,
    ) -> SendNotificationResult:
        """Send a registered notification type to one user.

        Args:
            user_id: Recipient id in the RecipientDirectory.
            notification_type: Registered type name, e.g. "order_placed".
            variables: Values for the type's message placeholders.
            locale: Overrides the recipient's preferred locale.
            send_push: Send a push when the recipient has tokens and
                notifications enabled.
            send_email: Send an email to ``email_to`` or the recipient's address.
            send_sms: Send an SMS to the recipient's phone.
            email_to: Email address overriding the recipient's.
            mark_as_read: Store the notification as already read.
            use_queue: Deliver through the channel queues.
            email_context: Extra values for the email template.

        Returns:
            SendNotificationResult

        Raises:
            KeyError: If the notification type is not registered.
        """
        data = self.registry.build(notification_type, variables)
        result = SendNotificationResult()

        profile = self.directory.get(user_id)
        if profile is None:
            result.errors.append(f"User with ID {user_id} not found")
            logger.warning("notification_recipient_not_found", user_id=str(user_id))
            return result

        target_locale = normalize_locale(
            locale or profile.locale, self.translator.default_locale
        )

        metadata = dict(data.metadata)
        if data.action_url:
            metadata["action_url"] = data.action_url

        push = None
        if send_push and profile.notifications_enabled and profile.device_tokens:
            push_data: Dict[str, Any] = {"type": data.type, **data.variables}
            if data.action_url:
                push_data["actionUrl"] = data.action_url
            push = PushOptions(
                tokens=profile.device_tokens, data=push_data, image_url=data.image_url
            )

        email = None
        if send_email:
            address = email_to or profile.email
            if address:
                email = self._build_email(data, address, target_locale, email_context)
            else:
                result.errors.append("Email requested but recipient has no email address")

        sms = None
        if send_sms:
            if profile.phone:
                sms = SmsOptions(to=[profile.phone])
            else:
                result.errors.append("SMS requested but recipient has no phone number")

        intent = NotificationIntent(
            title=data.title,
            message=data.message,
            title_is_key=True,
            message_is_key=True,
            default_locale=self.translator.default_locale,
            target_locale=target_locale,
            variables=data.variables,
            metadata=metadata,
            email=email,
            push=push,
            sms=sms,
            notifiable_type=self.notifiable_type,
            notifiable_id=profile.id,
            notification_type=data.type,
            mark_as_read=mark_as_read,
            use_queue=use_queue,
        )
        summary = self.center.dispatch(intent)

        if summary.persisted is not None:
            result.notification_id = summary.persisted.id
        if summary.queued is not None:
            result.queued_jobs = summary.queued

        for channel in ("push", "email", "sms"):
            outcome = getattr(summary, channel)
            queued = summary.queued is not None and getattr(summary.queued, channel)
            setattr(result, f"{channel}_sent", bool(queued or (outcome and outcome.ok)))
            if outcome is not None and not outcome.ok and not outcome.skipped:
                result.errors.append(f"{channel.capitalize()} failed: {outcome.error}")

        logger.info(
            "notification_sent",
            notification_type=data.type,
            user_id=profile.id,
            notification_id=result.notification_id,
            push_sent=result.push_sent,
            email_sent=result.email_sent,
            sms_sent=result.sms_sent,
            error_count=len(result.errors),
        )
        return result

    def send_notification_to_many(
        self, user_ids: List[Any], notification_type: str, **options: Any
    ) -> List[SendNotificationResult]:
        """Send the same notification type to many users concurrently."""
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            return list(
                executor.map(
                    lambda uid: self.send_notification(uid, notification_type, **options),
                    user_ids,
                )
            )

    # ------------------------------------------------------------------
    # Inbox
    # ------------------------------------------------------------------

    def _reader_locale(self, user_id: Any, locale: Optional[str]) -> Optional[str]:
        if locale:
            return locale
        profile = self.directory.get(user_id)
        return profile.locale if profile else None

    def _owned(self, notification_id: str, user_id: Any) -> NotificationRecord:
        record = self.store.get(notification_id)
        if (
            record is None
            or record.is_deleted
            or record.notifiable_type != self.notifiable_type
            or record.notifiable_id != str(user_id)
        ):
            raise NotificationNotFoundError(notification_id)
        return record

    def _filter(self, user_id: Any, **kwargs: Any) -> NotificationFilter:
        return NotificationFilter(
            notifiable_type=self.notifiable_type, notifiable_id=str(user_id), **kwargs
        )

    def list_notifications(
        self,
        user_id: Any,
        locale: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
        unread_only: bool = False,
        type: Optional[str] = None,
    ) -> List[LocalizedNotification]:
        """List a user's notifications, newest first, rendered in their locale."""
        reader_locale = self._reader_locale(user_id, locale)
        records = self.store.find_many(
            self._filter(
                user_id, unread_only=unread_only, type=type, limit=limit, offset=offset
            )
        )
        return [format_for_locale(r, reader_locale, self.translator) for r in records]

    def get_notification(
        self, notification_id: str, user_id: Any, locale: Optional[str] = None
    ) -> LocalizedNotification:
        """Get one notification rendered for its owner.

        Raises:
            NotificationNotFoundError: If missing, deleted or owned by someone else.
        """
        record = self._owned(notification_id, user_id)
        return format_for_locale(
            record, self._reader_locale(user_id, locale), self.translator
        )

    def mark_as_read(self, notification_id: str, user_id: Any) -> NotificationRecord:
        """Mark a notification read. Marking it again keeps the first read time.

        Raises:
            NotificationNotFoundError: If missing, deleted or owned by someone else.
        """
        self._owned(notification_id, user_id)
        return self.store.mark_read(notification_id)

    def mark_all_as_read(self, user_id: Any) -> int:
        count = self.store.mark_all_read(self.notifiable_type, str(user_id))
        logger.info("notifications_marked_read", user_id=str(user_id), count=count)
        return count

    def delete_notification(self, notification_id: str, user_id: Any) -> NotificationRecord:
        """Soft delete a notification.

        Raises:
            NotificationNotFoundError: If missing, already deleted or owned by
                someone else.
        """
        self._owned(notification_id, user_id)
        return self.store.soft_delete(notification_id)

    def clear_all(self, user_id: Any) -> int:
        """Soft delete every notification of a user."""
        records = self.store.find_many(self._filter(user_id))
        for record in records:
            self.store.soft_delete(record.id)
        logger.info("notifications_cleared", user_id=str(user_id), count=len(records))
        return len(records)

    def unread_count(self, user_id: Any) -> int:
        return self.store.count(self._filter(user_id, unread_only=True))
