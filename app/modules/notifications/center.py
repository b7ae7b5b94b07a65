"""Notification Center: multi-channel dispatch orchestration.

A dispatch moves through these steps:

    RESOLVE_LOCALE -> BUILD_PAYLOADS -> SEND_SYNC | ENQUEUE_ASYNC -> PERSIST

Delivery is the primary guarantee and record-keeping is best effort: a
persistence failure is logged and never changes the channel outcomes returned
to the caller. Queued outcomes are written back into the persisted record by
the queue completion and failure listeners (see ``register_queue_handlers``).
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from infrastructure.i18n import (
    LocalizationResolver,
    ResolvedLocalization,
    Translator,
    interpolate,
    normalize_locale,
)
from infrastructure.logging import bind_dispatch_context, get_module_logger
from infrastructure.notifications import (
    ChannelName,
    ChannelOutcome,
    EmailChannel,
    EmailOptions,
    PushChannel,
    PushOptions,
    RetryableDeliveryError,
    SMSChannel,
    SmsOptions,
)
from infrastructure.queue import Job, QueueManager
from modules.notifications.models import (
    DispatchSummary,
    NotificationIntent,
    NotificationRecord,
    QueuedJobs,
    StoredPayload,
)
from modules.notifications.store import NotificationStore

logger = get_module_logger()

SOURCE_TAG = "notification_center"
DEFAULT_NOTIFIABLE_TYPE = "user"


@dataclass
class ChannelPayloads:
    """Provider-shaped payloads built for one dispatch.

    A channel with ``None`` payload was not requested. A requested channel
    with nothing to send carries a skipped outcome instead.
    """

    email: Optional[EmailOptions] = None
    push: Optional[PushOptions] = None
    sms: Optional[SmsOptions] = None
    email_skipped: Optional[ChannelOutcome] = None
    push_skipped: Optional[ChannelOutcome] = None
    sms_skipped: Optional[ChannelOutcome] = None


def _merge(base: Any, override: Any, model: type) -> Any:
    """Overlay the explicitly set fields of override onto base."""
    if base is None and override is None:
        return None
    merged: Dict[str, Any] = {}
    if base is not None:
        merged.update(base.model_dump(exclude_unset=True))
    if override is not None:
        merged.update(override.model_dump(exclude_unset=True))
    return model.model_validate(merged)


class NotificationCenter:
    """Dispatches notification intents over email, push and SMS.

    Attributes:
        translator: Translator used for key-flagged titles and messages.
        email_channel: Email channel.
        push_channel: Push channel.
        sms_channel: SMS channel.
        queue_manager: QueueManager for queued dispatches (optional).
        store: NotificationStore for persisted intents (optional).
        default_locale: Locale used when an intent names none.

    Example:
        center = NotificationCenter(translator, email, push, sms, store=store)
        summary = center.dispatch(
            NotificationIntent(
                title="Welcome {{name}}",
                message="Hi {{name}}",
                variables={"name": "Ada"},
                push={"tokens": ["device-token"]},
            )
        )
    """

    def __init__(
        self,
        translator: Translator,
        email_channel: EmailChannel,
        push_channel: PushChannel,
        sms_channel: SMSChannel,
        queue_manager: Optional[QueueManager] = None,
        store: Optional[NotificationStore] = None,
        default_locale: str = "en",
        max_workers: int = 10,
    ):
        self.translator = translator
        self.email_channel = email_channel
        self.push_channel = push_channel
        self.sms_channel = sms_channel
        self.queue_manager = queue_manager
        self.store = store
        self.default_locale = normalize_locale(default_locale)
        self.max_workers = max_workers
        self._resolver = LocalizationResolver(self.default_locale)

    # ------------------------------------------------------------------
    # Localization and payloads
    # ------------------------------------------------------------------

    def _target_locale(self, intent: NotificationIntent) -> str:
        default_locale = normalize_locale(intent.default_locale, self.default_locale)
        return normalize_locale(intent.target_locale, default_locale)

    def _render(self, value: Optional[str], is_key: bool, locale: str, variables: Dict[str, Any]) -> str:
        if not value:
            return ""
        if is_key:
            return self.translator.translate(value, locale, variables)
        return interpolate(value, variables)

    def _resolved_text(
        self, intent: NotificationIntent, localization: ResolvedLocalization
    ) -> tuple[str, str]:
        """Final title and message for the recipient.

        Values taken from a localized variant are literal; the intent's own
        title and message follow their ``*_is_key`` flags.
        """
        variant = (
            intent.localized_content.get(localization.locale)
            if localization.variant_used
            else None
        )
        locale = self._target_locale(intent)
        title_from_variant = variant is not None and bool(variant.title)
        message_from_variant = variant is not None and bool(variant.message)
        title = self._render(
            localization.title,
            intent.title_is_key and not title_from_variant,
            locale,
            intent.variables,
        )
        message = self._render(
            localization.message,
            intent.message_is_key and not message_from_variant,
            locale,
            intent.variables,
        )
        return title, message

    def build_payloads(
        self,
        intent: NotificationIntent,
        localization: ResolvedLocalization,
        title: str,
        message: str,
    ) -> ChannelPayloads:
        """Merge intent and variant overrides into provider-shaped payloads."""
        payloads = ChannelPayloads()
        variables = intent.variables
        variant = (
            intent.localized_content.get(localization.locale)
            if localization.variant_used
            else None
        )

        email = _merge(intent.email, variant.email if variant else None, EmailOptions)
        if email is not None:
            email.subject = interpolate(email.subject, variables) if email.subject else title
            email.text = interpolate(email.text, variables) if email.text else message
            if email.template is not None and not email.template.locale:
                email.template.locale = self._target_locale(intent)
            if email.to:
                payloads.email = email
            else:
                payloads.email_skipped = ChannelOutcome.skipped_outcome(
                    "No email recipient"
                )

        variant_push = variant.push if variant else None
        push = _merge(intent.push, variant_push, PushOptions)
        if push is not None and intent.push is not None and variant_push is not None:
            push.data = {**intent.push.data, **variant_push.data}
        if push is not None or intent.default_push_tokens:
            push = push or PushOptions()
            if not push.tokens:
                push.tokens = list(intent.default_push_tokens)
            push.title = interpolate(push.title, variables) if push.title else title
            push.body = interpolate(push.body, variables) if push.body else message
            if push.tokens:
                payloads.push = push
            else:
                payloads.push_skipped = ChannelOutcome.skipped_outcome(
                    "No push tokens"
                )

        if intent.sms is not None:
            sms = intent.sms.model_copy(deep=True)
            sms.message = interpolate(sms.message, variables) if sms.message else message
            if sms.to:
                payloads.sms = sms
            else:
                payloads.sms_skipped = ChannelOutcome.skipped_outcome(
                    "No SMS recipient"
                )

        return payloads

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def dispatch(self, intent: NotificationIntent) -> DispatchSummary:
        """Dispatch an intent, synchronously unless ``use_queue`` is set.

        Args:
            intent: NotificationIntent to deliver.

        Returns:
            DispatchSummary with per-channel outcomes and the persisted record.
        """
        if intent.use_queue:
            return self.dispatch_queued(intent)

        with bind_dispatch_context(
            notification_type=intent.notification_type,
            notifiable_type=intent.notifiable_type,
            notifiable_id=intent.notifiable_id,
        ):
            localization = self._resolver.resolve(intent)
            title, message = self._resolved_text(intent, localization)
            payloads = self.build_payloads(intent, localization, title, message)

            summary = DispatchSummary(locale=localization.locale)
            summary.email = payloads.email_skipped or self._send(
                self.email_channel, payloads.email
            )
            summary.push = payloads.push_skipped or self._send(
                self.push_channel, payloads.push
            )
            summary.sms = payloads.sms_skipped or self._send(
                self.sms_channel, payloads.sms
            )

            if intent.should_persist:
                channels = {
                    name: outcome
                    for name, outcome in (
                        ("email", summary.email),
                        ("push", summary.push),
                        ("sms", summary.sms),
                    )
                    if outcome is not None
                }
                summary.persisted = self._persist(intent, localization, channels)

            logger.info(
                "notification_dispatched",
                locale=localization.locale,
                email_ok=summary.email.ok if summary.email else None,
                push_ok=summary.push.ok if summary.push else None,
                sms_ok=summary.sms.ok if summary.sms else None,
                persisted=summary.persisted is not None,
            )
            return summary

    def _send(self, channel: Any, payload: Any) -> Optional[ChannelOutcome]:
        if payload is None:
            return None
        try:
            return channel.send(payload)
        except Exception as e:  # channel contract violated
            logger.error(
                "channel_send_raised",
                channel=channel.channel_name,
                error=str(e),
                exc_info=True,
            )
            return ChannelOutcome.failure(str(e))

    def dispatch_queued(self, intent: NotificationIntent) -> DispatchSummary:
        """Enqueue one job per applicable channel and return immediately.

        The record (when persisted) is created before the jobs are enqueued so
        completion listeners can always find it. Its channel outcomes start
        out absent and are back-filled as jobs complete or fail.

        Raises:
            ValueError: If the center has no QueueManager.
        """
        if self.queue_manager is None:
            raise ValueError("Queued dispatch requires a QueueManager")

        with bind_dispatch_context(
            notification_type=intent.notification_type,
            notifiable_type=intent.notifiable_type,
            notifiable_id=intent.notifiable_id,
        ) as correlation_id:
            localization = self._resolver.resolve(intent)
            title, message = self._resolved_text(intent, localization)
            payloads = self.build_payloads(intent, localization, title, message)

            summary = DispatchSummary(
                locale=localization.locale,
                email=payloads.email_skipped,
                push=payloads.push_skipped,
                sms=payloads.sms_skipped,
            )

            if intent.should_persist:
                skipped = {
                    name: outcome
                    for name, outcome in (
                        ("email", payloads.email_skipped),
                        ("push", payloads.push_skipped),
                        ("sms", payloads.sms_skipped),
                    )
                    if outcome is not None
                }
                summary.persisted = self._persist(intent, localization, skipped)

            metadata = {
                "recipient_id": intent.notifiable_id,
                "notifiable_type": intent.notifiable_type,
                "notification_type": intent.notification_type,
                "notification_id": summary.persisted.id if summary.persisted else None,
                "correlation_id": correlation_id,
                "source": SOURCE_TAG,
            }

            queued = QueuedJobs()
            for channel, payload in (
                (ChannelName.EMAIL, payloads.email),
                (ChannelName.PUSH, payloads.push),
                (ChannelName.SMS, payloads.sms),
            ):
                if payload is None:
                    continue
                job_id = self._enqueue(channel.value, payload, metadata, intent)
                if job_id is None:
                    setattr(
                        summary,
                        channel.value,
                        ChannelOutcome.failure(f"Failed to queue {channel.value} job"),
                    )
                else:
                    setattr(queued, channel.value, job_id)

            summary.queued = queued
            logger.info(
                "notification_queued",
                locale=localization.locale,
                email_job_id=queued.email,
                push_job_id=queued.push,
                sms_job_id=queued.sms,
                persisted=summary.persisted is not None,
            )
            return summary

    def _enqueue(
        self,
        channel: str,
        payload: Any,
        metadata: Dict[str, Any],
        intent: NotificationIntent,
    ) -> Optional[str]:
        try:
            return self.queue_manager.enqueue(
                channel,
                payload.model_dump(mode="json", exclude_none=True),
                metadata=metadata,
                delay=intent.queue_options.delay,
                priority=intent.queue_options.priority,
            )
        except Exception as e:  # enqueue failures only affect this channel
            logger.error("enqueue_failed", channel=channel, error=str(e), exc_info=True)
            return None

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def build_stored_payload(
        self,
        intent: NotificationIntent,
        localization: ResolvedLocalization,
        channels: Optional[Dict[str, ChannelOutcome]] = None,
    ) -> StoredPayload:
        """Build the re-translatable payload stored with a record.

        Titles and messages are stored raw (keys or uninterpolated literals)
        together with the variables, so readers can render them in any
        locale later.
        """
        default_locale = normalize_locale(intent.default_locale, self.default_locale)
        title_translations: Dict[str, str] = {}
        message_translations: Dict[str, str] = {}
        for locale, variant in intent.localized_content.items():
            if variant.title:
                title_translations[locale] = variant.title
            if variant.message:
                message_translations[locale] = variant.message
        title_translations.setdefault(default_locale, intent.title)
        message_translations.setdefault(default_locale, intent.message)

        metadata = dict(intent.metadata)
        if intent.variables:
            metadata["variables"] = dict(intent.variables)

        return StoredPayload(
            locale=localization.locale,
            default_locale=default_locale,
            title=localization.title or "",
            message=localization.message or "",
            title_is_key=intent.title_is_key and localization.title == intent.title,
            message_is_key=intent.message_is_key
            and localization.message == intent.message,
            title_translations=title_translations,
            message_translations=message_translations,
            metadata=metadata,
            channels=dict(channels or {}),
        )

    def _persist(
        self,
        intent: NotificationIntent,
        localization: ResolvedLocalization,
        channels: Dict[str, ChannelOutcome],
    ) -> Optional[NotificationRecord]:
        if self.store is None:
            logger.warning("notification_store_not_configured")
            return None
        try:
            record = NotificationRecord(
                type=intent.notification_type or "notification",
                notifiable_type=intent.notifiable_type,
                notifiable_id=intent.notifiable_id,
                data=self.build_stored_payload(intent, localization, channels),
            )
            if intent.mark_as_read:
                record.read_at = record.created_at
            return self.store.create(record)
        except Exception as e:  # record-keeping is best effort
            logger.error("notification_persist_failed", error=str(e), exc_info=True)
            return None

    # ------------------------------------------------------------------
    # Fan-out
    # ------------------------------------------------------------------

    def _for_user(self, user_id: Any, intent: NotificationIntent) -> NotificationIntent:
        return intent.model_copy(
            update={
                "notifiable_type": intent.notifiable_type or DEFAULT_NOTIFIABLE_TYPE,
                "notifiable_id": (
                    intent.notifiable_id if intent.notifiable_id is not None else str(user_id)
                ),
            }
        )

    def notify_user(self, user_id: Any, intent: NotificationIntent) -> DispatchSummary:
        return self.dispatch(self._for_user(user_id, intent))

    def notify_user_queued(self, user_id: Any, intent: NotificationIntent) -> DispatchSummary:
        return self.dispatch_queued(self._for_user(user_id, intent))

    def notify_many(self, user_ids: List[Any], intent: NotificationIntent) -> List[DispatchSummary]:
        """Dispatch to many recipients concurrently.

        Results are returned in the order of ``user_ids``; dispatches run in
        no particular order.
        """
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            return list(executor.map(lambda uid: self.notify_user(uid, intent), user_ids))

    def notify_many_queued(
        self, user_ids: List[Any], intent: NotificationIntent
    ) -> List[DispatchSummary]:
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            return list(
                executor.map(lambda uid: self.notify_user_queued(uid, intent), user_ids)
            )

    # ------------------------------------------------------------------
    # Queue handlers
    # ------------------------------------------------------------------

    def _deliver(self, channel: Any, job: Job) -> Dict[str, Any]:
        outcome = channel.send(job.payload)
        if not outcome.ok and outcome.retryable:
            raise RetryableDeliveryError(outcome.error or "delivery failed", outcome)
        return outcome.model_dump(mode="json")

    def handle_email_job(self, job: Job) -> Dict[str, Any]:
        return self._deliver(self.email_channel, job)

    def handle_push_job(self, job: Job) -> Dict[str, Any]:
        return self._deliver(self.push_channel, job)

    def handle_sms_job(self, job: Job) -> Dict[str, Any]:
        return self._deliver(self.sms_channel, job)

    def backfill_completed(self, job: Job, result: Any) -> None:
        """Write a completed job's outcome into its notification record."""
        notification_id = job.metadata.get("notification_id")
        if not notification_id or self.store is None:
            return
        outcome = ChannelOutcome.model_validate(result or {"ok": True})
        self._backfill(notification_id, job, outcome)

    def backfill_failed(self, job: Job, error: str) -> None:
        """Write a terminally failed job's outcome into its notification record."""
        notification_id = job.metadata.get("notification_id")
        if not notification_id or self.store is None:
            return
        self._backfill(notification_id, job, ChannelOutcome.failure(error))

    def _backfill(self, notification_id: str, job: Job, outcome: ChannelOutcome) -> None:
        try:
            updated = self.store.update_channel_outcome(notification_id, job.channel, outcome)
        except Exception as e:  # record-keeping is best effort
            logger.error(
                "notification_backfill_failed",
                notification_id=notification_id,
                channel=job.channel,
                error=str(e),
                exc_info=True,
            )
            return
        if updated is None:
            logger.warning(
                "notification_backfill_record_missing",
                notification_id=notification_id,
                channel=job.channel,
            )
            return
        logger.debug(
            "notification_backfilled",
            notification_id=notification_id,
            channel=job.channel,
            ok=outcome.ok,
        )

    def register_queue_handlers(self, concurrency: Optional[Dict[str, int]] = None) -> None:
        """Start worker pools for every channel queue and wire back-fill.

        Args:
            concurrency: Optional worker count per channel, overriding the
                queue configuration.
        """
        if self.queue_manager is None:
            raise ValueError("Queue handlers require a QueueManager")
        concurrency = concurrency or {}
        self.queue_manager.on_completed(self.backfill_completed)
        self.queue_manager.on_failed(self.backfill_failed)
        handlers = {
            ChannelName.EMAIL.value: self.handle_email_job,
            ChannelName.PUSH.value: self.handle_push_job,
            ChannelName.SMS.value: self.handle_sms_job,
        }
        for channel, handler in handlers.items():
            if channel not in self.queue_manager.channels:
                continue
            self.queue_manager.process_jobs(
                channel, handler, concurrency=concurrency.get(channel)
            )
        logger.info("notification_queue_handlers_registered", channels=list(handlers))
