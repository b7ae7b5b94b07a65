"""SMS channel over a pluggable SMS provider."""

from typing import Any, List

import structlog
from pydantic import ValidationError

from infrastructure.notifications.channels.base import NotificationChannel
from infrastructure.notifications.models import ChannelOutcome, SmsOptions
from infrastructure.notifications.providers.sms import (
    SmsProvider,
    normalize_phone_number,
)
from infrastructure.operations import OperationResult

logger = structlog.get_logger()


class SMSChannel(NotificationChannel):
    """SMS notification channel.

    Numbers are normalized to +<digits> and sent one by one through the
    provider chosen at startup; per-recipient results are aggregated.
    """

    def __init__(self, provider: SmsProvider):
        self._provider = provider
        logger.info("initialized_sms_channel", provider=provider.name)

    @property
    def channel_name(self) -> str:
        """Channel identifier."""
        return "sms"

    def send(self, payload: Any) -> ChannelOutcome:
        """Send one SMS to every recipient in the payload.

        Args:
            payload: SmsOptions or an equivalent dict.

        Returns:
            ChannelOutcome aggregating per-recipient results. Retryable only
            when no number was delivered and every failure was transient.
        """
        try:
            options = SmsOptions.model_validate(payload)
        except ValidationError as e:
            logger.warning("sms_payload_invalid", error_count=e.error_count())
            return ChannelOutcome.failure(f"Invalid SMS payload: {e.error_count()} validation error(s)")

        if not options.to or not options.message:
            logger.warning("sms_payload_invalid", has_to=bool(options.to))
            return ChannelOutcome.failure(
                "SMS payload must include 'to' and 'message' fields"
            )

        config = self._provider.check_configuration()
        if not config.is_success:
            logger.error(
                "sms_provider_not_configured",
                provider=self._provider.name,
                error=config.message,
            )
            return ChannelOutcome.failure(config.message, failure_count=len(options.to))

        message_ids: List[str] = []
        errors: List[str] = []
        all_failures_transient = True
        for number in options.to:
            result = self._provider.send_one(
                normalize_phone_number(number), options.message, options.from_number
            )
            if result.is_success:
                message_id = (result.data or {}).get("message_id")
                if message_id:
                    message_ids.append(message_id)
            else:
                errors.append(result.message)
                all_failures_transient = all_failures_transient and result.is_retryable

        success_count = len(options.to) - len(errors)
        logger.info(
            "sms_sent",
            provider=self._provider.name,
            success_count=success_count,
            failure_count=len(errors),
        )

        return ChannelOutcome(
            ok=not errors,
            skipped=self._provider.is_stub,
            success_count=success_count,
            failure_count=len(errors),
            error="; ".join(errors) if errors else None,
            message_ids=message_ids,
            retryable=bool(errors) and success_count == 0 and all_failures_transient,
        )

    def health_check(self) -> OperationResult:
        return self._provider.check_configuration()
