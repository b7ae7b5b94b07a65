"""Push channel over a multicast push provider."""

from typing import Any

import structlog
from pydantic import ValidationError

from infrastructure.notifications.channels.base import NotificationChannel
from infrastructure.notifications.models import ChannelOutcome, PushOptions
from infrastructure.notifications.providers.push import PushProvider
from infrastructure.operations import OperationResult, OperationStatus

logger = structlog.get_logger()


class PushChannel(NotificationChannel):
    """Push notification channel.

    An empty token list short-circuits to ``skipped`` without calling the
    provider, as does an unconfigured provider. Partial multicast failures
    are reported through the aggregate counts.
    """

    def __init__(self, provider: PushProvider):
        self._provider = provider
        logger.info("initialized_push_channel", provider=provider.name)

    @property
    def channel_name(self) -> str:
        """Channel identifier."""
        return "push"

    def send(self, payload: Any) -> ChannelOutcome:
        """Send one push multicast.

        Args:
            payload: PushOptions or an equivalent dict.

        Returns:
            ChannelOutcome with ``ok = failure_count == 0``.
        """
        try:
            options = PushOptions.model_validate(payload)
        except ValidationError as e:
            logger.warning("push_payload_invalid", error_count=e.error_count())
            return ChannelOutcome.failure(f"Invalid push payload: {e.error_count()} validation error(s)")

        if not options.tokens:
            logger.debug("push_skipped", reason="no_tokens")
            return ChannelOutcome.skipped_outcome("No push tokens provided")

        if not self._provider.is_configured:
            logger.warning("push_skipped", reason="provider_not_configured")
            return ChannelOutcome.skipped_outcome("Push provider is not configured")

        result = self._provider.send_multicast(
            tokens=options.tokens,
            title=options.title,
            body=options.body,
            data=options.data,
            image_url=options.image_url,
        )

        data = result.data or {}
        if "success_count" not in data:
            # The request itself failed; every token counts as failed
            logger.error(
                "push_send_failed",
                provider=self._provider.name,
                error=result.message,
                error_code=result.error_code,
            )
            return self.outcome_from_result(result, success_count=len(options.tokens))

        success_count = data["success_count"]
        failure_count = data["failure_count"]
        error = None
        if failure_count:
            error = f"{failure_count} of {len(options.tokens)} push tokens failed"

        logger.info(
            "push_sent",
            provider=self._provider.name,
            success_count=success_count,
            failure_count=failure_count,
        )
        return ChannelOutcome(
            ok=failure_count == 0,
            success_count=success_count,
            failure_count=failure_count,
            error=error,
            message_ids=data.get("message_ids", []),
        )

    def health_check(self) -> OperationResult:
        if not self._provider.is_configured:
            return OperationResult.error(
                OperationStatus.CONFIGURATION_ERROR,
                "Push provider is not configured",
                error_code="PUSH_NOT_CONFIGURED",
            )
        return OperationResult.success(
            message="Push provider ready", data={"provider": self._provider.name}
        )
