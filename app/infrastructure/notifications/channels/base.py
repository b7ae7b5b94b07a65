"""Notification channel abstract base class.

All channel implementations (Email, Push, SMS) must implement this interface.
"""

from abc import ABC, abstractmethod
from typing import Any, List, Optional

from infrastructure.notifications.models import ChannelOutcome
from infrastructure.operations import OperationResult


class NotificationChannel(ABC):
    """Abstract base class for notification channels.

    Each channel adapts one provider-specific transport to a uniform
    contract:
    - EmailChannel: SMTP / JSON / stub mail transports
    - PushChannel: Firebase Cloud Messaging multicast
    - SMSChannel: Twilio / Vonage / stub SMS providers

    ``send`` must never raise for provider problems. Misconfiguration,
    validation failures and transport errors are returned as a
    ChannelOutcome with ``ok=False`` and an ``error``.

    Example Implementation:
        class PushChannel(NotificationChannel):

            @property
            def channel_name(self) -> str:
                return "push"

            def send(self, payload) -> ChannelOutcome:
                result = self._provider.send_multicast(...)
                return self.outcome_from_result(result)
    """

    @property
    @abstractmethod
    def channel_name(self) -> str:
        """Channel identifier (email, push, sms).

        Returns:
            Channel name string for routing, queue names and logging
        """
        pass

    @abstractmethod
    def send(self, payload: Any) -> ChannelOutcome:
        """Deliver one payload.

        Args:
            payload: Channel options model or an equivalent dict

        Returns:
            ChannelOutcome describing the delivery
        """
        pass

    @abstractmethod
    def health_check(self) -> OperationResult:
        """Check channel health (provider selected and configured).

        Returns:
            OperationResult indicating channel health
        """
        pass

    @staticmethod
    def outcome_from_result(
        result: OperationResult,
        success_count: int = 1,
        message_ids: Optional[List[str]] = None,
    ) -> ChannelOutcome:
        """Fold a single provider OperationResult into a ChannelOutcome."""
        if result.is_success:
            return ChannelOutcome.success(
                success_count=success_count, message_ids=message_ids or []
            )
        return ChannelOutcome.failure(
            result.message, failure_count=success_count, retryable=result.is_retryable
        )
