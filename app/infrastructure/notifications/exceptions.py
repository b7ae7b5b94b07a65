"""Exceptions raised by the notification channels and their providers.

Channels never let these escape ``send()``; they are converted into a
failed ChannelOutcome. Queue handlers raise RetryableDeliveryError so the
queue retries the job with backoff.
"""

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from infrastructure.notifications.models import ChannelOutcome


class NotificationError(Exception):
    """Base exception for notification delivery errors."""

    pass


class TemplateNotFoundError(NotificationError):
    """Raised when a named email template is not registered.

    Example:
        >>> render_email_template("missing", {})
        Traceback (most recent call last):
        ...
        TemplateNotFoundError: Email template 'missing' not found
    """

    def __init__(self, template_id: str):
        super().__init__(f"Email template '{template_id}' not found")
        self.template_id = template_id


class ProviderConfigurationError(NotificationError):
    """Raised when a selected provider is missing credentials or settings."""

    pass


class UnknownChannelError(NotificationError):
    """Raised when a channel or SMS provider name is not registered."""

    pass


class RetryableDeliveryError(NotificationError):
    """Raised by queue handlers when a transport failure should be retried.

    Attributes:
        outcome: The failed ChannelOutcome that triggered the retry.
    """

    def __init__(self, message: str, outcome: Optional["ChannelOutcome"] = None):
        super().__init__(message)
        self.outcome = outcome
