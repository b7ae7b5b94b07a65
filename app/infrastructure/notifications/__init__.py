"""Notification delivery infrastructure.

Channels adapt provider transports to a uniform ``send(payload) ->
ChannelOutcome`` contract:

    from infrastructure.notifications import PushChannel, FakePushProvider

    channel = PushChannel(FakePushProvider())
    outcome = channel.send({"tokens": ["tok1"], "title": "Hi"})
    assert outcome.ok
"""

from infrastructure.notifications.channels import (
    EmailChannel,
    NotificationChannel,
    PushChannel,
    SMSChannel,
)
from infrastructure.notifications.exceptions import (
    NotificationError,
    ProviderConfigurationError,
    RetryableDeliveryError,
    TemplateNotFoundError,
    UnknownChannelError,
)
from infrastructure.notifications.models import (
    ChannelName,
    ChannelOutcome,
    EmailOptions,
    EmailTemplateRef,
    PushOptions,
    SmsOptions,
)
from infrastructure.notifications.providers import (
    FakePushProvider,
    FirebasePushProvider,
    PushProvider,
    create_mail_transport,
    create_sms_provider,
    register_sms_provider,
)
from infrastructure.notifications.templates import (
    EmailTemplateRenderer,
    register_email_template,
)

__all__ = [
    "NotificationChannel",
    "EmailChannel",
    "PushChannel",
    "SMSChannel",
    "NotificationError",
    "ProviderConfigurationError",
    "RetryableDeliveryError",
    "TemplateNotFoundError",
    "UnknownChannelError",
    "ChannelName",
    "ChannelOutcome",
    "EmailOptions",
    "EmailTemplateRef",
    "PushOptions",
    "SmsOptions",
    "PushProvider",
    "FirebasePushProvider",
    "FakePushProvider",
    "create_mail_transport",
    "create_sms_provider",
    "register_sms_provider",
    "EmailTemplateRenderer",
    "register_email_template",
]
