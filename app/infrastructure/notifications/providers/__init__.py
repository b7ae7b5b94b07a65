"""Delivery providers behind the email, push and SMS channels."""

from infrastructure.notifications.providers.mail import (
    JsonTransport,
    MailMessage,
    MailTransport,
    SmtpTransport,
    StubTransport,
    create_mail_transport,
)
from infrastructure.notifications.providers.push import (
    FakePushProvider,
    FirebasePushProvider,
    PushProvider,
)
from infrastructure.notifications.providers.sms import (
    SmsProvider,
    StubSmsProvider,
    TwilioSmsProvider,
    VonageSmsProvider,
    create_sms_provider,
    get_registered_sms_providers,
    normalize_phone_number,
    register_sms_provider,
)

__all__ = [
    "MailMessage",
    "MailTransport",
    "SmtpTransport",
    "JsonTransport",
    "StubTransport",
    "create_mail_transport",
    "PushProvider",
    "FirebasePushProvider",
    "FakePushProvider",
    "SmsProvider",
    "StubSmsProvider",
    "TwilioSmsProvider",
    "VonageSmsProvider",
    "create_sms_provider",
    "get_registered_sms_providers",
    "normalize_phone_number",
    "register_sms_provider",
]
