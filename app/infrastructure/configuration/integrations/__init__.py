"""Integration settings __init__ - exports all provider settings."""

from infrastructure.configuration.integrations.firebase import FirebaseSettings
from infrastructure.configuration.integrations.mail import MailSettings
from infrastructure.configuration.integrations.sms import SmsSettings

__all__ = [
    "FirebaseSettings",
    "MailSettings",
    "SmsSettings",
]
