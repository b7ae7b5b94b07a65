"""Notification channels."""

from infrastructure.notifications.channels.base import NotificationChannel
from infrastructure.notifications.channels.email import EmailChannel
from infrastructure.notifications.channels.push import PushChannel
from infrastructure.notifications.channels.sms import SMSChannel

__all__ = ["NotificationChannel", "EmailChannel", "PushChannel", "SMSChannel"]
