"""
Dependency injection services.

Provides application-scoped provider functions for the notification stack.
"""

from infrastructure.services.providers import (
    get_email_channel,
    get_email_renderer,
    get_mail_transport,
    get_notification_center,
    get_notification_service,
    get_notification_store,
    get_push_channel,
    get_queue_manager,
    get_recipient_directory,
    get_settings,
    get_sms_channel,
    get_translator,
)

__all__ = [
    "get_settings",
    "get_translator",
    "get_email_renderer",
    "get_mail_transport",
    "get_email_channel",
    "get_push_channel",
    "get_sms_channel",
    "get_queue_manager",
    "get_notification_store",
    "get_recipient_directory",
    "get_notification_center",
    "get_notification_service",
]
