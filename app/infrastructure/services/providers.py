"""
Factory functions for dependency injection.

Provides application-scoped singleton providers for the notification stack.
"""

from functools import lru_cache

from infrastructure.configuration import Settings
from infrastructure.i18n import Translator, YAMLTranslationLoader
from infrastructure.notifications import (
    EmailChannel,
    EmailTemplateRenderer,
    FirebasePushProvider,
    PushChannel,
    SMSChannel,
    create_mail_transport,
    create_sms_provider,
)
from infrastructure.notifications.providers import MailTransport
from infrastructure.queue import QueueManager, create_queue_manager
from modules.notifications.center import NotificationCenter
from modules.notifications.service import (
    InMemoryRecipientDirectory,
    NotificationService,
)
from modules.notifications.store import InMemoryNotificationStore, NotificationStore


@lru_cache
def get_settings() -> Settings:
    """
    Get application-scoped settings singleton.

    This is the single source of truth for settings across the entire application.
    The @lru_cache decorator ensures only ONE instance is created per process,
    even if called from multiple packages.

    Returns:
        Settings: Cached settings instance loaded from environment.
    """
    return Settings()


@lru_cache
def get_translator() -> Translator:
    """
    Get application-scoped translator singleton with every locale file loaded.

    Returns:
        Translator: Translator over the YAML files in settings.i18n.translations_dir.
    """
    settings = get_settings()
    translator = Translator(
        loader=YAMLTranslationLoader(settings.i18n.translations_dir),
        default_locale=settings.i18n.default_locale,
    )
    translator.load_all()
    return translator


@lru_cache
def get_email_renderer() -> EmailTemplateRenderer:
    """Get the shared email template renderer, branded with APP_NAME."""
    return EmailTemplateRenderer(brand=get_settings().APP_NAME)


@lru_cache
def get_mail_transport() -> MailTransport:
    """Get the mail transport selected by MAIL_TRANSPORT."""
    return create_mail_transport(get_settings().mail)


@lru_cache
def get_email_channel() -> EmailChannel:
    settings = get_settings()
    return EmailChannel(
        transport=get_mail_transport(),
        renderer=get_email_renderer(),
        default_from=settings.mail.from_address,
    )


@lru_cache
def get_push_channel() -> PushChannel:
    return PushChannel(FirebasePushProvider(get_settings().firebase))


@lru_cache
def get_sms_channel() -> SMSChannel:
    """
    Get the SMS channel over the provider selected by SMS_PROVIDER.

    The provider is chosen once per process.

    Raises:
        UnknownChannelError: If SMS_PROVIDER names no registered provider.
    """
    return SMSChannel(create_sms_provider(get_settings().sms))


@lru_cache
def get_queue_manager() -> QueueManager:
    """
    Get the application-scoped, initialized queue manager.

    Call ``get_queue_manager().shutdown()`` on application exit.

    Returns:
        QueueManager: Manager with the email, push and sms queues.
    """
    manager = create_queue_manager(get_settings().queue)
    manager.init()
    return manager


@lru_cache
def get_notification_store() -> NotificationStore:
    """
    Get the notification store.

    The in-memory store is the default; applications with a database
    replace this provider with their own NotificationStore.
    """
    return InMemoryNotificationStore()


@lru_cache
def get_recipient_directory() -> InMemoryRecipientDirectory:
    """Get the recipient directory (in-memory unless replaced by the application)."""
    return InMemoryRecipientDirectory()


@lru_cache
def get_notification_center() -> NotificationCenter:
    """
    Get the application-scoped NotificationCenter.

    Usage:
        center = get_notification_center()
        center.register_queue_handlers()  # start queue workers once at startup
        summary = center.dispatch(intent)
    """
    settings = get_settings()
    return NotificationCenter(
        translator=get_translator(),
        email_channel=get_email_channel(),
        push_channel=get_push_channel(),
        sms_channel=get_sms_channel(),
        queue_manager=get_queue_manager(),
        store=get_notification_store(),
        default_locale=settings.i18n.default_locale,
    )


@lru_cache
def get_notification_service() -> NotificationService:
    """Get the application-scoped NotificationService."""
    return NotificationService(
        center=get_notification_center(),
        store=get_notification_store(),
        directory=get_recipient_directory(),
        translator=get_translator(),
        renderer=get_email_renderer(),
    )
