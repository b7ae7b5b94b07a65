"""Infrastructure configuration module - public API.

Centralized configuration using Pydantic BaseSettings with domain-based
organization.

Exports:
    Settings: Main settings class (for testing/overrides)
    MailSettings, SmsSettings, FirebaseSettings: Provider settings
    QueueSettings, I18nSettings: Infrastructure settings

Example:
    ```python
    from infrastructure.services import get_settings

    settings = get_settings()

    if settings.mail.is_enabled:
        sender = settings.mail.from_address
    ```
"""

from infrastructure.configuration.settings import Settings
from infrastructure.configuration.integrations import (
    FirebaseSettings,
    MailSettings,
    SmsSettings,
)
from infrastructure.configuration.infrastructure import I18nSettings, QueueSettings

__all__ = [
    "Settings",
    "MailSettings",
    "SmsSettings",
    "FirebaseSettings",
    "QueueSettings",
    "I18nSettings",
]
