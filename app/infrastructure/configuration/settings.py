"""Notification Center configuration settings - main aggregator."""

from pydantic_settings import BaseSettings, SettingsConfigDict

# Integration settings
from infrastructure.configuration.integrations import (
    FirebaseSettings,
    MailSettings,
    SmsSettings,
)

# Infrastructure settings
from infrastructure.configuration.infrastructure import (
    I18nSettings,
    QueueSettings,
)


class Settings(BaseSettings):
    """Notification Center configuration settings - main aggregator.

    Aggregates all domain-specific settings into a single configuration object.

    - **Integrations**: Delivery providers (mail, SMS, Firebase)
    - **Infrastructure**: Queues and translation loading

    Environment Variables:
        APP_NAME: Brand name used in email layouts
        ENVIRONMENT: Deployment environment (production enables JSON logs)
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        transport = settings.mail.transport
        push_workers = settings.queue.push_concurrency
        ```
    """

    APP_NAME: str = "Notification Center"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Integration settings
    mail: MailSettings
    sms: SmsSettings
    firebase: FirebaseSettings

    # Infrastructure settings
    queue: QueueSettings
    i18n: I18nSettings

    @property
    def is_production(self) -> bool:
        """Check if the application is running in production."""
        return self.ENVIRONMENT.lower() == "production"

    def __init__(self, **kwargs):
        """Initialize Settings with automatic subsettings instantiation.

        Args:
            **kwargs: Optional overrides for specific settings sections.
        """
        settings_map = {
            "mail": MailSettings,
            "sms": SmsSettings,
            "firebase": FirebaseSettings,
            "queue": QueueSettings,
            "i18n": I18nSettings,
        }

        for setting_name, setting_class in settings_map.items():
            if setting_name not in kwargs:
                kwargs[setting_name] = setting_class()

        super().__init__(**kwargs)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )
