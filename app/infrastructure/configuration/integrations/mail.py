"""Mail transport settings."""

from typing import Literal

from pydantic import Field

from infrastructure.configuration.base import IntegrationSettings


class MailSettings(IntegrationSettings):
    """Outgoing mail configuration.

    Environment Variables:
        MAIL_TRANSPORT: Transport type - 'smtp', 'json' or 'stub' (default: json)
        MAIL_FROM: Default sender address
        SMTP_HOST: SMTP server host (required for smtp transport)
        SMTP_PORT: SMTP server port (required for smtp transport)
        SMTP_SECURE: Use implicit TLS (SMTP_SSL) instead of STARTTLS
        SMTP_USER: SMTP username
        SMTP_PASSWORD: SMTP password
        SMTP_TIMEOUT: Socket timeout in seconds (default: 30)

    Transports:
        - smtp: Deliver through an SMTP relay
        - json: Serialize the message and log it (development)
        - stub: Mail delivery disabled, email channel reports skipped
    """

    transport: Literal["smtp", "json", "stub"] = Field(
        default="json", alias="MAIL_TRANSPORT"
    )
    from_address: str = Field(default="no-reply@localhost", alias="MAIL_FROM")
    smtp_host: str | None = Field(default=None, alias="SMTP_HOST")
    smtp_port: int | None = Field(default=None, alias="SMTP_PORT")
    smtp_secure: bool = Field(default=False, alias="SMTP_SECURE")
    smtp_user: str | None = Field(default=None, alias="SMTP_USER")
    smtp_password: str | None = Field(default=None, alias="SMTP_PASSWORD")
    smtp_timeout: int = Field(default=30, alias="SMTP_TIMEOUT")

    @property
    def is_enabled(self) -> bool:
        """Mail is disabled only by the stub transport."""
        return self.transport != "stub"
