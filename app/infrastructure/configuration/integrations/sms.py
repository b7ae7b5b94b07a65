"""SMS provider settings."""

from pydantic import Field

from infrastructure.configuration.base import IntegrationSettings


class SmsSettings(IntegrationSettings):
    """SMS provider configuration.

    Environment Variables:
        SMS_PROVIDER: Provider name - 'stub', 'twilio' or 'vonage' (default: stub)
        SMS_FROM: Default sender, overrides the provider-specific sender
        TWILIO_ACCOUNT_SID: Twilio account SID
        TWILIO_AUTH_TOKEN: Twilio auth token
        TWILIO_PHONE_NUMBER: Twilio sender number
        VONAGE_API_KEY: Vonage API key
        VONAGE_API_SECRET: Vonage API secret
        VONAGE_FROM: Vonage sender id
        SMS_HTTP_TIMEOUT: Provider HTTP timeout in seconds (default: 10)

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()
        if settings.sms.provider == "twilio":
            sid = settings.sms.twilio_account_sid
        ```
    """

    provider: str = Field(default="stub", alias="SMS_PROVIDER")
    from_number: str | None = Field(default=None, alias="SMS_FROM")
    twilio_account_sid: str | None = Field(default=None, alias="TWILIO_ACCOUNT_SID")
    twilio_auth_token: str | None = Field(default=None, alias="TWILIO_AUTH_TOKEN")
    twilio_phone_number: str | None = Field(default=None, alias="TWILIO_PHONE_NUMBER")
    vonage_api_key: str | None = Field(default=None, alias="VONAGE_API_KEY")
    vonage_api_secret: str | None = Field(default=None, alias="VONAGE_API_SECRET")
    vonage_from: str | None = Field(default=None, alias="VONAGE_FROM")
    http_timeout: int = Field(default=10, alias="SMS_HTTP_TIMEOUT")
