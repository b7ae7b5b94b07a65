"""SMS providers and their registry.

Each provider implements ``send_one(to, message, from_number)`` for a single
normalized number. Providers are registered by name and one is selected at
startup from SMS_PROVIDER:

- stub: logs the message, nothing is sent
- twilio: Twilio Messages REST API
- vonage: Vonage (Nexmo) SMS REST API
"""

import re
import uuid
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional

import requests
import structlog

from infrastructure.configuration import SmsSettings
from infrastructure.notifications.exceptions import UnknownChannelError
from infrastructure.operations import OperationResult
from infrastructure.operations.classifiers import (
    classify_http_status,
    classify_request_exception,
)

logger = structlog.get_logger()

TWILIO_API_URL = "https://api.twilio.com/2010-04-01/Accounts/{account_sid}/Messages.json"
VONAGE_API_URL = "https://rest.nexmo.com/sms/json"

_NON_DIALABLE = re.compile(r"[^\d+]")


def normalize_phone_number(phone: str) -> str:
    """Normalize a phone number to +<digits>.

    Strips everything except digits and a leading "+", then prefixes "+" when
    missing. This is a formatting step, not validation.

    Example:
        >>> normalize_phone_number("(555) 010-2030")
        '+5550102030'
    """
    cleaned = _NON_DIALABLE.sub("", phone.strip())
    digits = cleaned.lstrip("+").replace("+", "")
    return f"+{digits}"


class SmsProvider(ABC):
    """Strategy interface for SMS backends."""

    name: str = "abstract"

    @property
    def is_stub(self) -> bool:
        return False

    @abstractmethod
    def check_configuration(self) -> OperationResult:
        """Return SUCCESS when the provider has what it needs to send."""

    @abstractmethod
    def send_one(
        self, to: str, message: str, from_number: Optional[str] = None
    ) -> OperationResult:
        """Send a message to one normalized number.

        Returns:
            OperationResult with ``message_id`` in data on success.
        """


class StubSmsProvider(SmsProvider):
    """Logs messages instead of sending them."""

    name = "stub"

    @property
    def is_stub(self) -> bool:
        return True

    def check_configuration(self) -> OperationResult:
        return OperationResult.success(message="Stub SMS provider needs no configuration")

    def send_one(
        self, to: str, message: str, from_number: Optional[str] = None
    ) -> OperationResult:
        logger.info("sms_stub_dispatch", to=to, from_number=from_number or "default")
        return OperationResult.success(
            data={"message_id": f"stub-{uuid.uuid4()}"}, message="SMS logged by stub"
        )


class TwilioSmsProvider(SmsProvider):
    """Twilio Messages API over requests."""

    name = "twilio"

    def __init__(self, settings: SmsSettings, session: Optional[requests.Session] = None):
        self.account_sid = settings.twilio_account_sid
        self.auth_token = settings.twilio_auth_token
        self.default_from = settings.from_number or settings.twilio_phone_number
        self.timeout = settings.http_timeout
        self.session = session or requests.Session()

    def check_configuration(self) -> OperationResult:
        if not self.account_sid or not self.auth_token or not self.default_from:
            return OperationResult.configuration_error(
                message="Twilio credentials are not configured",
                error_code="TWILIO_NOT_CONFIGURED",
            )
        return OperationResult.success(message="Twilio configured")

    def send_one(
        self, to: str, message: str, from_number: Optional[str] = None
    ) -> OperationResult:
        url = TWILIO_API_URL.format(account_sid=self.account_sid)
        form = {"To": to, "From": from_number or self.default_from, "Body": message}
        try:
            response = self.session.post(
                url,
                data=form,
                auth=(self.account_sid, self.auth_token),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            return classify_request_exception(e, provider="twilio")

        if response.status_code >= 400:
            detail = None
            try:
                detail = response.json().get("message")
            except ValueError:
                detail = response.text[:200] if response.text else None
            return classify_http_status(
                response.status_code,
                "twilio",
                detail=detail,
                retry_after_header=response.headers.get("Retry-After"),
            )

        # A 2xx means Twilio accepted the message; the body only adds the sid
        try:
            body = response.json()
        except ValueError:
            logger.warning("twilio_response_unreadable", status_code=response.status_code)
            body = None
        sid = body.get("sid") if isinstance(body, dict) else None
        return OperationResult.success(data={"message_id": sid}, message="SMS sent via Twilio")


class VonageSmsProvider(SmsProvider):
    """Vonage (Nexmo) SMS API over requests."""

    name = "vonage"

    # Vonage status codes that may succeed on retry (throttled, internal error)
    _RETRYABLE_STATUSES = frozenset({"1", "5"})

    def __init__(self, settings: SmsSettings, session: Optional[requests.Session] = None):
        self.api_key = settings.vonage_api_key
        self.api_secret = settings.vonage_api_secret
        self.default_from = settings.from_number or settings.vonage_from
        self.timeout = settings.http_timeout
        self.session = session or requests.Session()

    def check_configuration(self) -> OperationResult:
        if not self.api_key or not self.api_secret or not self.default_from:
            return OperationResult.configuration_error(
                message="Vonage credentials are not configured",
                error_code="VONAGE_NOT_CONFIGURED",
            )
        return OperationResult.success(message="Vonage configured")

    def send_one(
        self, to: str, message: str, from_number: Optional[str] = None
    ) -> OperationResult:
        form = {
            "api_key": self.api_key,
            "api_secret": self.api_secret,
            "from": from_number or self.default_from,
            # Vonage expects the number without the leading "+"
            "to": to.lstrip("+"),
            "text": message,
        }
        try:
            response = self.session.post(VONAGE_API_URL, data=form, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            return classify_request_exception(e, provider="vonage")

        try:
            body = response.json()
        except ValueError:
            body = None
        messages = body.get("messages") if isinstance(body, dict) else None
        if not isinstance(messages, list) or not messages or not isinstance(messages[0], dict):
            logger.warning("vonage_response_unreadable", status_code=response.status_code)
            return OperationResult.transient_error(
                message="vonage: unreadable response", error_code="VONAGE_INVALID_RESPONSE"
            )
        first = messages[0]
        status = str(first.get("status", ""))
        if status == "0":
            return OperationResult.success(
                data={"message_id": first.get("message-id")},
                message="SMS sent via Vonage",
            )

        error_text = first.get("error-text") or f"status {status}"
        if status in self._RETRYABLE_STATUSES:
            return OperationResult.transient_error(
                message=f"vonage: {error_text}", error_code=f"VONAGE_{status}"
            )
        return OperationResult.permanent_error(
            message=f"vonage: {error_text}", error_code=f"VONAGE_{status or 'UNKNOWN'}"
        )


SmsProviderFactory = Callable[[SmsSettings], SmsProvider]

_SMS_PROVIDERS: Dict[str, SmsProviderFactory] = {
    "stub": lambda settings: StubSmsProvider(),
    "twilio": TwilioSmsProvider,
    "vonage": VonageSmsProvider,
}


def register_sms_provider(name: str, factory: SmsProviderFactory) -> None:
    """Register an SMS provider factory under a name."""
    _SMS_PROVIDERS[name.lower()] = factory
    logger.info("registered_sms_provider", provider=name.lower())


def get_registered_sms_providers() -> list[str]:
    return sorted(_SMS_PROVIDERS)


def create_sms_provider(settings: SmsSettings) -> SmsProvider:
    """Build the provider selected by SMS_PROVIDER.

    Raises:
        UnknownChannelError: If no provider is registered under that name.
    """
    name = (settings.provider or "stub").lower()
    factory = _SMS_PROVIDERS.get(name)
    if factory is None:
        raise UnknownChannelError(
            f"Unknown SMS provider '{name}'. Registered: {get_registered_sms_providers()}"
        )
    provider = factory(settings)
    logger.info("sms_provider_selected", provider=provider.name)
    return provider
