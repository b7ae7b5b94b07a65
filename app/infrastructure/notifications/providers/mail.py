"""Mail transports.

A transport delivers one fully built message and reports an OperationResult:
- SmtpTransport: smtplib with STARTTLS, or implicit TLS when secure
- JsonTransport: serializes the message and logs it (development)
- StubTransport: mail disabled; the email channel reports skipped
"""

import json
import smtplib
import uuid
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid
from typing import List, Optional

import structlog

from infrastructure.configuration import MailSettings
from infrastructure.notifications.exceptions import UnknownChannelError
from infrastructure.operations import OperationResult

logger = structlog.get_logger()


@dataclass
class MailMessage:
    """A message ready for a transport."""

    from_address: str
    to: List[str]
    subject: str
    text: Optional[str] = None
    html: Optional[str] = None
    cc: List[str] = field(default_factory=list)
    bcc: List[str] = field(default_factory=list)
    reply_to: Optional[str] = None

    @property
    def all_recipients(self) -> List[str]:
        return [*self.to, *self.cc, *self.bcc]

    def to_mime(self, message_id: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = self.subject
        msg["From"] = self.from_address
        msg["To"] = ", ".join(self.to)
        msg["Message-ID"] = message_id
        if self.cc:
            msg["Cc"] = ", ".join(self.cc)
        if self.reply_to:
            msg["Reply-To"] = self.reply_to
        # Plain part first; clients prefer the last alternative they support
        if self.text:
            msg.attach(MIMEText(self.text, "plain", "utf-8"))
        if self.html:
            msg.attach(MIMEText(self.html, "html", "utf-8"))
        return msg


class MailTransport(ABC):
    """Abstract mail transport."""

    name: str = "abstract"

    @property
    def is_enabled(self) -> bool:
        return True

    @abstractmethod
    def send(self, message: MailMessage) -> OperationResult:
        """Deliver a message.

        Returns:
            OperationResult with ``message_id`` in data on success.
        """


class SmtpTransport(MailTransport):
    """Delivers mail through an SMTP relay."""

    name = "smtp"

    def __init__(self, settings: MailSettings):
        self.host = settings.smtp_host
        self.port = settings.smtp_port
        self.secure = settings.smtp_secure
        self.user = settings.smtp_user
        self.password = settings.smtp_password
        self.timeout = settings.smtp_timeout

    def _connect(self) -> smtplib.SMTP:
        if self.secure:
            return smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
        server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        server.ehlo()
        if server.has_extn("starttls"):
            server.starttls()
            server.ehlo()
        return server

    def send(self, message: MailMessage) -> OperationResult:
        if not self.host or not self.port:
            logger.error("smtp_not_configured")
            return OperationResult.configuration_error(
                message="SMTP transport selected but SMTP_HOST/SMTP_PORT are not configured",
                error_code="SMTP_NOT_CONFIGURED",
            )

        message_id = make_msgid()
        mime = message.to_mime(message_id)
        try:
            with self._connect() as server:
                if self.user and self.password:
                    server.login(self.user, self.password)
                server.sendmail(
                    message.from_address, message.all_recipients, mime.as_string()
                )
        except smtplib.SMTPAuthenticationError as e:
            logger.error("smtp_authentication_failed", host=self.host, error=str(e))
            return OperationResult.configuration_error(
                message=f"SMTP authentication failed: {e}",
                error_code="SMTP_AUTH_FAILED",
            )
        except smtplib.SMTPRecipientsRefused as e:
            logger.warning("smtp_recipients_refused", recipients=list(e.recipients))
            return OperationResult.permanent_error(
                message="All recipients were refused by the SMTP server",
                error_code="SMTP_RECIPIENTS_REFUSED",
            )
        except (smtplib.SMTPException, OSError) as e:
            logger.warning("smtp_send_failed", host=self.host, error=str(e))
            return OperationResult.transient_error(
                message=f"SMTP error: {e}",
                error_code="SMTP_ERROR",
            )

        logger.info(
            "smtp_message_sent",
            message_id=message_id,
            recipient_count=len(message.all_recipients),
        )
        return OperationResult.success(
            message="Email sent via SMTP", data={"message_id": message_id}
        )


class JsonTransport(MailTransport):
    """Serializes the message to JSON and logs it instead of sending."""

    name = "json"

    def send(self, message: MailMessage) -> OperationResult:
        message_id = f"<{uuid.uuid4()}@json-transport>"
        serialized = json.dumps({"message_id": message_id, **asdict(message)})
        logger.debug("mail_dispatched", transport=self.name, message=serialized)
        return OperationResult.success(
            message="Email serialized by JSON transport",
            data={"message_id": message_id, "message": serialized},
        )


class StubTransport(MailTransport):
    """Mail delivery disabled."""

    name = "stub"

    @property
    def is_enabled(self) -> bool:
        return False

    def send(self, message: MailMessage) -> OperationResult:
        return OperationResult.configuration_error(
            message="Mail transport is disabled", error_code="MAIL_DISABLED"
        )


def create_mail_transport(settings: MailSettings) -> MailTransport:
    """Build the transport selected by MAIL_TRANSPORT.

    Raises:
        UnknownChannelError: If the transport name is not known.
    """
    if settings.transport == "smtp":
        if not settings.smtp_user or not settings.smtp_password:
            logger.warning("smtp_credentials_missing", host=settings.smtp_host)
        return SmtpTransport(settings)
    if settings.transport == "json":
        return JsonTransport()
    if settings.transport == "stub":
        return StubTransport()
    raise UnknownChannelError(f"Unknown mail transport: {settings.transport}")
