"""Email channel over a pluggable mail transport."""

from typing import Any, Optional

import structlog
from pydantic import ValidationError

from infrastructure.notifications.channels.base import NotificationChannel
from infrastructure.notifications.exceptions import TemplateNotFoundError
from infrastructure.notifications.models import ChannelOutcome, EmailOptions
from infrastructure.notifications.providers.mail import MailMessage, MailTransport
from infrastructure.notifications.templates import EmailTemplateRenderer
from infrastructure.operations import OperationResult

logger = structlog.get_logger()


class EmailChannel(NotificationChannel):
    """Email notification channel.

    Renders the optional named template, then hands a MailMessage to the
    configured transport. A disabled (stub) transport yields a skipped
    outcome; an unknown template id is a hard failure.
    """

    def __init__(
        self,
        transport: MailTransport,
        renderer: EmailTemplateRenderer,
        default_from: str,
    ):
        self._transport = transport
        self._renderer = renderer
        self._default_from = default_from
        logger.info("initialized_email_channel", transport=transport.name)

    @property
    def channel_name(self) -> str:
        """Channel identifier."""
        return "email"

    @property
    def is_enabled(self) -> bool:
        return self._transport.is_enabled

    def send(self, payload: Any) -> ChannelOutcome:
        """Send one email.

        Args:
            payload: EmailOptions or an equivalent dict.

        Returns:
            ChannelOutcome; retryable when the transport failed transiently.
        """
        try:
            options = EmailOptions.model_validate(payload)
        except ValidationError as e:
            logger.warning("email_payload_invalid", error_count=e.error_count())
            return ChannelOutcome.failure(f"Invalid email payload: {e.error_count()} validation error(s)")

        if not self._transport.is_enabled:
            logger.debug("email_channel_disabled", transport=self._transport.name)
            return ChannelOutcome.skipped_outcome("Mail transport is disabled")

        if not options.to:
            logger.warning("email_payload_invalid", reason="missing_recipient")
            return ChannelOutcome.failure("Email payload must include a 'to' recipient")

        subject: Optional[str] = options.subject
        text: Optional[str] = options.text
        html: Optional[str] = options.html

        if options.template is not None:
            try:
                rendered = self._renderer.render(
                    template_id=options.template.id,
                    locale=options.template.locale,
                    context=options.template.context,
                    fallback_title=options.subject,
                    fallback_message=options.text,
                    subject_override=options.subject,
                )
            except TemplateNotFoundError as e:
                logger.error("email_template_not_found", template_id=e.template_id)
                return ChannelOutcome.failure(str(e), failure_count=len(options.to))
            subject = rendered.subject or subject
            html = rendered.html or html
            text = rendered.text or text

        if not text and not html:
            return ChannelOutcome.failure("Email payload must include text, html or a template")

        message = MailMessage(
            from_address=options.from_address or self._default_from,
            to=options.to,
            subject=subject or "",
            text=text,
            html=html,
            cc=options.cc,
            bcc=options.bcc,
            reply_to=options.reply_to,
        )
        result = self._transport.send(message)

        if result.is_success:
            message_id = (result.data or {}).get("message_id")
            logger.info(
                "email_sent",
                transport=self._transport.name,
                recipient_count=len(options.to),
                message_id=message_id,
            )
            return ChannelOutcome.success(
                success_count=len(options.to),
                message_ids=[message_id] if message_id else [],
            )

        log = logger.warning if result.is_retryable else logger.error
        log(
            "email_send_failed",
            transport=self._transport.name,
            error=result.message,
            error_code=result.error_code,
        )
        return self.outcome_from_result(result, success_count=len(options.to))

    def health_check(self) -> OperationResult:
        if not self._transport.is_enabled:
            return OperationResult.configuration_error(
                message="Mail transport is disabled", error_code="MAIL_DISABLED"
            )
        return OperationResult.success(
            message="Mail transport ready", data={"transport": self._transport.name}
        )
