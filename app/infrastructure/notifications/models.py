"""Channel payload and outcome models.

Platform-agnostic models shared by the email, push and SMS channels and by
the queue handlers that replay them.

Uses Pydantic BaseModel for:
- Coercing "one or many" recipient fields into lists
- Serializing payloads into queue jobs and restoring them in workers
- Keeping the internal retryable flag out of persisted outcomes
"""

import json
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ChannelName(str, Enum):
    """Delivery channels, also used as queue names."""

    EMAIL = "email"
    PUSH = "push"
    SMS = "sms"


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    return [str(v) for v in value if v is not None and str(v).strip()]


class ChannelOutcome(BaseModel):
    """Result of one channel delivery.

    Attributes:
        ok: Whether delivery fully succeeded.
        skipped: Whether there was nothing to send (or the channel is off).
        success_count: Recipients/tokens delivered.
        failure_count: Recipients/tokens that failed.
        error: Human-readable error, if any.
        message_ids: Provider message ids where known.
        retryable: Transport failure worth retrying. Never serialized.

    Example:
        outcome = ChannelOutcome.success(success_count=2, message_ids=["m1", "m2"])
    """

    ok: bool
    skipped: bool = False
    success_count: int = 0
    failure_count: int = 0
    error: Optional[str] = None
    message_ids: List[str] = Field(default_factory=list)
    retryable: bool = Field(default=False, exclude=True)

    @classmethod
    def success(
        cls, success_count: int = 1, message_ids: Optional[List[str]] = None
    ) -> "ChannelOutcome":
        return cls(ok=True, success_count=success_count, message_ids=message_ids or [])

    @classmethod
    def skipped_outcome(cls, reason: str, ok: bool = False) -> "ChannelOutcome":
        return cls(ok=ok, skipped=True, error=reason)

    @classmethod
    def failure(
        cls, error: str, failure_count: int = 1, retryable: bool = False
    ) -> "ChannelOutcome":
        return cls(
            ok=False, failure_count=failure_count, error=error, retryable=retryable
        )


class EmailTemplateRef(BaseModel):
    """Named email template to render.

    Attributes:
        id: Template id; "master" when omitted.
        locale: Locale for text direction and translated strings.
        context: Values for the template's placeholders.
    """

    model_config = ConfigDict(extra="ignore")

    id: str = "master"
    locale: Optional[str] = None
    context: Dict[str, Any] = Field(default_factory=dict)


class EmailOptions(BaseModel):
    """Email channel payload."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    to: List[str] = Field(default_factory=list)
    subject: Optional[str] = None
    text: Optional[str] = None
    html: Optional[str] = None
    from_address: Optional[str] = Field(default=None, alias="from")
    cc: List[str] = Field(default_factory=list)
    bcc: List[str] = Field(default_factory=list)
    reply_to: Optional[str] = None
    template: Optional[EmailTemplateRef] = None

    @field_validator("to", "cc", "bcc", mode="before")
    @classmethod
    def coerce_addresses(cls, v: Any) -> List[str]:
        return _as_list(v)


class PushOptions(BaseModel):
    """Push channel payload.

    ``data`` values are coerced to strings because FCM only accepts string
    data: strings pass through, None is dropped, anything else is JSON.
    """

    model_config = ConfigDict(extra="ignore")

    tokens: List[str] = Field(default_factory=list)
    title: Optional[str] = None
    body: Optional[str] = None
    data: Dict[str, str] = Field(default_factory=dict)
    image_url: Optional[str] = None

    @field_validator("tokens", mode="before")
    @classmethod
    def coerce_tokens(cls, v: Any) -> List[str]:
        return _as_list(v)

    @field_validator("data", mode="before")
    @classmethod
    def coerce_data(cls, v: Any) -> Dict[str, str]:
        if not v:
            return {}
        coerced = {}
        for key, value in dict(v).items():
            if value is None:
                continue
            coerced[str(key)] = value if isinstance(value, str) else json.dumps(value)
        return coerced


class SmsOptions(BaseModel):
    """SMS channel payload."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    to: List[str] = Field(default_factory=list)
    message: Optional[str] = None
    from_number: Optional[str] = Field(default=None, alias="from")

    @field_validator("to", mode="before")
    @classmethod
    def coerce_numbers(cls, v: Any) -> List[str]:
        return _as_list(v)
