"""Notification dispatch models.

Pydantic models for:
- NotificationIntent: what to send, to whom and through which channels
- DispatchSummary: what happened on each channel
- NotificationRecord / StoredPayload: the persisted, re-translatable record
- RecipientProfile: recipient data supplied by the surrounding application
- NotificationData / SendNotificationResult: type-driven sends
- LocalizedNotification: a stored record rendered for a reader's locale
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from infrastructure.i18n import normalize_locale
from infrastructure.notifications import (
    ChannelOutcome,
    EmailOptions,
    PushOptions,
    SmsOptions,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LocalizedVariant(BaseModel):
    """Per-locale override of an intent's content."""

    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    message: Optional[str] = None
    email: Optional[EmailOptions] = None
    push: Optional[PushOptions] = None


class QueueOptions(BaseModel):
    """Queue placement for queued dispatches.

    Attributes:
        delay: Milliseconds before the jobs become available.
        priority: Lower runs first.
    """

    delay: int = Field(default=0, ge=0)
    priority: int = 0


class NotificationIntent(BaseModel):
    """An abstract "notify this recipient" request.

    ``title`` and ``message`` are literal text unless ``title_is_key`` or
    ``message_is_key`` mark them as translation keys.
    ``variables`` are interpolated into the resolved strings.

    Example:
        intent = NotificationIntent(
            title="Welcome {{name}}",
            message="Hi {{name}}",
            variables={"name": "Ada"},
            push={"tokens": ["device-token"]},
            notifiable_id="42",
        )
    """

    model_config = ConfigDict(extra="ignore")

    title: str = ""
    message: str = ""
    title_is_key: bool = False
    message_is_key: bool = False
    default_locale: Optional[str] = None
    target_locale: Optional[str] = None
    localized_content: Dict[str, LocalizedVariant] = Field(default_factory=dict)
    variables: Dict[str, Any] = Field(default_factory=dict)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    email: Optional[EmailOptions] = None
    push: Optional[PushOptions] = None
    sms: Optional[SmsOptions] = None
    default_push_tokens: List[str] = Field(default_factory=list)

    notifiable_type: Optional[str] = None
    notifiable_id: Optional[str] = None
    notification_type: Optional[str] = None

    persist: Optional[bool] = None
    use_queue: bool = False
    mark_as_read: bool = False
    queue_options: QueueOptions = Field(default_factory=QueueOptions)

    @field_validator("notifiable_id", mode="before")
    @classmethod
    def stringify_notifiable_id(cls, v: Any) -> Optional[str]:
        return None if v is None else str(v)

    @field_validator("default_push_tokens", mode="before")
    @classmethod
    def coerce_tokens(cls, v: Any) -> List[str]:
        if v is None:
            return []
        if isinstance(v, str):
            return [v] if v.strip() else []
        return [str(t) for t in v if t]

    @field_validator("localized_content", mode="before")
    @classmethod
    def normalize_locale_keys(cls, v: Any) -> Dict[str, Any]:
        if not v:
            return {}
        return {normalize_locale(k): value for k, value in dict(v).items() if k}

    @property
    def should_persist(self) -> bool:
        if self.persist is False:
            return False
        return self.notifiable_type is not None and self.notifiable_id is not None


class StoredPayload(BaseModel):
    """The ``data`` column of a persisted notification."""

    model_config = ConfigDict(extra="ignore")

    locale: str = "en"
    default_locale: str = "en"
    title: str = ""
    message: str = ""
    title_is_key: Optional[bool] = None
    message_is_key: Optional[bool] = None
    title_translations: Dict[str, str] = Field(default_factory=dict)
    message_translations: Dict[str, str] = Field(default_factory=dict)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    channels: Dict[str, ChannelOutcome] = Field(default_factory=dict)


class NotificationRecord(BaseModel):
    """A persisted notification.

    ``read_at`` is set once; ``deleted_at`` marks a soft delete and is never
    cleared.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    type: str = "notification"
    notifiable_type: str
    notifiable_id: str
    data: StoredPayload = Field(default_factory=StoredPayload)
    read_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def is_read(self) -> bool:
        return self.read_at is not None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class QueuedJobs(BaseModel):
    """Job ids of a queued dispatch, per channel."""

    email: Optional[str] = None
    push: Optional[str] = None
    sms: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not (self.email or self.push or self.sms)


class DispatchSummary(BaseModel):
    """What a dispatch did.

    Channel outcomes are absent for channels the intent did not request and
    for queued dispatches (whose outcomes are back-filled into the record).
    """

    persisted: Optional[NotificationRecord] = None
    email: Optional[ChannelOutcome] = None
    push: Optional[ChannelOutcome] = None
    sms: Optional[ChannelOutcome] = None
    queued: Optional[QueuedJobs] = None
    locale: Optional[str] = None


class RecipientProfile(BaseModel):
    """Recipient data supplied by the surrounding application."""

    id: str
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    locale: Optional[str] = None
    device_tokens: List[str] = Field(default_factory=list)
    notifications_enabled: bool = True

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, v: Any) -> str:
        return str(v)

    @field_validator("device_tokens", mode="before")
    @classmethod
    def coerce_tokens(cls, v: Any) -> List[str]:
        if v is None:
            return []
        if isinstance(v, str):
            return [v] if v.strip() else []
        return [str(t) for t in v if t]


class NotificationData(BaseModel):
    """A notification built from a registered type: keys, not resolved text."""

    type: str
    title: str
    message: str
    variables: Dict[str, Any] = Field(default_factory=dict)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    action_url: Optional[str] = None
    image_url: Optional[str] = None
    email_subject_key: Optional[str] = None
    email_template_id: Optional[str] = None


class SendNotificationResult(BaseModel):
    """Result of NotificationService.send_notification."""

    notification_id: Optional[str] = None
    push_sent: bool = False
    email_sent: bool = False
    sms_sent: bool = False
    queued_jobs: QueuedJobs = Field(default_factory=QueuedJobs)
    errors: List[str] = Field(default_factory=list)


class LocalizedNotification(BaseModel):
    """A stored notification rendered in a reader's locale."""

    id: str
    type: str
    title: str
    message: str
    locale: str
    read: bool
    read_at: Optional[datetime] = None
    created_at: datetime
    metadata: Dict[str, Any] = Field(default_factory=dict)
    channels: Dict[str, ChannelOutcome] = Field(default_factory=dict)
