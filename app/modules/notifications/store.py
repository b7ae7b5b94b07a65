"""Notification record storage.

This module provides the storage interface for persisted notifications and a
thread-safe in-memory implementation. The protocol-based design lets the
surrounding application plug in its own database.
"""

import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

from infrastructure.logging import get_module_logger
from infrastructure.notifications import ChannelOutcome
from modules.notifications.models import NotificationRecord, utcnow

logger = get_module_logger()

# Fields that can never be changed through update()
_IMMUTABLE_FIELDS = frozenset({"id", "created_at", "notifiable_type", "notifiable_id"})


@dataclass
class NotificationFilter:
    """Query for find_many. Results are ordered newest first."""

    notifiable_type: Optional[str] = None
    notifiable_id: Optional[str] = None
    unread_only: bool = False
    type: Optional[str] = None
    include_deleted: bool = False
    limit: Optional[int] = None
    offset: int = 0

    def matches(self, record: NotificationRecord) -> bool:
        if self.notifiable_type is not None and record.notifiable_type != self.notifiable_type:
            return False
        if self.notifiable_id is not None and record.notifiable_id != str(self.notifiable_id):
            return False
        if self.unread_only and record.read_at is not None:
            return False
        if self.type is not None and record.type != self.type:
            return False
        if not self.include_deleted and record.deleted_at is not None:
            return False
        return True


class NotificationStore(Protocol):
    """Storage interface for notification records.

    Implementations must keep ``read_at`` write-once and ``deleted_at``
    monotonic, and must apply channel outcome updates atomically so that
    concurrent queue completions do not overwrite each other.

    Methods:
        create: Persist a new record
        get: Fetch a record by id
        update: Change fields of a record
        update_channel_outcome: Set one channel's outcome on a record
        find_many: Query records
        mark_read: Set read_at if unset
        mark_all_read: Set read_at on every unread record of a recipient
        soft_delete: Set deleted_at if unset
    """

    def create(self, record: NotificationRecord) -> NotificationRecord:
        ...

    def get(self, notification_id: str) -> Optional[NotificationRecord]:
        ...

    def update(self, notification_id: str, **changes: Any) -> Optional[NotificationRecord]:
        ...

    def update_channel_outcome(
        self, notification_id: str, channel: str, outcome: ChannelOutcome
    ) -> Optional[NotificationRecord]:
        ...

    def find_many(self, query: NotificationFilter) -> List[NotificationRecord]:
        ...

    def count(self, query: NotificationFilter) -> int:
        ...

    def mark_read(
        self, notification_id: str, at: Optional[datetime] = None
    ) -> Optional[NotificationRecord]:
        ...

    def mark_all_read(self, notifiable_type: str, notifiable_id: str) -> int:
        ...

    def soft_delete(self, notification_id: str) -> Optional[NotificationRecord]:
        ...


class InMemoryNotificationStore:
    """In-memory implementation of NotificationStore.

    Records are copied on the way in and out so callers never share mutable
    state with the store.
    """

    def __init__(self) -> None:
        self._records: Dict[str, NotificationRecord] = {}
        self._order: List[str] = []
        self._lock = threading.Lock()

    def create(self, record: NotificationRecord) -> NotificationRecord:
        with self._lock:
            if record.id in self._records:
                raise ValueError(f"Notification already exists: {record.id}")
            stored = record.model_copy(deep=True)
            self._records[stored.id] = stored
            self._order.append(stored.id)
        logger.debug(
            "notification_record_created",
            notification_id=record.id,
            notification_type=record.type,
        )
        return stored.model_copy(deep=True)

    def get(self, notification_id: str) -> Optional[NotificationRecord]:
        with self._lock:
            record = self._records.get(notification_id)
            return record.model_copy(deep=True) if record else None

    def update(self, notification_id: str, **changes: Any) -> Optional[NotificationRecord]:
        """Change fields of a record.

        ``read_at`` and ``deleted_at`` are only applied while still unset.

        Raises:
            ValueError: If an immutable or unknown field is changed.
        """
        illegal = set(changes) & _IMMUTABLE_FIELDS
        unknown = set(changes) - set(NotificationRecord.model_fields)
        if illegal or unknown:
            raise ValueError(f"Cannot update fields: {sorted(illegal | unknown)}")

        with self._lock:
            record = self._records.get(notification_id)
            if record is None:
                return None
            for name in ("read_at", "deleted_at"):
                if name in changes and getattr(record, name) is not None:
                    changes.pop(name)
            updated = record.model_copy(update={**changes, "updated_at": utcnow()}, deep=True)
            self._records[notification_id] = updated
            return updated.model_copy(deep=True)

    def update_channel_outcome(
        self, notification_id: str, channel: str, outcome: ChannelOutcome
    ) -> Optional[NotificationRecord]:
        with self._lock:
            record = self._records.get(notification_id)
            if record is None:
                return None
            record.data.channels[channel] = outcome.model_copy()
            record.updated_at = utcnow()
            return record.model_copy(deep=True)

    def find_many(self, query: NotificationFilter) -> List[NotificationRecord]:
        with self._lock:
            matched = [
                self._records[record_id]
                for record_id in reversed(self._order)
                if query.matches(self._records[record_id])
            ]
            end = None if query.limit is None else query.offset + query.limit
            return [record.model_copy(deep=True) for record in matched[query.offset:end]]

    def count(self, query: NotificationFilter) -> int:
        with self._lock:
            return sum(1 for record in self._records.values() if query.matches(record))

    def mark_read(
        self, notification_id: str, at: Optional[datetime] = None
    ) -> Optional[NotificationRecord]:
        with self._lock:
            record = self._records.get(notification_id)
            if record is None:
                return None
            if record.read_at is None:
                record.read_at = at or utcnow()
                record.updated_at = utcnow()
            return record.model_copy(deep=True)

    def mark_all_read(self, notifiable_type: str, notifiable_id: str) -> int:
        query = NotificationFilter(
            notifiable_type=notifiable_type,
            notifiable_id=notifiable_id,
            unread_only=True,
        )
        now = utcnow()
        with self._lock:
            unread = [r for r in self._records.values() if query.matches(r)]
            for record in unread:
                record.read_at = now
                record.updated_at = now
        return len(unread)

    def soft_delete(self, notification_id: str) -> Optional[NotificationRecord]:
        with self._lock:
            record = self._records.get(notification_id)
            if record is None:
                return None
            if record.deleted_at is None:
                record.deleted_at = utcnow()
                record.updated_at = record.deleted_at
            return record.model_copy(deep=True)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
            self._order.clear()
