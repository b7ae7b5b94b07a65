"""Queue job models.

A job is one unit of delivery work for a single channel. The payload is
provider-shaped (e.g. serialized EmailOptions); metadata carries the
recipient id, notification id and source tag.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class JobState(Enum):
    """Lifecycle state of a job.

    Values:
        WAITING: Ready to be picked up by a worker
        DELAYED: Scheduled for later (initial delay or retry backoff)
        ACTIVE: Claimed by a worker
        COMPLETED: Handler returned a result
        FAILED: Attempts exhausted, permanent error or stalled too often
    """

    WAITING = "waiting"
    DELAYED = "delayed"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


def _now() -> datetime:
    return datetime.now(timezone.utc)


_TIMESTAMPS = ("created_at", "updated_at", "processed_at", "finished_at")


@dataclass
class Job:
    """A queued delivery job.

    Fields:
        id: Unique identifier (assigned by the queue)
        channel: Queue the job belongs to
        name: Job name (e.g. "send-email")
        payload: Provider-shaped payload handed to the handler
        metadata: Recipient id, notification id, source tag
        attempts: Attempts started so far
        max_attempts: Attempts allowed before terminal failure
        priority: Lower runs first; equal priorities run FIFO
        delay: Initial delay in milliseconds
        state: Current JobState
        result: Handler return value once completed
        last_error: Error from the latest failed attempt
        worker_id: Worker holding the job while active
        heartbeat_at: Last liveness signal while active
        stalled_count: Times the job was recovered from a stalled worker
    """

    channel: str
    payload: Dict[str, Any]
    name: str = "default"
    metadata: Dict[str, Any] = field(default_factory=dict)
    id: Optional[str] = None
    attempts: int = 0
    max_attempts: int = 3
    priority: int = 0
    delay: int = 0
    state: JobState = JobState.WAITING
    result: Any = None
    last_error: Optional[str] = None
    worker_id: Optional[str] = None
    heartbeat_at: Optional[float] = None
    stalled_count: int = 0

    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)
    processed_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    # Scheduling (store clock), not part of the public view
    available_at: float = 0.0
    sequence: int = 0

    def __post_init__(self) -> None:
        """Validate required fields."""
        if not self.channel:
            raise ValueError("channel is required")
        if not isinstance(self.payload, dict):
            raise ValueError("payload must be a dictionary")

    @property
    def is_terminal(self) -> bool:
        return self.state in (JobState.COMPLETED, JobState.FAILED)

    def to_dict(self) -> Dict[str, Any]:
        data = self.to_record()
        data.pop("available_at")
        data.pop("sequence")
        return data

    def to_record(self) -> Dict[str, Any]:
        """Full JSON-ready view, scheduling fields included, for persistent stores."""
        data = asdict(self)
        data["state"] = self.state.value
        for key in _TIMESTAMPS:
            value = data[key]
            data[key] = value.isoformat() if value else None
        return data

    @classmethod
    def from_record(cls, data: Dict[str, Any]) -> "Job":
        """Rebuild a job from ``to_record`` output."""
        values = dict(data)
        values["state"] = JobState(values["state"])
        for key in _TIMESTAMPS:
            if values.get(key):
                values[key] = datetime.fromisoformat(values[key])
        return cls(**values)


@dataclass
class QueueStats:
    """Job counts per state for one queue."""

    waiting: int = 0
    active: int = 0
    completed: int = 0
    failed: int = 0
    delayed: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)
