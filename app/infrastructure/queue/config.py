"""Queue configuration.

This module defines the per-queue configuration for workers, retries and
retention.
"""

from dataclasses import dataclass

from infrastructure.configuration import QueueSettings


@dataclass
class QueueConfig:
    """Configuration for one channel queue.

    Attributes:
        name: Queue name (the channel: email, push, sms)
        concurrency: Worker threads processing jobs in parallel
        max_attempts: Attempts before a job is terminally failed
        backoff_delay_ms: Base delay for exponential backoff
        remove_on_complete: Completed jobs retained for inspection
        remove_on_fail: Failed jobs retained for inspection
        stalled_interval_seconds: Heartbeat age after which an active job
            is considered stalled
        max_stalled_count: Stall recoveries allowed before the job fails
        poll_interval_seconds: Longest an idle worker sleeps between checks

    Example:
        # Defaults for the email queue
        config = QueueConfig(name="email")

        # Fast retries in tests
        config = QueueConfig(name="push", concurrency=2, backoff_delay_ms=1)
    """

    name: str
    concurrency: int = 5
    max_attempts: int = 3
    backoff_delay_ms: int = 2000
    remove_on_complete: int = 100
    remove_on_fail: int = 50
    stalled_interval_seconds: float = 30.0
    max_stalled_count: int = 1
    poll_interval_seconds: float = 0.5

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if not self.name:
            raise ValueError("name is required")
        if self.concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.backoff_delay_ms < 0:
            raise ValueError("backoff_delay_ms must be >= 0")
        if self.remove_on_complete < 0 or self.remove_on_fail < 0:
            raise ValueError("retention counts must be >= 0")
        if self.stalled_interval_seconds <= 0:
            raise ValueError("stalled_interval_seconds must be positive")
        if self.max_stalled_count < 0:
            raise ValueError("max_stalled_count must be >= 0")
        if self.poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be positive")

    def backoff_seconds(self, attempts_made: int) -> float:
        """Exponential backoff before the next attempt.

        Uses the formula: backoff_delay_ms * (2 ^ (attempts_made - 1))

        Args:
            attempts_made: Attempts already made (>= 1)

        Returns:
            Delay in seconds
        """
        exponent = max(attempts_made - 1, 0)
        return self.backoff_delay_ms * (2**exponent) / 1000.0

    @classmethod
    def from_settings(cls, name: str, settings: QueueSettings) -> "QueueConfig":
        """Build the config for a channel from QueueSettings."""
        return cls(
            name=name,
            concurrency=getattr(settings, f"{name}_concurrency"),
            max_attempts=getattr(settings, f"{name}_attempts"),
            backoff_delay_ms=settings.backoff_delay_ms,
            remove_on_complete=getattr(settings, f"{name}_remove_on_complete"),
            remove_on_fail=getattr(settings, f"{name}_remove_on_fail"),
            stalled_interval_seconds=settings.stalled_interval_seconds,
            max_stalled_count=settings.max_stalled_count,
            poll_interval_seconds=settings.poll_interval_seconds,
        )
