"""Delivery queue infrastructure settings."""

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class QueueSettings(InfrastructureSettings):
    """Per-channel delivery queue configuration.

    Each channel (email, push, sms) has its own queue with an independent
    worker pool. Jobs are retried with exponential backoff and terminal jobs
    are retained up to a bounded count for inspection.

    Environment Variables:
        QUEUE_BACKEND: Job store, "memory" or "redis" (default: memory)
        QUEUE_REDIS_URL: Redis connection URL for the redis backend
            (default: redis://localhost:6379/0)
        QUEUE_REDIS_PREFIX: Key prefix for the redis backend
            (default: notification-center:queue)
        EMAIL_QUEUE_CONCURRENCY: Email workers (default: 5)
        PUSH_QUEUE_CONCURRENCY: Push workers (default: 10)
        SMS_QUEUE_CONCURRENCY: SMS workers (default: 5)
        <CHANNEL>_QUEUE_ATTEMPTS: Attempts before a job fails (default: 3)
        <CHANNEL>_QUEUE_REMOVE_ON_COMPLETE: Completed jobs kept (default: 100)
        <CHANNEL>_QUEUE_REMOVE_ON_FAIL: Failed jobs kept (default: 50)
        QUEUE_BACKOFF_DELAY_MS: Base backoff delay (default: 2000)
        QUEUE_STALLED_INTERVAL_SECONDS: Heartbeat age that marks a job
            stalled (default: 30)
        QUEUE_MAX_STALLED_COUNT: Stall recoveries before failing (default: 1)
        QUEUE_POLL_INTERVAL_SECONDS: Idle worker wake-up interval (default: 0.5)

    Queue Backends:
        - memory: In-process store, jobs are lost when the process exits
        - redis: Persistent store, jobs survive restarts and can be shared
          by several processes

    Exponential Backoff:
        Delay calculation: backoff_delay_ms * (2 ^ (attempt - 1))

        Example with defaults (base=2000ms):
            Retry after attempt 1: 2s
            Retry after attempt 2: 4s
    """

    backend: str = Field(default="memory", alias="QUEUE_BACKEND")
    redis_url: str = Field(
        default="redis://localhost:6379/0", alias="QUEUE_REDIS_URL"
    )
    redis_prefix: str = Field(
        default="notification-center:queue", alias="QUEUE_REDIS_PREFIX"
    )

    email_concurrency: int = Field(default=5, alias="EMAIL_QUEUE_CONCURRENCY")
    email_attempts: int = Field(default=3, alias="EMAIL_QUEUE_ATTEMPTS")
    email_remove_on_complete: int = Field(
        default=100, alias="EMAIL_QUEUE_REMOVE_ON_COMPLETE"
    )
    email_remove_on_fail: int = Field(default=50, alias="EMAIL_QUEUE_REMOVE_ON_FAIL")

    push_concurrency: int = Field(default=10, alias="PUSH_QUEUE_CONCURRENCY")
    push_attempts: int = Field(default=3, alias="PUSH_QUEUE_ATTEMPTS")
    push_remove_on_complete: int = Field(
        default=100, alias="PUSH_QUEUE_REMOVE_ON_COMPLETE"
    )
    push_remove_on_fail: int = Field(default=50, alias="PUSH_QUEUE_REMOVE_ON_FAIL")

    sms_concurrency: int = Field(default=5, alias="SMS_QUEUE_CONCURRENCY")
    sms_attempts: int = Field(default=3, alias="SMS_QUEUE_ATTEMPTS")
    sms_remove_on_complete: int = Field(
        default=100, alias="SMS_QUEUE_REMOVE_ON_COMPLETE"
    )
    sms_remove_on_fail: int = Field(default=50, alias="SMS_QUEUE_REMOVE_ON_FAIL")

    backoff_delay_ms: int = Field(default=2000, alias="QUEUE_BACKOFF_DELAY_MS")
    stalled_interval_seconds: float = Field(
        default=30.0, alias="QUEUE_STALLED_INTERVAL_SECONDS"
    )
    max_stalled_count: int = Field(default=1, alias="QUEUE_MAX_STALLED_COUNT")
    poll_interval_seconds: float = Field(
        default=0.5, alias="QUEUE_POLL_INTERVAL_SECONDS"
    )
