"""Delivery job queues.

Job queues, one per delivery channel, with bounded worker pools, priorities,
delays, exponential backoff, bounded retention and stalled-job recovery. Jobs
live in a pluggable store: in memory by default, or in Redis so they survive
restarts.

Architecture:
- Job: Unit of delivery work for one channel
- JobStore: Storage interface for one queue
- InMemoryJobQueue: Thread-safe in-process job ledger
- RedisJobQueue: Persistent job ledger shared across processes
- QueueWorker: Worker pool claiming jobs and calling a handler
- QueueManager: Owns the channel queues and their worker pools
- QueueConfig: Configuration for one queue

Usage:
    from infrastructure.queue import QueueConfig, QueueManager

    manager = QueueManager({"push": QueueConfig(name="push", concurrency=10)})
    manager.init()
    manager.process_jobs("push", lambda job: push_channel.send(job.payload))
    manager.enqueue("push", {"tokens": ["abc"], "title": "Hi"})
"""

from infrastructure.queue.config import QueueConfig
from infrastructure.queue.exceptions import (
    PermanentJobError,
    QueueError,
    QueueNotInitializedError,
    UnknownQueueError,
)
from infrastructure.queue.factory import (
    CHANNEL_QUEUES,
    QUEUE_BACKENDS,
    create_job_store,
    create_queue_manager,
)
from infrastructure.queue.manager import QueueManager
from infrastructure.queue.models import Job, JobState, QueueStats
from infrastructure.queue.redis_store import RedisJobQueue
from infrastructure.queue.store import InMemoryJobQueue, JobStore
from infrastructure.queue.worker import QueueWorker

__all__ = [
    # Models
    "Job",
    "JobState",
    "QueueStats",
    # Configuration
    "QueueConfig",
    # Stores
    "JobStore",
    "InMemoryJobQueue",
    "RedisJobQueue",
    # Workers
    "QueueWorker",
    "QueueManager",
    # Factory
    "create_job_store",
    "create_queue_manager",
    "CHANNEL_QUEUES",
    "QUEUE_BACKENDS",
    # Exceptions
    "QueueError",
    "QueueNotInitializedError",
    "UnknownQueueError",
    "PermanentJobError",
]
