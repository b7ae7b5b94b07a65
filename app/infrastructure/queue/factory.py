"""Factories for creating job stores and the queue manager from settings."""

from typing import Iterable, Optional

import structlog
from redis import Redis

from infrastructure.configuration import QueueSettings
from infrastructure.queue.config import QueueConfig
from infrastructure.queue.manager import QueueManager
from infrastructure.queue.redis_store import RedisJobQueue
from infrastructure.queue.store import InMemoryJobQueue, JobStore

logger = structlog.get_logger()

CHANNEL_QUEUES = ("email", "push", "sms")
QUEUE_BACKENDS = ("memory", "redis")


def create_job_store(
    config: QueueConfig,
    settings: QueueSettings,
    client: Optional[Redis] = None,
) -> JobStore:
    """Create the job store for one queue based on settings.backend.

    Args:
        config: Queue configuration
        settings: Queue settings selecting the backend
        client: Redis client to share between queues (redis backend only)

    Returns:
        Appropriate JobStore implementation

    Raises:
        ValueError: If unknown backend specified
    """
    backend = settings.backend

    if backend == "memory":
        logger.info("creating_in_memory_job_store", queue=config.name)
        return InMemoryJobQueue(config)

    elif backend == "redis":
        logger.info(
            "creating_redis_job_store",
            queue=config.name,
            prefix=settings.redis_prefix,
        )
        return RedisJobQueue(
            config,
            client or Redis.from_url(settings.redis_url, decode_responses=True),
            prefix=settings.redis_prefix,
        )

    else:
        raise ValueError(
            f"Unknown queue backend: {backend}. Supported: {', '.join(QUEUE_BACKENDS)}"
        )


def create_queue_manager(
    settings: QueueSettings,
    channels: Iterable[str] = CHANNEL_QUEUES,
    client: Optional[Redis] = None,
) -> QueueManager:
    """Build a QueueManager with one queue per delivery channel.

    Args:
        settings: Queue settings (backend, concurrency, attempts, retention)
        channels: Channel queues to create
        client: Redis client override for the redis backend

    Returns:
        An uninitialized QueueManager; call init() before use

    Raises:
        ValueError: If settings.backend is not a known backend

    Examples:
        >>> manager = create_queue_manager(QueueSettings())
        >>> manager.init()
    """
    if settings.backend not in QUEUE_BACKENDS:
        raise ValueError(
            f"Unknown queue backend: {settings.backend}. "
            f"Supported: {', '.join(QUEUE_BACKENDS)}"
        )
    if settings.backend == "redis" and client is None:
        # Connects lazily on first command
        client = Redis.from_url(settings.redis_url, decode_responses=True)

    configs = {name: QueueConfig.from_settings(name, settings) for name in channels}
    logger.info(
        "creating_queue_manager",
        backend=settings.backend,
        queues={name: config.concurrency for name, config in configs.items()},
    )
    return QueueManager(
        configs,
        store_factory=lambda config: create_job_store(config, settings, client=client),
    )
