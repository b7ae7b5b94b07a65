"""Queue manager: one job queue and worker pool per delivery channel."""

import threading
import time
from typing import Any, Callable, Dict, List, Optional

from infrastructure.logging import get_module_logger
from infrastructure.queue.config import QueueConfig
from infrastructure.queue.exceptions import (
    QueueError,
    QueueNotInitializedError,
    UnknownQueueError,
)
from infrastructure.queue.models import Job
from infrastructure.queue.store import InMemoryJobQueue, JobStore
from infrastructure.queue.worker import (
    CompletedListener,
    FailedListener,
    JobHandler,
    QueueWorker,
)

logger = get_module_logger()

StoreFactory = Callable[[QueueConfig], JobStore]


class QueueManager:
    """Owns the channel queues and their worker pools.

    The manager must be initialized with ``init()`` before jobs are enqueued
    and torn down with ``shutdown()``; both are idempotent. Stores outlive a
    shutdown, so a later ``init()`` resumes the same queues. With a
    persistent store factory the jobs also survive a process restart.

    Attributes:
        configs: QueueConfig per channel name

    Example:
        manager = QueueManager({"email": QueueConfig(name="email")})
        manager.init()
        manager.process_jobs("email", send_email_job)
        job_id = manager.enqueue("email", {"to": ["ada@example.com"], ...})
        manager.shutdown()
    """

    def __init__(
        self,
        configs: Dict[str, QueueConfig],
        clock: Callable[[], float] = time.monotonic,
        store_factory: Optional[StoreFactory] = None,
    ) -> None:
        """Initialize the manager.

        Args:
            configs: QueueConfig per channel name.
            clock: Clock for the default in-memory stores.
            store_factory: Builds the store for a queue config; defaults to
                an InMemoryJobQueue.
        """
        if not configs:
            raise ValueError("at least one queue must be configured")
        self.configs = dict(configs)
        self._clock = clock
        self._store_factory = store_factory or self._in_memory_store
        self._queues: Dict[str, JobStore] = {}
        self._workers: Dict[str, QueueWorker] = {}
        self._completed_listeners: List[CompletedListener] = []
        self._failed_listeners: List[FailedListener] = []
        self._lock = threading.Lock()
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def channels(self) -> List[str]:
        return list(self.configs)

    def _in_memory_store(self, config: QueueConfig) -> JobStore:
        return InMemoryJobQueue(config, clock=self._clock)

    def init(self) -> None:
        """Create the channel queues, reusing stores from an earlier init."""
        with self._lock:
            if self._initialized:
                return
            for name, config in self.configs.items():
                if name not in self._queues:
                    self._queues[name] = self._store_factory(config)
            self._initialized = True
        logger.info("queue_manager_initialized", queues=self.channels)

    def shutdown(self, timeout: Optional[float] = 5.0) -> None:
        """Stop every worker pool. Queued jobs stay in their stores."""
        with self._lock:
            if not self._initialized:
                return
            workers = list(self._workers.values())
            self._workers = {}
            self._initialized = False
        for worker in workers:
            worker.stop(timeout=timeout)
        logger.info("queue_manager_shutdown", workers_stopped=len(workers))

    def _queue(self, channel: str) -> JobStore:
        if not self._initialized:
            raise QueueNotInitializedError(
                "QueueManager is not initialized, call init() first"
            )
        queue = self._queues.get(channel)
        if queue is None:
            raise UnknownQueueError(f"Unknown queue: {channel}")
        return queue

    def enqueue(
        self,
        channel: str,
        payload: Dict[str, Any],
        metadata: Optional[Dict[str, Any]] = None,
        delay: int = 0,
        priority: int = 0,
        name: Optional[str] = None,
    ) -> str:
        """Add a job to a channel queue.

        Args:
            channel: Queue name (email, push, sms)
            payload: Provider-shaped payload
            metadata: Recipient id, notification id, source tag
            delay: Milliseconds before the job is available
            priority: Lower runs first
            name: Job name, defaults to "send-<channel>"

        Returns:
            The job id

        Raises:
            QueueNotInitializedError: If init() was not called
            UnknownQueueError: If the channel has no queue
        """
        queue = self._queue(channel)
        job = queue.add(
            payload,
            name=name or f"send-{channel}",
            metadata=metadata,
            delay=delay,
            priority=priority,
        )
        logger.info(
            "job_enqueued",
            queue=channel,
            job_id=job.id,
            job_name=job.name,
            delay=delay,
            priority=priority,
        )
        return job.id

    def process_jobs(
        self,
        channel: str,
        handler: JobHandler,
        concurrency: Optional[int] = None,
    ) -> QueueWorker:
        """Start a worker pool for a channel.

        Args:
            channel: Queue name
            handler: Callable receiving a Job
            concurrency: Worker threads, defaults to the queue's configuration

        Returns:
            The started QueueWorker

        Raises:
            QueueError: If the channel already has a running worker pool
        """
        queue = self._queue(channel)
        with self._lock:
            existing = self._workers.get(channel)
            if existing is not None and existing.is_running:
                raise QueueError(f"Queue {channel} already has a worker pool")
            worker = QueueWorker(
                queue,
                handler,
                concurrency=concurrency,
                on_completed=self._emit_completed,
                on_failed=self._emit_failed,
            )
            self._workers[channel] = worker
        worker.start()
        return worker

    def on_completed(self, listener: CompletedListener) -> None:
        """Register a listener called with (job, result) after completion."""
        with self._lock:
            self._completed_listeners.append(listener)

    def on_failed(self, listener: FailedListener) -> None:
        """Register a listener called with (job, error) after terminal failure."""
        with self._lock:
            self._failed_listeners.append(listener)

    def _emit_completed(self, job: Job, result: Any) -> None:
        with self._lock:
            listeners = list(self._completed_listeners)
        for listener in listeners:
            try:
                listener(job, result)
            except Exception as e:  # listener errors are isolated
                logger.error(
                    "completed_listener_failed", job_id=job.id, error=str(e), exc_info=True
                )

    def _emit_failed(self, job: Job, error: str) -> None:
        with self._lock:
            listeners = list(self._failed_listeners)
        for listener in listeners:
            try:
                listener(job, error)
            except Exception as e:  # listener errors are isolated
                logger.error(
                    "failed_listener_failed", job_id=job.id, error=str(e), exc_info=True
                )

    def get_stats(self, channel: str) -> Dict[str, int]:
        """Job counts for a channel: waiting, active, completed, failed, delayed."""
        return self._queue(channel).stats().to_dict()

    def get_job(self, channel: str, job_id: str) -> Optional[Job]:
        return self._queue(channel).get(job_id)

    def clear(self, channel: str) -> int:
        """Remove every non-active job from a channel queue."""
        return self._queue(channel).clear()

    def drain(self, channel: str, timeout: Optional[float] = None) -> bool:
        """Wait until a channel queue has no waiting, delayed or active jobs.

        Returns:
            True if the queue drained before the timeout
        """
        return self._queue(channel).wait_until_idle(timeout=timeout)
