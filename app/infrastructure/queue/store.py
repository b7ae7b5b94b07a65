"""Job ledger interface and the in-memory ledger for one channel queue.

``JobStore`` is the contract workers and the manager rely on.
``InMemoryJobQueue`` is the thread-safe default, providing:
- Priority ordering (lower number first), FIFO within a priority
- Delayed jobs (initial delay and retry backoff)
- Exponential backoff between attempts
- Bounded retention of completed and failed jobs
- Stalled-job recovery based on worker heartbeats

A single lock guards the ledger; a condition variable wakes idle workers
when jobs become available and waiters in ``wait_until_idle``.
"""

import heapq
import threading
import time
import uuid
from collections import deque
from datetime import datetime, timezone
from typing import Any, Callable, Deque, Dict, List, Optional, Protocol, Tuple

from infrastructure.logging import get_module_logger
from infrastructure.queue.config import QueueConfig
from infrastructure.queue.models import Job, JobState, QueueStats

logger = get_module_logger()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobStore(Protocol):
    """Storage interface for one channel queue.

    Implementations must hand each job to one worker at a time and count an
    attempt when a job is claimed. Scheduling follows ``InMemoryJobQueue``.
    Workers and the manager only talk to a queue through this interface.

    Methods:
        add: Store a new job, waiting or delayed
        claim: Take the next available job for a worker
        heartbeat: Refresh the liveness of an active job
        complete: Record the result of an active job
        fail: Record a failed attempt, retrying or failing terminally
        recover_stalled: Requeue or fail active jobs with old heartbeats
    """

    config: QueueConfig

    @property
    def name(self) -> str: ...

    def add(
        self,
        payload: Dict[str, Any],
        name: str = "default",
        metadata: Optional[Dict[str, Any]] = None,
        delay: int = 0,
        priority: int = 0,
        max_attempts: Optional[int] = None,
    ) -> Job: ...

    def claim(self, worker_id: str, timeout: Optional[float] = None) -> Optional[Job]: ...

    def heartbeat(self, job_id: str, worker_id: str) -> bool: ...

    def complete(self, job_id: str, result: Any = None) -> Optional[Job]: ...

    def fail(
        self, job_id: str, error: str, permanent: bool = False
    ) -> Tuple[Optional[Job], bool]:
        """Record a failed attempt and return (job, terminal)."""
        ...

    def recover_stalled(self) -> List[Tuple[Job, bool]]: ...

    def get(self, job_id: str) -> Optional[Job]: ...

    def stats(self) -> QueueStats: ...

    def clear(self) -> int:
        """Remove every job that is not active and return how many went."""
        ...

    def is_idle(self) -> bool: ...

    def wait_until_idle(self, timeout: Optional[float] = None) -> bool: ...

    def wake_all(self) -> None:
        """Wake local waiters so they re-check the queue."""
        ...


class InMemoryJobQueue:
    """Job ledger for a single queue.

    Attributes:
        config: QueueConfig controlling attempts, backoff and retention
    """

    def __init__(
        self,
        config: QueueConfig,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the queue.

        Args:
            config: Queue configuration.
            clock: Monotonic clock used for scheduling (injectable for tests).
        """
        self.config = config
        self._clock = clock
        self._jobs: Dict[str, Job] = {}
        # Heap entries: (priority, sequence, job_id)
        self._waiting: List[Tuple[int, int, str]] = []
        self._delayed: Dict[str, Job] = {}
        self._active: Dict[str, Job] = {}
        self._completed: Deque[str] = deque()
        self._failed: Deque[str] = deque()
        self._lock = threading.Lock()
        self._available = threading.Condition(self._lock)
        self._sequence = 0

    @property
    def name(self) -> str:
        return self.config.name

    def add(
        self,
        payload: Dict[str, Any],
        name: str = "default",
        metadata: Optional[Dict[str, Any]] = None,
        delay: int = 0,
        priority: int = 0,
        max_attempts: Optional[int] = None,
    ) -> Job:
        """Add a job.

        Args:
            payload: Provider-shaped payload
            name: Job name
            metadata: Recipient id, notification id, source tag
            delay: Milliseconds before the job becomes available
            priority: Lower runs first
            max_attempts: Overrides the queue's max attempts

        Returns:
            The stored Job
        """
        with self._available:
            self._sequence += 1
            job = Job(
                id=str(uuid.uuid4()),
                channel=self.name,
                name=name,
                payload=payload,
                metadata=dict(metadata or {}),
                max_attempts=max_attempts or self.config.max_attempts,
                priority=priority,
                delay=max(delay, 0),
                sequence=self._sequence,
            )
            self._jobs[job.id] = job
            if job.delay > 0:
                job.state = JobState.DELAYED
                job.available_at = self._clock() + job.delay / 1000.0
                self._delayed[job.id] = job
            else:
                job.available_at = self._clock()
                self._push_waiting(job)
            self._available.notify()

            logger.debug(
                "job_added",
                queue=self.name,
                job_id=job.id,
                job_name=name,
                priority=priority,
                delay=job.delay,
            )
            return job

    def _push_waiting(self, job: Job) -> None:
        job.state = JobState.WAITING
        job.updated_at = _utcnow()
        heapq.heappush(self._waiting, (job.priority, job.sequence, job.id))

    def _promote_delayed_locked(self, now: float) -> None:
        due = [job for job in self._delayed.values() if job.available_at <= now]
        for job in due:
            del self._delayed[job.id]
            self._push_waiting(job)

    def _next_delayed_in_locked(self, now: float) -> Optional[float]:
        if not self._delayed:
            return None
        return max(min(j.available_at for j in self._delayed.values()) - now, 0.0)

    def claim(self, worker_id: str, timeout: Optional[float] = None) -> Optional[Job]:
        """Claim the next available job, waiting up to ``timeout`` seconds.

        The claimed job becomes ACTIVE and its attempt counter is incremented.

        Args:
            worker_id: Identifier of the claiming worker
            timeout: Seconds to wait for a job; defaults to the poll interval

        Returns:
            The claimed Job, or None if nothing became available
        """
        timeout = self.config.poll_interval_seconds if timeout is None else timeout
        deadline = self._clock() + timeout
        with self._available:
            while True:
                now = self._clock()
                self._promote_delayed_locked(now)
                while self._waiting:
                    _, _, job_id = heapq.heappop(self._waiting)
                    job = self._jobs.get(job_id)
                    # Entries of cleared jobs are skipped lazily
                    if job is None or job.state is not JobState.WAITING:
                        continue
                    job.state = JobState.ACTIVE
                    job.attempts += 1
                    job.worker_id = worker_id
                    job.heartbeat_at = now
                    job.processed_at = _utcnow()
                    job.updated_at = job.processed_at
                    self._active[job.id] = job
                    return job

                remaining = deadline - now
                if remaining <= 0:
                    return None
                next_delayed = self._next_delayed_in_locked(now)
                wait_for = remaining if next_delayed is None else min(remaining, next_delayed)
                self._available.wait(timeout=max(wait_for, 0.001))

    def heartbeat(self, job_id: str, worker_id: str) -> bool:
        """Record a liveness signal for an active job owned by worker_id."""
        with self._lock:
            job = self._active.get(job_id)
            if job is None or job.worker_id != worker_id:
                return False
            job.heartbeat_at = self._clock()
            return True

    def _retain_locked(self, bucket: Deque[str], job: Job, limit: int) -> None:
        bucket.append(job.id)
        while len(bucket) > limit:
            removed = bucket.popleft()
            self._jobs.pop(removed, None)

    def complete(self, job_id: str, result: Any = None) -> Optional[Job]:
        """Mark an active job completed and record its result."""
        with self._available:
            job = self._active.pop(job_id, None)
            if job is None:
                logger.warning("complete_unknown_job", queue=self.name, job_id=job_id)
                return None
            job.state = JobState.COMPLETED
            job.result = result
            job.worker_id = None
            job.finished_at = _utcnow()
            job.updated_at = job.finished_at
            self._retain_locked(self._completed, job, self.config.remove_on_complete)
            self._available.notify_all()
            return job

    def fail(
        self, job_id: str, error: str, permanent: bool = False
    ) -> Tuple[Optional[Job], bool]:
        """Record a failed attempt.

        The job is retried with exponential backoff unless the failure is
        permanent or attempts are exhausted, in which case it is terminally
        failed and retained.

        Args:
            job_id: Active job ID
            error: Error message from the attempt
            permanent: Fail immediately without retrying

        Returns:
            Tuple of (job, terminal)
        """
        with self._available:
            job = self._active.pop(job_id, None)
            if job is None:
                logger.warning("fail_unknown_job", queue=self.name, job_id=job_id)
                return None, False
            job.last_error = error
            job.worker_id = None
            job.updated_at = _utcnow()

            if permanent or job.attempts >= job.max_attempts:
                self._fail_terminal_locked(job)
                self._available.notify_all()
                return job, True

            backoff = self.config.backoff_seconds(job.attempts)
            job.state = JobState.DELAYED
            job.available_at = self._clock() + backoff
            self._delayed[job.id] = job
            self._available.notify_all()
            logger.info(
                "job_retry_scheduled",
                queue=self.name,
                job_id=job.id,
                attempts=job.attempts,
                max_attempts=job.max_attempts,
                next_retry_in_seconds=backoff,
            )
            return job, False

    def _fail_terminal_locked(self, job: Job) -> None:
        job.state = JobState.FAILED
        job.finished_at = _utcnow()
        job.updated_at = job.finished_at
        self._retain_locked(self._failed, job, self.config.remove_on_fail)

    def recover_stalled(self) -> List[Tuple[Job, bool]]:
        """Requeue or fail active jobs whose heartbeat is too old.

        A stalled job goes back to WAITING (the claimed attempt still counts)
        until it has stalled more than ``max_stalled_count`` times, then it
        fails.

        Returns:
            List of (job, terminal) for every recovered job
        """
        recovered = []
        with self._available:
            now = self._clock()
            threshold = self.config.stalled_interval_seconds
            stalled = [
                job
                for job in self._active.values()
                if job.heartbeat_at is not None and now - job.heartbeat_at > threshold
            ]
            for job in stalled:
                del self._active[job.id]
                job.stalled_count += 1
                job.worker_id = None
                if job.stalled_count > self.config.max_stalled_count or (
                    job.attempts >= job.max_attempts
                ):
                    job.last_error = "job stalled more than allowable limit"
                    self._fail_terminal_locked(job)
                    recovered.append((job, True))
                else:
                    self._push_waiting(job)
                    recovered.append((job, False))
                logger.warning(
                    "job_stalled",
                    queue=self.name,
                    job_id=job.id,
                    stalled_count=job.stalled_count,
                    terminal=recovered[-1][1],
                )
            if recovered:
                self._available.notify_all()
        return recovered

    def get(self, job_id: str) -> Optional[Job]:
        with self._lock:
            return self._jobs.get(job_id)

    def stats(self) -> QueueStats:
        with self._lock:
            waiting = sum(
                1 for job in self._jobs.values() if job.state is JobState.WAITING
            )
            return QueueStats(
                waiting=waiting,
                active=len(self._active),
                completed=len(self._completed),
                failed=len(self._failed),
                delayed=len(self._delayed),
            )

    def clear(self) -> int:
        """Remove every job that is not currently active.

        Returns:
            Number of jobs removed
        """
        with self._available:
            removable = [
                job_id for job_id, job in self._jobs.items()
                if job.state is not JobState.ACTIVE
            ]
            for job_id in removable:
                del self._jobs[job_id]
            self._waiting.clear()
            self._delayed.clear()
            self._completed.clear()
            self._failed.clear()
            self._available.notify_all()
        logger.info("queue_cleared", queue=self.name, removed=len(removable))
        return len(removable)

    def is_idle(self) -> bool:
        with self._lock:
            return self._is_idle_locked()

    def _is_idle_locked(self) -> bool:
        return not self._active and not self._delayed and not any(
            job.state is JobState.WAITING for job in self._jobs.values()
        )

    def wait_until_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no job is waiting, delayed or active.

        Args:
            timeout: Seconds to wait; None waits indefinitely

        Returns:
            True if the queue became idle, False on timeout
        """
        with self._available:
            return self._available.wait_for(self._is_idle_locked, timeout=timeout)

    def wake_all(self) -> None:
        with self._available:
            self._available.notify_all()
