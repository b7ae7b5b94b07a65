"""Redis-backed job ledger for one channel queue.

Jobs survive process restarts. Records live in one Redis hash per queue and
the waiting, delayed and active jobs are tracked in sorted sets under
``<prefix>:<queue>``:

- ``jobs``: hash of job id to JSON record
- ``waiting``: scored by priority, then enqueue sequence
- ``delayed``: scored by the time the job becomes available
- ``active``: scored by the last heartbeat
- ``completed`` / ``failed``: retention lists, newest first

Multi-key updates run as WATCH/MULTI transactions so several processes can
share a queue. Jobs left active by a crashed process are requeued by
stalled-job recovery once their heartbeat ages out.
"""

import json
import threading
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from redis import Redis
from redis.client import Pipeline

from infrastructure.logging import get_module_logger
from infrastructure.queue.config import QueueConfig
from infrastructure.queue.models import Job, JobState, QueueStats

logger = get_module_logger()

DEFAULT_KEY_PREFIX = "notification-center:queue"

# Waiting score: priority * span + sequence keeps FIFO within a priority
_PRIORITY_SPAN = 10**12


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RedisJobQueue:
    """Job ledger for a single queue stored in Redis.

    The client must be created with ``decode_responses=True``.

    Attributes:
        config: QueueConfig controlling attempts, backoff and retention

    Example:
        client = Redis.from_url("redis://localhost:6379/0", decode_responses=True)
        queue = RedisJobQueue(QueueConfig(name="sms"), client)
        queue.add({"to": ["+15550100"], "message": "Hi"})
    """

    def __init__(
        self,
        config: QueueConfig,
        client: Redis,
        prefix: str = DEFAULT_KEY_PREFIX,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the queue.

        Args:
            config: Queue configuration.
            client: Redis client shared by the channel queues.
            prefix: Key prefix; the queue name is appended.
            clock: Wall clock used for scheduling and heartbeats. It must
                agree across processes sharing the queue.
        """
        self.config = config
        self._redis = client
        self._clock = clock
        self._base = f"{prefix}:{config.name}"
        self._local = threading.Condition()

    @property
    def name(self) -> str:
        return self.config.name

    def _key(self, suffix: str) -> str:
        return f"{self._base}:{suffix}"

    @staticmethod
    def _dump(job: Job) -> str:
        return json.dumps(job.to_record(), default=str)

    @staticmethod
    def _load(raw: Optional[str]) -> Optional[Job]:
        return Job.from_record(json.loads(raw)) if raw else None

    @staticmethod
    def _waiting_score(job: Job) -> int:
        return job.priority * _PRIORITY_SPAN + job.sequence

    def _notify(self) -> None:
        with self._local:
            self._local.notify_all()

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
            payload: Provider-shaped payload, JSON serializable
            name: Job name
            metadata: Recipient id, notification id, source tag
            delay: Milliseconds before the job becomes available
            priority: Lower runs first
            max_attempts: Overrides the queue's max attempts

        Returns:
            The stored Job
        """
        job = Job(
            id=str(uuid.uuid4()),
            channel=self.name,
            name=name,
            payload=payload,
            metadata=dict(metadata or {}),
            max_attempts=max_attempts or self.config.max_attempts,
            priority=priority,
            delay=max(delay, 0),
            sequence=self._redis.incr(self._key("sequence")),
        )
        now = self._clock()
        with self._redis.pipeline() as pipe:
            if job.delay > 0:
                job.state = JobState.DELAYED
                job.available_at = now + job.delay / 1000.0
                pipe.zadd(self._key("delayed"), {job.id: job.available_at})
            else:
                job.available_at = now
                pipe.zadd(self._key("waiting"), {job.id: self._waiting_score(job)})
            pipe.hset(self._key("jobs"), job.id, self._dump(job))
            pipe.execute()
        self._notify()

        logger.debug(
            "job_added",
            queue=self.name,
            job_id=job.id,
            job_name=name,
            priority=priority,
            delay=job.delay,
        )
        return job

    def _promote_delayed(self, now: float) -> None:
        delayed = self._key("delayed")

        def promote(pipe: Pipeline) -> None:
            due = pipe.zrangebyscore(delayed, "-inf", now)
            if not due:
                return
            records = pipe.hmget(self._key("jobs"), due)
            pipe.multi()
            pipe.zrem(delayed, *due)
            for raw in records:
                job = self._load(raw)
                if job is None:
                    continue
                job.state = JobState.WAITING
                job.updated_at = _utcnow()
                pipe.zadd(self._key("waiting"), {job.id: self._waiting_score(job)})
                pipe.hset(self._key("jobs"), job.id, self._dump(job))

        self._redis.transaction(promote, delayed)

    def _next_delayed_in(self) -> Optional[float]:
        head = self._redis.zrange(self._key("delayed"), 0, 0, withscores=True)
        if not head:
            return None
        return max(head[0][1] - self._clock(), 0.0)

    def _claim_next(self, worker_id: str) -> Optional[Job]:
        now = self._clock()
        self._promote_delayed(now)
        waiting = self._key("waiting")

        def take(pipe: Pipeline) -> Optional[Job]:
            head = pipe.zrange(waiting, 0, 0)
            if not head:
                return None
            job = self._load(pipe.hget(self._key("jobs"), head[0]))
            pipe.multi()
            pipe.zrem(waiting, head[0])
            if job is None:
                return None
            job.state = JobState.ACTIVE
            job.attempts += 1
            job.worker_id = worker_id
            job.heartbeat_at = now
            job.processed_at = _utcnow()
            job.updated_at = job.processed_at
            pipe.zadd(self._key("active"), {job.id: now})
            pipe.hset(self._key("jobs"), job.id, self._dump(job))
            return job

        return self._redis.transaction(take, waiting, value_from_callable=True)

    def claim(self, worker_id: str, timeout: Optional[float] = None) -> Optional[Job]:
        """Claim the next available job, waiting up to ``timeout`` seconds.

        Jobs added by other processes are seen on the next poll; jobs added
        in this process wake the waiter immediately.
        """
        timeout = self.config.poll_interval_seconds if timeout is None else timeout
        deadline = time.monotonic() + timeout
        while True:
            job = self._claim_next(worker_id)
            if job is not None:
                return job
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return None
            next_delayed = self._next_delayed_in()
            wait_for = remaining if next_delayed is None else min(remaining, next_delayed)
            with self._local:
                self._local.wait(timeout=max(wait_for, 0.001))

    def _load_active(self, pipe: Pipeline, job_id: str) -> Optional[Job]:
        if pipe.zscore(self._key("active"), job_id) is None:
            return None
        return self._load(pipe.hget(self._key("jobs"), job_id))

    def heartbeat(self, job_id: str, worker_id: str) -> bool:
        """Record a liveness signal for an active job owned by worker_id."""
        active = self._key("active")

        def beat(pipe: Pipeline) -> bool:
            job = self._load_active(pipe, job_id)
            if job is None or job.worker_id != worker_id:
                return False
            job.heartbeat_at = self._clock()
            pipe.multi()
            pipe.zadd(active, {job_id: job.heartbeat_at})
            pipe.hset(self._key("jobs"), job_id, self._dump(job))
            return True

        return self._redis.transaction(beat, active, value_from_callable=True)

    @staticmethod
    def _overflow(
        pipe: Pipeline, bucket: str, new_ids: List[str], limit: int
    ) -> List[str]:
        """Ids pushed out of a retention list once new_ids are prepended."""
        return (list(reversed(new_ids)) + pipe.lrange(bucket, 0, -1))[limit:]

    def _retain(
        self, pipe: Pipeline, bucket: str, new_ids: List[str], dropped: List[str], limit: int
    ) -> None:
        # Must be queued after the records of new_ids are written
        pipe.lpush(bucket, *new_ids)
        if limit > 0:
            pipe.ltrim(bucket, 0, limit - 1)
        else:
            pipe.delete(bucket)
        if dropped:
            pipe.hdel(self._key("jobs"), *dropped)

    def complete(self, job_id: str, result: Any = None) -> Optional[Job]:
        """Mark an active job completed and record its result."""
        active, completed = self._key("active"), self._key("completed")
        limit = self.config.remove_on_complete

        def finish(pipe: Pipeline) -> Optional[Job]:
            job = self._load_active(pipe, job_id)
            if job is None:
                return None
            dropped = self._overflow(pipe, completed, [job_id], limit)
            job.state = JobState.COMPLETED
            job.result = result
            job.worker_id = None
            job.finished_at = _utcnow()
            job.updated_at = job.finished_at
            pipe.multi()
            pipe.zrem(active, job_id)
            pipe.hset(self._key("jobs"), job_id, self._dump(job))
            self._retain(pipe, completed, [job_id], dropped, limit)
            return job

        job = self._redis.transaction(finish, active, completed, value_from_callable=True)
        if job is None:
            logger.warning("complete_unknown_job", queue=self.name, job_id=job_id)
            return None
        self._notify()
        return job

    @staticmethod
    def _mark_failed(job: Job) -> None:
        job.state = JobState.FAILED
        job.finished_at = _utcnow()
        job.updated_at = job.finished_at

    def fail(
        self, job_id: str, error: str, permanent: bool = False
    ) -> Tuple[Optional[Job], bool]:
        """Record a failed attempt.

        Args:
            job_id: Active job ID
            error: Error message from the attempt
            permanent: Fail immediately without retrying

        Returns:
            Tuple of (job, terminal)
        """
        active, failed = self._key("active"), self._key("failed")
        limit = self.config.remove_on_fail

        def record_failure(pipe: Pipeline) -> Tuple[Optional[Job], bool]:
            job = self._load_active(pipe, job_id)
            if job is None:
                return None, False
            job.last_error = error
            job.worker_id = None
            job.updated_at = _utcnow()
            terminal = permanent or job.attempts >= job.max_attempts
            if terminal:
                dropped = self._overflow(pipe, failed, [job_id], limit)
                self._mark_failed(job)
            else:
                job.state = JobState.DELAYED
                job.available_at = self._clock() + self.config.backoff_seconds(job.attempts)
            pipe.multi()
            pipe.zrem(active, job_id)
            pipe.hset(self._key("jobs"), job_id, self._dump(job))
            if terminal:
                self._retain(pipe, failed, [job_id], dropped, limit)
            else:
                pipe.zadd(self._key("delayed"), {job_id: job.available_at})
            return job, terminal

        job, terminal = self._redis.transaction(
            record_failure, active, failed, value_from_callable=True
        )
        if job is None:
            logger.warning("fail_unknown_job", queue=self.name, job_id=job_id)
            return None, False
        self._notify()
        if not terminal:
            logger.info(
                "job_retry_scheduled",
                queue=self.name,
                job_id=job.id,
                attempts=job.attempts,
                max_attempts=job.max_attempts,
                next_retry_in_seconds=self.config.backoff_seconds(job.attempts),
            )
        return job, terminal

    def recover_stalled(self) -> List[Tuple[Job, bool]]:
        """Requeue or fail active jobs whose heartbeat is too old.

        Also picks up jobs whose worker process died, since nothing refreshes
        their heartbeat.

        Returns:
            List of (job, terminal) for every recovered job
        """
        active, failed = self._key("active"), self._key("failed")
        limit = self.config.remove_on_fail

        def recover(pipe: Pipeline) -> List[Tuple[Job, bool]]:
            cutoff = self._clock() - self.config.stalled_interval_seconds
            stalled_ids = pipe.zrangebyscore(active, "-inf", f"({cutoff}")
            if not stalled_ids:
                return []
            recovered = []
            for raw in pipe.hmget(self._key("jobs"), stalled_ids):
                job = self._load(raw)
                if job is None:
                    continue
                job.stalled_count += 1
                job.worker_id = None
                terminal = (
                    job.stalled_count > self.config.max_stalled_count
                    or job.attempts >= job.max_attempts
                )
                if terminal:
                    job.last_error = "job stalled more than allowable limit"
                    self._mark_failed(job)
                else:
                    job.state = JobState.WAITING
                    job.updated_at = _utcnow()
                recovered.append((job, terminal))

            failed_ids = [job.id for job, terminal in recovered if terminal]
            dropped = self._overflow(pipe, failed, failed_ids, limit) if failed_ids else []
            pipe.multi()
            pipe.zrem(active, *stalled_ids)
            for job, terminal in recovered:
                pipe.hset(self._key("jobs"), job.id, self._dump(job))
                if not terminal:
                    pipe.zadd(self._key("waiting"), {job.id: self._waiting_score(job)})
            if failed_ids:
                self._retain(pipe, failed, failed_ids, dropped, limit)
            return recovered

        recovered = self._redis.transaction(
            recover, active, failed, value_from_callable=True
        )
        for job, terminal in recovered:
            logger.warning(
                "job_stalled",
                queue=self.name,
                job_id=job.id,
                stalled_count=job.stalled_count,
                terminal=terminal,
            )
        if recovered:
            self._notify()
        return recovered

    def get(self, job_id: str) -> Optional[Job]:
        return self._load(self._redis.hget(self._key("jobs"), job_id))

    def stats(self) -> QueueStats:
        with self._redis.pipeline() as pipe:
            pipe.zcard(self._key("waiting"))
            pipe.zcard(self._key("active"))
            pipe.llen(self._key("completed"))
            pipe.llen(self._key("failed"))
            pipe.zcard(self._key("delayed"))
            waiting, active, completed, failed, delayed = pipe.execute()
        return QueueStats(
            waiting=waiting,
            active=active,
            completed=completed,
            failed=failed,
            delayed=delayed,
        )

    def clear(self) -> int:
        """Remove every job that is not currently active.

        Returns:
            Number of jobs removed
        """
        buckets = [self._key(s) for s in ("waiting", "delayed", "completed", "failed")]
        waiting, delayed, completed, failed = buckets

        def remove(pipe: Pipeline) -> int:
            job_ids = (
                pipe.zrange(waiting, 0, -1)
                + pipe.zrange(delayed, 0, -1)
                + pipe.lrange(completed, 0, -1)
                + pipe.lrange(failed, 0, -1)
            )
            pipe.multi()
            pipe.delete(*buckets)
            if job_ids:
                pipe.hdel(self._key("jobs"), *job_ids)
            return len(job_ids)

        removed = self._redis.transaction(remove, *buckets, value_from_callable=True)
        self._notify()
        logger.info("queue_cleared", queue=self.name, removed=removed)
        return removed

    def is_idle(self) -> bool:
        with self._redis.pipeline() as pipe:
            for suffix in ("waiting", "delayed", "active"):
                pipe.zcard(self._key(suffix))
            return not any(pipe.execute())

    def wait_until_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no job is waiting, delayed or active.

        Polls Redis every ``poll_interval_seconds`` and on local wake-ups.

        Args:
            timeout: Seconds to wait; None waits indefinitely

        Returns:
            True if the queue became idle, False on timeout
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while not self.is_idle():
            wait_for = self.config.poll_interval_seconds
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                wait_for = min(wait_for, remaining)
            with self._local:
                self._local.wait(timeout=wait_for)
        return True

    def wake_all(self) -> None:
        self._notify()
