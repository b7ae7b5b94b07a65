"""Queue worker pool.

A QueueWorker runs a bounded pool of threads that claim jobs from one
JobStore and hand them to a channel handler. A monitor thread keeps
heartbeats fresh for jobs held by live threads and recovers stalled jobs.
"""

import threading
from typing import Any, Callable, Dict, List, Optional

import structlog
from infrastructure.queue.config import QueueConfig
from infrastructure.queue.exceptions import PermanentJobError
from infrastructure.queue.models import Job
from infrastructure.queue.store import JobStore

logger = structlog.get_logger()

JobHandler = Callable[[Job], Any]
CompletedListener = Callable[[Job, Any], None]
FailedListener = Callable[[Job, str], None]


class QueueWorker:
    """Worker pool processing a single channel queue.

    Handler contract:
        - Return value is stored as the job result and the job completes
        - PermanentJobError fails the job immediately
        - Any other exception is a failed attempt, retried with backoff
          until max_attempts is reached

    Listeners are called after a job completes or terminally fails. Listener
    exceptions are logged and do not affect the job.

    Attributes:
        queue: JobStore to claim jobs from
        handler: Callable processing one job
        concurrency: Number of worker threads
        worker_id: Prefix for thread worker ids
    """

    def __init__(
        self,
        queue: JobStore,
        handler: JobHandler,
        concurrency: Optional[int] = None,
        on_completed: Optional[CompletedListener] = None,
        on_failed: Optional[FailedListener] = None,
        worker_id: Optional[str] = None,
    ) -> None:
        self.queue = queue
        self.handler = handler
        self.concurrency = concurrency or queue.config.concurrency
        if self.concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.worker_id = worker_id or f"{queue.name}-worker"
        self._on_completed = on_completed
        self._on_failed = on_failed
        self._stop = threading.Event()
        self._threads: List[threading.Thread] = []
        self._in_flight: Dict[str, str] = {}
        self._in_flight_lock = threading.Lock()
        self._stats_lock = threading.Lock()
        self.stats = {"processed": 0, "completed": 0, "retried": 0, "failed": 0}
        self.log = logger.bind(component="queue_worker", queue=queue.name)

    @property
    def config(self) -> QueueConfig:
        return self.queue.config

    @property
    def is_running(self) -> bool:
        return any(thread.is_alive() for thread in self._threads)

    def start(self) -> None:
        """Start the worker threads and the monitor thread."""
        if self.is_running:
            return
        self._stop.clear()
        self._threads = [
            threading.Thread(
                target=self._run,
                args=(f"{self.worker_id}-{index}",),
                name=f"{self.worker_id}-{index}",
                daemon=True,
            )
            for index in range(self.concurrency)
        ]
        self._threads.append(
            threading.Thread(
                target=self._monitor, name=f"{self.worker_id}-monitor", daemon=True
            )
        )
        for thread in self._threads:
            thread.start()
        self.log.info("queue_worker_started", concurrency=self.concurrency)

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Signal threads to stop and wait for in-progress jobs to finish."""
        self._stop.set()
        self.queue.wake_all()
        for thread in self._threads:
            thread.join(timeout=timeout)
        self._threads = []
        self.log.info("queue_worker_stopped", **self.stats)

    def _increment(self, key: str) -> None:
        with self._stats_lock:
            self.stats[key] += 1

    def _run(self, thread_worker_id: str) -> None:
        while not self._stop.is_set():
            job = self.queue.claim(thread_worker_id)
            if job is None:
                continue
            with self._in_flight_lock:
                self._in_flight[job.id] = thread_worker_id
            try:
                self._process(job)
            finally:
                with self._in_flight_lock:
                    self._in_flight.pop(job.id, None)

    def _process(self, job: Job) -> None:
        self._increment("processed")
        log = self.log.bind(job_id=job.id, job_name=job.name, attempt=job.attempts)
        log.debug("job_processing")
        try:
            result = self.handler(job)
        except PermanentJobError as e:
            log.warning("job_failed_permanently", error=str(e))
            failed, terminal = self.queue.fail(job.id, str(e), permanent=True)
            self._after_failure(failed, terminal)
            return
        except Exception as e:  # handler errors are failed attempts
            log.warning("job_attempt_failed", error=str(e), exc_info=True)
            failed, terminal = self.queue.fail(job.id, str(e))
            self._after_failure(failed, terminal)
            return

        completed = self.queue.complete(job.id, result)
        if completed is None:
            # Recovered as stalled while the handler was running
            return
        self._increment("completed")
        log.info("job_completed")
        self._emit_completed(completed, result)

    def _after_failure(self, job: Optional[Job], terminal: bool) -> None:
        if job is None:
            return
        if not terminal:
            self._increment("retried")
            return
        self._increment("failed")
        self.log.error(
            "job_failed",
            job_id=job.id,
            attempts=job.attempts,
            error=job.last_error,
        )
        self._emit_failed(job, job.last_error or "")

    def _emit_completed(self, job: Job, result: Any) -> None:
        if self._on_completed is None:
            return
        try:
            self._on_completed(job, result)
        except Exception as e:  # listener errors are isolated
            self.log.error(
                "completed_listener_failed", job_id=job.id, error=str(e), exc_info=True
            )

    def _emit_failed(self, job: Job, error: str) -> None:
        if self._on_failed is None:
            return
        try:
            self._on_failed(job, error)
        except Exception as e:  # listener errors are isolated
            self.log.error(
                "failed_listener_failed", job_id=job.id, error=str(e), exc_info=True
            )

    def _monitor(self) -> None:
        interval = min(
            self.config.stalled_interval_seconds / 3, self.config.poll_interval_seconds
        )
        while not self._stop.wait(timeout=interval):
            self.beat()
            self.check_stalled()

    def beat(self) -> None:
        """Refresh heartbeats of jobs held by live worker threads."""
        with self._in_flight_lock:
            held = list(self._in_flight.items())
        for job_id, thread_worker_id in held:
            self.queue.heartbeat(job_id, thread_worker_id)

    def check_stalled(self) -> int:
        """Recover stalled jobs and emit failures for the ones given up on.

        Returns:
            Number of recovered jobs
        """
        recovered = self.queue.recover_stalled()
        for job, terminal in recovered:
            if terminal:
                self._increment("failed")
                self._emit_failed(job, job.last_error or "")
        return len(recovered)
