"""Queue exceptions."""


class QueueError(Exception):
    """Base exception for queue errors."""

    pass


class QueueNotInitializedError(QueueError):
    """Raised when the queue manager is used before ``init()`` or after ``shutdown()``."""

    pass


class UnknownQueueError(QueueError, KeyError):
    """Raised when a queue name is not configured."""

    pass


class PermanentJobError(QueueError):
    """Raised by a handler to fail a job immediately, without retries.

    Example:
        def handle(job):
            if "to" not in job.payload:
                raise PermanentJobError("payload has no recipient")
    """

    pass
