"""Unit tests for QueueManager and create_queue_manager."""

from unittest.mock import MagicMock

import pytest

from infrastructure.configuration import QueueSettings
from infrastructure.queue import (
    CHANNEL_QUEUES,
    InMemoryJobQueue,
    JobState,
    QueueConfig,
    QueueError,
    QueueManager,
    QueueNotInitializedError,
    RedisJobQueue,
    UnknownQueueError,
    create_job_store,
    create_queue_manager,
)


@pytest.mark.unit
class TestQueueManagerLifecycle:
    """Tests for init, shutdown and queue lookup."""

    def test_requires_configs(self):
        with pytest.raises(ValueError, match="at least one queue"):
            QueueManager({})

    def test_enqueue_before_init(self):
        manager = QueueManager({"push": QueueConfig(name="push")})

        with pytest.raises(QueueNotInitializedError):
            manager.enqueue("push", {"tokens": ["t"]})

    def test_unknown_queue(self, queue_manager):
        with pytest.raises(UnknownQueueError, match="Unknown queue: fax"):
            queue_manager.enqueue("fax", {})

        with pytest.raises(KeyError):
            queue_manager.get_stats("fax")

    def test_init_is_idempotent(self, queue_manager):
        job_id = queue_manager.enqueue("sms", {"to": ["+1"], "message": "Hi"})

        queue_manager.init()

        assert queue_manager.get_job("sms", job_id) is not None

    def test_shutdown_is_idempotent(self):
        manager = QueueManager({"push": QueueConfig(name="push", poll_interval_seconds=0.02)})
        manager.init()
        worker = manager.process_jobs("push", lambda job: None)

        manager.shutdown(timeout=2.0)
        manager.shutdown(timeout=2.0)

        assert manager.is_initialized is False
        assert worker.is_running is False
        with pytest.raises(QueueNotInitializedError):
            manager.get_stats("push")

    def test_restart_keeps_queued_jobs(self):
        manager = QueueManager({"sms": QueueConfig(name="sms")})
        manager.init()
        job_id = manager.enqueue("sms", {"to": ["+1"], "message": "Hi"})

        manager.shutdown()
        manager.init()

        assert manager.get_stats("sms")["waiting"] == 1
        assert manager.get_job("sms", job_id) is not None

    def test_store_factory_builds_each_queue(self, make_queue):
        built = []

        def factory(config):
            built.append(config.name)
            return make_queue(name=config.name)

        manager = QueueManager(
            {"email": QueueConfig(name="email"), "sms": QueueConfig(name="sms")},
            store_factory=factory,
        )
        manager.init()
        manager.shutdown()
        manager.init()

        assert built == ["email", "sms"]


@pytest.mark.unit
class TestQueueManagerJobs:
    """Tests for enqueueing and inspecting jobs."""

    def test_enqueue_defaults(self, queue_manager):
        job_id = queue_manager.enqueue(
            "email", {"to": ["ada@example.com"]}, metadata={"recipient_id": "42"}
        )

        job = queue_manager.get_job("email", job_id)
        assert job.name == "send-email"
        assert job.metadata == {"recipient_id": "42"}
        assert job.max_attempts == 3
        assert queue_manager.get_stats("email")["waiting"] == 1

    def test_enqueue_with_delay_and_name(self, queue_manager):
        job_id = queue_manager.enqueue(
            "push", {"tokens": ["t"]}, delay=60000, priority=2, name="reminder"
        )

        job = queue_manager.get_job("push", job_id)
        assert job.state is JobState.DELAYED
        assert job.name == "reminder"
        assert job.priority == 2

    def test_clear(self, queue_manager):
        queue_manager.enqueue("sms", {"to": ["+1"]})
        queue_manager.enqueue("sms", {"to": ["+2"]})

        assert queue_manager.clear("sms") == 2
        assert queue_manager.get_stats("sms")["waiting"] == 0

    def test_process_and_drain(self, queue_manager):
        handled = []
        queue_manager.process_jobs("push", lambda job: handled.append(job.payload["n"]))

        for n in range(5):
            queue_manager.enqueue("push", {"n": n})

        assert queue_manager.drain("push", timeout=5) is True
        assert sorted(handled) == [0, 1, 2, 3, 4]
        assert queue_manager.get_stats("push")["completed"] == 5

    def test_duplicate_worker_pool(self, queue_manager):
        queue_manager.process_jobs("email", lambda job: None)

        with pytest.raises(QueueError, match="already has a worker pool"):
            queue_manager.process_jobs("email", lambda job: None)


@pytest.mark.unit
class TestQueueManagerListeners:
    """Tests for completed and failed listeners."""

    def test_completed_listeners(self, queue_manager, wait_until):
        seen = []
        queue_manager.on_completed(lambda job, result: seen.append((job.id, result)))
        queue_manager.process_jobs("sms", lambda job: {"ok": True})

        job_id = queue_manager.enqueue("sms", {"to": ["+1"]})

        assert wait_until(lambda: seen == [(job_id, {"ok": True})])

    def test_failed_listeners_after_terminal_failure(self, queue_manager, wait_until):
        failed = []
        queue_manager.on_failed(lambda job, error: failed.append((job.attempts, error)))

        def handler(job):
            raise RuntimeError("smtp down")

        queue_manager.process_jobs("email", handler)
        queue_manager.enqueue("email", {"to": ["a@b.c"]})

        assert wait_until(lambda: failed == [(3, "smtp down")])

    def test_listener_error_does_not_block_others(self, queue_manager, wait_until):
        broken = MagicMock(side_effect=RuntimeError("listener bug"))
        healthy = MagicMock()
        queue_manager.on_completed(broken)
        queue_manager.on_completed(healthy)
        queue_manager.process_jobs("push", lambda job: "done")

        queue_manager.enqueue("push", {"tokens": ["t"]})

        assert wait_until(lambda: healthy.call_count == 1)
        broken.assert_called_once()


@pytest.mark.unit
class TestCreateQueueManager:
    """Tests for the settings-driven factory."""

    def test_one_queue_per_channel(self):
        manager = create_queue_manager(QueueSettings())

        assert manager.channels == list(CHANNEL_QUEUES)
        assert manager.configs["push"].concurrency == 10
        assert manager.configs["email"].concurrency == 5
        assert manager.is_initialized is False

    def test_subset_of_channels(self):
        manager = create_queue_manager(QueueSettings(), channels=["sms"])

        assert manager.channels == ["sms"]

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown queue backend: sqs"):
            create_queue_manager(QueueSettings(QUEUE_BACKEND="sqs"))

    def test_redis_backend_survives_restart(self, redis_client, wait_until):
        settings = QueueSettings(
            QUEUE_BACKEND="redis",
            QUEUE_POLL_INTERVAL_SECONDS=0.02,
            QUEUE_BACKOFF_DELAY_MS=1,
        )
        before = create_queue_manager(settings, channels=["sms"], client=redis_client())
        before.init()
        job_id = before.enqueue("sms", {"to": ["+1"], "message": "Hi"})
        before.shutdown()

        after = create_queue_manager(settings, channels=["sms"], client=redis_client())
        after.init()
        try:
            assert after.get_stats("sms")["waiting"] == 1
            handled = []

            def handler(job):
                handled.append(job.id)
                return {"ok": True}

            after.process_jobs("sms", handler)

            assert wait_until(lambda: after.get_job("sms", job_id).state is JobState.COMPLETED)
            assert handled == [job_id]
            assert after.get_job("sms", job_id).result == {"ok": True}
        finally:
            after.shutdown(timeout=2.0)


@pytest.mark.unit
class TestCreateJobStore:
    """Tests for backend selection per queue."""

    def test_memory_backend(self):
        store = create_job_store(QueueConfig(name="push"), QueueSettings())

        assert isinstance(store, InMemoryJobQueue)

    def test_redis_backend(self, redis_client):
        settings = QueueSettings(QUEUE_BACKEND="redis", QUEUE_REDIS_PREFIX="test:queue")

        store = create_job_store(QueueConfig(name="push"), settings, client=redis_client())
        job = store.add({"tokens": ["t"]})

        assert isinstance(store, RedisJobQueue)
        assert store.get(job.id).payload == {"tokens": ["t"]}

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Supported: memory, redis"):
            create_job_store(QueueConfig(name="push"), QueueSettings(QUEUE_BACKEND="kafka"))
