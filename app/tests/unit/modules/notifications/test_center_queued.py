"""Unit tests for NotificationCenter queued dispatch and outcome back-fill."""

from unittest.mock import MagicMock

import pytest

from infrastructure.notifications import ChannelOutcome, FakePushProvider, PushChannel, SMSChannel
from infrastructure.notifications.providers import SmsProvider
from infrastructure.operations import OperationResult
from infrastructure.queue import Job, JobState, QueueConfig, QueueManager
from modules.notifications import NotificationCenter, NotificationFilter
from tests.factories import make_intent


@pytest.fixture
def queued_center(
    translator, email_channel, push_channel, sms_channel, notification_store, queue_manager
):
    """Build a NotificationCenter on the shared queue manager."""

    def _build(**overrides):
        values = {
            "translator": translator,
            "email_channel": email_channel,
            "push_channel": push_channel,
            "sms_channel": sms_channel,
            "store": notification_store,
            "queue_manager": queue_manager,
        }
        values.update(overrides)
        return NotificationCenter(**values)

    return _build


def _scripted_push_channel(*outcomes):
    channel = MagicMock(spec=PushChannel)
    channel.channel_name = "push"
    if len(outcomes) == 1:
        channel.send.return_value = outcomes[0]
    else:
        channel.send.side_effect = list(outcomes)
    return channel


def _channel_outcome(store, notification_id, channel="push"):
    record = store.get(notification_id)
    return record.data.channels.get(channel) if record else None


class _OneNumberDownSmsProvider(SmsProvider):
    """Delivers to every number except one, which times out."""

    name = "one-down"

    def __init__(self, down):
        self.down = down
        self.sent = []

    def check_configuration(self):
        return OperationResult.success()

    def send_one(self, to, message, from_number=None):
        self.sent.append(to)
        if to == self.down:
            return OperationResult.transient_error("twilio timeout", error_code="TIMEOUT")
        return OperationResult.success(data={"message_id": f"sms-{len(self.sent)}"})


@pytest.mark.unit
class TestDispatchQueued:
    """Tests for enqueueing a dispatch."""

    def test_jobs_enqueued_after_record(self, queued_center, queue_manager):
        center = queued_center()

        summary = center.dispatch(
            make_intent(push_tokens=["tok-1"], sms={"to": "+15550100"}, use_queue=True)
        )

        assert summary.push is None
        assert summary.sms is None
        assert summary.queued.email is None
        assert summary.persisted.data.channels == {}
        job = queue_manager.get_job("push", summary.queued.push)
        assert job.name == "send-push"
        assert job.payload["title"] == "Welcome Ada"
        assert job.payload["tokens"] == ["tok-1"]
        assert job.metadata["notification_id"] == summary.persisted.id
        assert job.metadata["recipient_id"] == "42"
        assert job.metadata["source"] == "notification_center"
        assert job.metadata["correlation_id"]
        assert queue_manager.get_job("sms", summary.queued.sms).payload["message"] == "Hi Ada"

    def test_skipped_channel_recorded_and_not_enqueued(self, queued_center, queue_manager):
        summary = queued_center().dispatch_queued(
            make_intent(push_tokens=[], sms={"to": "+15550100"})
        )

        assert summary.queued.push is None
        assert summary.push.skipped is True
        assert summary.persisted.data.channels["push"].skipped is True
        assert queue_manager.get_stats("push")["waiting"] == 0

    def test_queue_options(self, queued_center, queue_manager):
        summary = queued_center().dispatch(
            make_intent(
                push_tokens=["tok-1"],
                use_queue=True,
                queue_options={"delay": 60000, "priority": 3},
            )
        )

        job = queue_manager.get_job("push", summary.queued.push)
        assert job.state is JobState.DELAYED
        assert job.priority == 3

    def test_enqueue_failure_only_affects_channel(
        self, translator, email_channel, push_channel, sms_channel, notification_store
    ):
        manager = QueueManager({"sms": QueueConfig(name="sms")})
        manager.init()
        try:
            center = NotificationCenter(
                translator=translator,
                email_channel=email_channel,
                push_channel=push_channel,
                sms_channel=sms_channel,
                store=notification_store,
                queue_manager=manager,
            )

            summary = center.dispatch_queued(
                make_intent(push_tokens=["tok-1"], sms={"to": "+15550100"})
            )
        finally:
            manager.shutdown()

        assert summary.push.ok is False
        assert summary.push.error == "Failed to queue push job"
        assert summary.queued.sms is not None

    def test_register_handlers_requires_manager(self, queued_center):
        with pytest.raises(ValueError, match="QueueManager"):
            queued_center(queue_manager=None).register_queue_handlers()


@pytest.mark.unit
class TestQueuedBackfill:
    """Tests for writing queued outcomes back into the record."""

    def test_completed_job_backfills_record(
        self, queued_center, notification_store, push_provider, wait_until
    ):
        center = queued_center()
        center.register_queue_handlers()

        summary = center.dispatch(make_intent(push_tokens=["tok-1"], use_queue=True))
        notification_id = summary.persisted.id

        assert wait_until(lambda: _channel_outcome(notification_store, notification_id) is not None)
        outcome = _channel_outcome(notification_store, notification_id)
        assert outcome.ok is True
        assert outcome.success_count == 1
        assert push_provider.sent[0]["title"] == "Welcome Ada"

    def test_retryable_failure_then_success(
        self, queued_center, notification_store, queue_manager, wait_until
    ):
        channel = _scripted_push_channel(
            ChannelOutcome.failure("Firebase unavailable", retryable=True),
            ChannelOutcome.success(message_ids=["m1"]),
        )
        center = queued_center(push_channel=channel)
        center.register_queue_handlers()

        summary = center.dispatch_queued(make_intent(push_tokens=["tok-1"]))
        notification_id = summary.persisted.id

        assert wait_until(lambda: _channel_outcome(notification_store, notification_id) is not None)
        assert _channel_outcome(notification_store, notification_id).message_ids == ["m1"]
        assert queue_manager.get_job("push", summary.queued.push).attempts == 2

    def test_exhausted_retries_backfill_failure(
        self, queued_center, notification_store, wait_until
    ):
        channel = _scripted_push_channel(
            ChannelOutcome.failure("Firebase unavailable", retryable=True)
        )
        center = queued_center(push_channel=channel)
        center.register_queue_handlers()

        summary = center.dispatch_queued(make_intent(push_tokens=["tok-1"]))
        notification_id = summary.persisted.id

        assert wait_until(lambda: _channel_outcome(notification_store, notification_id) is not None)
        outcome = _channel_outcome(notification_store, notification_id)
        assert outcome.ok is False
        assert outcome.error == "Firebase unavailable"
        assert channel.send.call_count == 3

    def test_non_retryable_failure_completes_job(
        self, queued_center, notification_store, queue_manager, wait_until
    ):
        center = queued_center(push_channel=PushChannel(FakePushProvider(failing_tokens=["stale"])))
        center.register_queue_handlers()

        summary = center.dispatch_queued(make_intent(push_tokens=["stale"]))
        notification_id = summary.persisted.id

        assert wait_until(lambda: _channel_outcome(notification_store, notification_id) is not None)
        outcome = _channel_outcome(notification_store, notification_id)
        assert outcome.ok is False
        assert outcome.failure_count == 1
        job = queue_manager.get_job("push", summary.queued.push)
        assert job.state is JobState.COMPLETED
        assert job.attempts == 1

    def test_partial_sms_delivery_is_not_resent(
        self, queued_center, notification_store, queue_manager, wait_until
    ):
        provider = _OneNumberDownSmsProvider(down="+15550102")
        center = queued_center(sms_channel=SMSChannel(provider))
        center.register_queue_handlers()

        summary = center.dispatch_queued(
            make_intent(sms={"to": ["+15550101", "+15550102"], "message": "Hi"})
        )
        notification_id = summary.persisted.id

        assert wait_until(
            lambda: _channel_outcome(notification_store, notification_id, "sms") is not None
        )
        outcome = _channel_outcome(notification_store, notification_id, "sms")
        assert outcome.success_count == 1
        assert outcome.failure_count == 1
        assert provider.sent == ["+15550101", "+15550102"]
        job = queue_manager.get_job("sms", summary.queued.sms)
        assert job.state is JobState.COMPLETED
        assert job.attempts == 1

    def test_unpersisted_dispatch_still_delivers(
        self, queued_center, notification_store, push_provider, queue_manager, wait_until
    ):
        center = queued_center()
        center.register_queue_handlers()

        summary = center.dispatch_queued(make_intent(notifiable_id=None, push_tokens=["tok-1"]))

        assert summary.persisted is None
        assert wait_until(lambda: len(push_provider.sent) == 1)
        assert queue_manager.get_job("push", summary.queued.push).metadata["notification_id"] is None
        assert notification_store.count(NotificationFilter()) == 0

    def test_notify_many_queued(self, queued_center, notification_store, wait_until):
        center = queued_center()
        center.register_queue_handlers()

        summaries = center.notify_many_queued(
            ["1", "2", "3"], make_intent(notifiable_id=None, push_tokens=["tok-1"])
        )

        ids = [s.persisted.id for s in summaries]
        assert [s.persisted.notifiable_id for s in summaries] == ["1", "2", "3"]
        assert wait_until(
            lambda: all(_channel_outcome(notification_store, i) is not None for i in ids)
        )

    def test_backfill_for_missing_record_is_ignored(self, queued_center):
        job = Job(channel="push", payload={}, metadata={"notification_id": "missing"})

        queued_center().backfill_completed(job, {"ok": True})
        queued_center().backfill_failed(job, "boom")
