"""Unit tests for NotificationCenter synchronous dispatch."""

from unittest.mock import MagicMock

import pytest

from infrastructure.notifications import PushChannel
from modules.notifications import NotificationCenter, NotificationFilter
from tests.factories import make_intent

ORDER_TITLE_KEY = "messages.push_notification.order.placed.title"
ORDER_MESSAGE_KEY = "messages.push_notification.order.placed.message"


@pytest.fixture
def center_with(translator, email_channel, push_channel, sms_channel, notification_store):
    """Build a NotificationCenter with some collaborators replaced."""

    def _build(**overrides):
        values = {
            "translator": translator,
            "email_channel": email_channel,
            "push_channel": push_channel,
            "sms_channel": sms_channel,
            "store": notification_store,
        }
        values.update(overrides)
        return NotificationCenter(**values)

    return _build


@pytest.mark.unit
class TestDispatchPush:
    """Tests for push delivery and localization."""

    def test_literal_content_is_interpolated(self, notification_center, push_provider):
        summary = notification_center.dispatch(make_intent(push_tokens=["tok-1"]))

        assert summary.locale == "en"
        assert summary.push.ok is True
        assert summary.push.message_ids == ["fake-1-0"]
        assert summary.email is None
        assert summary.sms is None
        sent = push_provider.sent[0]
        assert sent["tokens"] == ["tok-1"]
        assert sent["title"] == "Welcome Ada"
        assert sent["body"] == "Hi Ada"

    def test_localized_variant_for_target_locale(self, notification_center, push_provider):
        intent = make_intent(
            push_tokens=["tok-1"],
            target_locale="ar-SA",
            localized_content={"ar": {"title": "مرحبا {{name}}", "message": "أهلا {{name}}"}},
        )

        summary = notification_center.dispatch(intent)

        assert summary.locale == "ar"
        assert push_provider.sent[0]["title"] == "مرحبا Ada"
        assert push_provider.sent[0]["body"] == "أهلا Ada"

    def test_translation_keys_in_target_locale(self, notification_center, push_provider):
        intent = make_intent(
            title=ORDER_TITLE_KEY,
            message=ORDER_MESSAGE_KEY,
            title_is_key=True,
            message_is_key=True,
            variables={"orderId": 1001},
            push_tokens=["tok-1"],
            target_locale="ar",
        )

        notification_center.dispatch(intent)

        assert push_provider.sent[0]["title"] == "تم تقديم الطلب بنجاح"
        assert push_provider.sent[0]["body"] == "تم تقديم طلبك رقم 1001 بنجاح"

    def test_key_shaped_literal_is_not_translated(self, notification_center, push_provider):
        notification_center.dispatch(
            make_intent(title=ORDER_TITLE_KEY, message="plain", push_tokens=["tok-1"])
        )

        assert push_provider.sent[0]["title"] == ORDER_TITLE_KEY

    def test_empty_tokens_are_skipped(self, notification_center, push_provider):
        summary = notification_center.dispatch(make_intent(push_tokens=[]))

        assert summary.push.ok is False
        assert summary.push.skipped is True
        assert push_provider.sent == []
        assert summary.persisted.data.channels["push"].skipped is True

    def test_default_push_tokens(self, notification_center, push_provider):
        notification_center.dispatch(make_intent(default_push_tokens=["fallback"]))

        assert push_provider.sent[0]["tokens"] == ["fallback"]

    def test_variant_push_data_merged(self, notification_center, push_provider):
        intent = make_intent(
            push={"tokens": ["tok-1"], "data": {"orderId": 1001, "screen": "order"}},
            target_locale="ar",
            localized_content={"ar": {"push": {"data": {"screen": "order-ar"}}}},
        )

        notification_center.dispatch(intent)

        assert push_provider.sent[0]["data"] == {"orderId": "1001", "screen": "order-ar"}


@pytest.mark.unit
class TestDispatchEmailAndSms:
    """Tests for the email and SMS channels in a dispatch."""

    def test_email_uses_resolved_title_and_message(self, notification_center, mail_transport):
        summary = notification_center.dispatch(make_intent(email={"to": "ada@example.com"}))

        assert summary.email.ok is True
        assert summary.email.message_ids == ["<1@recording>"]
        message = mail_transport.messages[0]
        assert message.to == ["ada@example.com"]
        assert message.subject == "Welcome Ada"
        assert message.text == "Hi Ada"
        assert message.from_address == "no-reply@acme.test"

    def test_email_template_defaults_to_target_locale(self, notification_center, mail_transport):
        notification_center.dispatch(
            make_intent(
                email={"to": "ada@example.com", "template": {"id": "master"}},
                target_locale="ar",
            )
        )

        html = mail_transport.messages[0].html
        assert 'dir="rtl"' in html
        assert "Hi Ada" in html

    def test_variant_email_overrides_subject(self, notification_center, mail_transport):
        intent = make_intent(
            email={"to": "ada@example.com", "subject": "Base subject"},
            target_locale="ar",
            localized_content={"ar": {"email": {"subject": "عنوان {{name}}"}}},
        )

        notification_center.dispatch(intent)

        message = mail_transport.messages[0]
        assert message.subject == "عنوان Ada"
        assert message.to == ["ada@example.com"]

    def test_email_without_recipient_is_skipped(self, notification_center, mail_transport):
        summary = notification_center.dispatch(make_intent(email={"to": []}))

        assert summary.email.skipped is True
        assert summary.email.error == "No email recipient"
        assert mail_transport.messages == []

    def test_disabled_mail_transport(self, notification_center, mail_transport):
        mail_transport.enabled = False

        summary = notification_center.dispatch(make_intent(email={"to": "ada@example.com"}))

        assert summary.email.ok is False
        assert summary.email.skipped is True
        assert mail_transport.messages == []

    def test_sms_with_stub_provider(self, notification_center):
        summary = notification_center.dispatch(make_intent(sms={"to": "+15550100"}))

        assert summary.sms.ok is True
        assert summary.sms.skipped is True

    def test_all_channels(self, notification_center, mail_transport, push_provider):
        summary = notification_center.dispatch(
            make_intent(
                email={"to": "ada@example.com"},
                push_tokens=["tok-1"],
                sms={"to": "+15550100"},
            )
        )

        assert summary.email.ok and summary.push.ok and summary.sms.ok
        assert set(summary.persisted.data.channels) == {"email", "push", "sms"}


@pytest.mark.unit
class TestDispatchPersistence:
    """Tests for the persisted record."""

    def test_record_keeps_raw_content(self, notification_center, notification_store):
        intent = make_intent(
            push_tokens=["tok-1"],
            notification_type="welcome",
            localized_content={"ar": {"title": "مرحبا {{name}}"}},
            metadata={"source": "signup"},
        )

        summary = notification_center.dispatch(intent)

        record = notification_store.get(summary.persisted.id)
        assert record.type == "welcome"
        assert record.notifiable_type == "user"
        assert record.notifiable_id == "42"
        assert record.data.title == "Welcome {{name}}"
        assert record.data.title_is_key is False
        assert record.data.title_translations == {
            "ar": "مرحبا {{name}}",
            "en": "Welcome {{name}}",
        }
        assert record.data.metadata == {"source": "signup", "variables": {"name": "Ada"}}
        assert record.data.channels["push"].ok is True
        assert record.read_at is None

    def test_key_flags_persisted(self, notification_center):
        summary = notification_center.dispatch(
            make_intent(
                title=ORDER_TITLE_KEY,
                message=ORDER_MESSAGE_KEY,
                title_is_key=True,
                message_is_key=True,
                push_tokens=["tok-1"],
            )
        )

        assert summary.persisted.data.title_is_key is True
        assert summary.persisted.data.message_is_key is True

    def test_mark_as_read(self, notification_center):
        summary = notification_center.dispatch(make_intent(push_tokens=["t"], mark_as_read=True))

        assert summary.persisted.read_at == summary.persisted.created_at

    @pytest.mark.parametrize("overrides", [{"notifiable_id": None}, {"persist": False}])
    def test_not_persisted(self, notification_center, notification_store, overrides):
        summary = notification_center.dispatch(make_intent(push_tokens=["t"], **overrides))

        assert summary.persisted is None
        assert summary.push.ok is True
        assert notification_store.count(NotificationFilter()) == 0

    def test_persist_failure_does_not_change_outcomes(self, center_with):
        store = MagicMock()
        store.create.side_effect = RuntimeError("database unavailable")

        summary = center_with(store=store).dispatch(make_intent(push_tokens=["tok-1"]))

        assert summary.push.ok is True
        assert summary.persisted is None

    def test_no_store_configured(self, center_with):
        summary = center_with(store=None).dispatch(make_intent(push_tokens=["tok-1"]))

        assert summary.persisted is None
        assert summary.push.ok is True


@pytest.mark.unit
class TestDispatchFailures:
    """Tests for channel failures during dispatch."""

    def test_raising_channel_becomes_failure(self, center_with):
        push_channel = MagicMock(spec=PushChannel)
        push_channel.channel_name = "push"
        push_channel.send.side_effect = RuntimeError("boom")

        summary = center_with(push_channel=push_channel).dispatch(
            make_intent(push_tokens=["tok-1"], sms={"to": "+15550100"})
        )

        assert summary.push.ok is False
        assert summary.push.error == "boom"
        assert summary.sms.ok is True

    def test_queued_dispatch_requires_manager(self, notification_center):
        with pytest.raises(ValueError, match="QueueManager"):
            notification_center.dispatch(make_intent(push_tokens=["t"], use_queue=True))


@pytest.mark.unit
class TestNotifyMany:
    """Tests for per-user fan-out."""

    def test_notify_user_fills_recipient(self, notification_center):
        summary = notification_center.notify_user(7, make_intent(notifiable_id=None, push_tokens=["t"]))

        assert summary.persisted.notifiable_type == "user"
        assert summary.persisted.notifiable_id == "7"

    def test_notify_many_preserves_order(self, notification_center, push_provider):
        summaries = notification_center.notify_many(
            ["1", "2", "3"], make_intent(notifiable_id=None, push_tokens=["t"])
        )

        assert [s.persisted.notifiable_id for s in summaries] == ["1", "2", "3"]
        assert all(s.push.ok for s in summaries)
        assert len(push_provider.sent) == 3
