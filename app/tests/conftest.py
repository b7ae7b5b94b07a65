"""Shared fixtures for the notification center test suite."""

import time
from typing import Callable, List, Optional

import pytest

from infrastructure.configuration.infrastructure.i18n import DEFAULT_TRANSLATIONS_DIR
from infrastructure.i18n import Translator, YAMLTranslationLoader
from infrastructure.notifications import (
    EmailChannel,
    EmailTemplateRenderer,
    FakePushProvider,
    PushChannel,
    SMSChannel,
)
from infrastructure.notifications.providers import MailMessage, MailTransport
from infrastructure.notifications.providers.sms import StubSmsProvider
from infrastructure.operations import OperationResult
from infrastructure.queue import QueueConfig, QueueManager
from modules.notifications.center import NotificationCenter
from modules.notifications.store import InMemoryNotificationStore


class RecordingMailTransport(MailTransport):
    """Mail transport that keeps every message it is asked to send.

    Set ``result`` to make the next sends return that OperationResult.
    """

    name = "recording"

    def __init__(self, result: Optional[OperationResult] = None, enabled: bool = True):
        self.messages: List[MailMessage] = []
        self.result = result
        self.enabled = enabled

    @property
    def is_enabled(self) -> bool:
        return self.enabled

    def send(self, message: MailMessage) -> OperationResult:
        self.messages.append(message)
        if self.result is not None:
            return self.result
        return OperationResult.success(
            data={"message_id": f"<{len(self.messages)}@recording>"}
        )


@pytest.fixture
def translator():
    """Translator loaded with the shipped en/ar locale files."""
    translator = Translator(loader=YAMLTranslationLoader(DEFAULT_TRANSLATIONS_DIR))
    translator.load_all()
    return translator


@pytest.fixture
def email_renderer():
    return EmailTemplateRenderer(brand="Acme")


@pytest.fixture
def mail_transport():
    return RecordingMailTransport()


@pytest.fixture
def push_provider():
    return FakePushProvider()


@pytest.fixture
def email_channel(mail_transport, email_renderer):
    return EmailChannel(
        transport=mail_transport,
        renderer=email_renderer,
        default_from="no-reply@acme.test",
    )


@pytest.fixture
def push_channel(push_provider):
    return PushChannel(push_provider)


@pytest.fixture
def sms_channel():
    return SMSChannel(StubSmsProvider())


@pytest.fixture
def notification_store():
    return InMemoryNotificationStore()


@pytest.fixture
def notification_center(
    translator, email_channel, push_channel, sms_channel, notification_store
):
    """NotificationCenter without a queue manager."""
    return NotificationCenter(
        translator=translator,
        email_channel=email_channel,
        push_channel=push_channel,
        sms_channel=sms_channel,
        store=notification_store,
    )


@pytest.fixture
def queue_manager():
    """Initialized manager with fast retries; shut down after the test."""
    manager = QueueManager(
        {
            name: QueueConfig(
                name=name,
                concurrency=2,
                max_attempts=3,
                backoff_delay_ms=1,
                poll_interval_seconds=0.02,
            )
            for name in ("email", "push", "sms")
        }
    )
    manager.init()
    yield manager
    manager.shutdown(timeout=2.0)


@pytest.fixture
def wait_until() -> Callable[..., bool]:
    """Poll a condition until it holds or the timeout expires."""

    def _wait(condition: Callable[[], bool], timeout: float = 5.0) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if condition():
                return True
            time.sleep(0.01)
        return condition()

    return _wait
