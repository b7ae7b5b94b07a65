"""Unit tests for the application-scoped providers."""

import pytest

from infrastructure import services
from infrastructure.notifications import FirebasePushProvider
from infrastructure.notifications.providers import StubSmsProvider

PROVIDERS = [getattr(services, name) for name in services.__all__]


@pytest.fixture(autouse=True)
def reset_providers(monkeypatch):
    """Isolate provider caches and pin settings that pick the providers."""
    monkeypatch.setenv("SMS_PROVIDER", "stub")
    monkeypatch.setenv("MAIL_TRANSPORT", "json")
    for provider in PROVIDERS:
        provider.cache_clear()
    yield
    if services.get_queue_manager.cache_info().currsize:
        services.get_queue_manager().shutdown(timeout=2.0)
    for provider in PROVIDERS:
        provider.cache_clear()


@pytest.mark.unit
class TestProviders:
    """Tests for provider wiring and caching."""

    def test_providers_are_singletons(self):
        assert services.get_settings() is services.get_settings()
        assert services.get_translator() is services.get_translator()
        assert services.get_notification_center() is services.get_notification_center()

    def test_translator_loads_shipped_locales(self):
        translator = services.get_translator()

        assert {"en", "ar"} <= set(translator.get_available_locales())

    def test_channels_use_configured_providers(self):
        assert isinstance(services.get_sms_channel()._provider, StubSmsProvider)
        assert isinstance(services.get_push_channel()._provider, FirebasePushProvider)
        assert services.get_email_channel()._transport is services.get_mail_transport()

    def test_queue_manager_initialized(self):
        manager = services.get_queue_manager()

        assert manager.is_initialized is True
        assert manager.channels == ["email", "push", "sms"]

    def test_service_shares_center_and_store(self):
        service = services.get_notification_service()

        assert service.center is services.get_notification_center()
        assert service.store is services.get_notification_store()
        assert service.center.store is service.store
