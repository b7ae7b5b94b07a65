"""Unit tests for reading stored payloads back for a locale."""

import json

import pytest

from modules.notifications import (
    NotificationRecord,
    StoredPayload,
    format_for_locale,
    parse_payload,
    pick_localized_value,
)
from tests.factories import make_record


@pytest.mark.unit
class TestParsePayload:
    """Tests for parse_payload."""

    def test_json_string_with_root_variables(self):
        raw = json.dumps({"title": "Hi {{name}}", "message": "m", "variables": {"name": "Ada"}})

        payload = parse_payload(raw)

        assert payload.title == "Hi {{name}}"
        assert payload.metadata == {"variables": {"name": "Ada"}}

    def test_metadata_variables_win_over_root(self):
        payload = parse_payload(
            {"variables": {"name": "Root"}, "metadata": {"variables": {"name": "Meta"}}}
        )

        assert payload.metadata["variables"] == {"name": "Meta"}

    @pytest.mark.parametrize(
        "raw",
        ["{not json", "[1, 2]", ["a", "b"], {"title": {"nested": "object"}}],
    )
    def test_malformed_payload_keeps_raw(self, raw):
        payload = parse_payload(raw)

        assert payload.title == ""
        assert payload.metadata == {"raw": raw}

    def test_stored_payload_passthrough(self):
        payload = StoredPayload(title="t")

        assert parse_payload(payload) is payload


@pytest.mark.unit
class TestPickLocalizedValue:
    """Tests for the stored translation fallback chain."""

    translations = {"en": "Hello", "ar": "مرحبا", "fr-CA": "Bonjour"}

    @pytest.mark.parametrize(
        "target,expected",
        [
            ("ar", "مرحبا"),
            ("ar-EG", "مرحبا"),
            ("fr-CA", "Bonjour"),
            ("de", "Hello"),
        ],
    )
    def test_chain(self, target, expected):
        assert pick_localized_value("raw", self.translations, target) == expected

    def test_no_translations(self):
        assert pick_localized_value("raw", {}, "ar") == "raw"

    def test_no_match(self):
        assert pick_localized_value("raw", {"fr": "Bonjour"}, "ar", default_locale="en") == "raw"


@pytest.mark.unit
class TestFormatForLocale:
    """Tests for format_for_locale."""

    def test_key_based_record_in_reader_locale(self, translator):
        record = make_record()

        localized = format_for_locale(record, "ar", translator)

        assert localized.id == record.id
        assert localized.locale == "ar"
        assert localized.title == "تم تقديم الطلب بنجاح"
        assert localized.message == "تم تقديم طلبك رقم 1001 بنجاح"
        assert localized.read is False

    def test_defaults_to_stored_default_locale(self, translator):
        localized = format_for_locale(make_record(), None, translator)

        assert localized.locale == "en"
        assert localized.title == "Order Placed Successfully"
        assert localized.message == "Your order #1001 has been placed successfully"

    def test_literal_with_stored_translations(self, translator):
        record = make_record(
            title="Hello {{name}}",
            message="Thanks for joining",
            variables={"name": "Ada"},
            title_is_key=False,
            message_is_key=False,
            title_translations={"en": "Hello {{name}}", "ar": "مرحبا {{name}}"},
        )

        assert format_for_locale(record, "ar-EG", translator).title == "مرحبا Ada"
        assert format_for_locale(record, "fr", translator).title == "Hello Ada"
        assert format_for_locale(record, "ar", translator).message == "Thanks for joining"

    def test_legacy_record_without_flags(self, translator):
        record = make_record(
            message="Thanks for your order",
            title_is_key=None,
            message_is_key=None,
        )

        localized = format_for_locale(record, "en", translator)

        assert localized.title == "Order Placed Successfully"
        assert localized.message == "Thanks for your order"

    def test_legacy_json_string_payload(self, translator):
        record = NotificationRecord.model_construct(
            id="legacy-1",
            type="order_placed",
            notifiable_type="user",
            notifiable_id="42",
            data=json.dumps(
                {
                    "title": "messages.push_notification.order.placed.title",
                    "message": "messages.push_notification.order.placed.message",
                    "variables": {"orderId": 5},
                }
            ),
        )

        localized = format_for_locale(record, "en", translator)

        assert localized.message == "Your order #5 has been placed successfully"
        assert localized.metadata == {"variables": {"orderId": 5}}
