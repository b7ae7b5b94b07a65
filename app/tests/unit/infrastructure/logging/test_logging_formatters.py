"""Unit tests for structlog processors."""

import pytest

from infrastructure.logging.formatters import (
    add_app_info,
    mask_sensitive_data,
    truncate_large_values,
)


@pytest.mark.unit
class TestAddAppInfo:
    """Tests for the add_app_info processor."""

    def test_adds_app_name_and_environment(self):
        processor = add_app_info("Acme", "production")

        result = processor(None, "info", {"event": "test"})

        assert result["app_name"] == "Acme"
        assert result["environment"] == "production"

    def test_does_not_override_existing_values(self):
        processor = add_app_info("Acme")

        result = processor(None, "info", {"event": "test", "app_name": "other"})

        assert result["app_name"] == "other"
        assert result["environment"] == "development"


@pytest.mark.unit
class TestMaskSensitiveData:
    """Tests for the mask_sensitive_data processor."""

    def test_masks_tokens_and_credentials(self):
        processor = mask_sensitive_data()

        result = processor(
            None,
            "info",
            {
                "event": "push_sent",
                "device_token": "abc",
                "smtp_password": "hunter2",
                "FIREBASE_PRIVATE_KEY": "-----BEGIN",
                "success_count": 2,
            },
        )

        assert result["device_token"] == "***REDACTED***"
        assert result["smtp_password"] == "***REDACTED***"
        assert result["FIREBASE_PRIVATE_KEY"] == "***REDACTED***"
        assert result["success_count"] == 2
        assert result["event"] == "push_sent"

    def test_none_values_are_kept(self):
        processor = mask_sensitive_data()

        result = processor(None, "info", {"auth_token": None})

        assert result["auth_token"] is None

    def test_additional_patterns_and_custom_mask(self):
        processor = mask_sensitive_data(
            mask_value="[hidden]", additional_patterns=frozenset({"phone"})
        )

        result = processor(None, "info", {"phone_number": "+15550100"})

        assert result["phone_number"] == "[hidden]"


@pytest.mark.unit
class TestTruncateLargeValues:
    """Tests for the truncate_large_values processor."""

    def test_truncates_long_strings(self):
        processor = truncate_large_values(max_length=10)

        result = processor(None, "debug", {"html": "x" * 25})

        assert result["html"].startswith("x" * 10 + "...[truncated")
        assert "25 chars total" in result["html"]

    def test_leaves_short_and_non_string_values(self):
        processor = truncate_large_values(max_length=10)

        result = processor(None, "debug", {"short": "abc", "count": 10**20})

        assert result == {"short": "abc", "count": 10**20}
