"""Unit tests for LocalizationResolver and LocaleResolver."""

import pytest

from infrastructure.i18n import LocaleResolver, LocalizationResolver


@pytest.mark.unit
class TestLocalizationResolver:
    """Tests for choosing the localized content variant."""

    def test_no_localized_content_uses_intent_strings(self):
        resolver = LocalizationResolver()

        resolved = resolver.resolve(
            {"title": "Hi", "message": "Body", "target_locale": "ar"}
        )

        assert resolved.locale == "en"
        assert resolved.title == "Hi"
        assert resolved.variant_used is False

    def test_target_locale_variant(self):
        resolver = LocalizationResolver()

        resolved = resolver.resolve(
            {
                "title": "Hi",
                "message": "Body",
                "target_locale": "ar",
                "localized_content": {"ar": {"title": "مرحبا"}},
            }
        )

        assert resolved.locale == "ar"
        assert resolved.title == "مرحبا"
        assert resolved.message == "Body"
        assert resolved.variant_used is True

    def test_base_language_variant(self):
        resolver = LocalizationResolver()

        resolved = resolver.resolve(
            {
                "title": "Hi",
                "target_locale": "ar-SA",
                "localized_content": {"AR": {"title": "مرحبا"}},
            }
        )

        assert resolved.locale == "ar"

    def test_falls_back_to_default_locale_variant(self):
        resolver = LocalizationResolver()

        resolved = resolver.resolve(
            {
                "title": "Hi",
                "default_locale": "en",
                "target_locale": "fr",
                "localized_content": {"en": {"title": "Hello"}, "ar": {"title": "مرحبا"}},
            }
        )

        assert resolved.locale == "en"
        assert resolved.title == "Hello"

    def test_variant_channel_overrides(self):
        resolver = LocalizationResolver()

        resolved = resolver.resolve(
            {
                "title": "Hi",
                "target_locale": "ar",
                "push": {"tokens": ["base"]},
                "localized_content": {"ar": {"push": {"title": "عنوان"}}},
            }
        )

        assert resolved.push == {"title": "عنوان"}
        assert resolved.title == "Hi"

    def test_missing_intent_fields_do_not_raise(self):
        resolved = LocalizationResolver(default_locale="ar").resolve(object())

        assert resolved.locale == "ar"
        assert resolved.title is None


@pytest.mark.unit
class TestLocaleResolver:
    """Tests for Accept-Language negotiation and recipient resolution."""

    @pytest.mark.parametrize(
        "header,expected",
        [
            ("ar", "ar"),
            ("en-US,en;q=0.9", "en"),
            ("fr-CA,ar;q=0.8", "ar"),
            ("fr;q=1.0,ar;q=0.2,en;q=0.5", "en"),
            ("ar;q=0,fr", "en"),
            ("*", "en"),
            ("", "en"),
            (None, "en"),
        ],
    )
    def test_negotiate(self, header, expected):
        assert LocaleResolver().negotiate(header) == expected

    def test_negotiate_with_custom_supported_list(self):
        resolver = LocaleResolver(supported_locales=["en", "ar-eg"])

        assert resolver.negotiate("ar-SA") == "ar-eg"

    def test_negotiate_malformed_quality_is_ignored(self):
        assert LocaleResolver().negotiate("ar;q=abc,en;q=0.5") == "en"

    def test_resolve_for_recipient_prefers_requested(self):
        resolver = LocaleResolver()

        assert resolver.resolve_for_recipient(requested="ar-EG", user_locale="en") == "ar"

    def test_resolve_for_recipient_uses_user_locale(self):
        assert LocaleResolver().resolve_for_recipient(user_locale="AR") == "ar"

    def test_resolve_for_recipient_unsupported_falls_back(self):
        resolver = LocaleResolver()

        assert resolver.resolve_for_recipient(requested="fr", user_locale="de") == "en"
        assert resolver.resolve_for_recipient(default="ar") == "ar"
