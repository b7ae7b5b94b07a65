"""Unit tests for YAMLTranslationLoader."""

import pytest

from infrastructure.i18n import YAMLTranslationLoader


@pytest.mark.unit
class TestYAMLTranslationLoader:
    """Tests for loading and flattening YAML locale files."""

    def test_missing_directory_raises(self, tmp_path):
        with pytest.raises(ValueError, match="Translations directory not found"):
            YAMLTranslationLoader(tmp_path / "missing")

    def test_load_flattens_nested_keys(self, translations_dir):
        loader = YAMLTranslationLoader(translations_dir)

        messages = loader.load("en")

        assert messages["messages.greeting"] == "Hello {{name}}"
        assert messages["common.view_details"] == "View Details"

    def test_load_merges_domain_files(self, translations_dir):
        """ar.yml and notifications.ar.yml both feed the ar locale."""
        loader = YAMLTranslationLoader(translations_dir)

        messages = loader.load("ar")

        assert messages["messages.greeting"] == "مرحبا {{name}}"
        assert messages["common.view_details"] == "عرض التفاصيل"

    def test_load_normalizes_locale(self, translations_dir):
        loader = YAMLTranslationLoader(translations_dir)

        assert loader.load(" AR ") == loader.load("ar")

    def test_load_unknown_locale_raises(self, translations_dir):
        loader = YAMLTranslationLoader(translations_dir)

        with pytest.raises(FileNotFoundError):
            loader.load("fr")

    def test_invalid_yaml_raises_value_error(self, tmp_path):
        (tmp_path / "en.yml").write_text("key: [unclosed", encoding="utf-8")
        loader = YAMLTranslationLoader(tmp_path)

        with pytest.raises(ValueError, match="Failed to parse"):
            loader.load("en")

    def test_non_mapping_file_is_skipped(self, tmp_path):
        (tmp_path / "en.yml").write_text("- just\n- a list\n", encoding="utf-8")
        loader = YAMLTranslationLoader(tmp_path)

        assert loader.load("en") == {}

    def test_load_all_returns_every_locale(self, translations_dir):
        loader = YAMLTranslationLoader(translations_dir)

        all_messages = loader.load_all()

        assert sorted(all_messages) == ["ar", "en"]

    def test_load_all_empty_directory_raises(self, tmp_path):
        loader = YAMLTranslationLoader(tmp_path)

        with pytest.raises(ValueError, match="No translation files found"):
            loader.load_all()

    def test_cache_serves_previous_content(self, translations_dir):
        loader = YAMLTranslationLoader(translations_dir)
        loader.load("en")
        (translations_dir / "en.yml").write_text(
            "messages:\n  greeting: Hi\n", encoding="utf-8"
        )

        assert loader.load("en")["messages.greeting"] == "Hello {{name}}"

        loader.clear_cache()
        assert loader.load("en")["messages.greeting"] == "Hi"

    def test_cache_disabled_reads_from_disk(self, translations_dir):
        loader = YAMLTranslationLoader(translations_dir, use_cache=False)
        loader.load("en")
        (translations_dir / "en.yml").write_text(
            "messages:\n  greeting: Hi\n", encoding="utf-8"
        )

        assert loader.load("en")["messages.greeting"] == "Hi"
