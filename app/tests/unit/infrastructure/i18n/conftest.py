"""Fixtures for i18n tests."""

import pytest
import yaml

from infrastructure.i18n import Translator


@pytest.fixture
def translations_dir(tmp_path):
    """Directory with en, ar and a domain-scoped ar file."""
    (tmp_path / "en.yml").write_text(
        yaml.dump(
            {
                "messages": {
                    "greeting": "Hello {{name}}",
                    "farewell": "Goodbye",
                },
                "common": {"view_details": "View Details"},
            }
        ),
        encoding="utf-8",
    )
    (tmp_path / "ar.yml").write_text(
        yaml.dump({"messages": {"greeting": "مرحبا {{name}}"}}, allow_unicode=True),
        encoding="utf-8",
    )
    (tmp_path / "notifications.ar.yml").write_text(
        yaml.dump({"common": {"view_details": "عرض التفاصيل"}}, allow_unicode=True),
        encoding="utf-8",
    )
    return tmp_path


@pytest.fixture
def catalog_translator():
    """Translator without a loader, seeded through add_translations."""
    translator = Translator(default_locale="en")
    translator.add_translations(
        "en", {"messages": {"greeting": "Hello {{name}}", "farewell": "Goodbye"}}
    )
    translator.add_translations("ar", {"messages": {"greeting": "مرحبا {{name}}"}})
    return translator
