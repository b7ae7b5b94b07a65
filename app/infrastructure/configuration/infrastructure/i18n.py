"""Translation loading settings."""

from pathlib import Path
from typing import List

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings

DEFAULT_TRANSLATIONS_DIR = (
    Path(__file__).resolve().parents[3] / "modules" / "notifications" / "locales"
)


class I18nSettings(InfrastructureSettings):
    """Translation catalog configuration.

    Environment Variables:
        DEFAULT_LOCALE: Locale used when nothing better matches (default: en)
        SUPPORTED_LOCALES: Locales offered to recipients (default: ["en", "ar"])
        TRANSLATIONS_DIR: Directory holding <locale>.yml files
    """

    default_locale: str = Field(default="en", alias="DEFAULT_LOCALE")
    supported_locales: List[str] = Field(
        default_factory=lambda: ["en", "ar"], alias="SUPPORTED_LOCALES"
    )
    translations_dir: Path = Field(
        default=DEFAULT_TRANSLATIONS_DIR, alias="TRANSLATIONS_DIR"
    )
