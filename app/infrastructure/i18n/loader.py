"""Translation loading interface and implementations.

Defines the contract for loading translations and provides the YAML loader.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

import structlog
import yaml

from infrastructure.i18n.models import flatten_messages, normalize_locale

logger = structlog.get_logger()


class TranslationLoader(ABC):
    """Abstract base for translation loaders.

    Loaders return flat ``{key: template}`` maps per locale.
    """

    @abstractmethod
    def load(self, locale: str) -> Dict[str, str]:
        """Load translations for a specific locale.

        Args:
            locale: Locale to load translations for.

        Returns:
            Flat key -> template mapping.

        Raises:
            FileNotFoundError: If translation files not found.
            ValueError: If translation format is invalid.
        """

    @abstractmethod
    def load_all(self) -> Dict[str, Dict[str, str]]:
        """Load translations for every locale the loader knows about."""

    def clear_cache(self) -> None:
        """Drop any cached data. No-op by default."""


class YAMLTranslationLoader(TranslationLoader):
    """Loader for YAML-based translation files.

    Expects files named ``<locale>.yml`` or ``<domain>.<locale>.yml`` in the
    translations directory. Every file for a locale is merged, in filename
    order, and flattened into dotted keys.

    Attributes:
        translations_dir: Path to directory containing YAML files.
        cache: Cache of loaded locales (locale -> flat messages).
    """

    def __init__(
        self,
        translations_dir: Path,
        use_cache: bool = True,
    ):
        self.translations_dir = Path(translations_dir)
        self.use_cache = use_cache
        self.cache: Dict[str, Dict[str, str]] = {}

        if not self.translations_dir.exists():
            raise ValueError(
                f"Translations directory not found: {self.translations_dir}"
            )

        logger.info(
            "initialized_yaml_loader",
            translations_dir=str(self.translations_dir),
            use_cache=use_cache,
        )

    @staticmethod
    def _locale_from_file(yaml_file: Path) -> Optional[str]:
        # "en.yml" -> "en", "notifications.ar.yml" -> "ar"
        stem = yaml_file.stem
        if not stem:
            return None
        return normalize_locale(stem.split(".")[-1])

    def _files_for(self, locale: str) -> list[Path]:
        return sorted(
            f
            for f in self.translations_dir.glob("*.yml")
            if self._locale_from_file(f) == locale
        )

    def load(self, locale: str) -> Dict[str, str]:
        """Load and flatten every YAML file for a locale.

        Args:
            locale: Locale to load.

        Returns:
            Flat key -> template mapping.

        Raises:
            FileNotFoundError: If no YAML files found for locale.
            ValueError: If YAML parsing fails.
        """
        locale = normalize_locale(locale)
        if self.use_cache and locale in self.cache:
            logger.debug("loaded_from_cache", locale=locale)
            return self.cache[locale]

        yaml_files = self._files_for(locale)
        if not yaml_files:
            raise FileNotFoundError(
                f"No translation files found for locale {locale} in {self.translations_dir}"
            )

        messages: Dict[str, str] = {}
        for yaml_file in yaml_files:
            try:
                with open(yaml_file, "r", encoding="utf-8") as f:
                    data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                logger.error("yaml_parse_error", file=str(yaml_file), error=str(e))
                raise ValueError(f"Failed to parse {yaml_file}: {e}") from e

            if data is None:
                continue
            if not isinstance(data, dict):
                logger.warning(
                    "invalid_yaml_format", file=str(yaml_file), expected="dict"
                )
                continue
            messages.update(flatten_messages(data))

        logger.info(
            "loaded_translations",
            locale=locale,
            file_count=len(yaml_files),
            key_count=len(messages),
        )

        if self.use_cache:
            self.cache[locale] = messages

        return messages

    def load_all(self) -> Dict[str, Dict[str, str]]:
        """Load translations for every locale found in the directory.

        Returns:
            Dict mapping each locale to its flat messages.

        Raises:
            ValueError: If no translation files found at all.
        """
        locales_found = {
            locale
            for locale in (
                self._locale_from_file(f) for f in self.translations_dir.glob("*.yml")
            )
            if locale
        }

        if not locales_found:
            raise ValueError(f"No translation files found in {self.translations_dir}")

        return {locale: self.load(locale) for locale in sorted(locales_found)}

    def clear_cache(self) -> None:
        self.cache.clear()
        logger.info("cleared_translation_cache")
