"""Translation service for retrieving and interpolating translated messages.

The translator holds a reference to an immutable TranslationCatalog. Writers
build a new catalog and swap the reference under a lock; readers never lock.
"""

import re
import threading
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

from infrastructure.i18n.loader import TranslationLoader
from infrastructure.i18n.models import (
    DEFAULT_LOCALE,
    TranslationCatalog,
    base_language,
    flatten_messages,
    normalize_locale,
)
from infrastructure.logging import get_module_logger

logger = get_module_logger()

PLACEHOLDER_PATTERN = re.compile(r"\{\{(\w+)\}\}")

TranslationFunction = Callable[[str, Optional[Mapping[str, Any]]], str]


def interpolate(template: str, variables: Optional[Mapping[str, Any]] = None) -> str:
    """Replace ``{{name}}`` placeholders with values from variables.

    Placeholders without a matching variable are left untouched so missing
    data stays visible.

    Args:
        template: Template string.
        variables: Values to substitute.

    Returns:
        Interpolated string.
    """
    if not variables or not template:
        return template

    def _replace(match: re.Match) -> str:
        name = match.group(1)
        if name in variables and variables[name] is not None:
            return str(variables[name])
        return match.group(0)

    return PLACEHOLDER_PATTERN.sub(_replace, template)


def looks_like_translation_key(value: Any) -> bool:
    """Guess whether a stored string is a translation key.

    Only used for payloads written without explicit ``*_is_key`` flags.
    A key contains a dot and no whitespace.
    """
    if not isinstance(value, str) or not value:
        return False
    return "." in value and not any(ch.isspace() for ch in value)


class Translator:
    """Service for translating messages with variable interpolation.

    Lookup chain for ``translate``: exact locale, then base language, then the
    default locale, then the key itself. Never raises for a missing key.

    Attributes:
        loader: Optional TranslationLoader used by load_all() and reload().
        default_locale: Locale used as the last catalog fallback.
    """

    def __init__(
        self,
        loader: Optional[TranslationLoader] = None,
        default_locale: str = DEFAULT_LOCALE,
    ):
        self.loader = loader
        self.default_locale = normalize_locale(default_locale)
        self._catalog = TranslationCatalog()
        self._write_lock = threading.Lock()
        self._functions: Dict[str, TranslationFunction] = {}
        logger.info("initialized_translator", default_locale=self.default_locale)

    @property
    def catalog(self) -> TranslationCatalog:
        return self._catalog

    @property
    def version(self) -> int:
        return self._catalog.version

    def load_all(self) -> None:
        """Load all available locales from the loader."""
        if self.loader is None:
            return
        messages = self.loader.load_all()
        with self._write_lock:
            self._catalog = TranslationCatalog.build(
                messages, version=self._catalog.version + 1
            )
        logger.info(
            "loaded_all_translations",
            locale_count=len(messages),
            catalog_version=self._catalog.version,
        )

    def reload(self) -> None:
        """Reload all translations from the loader.

        Translations added at runtime are discarded.
        """
        if self.loader is not None:
            self.loader.clear_cache()
        self.load_all()
        logger.info("reloaded_all_translations")

    def _candidate_locales(self, locale: Optional[str]) -> list[str]:
        normalized = normalize_locale(locale, self.default_locale)
        candidates = []
        for candidate in (normalized, base_language(normalized), self.default_locale):
            if candidate not in candidates:
                candidates.append(candidate)
        return candidates

    def translate(
        self,
        key: str,
        locale: Optional[str] = None,
        variables: Optional[Mapping[str, Any]] = None,
    ) -> str:
        """Retrieve and interpolate a translated message.

        Args:
            key: Dotted message key (e.g. "messages.email.auth.welcome.subject").
            locale: Target locale; defaults to the default locale.
            variables: Values for ``{{name}}`` placeholders.

        Returns:
            The translated, interpolated message, or the key when no catalog
            entry exists.
        """
        normalized = normalize_locale(locale, self.default_locale)
        custom = self._functions.get(normalized)
        if custom is not None:
            return custom(key, variables)

        catalog = self._catalog
        template = None
        for candidate in self._candidate_locales(normalized):
            template = catalog.get_message(candidate, key)
            if template is not None:
                break

        if template is None:
            logger.debug("translation_not_found", key=key, locale=normalized)
            template = key

        return interpolate(template, variables)

    def translate_batch(
        self,
        keys: Iterable[str],
        locale: Optional[str] = None,
        variables: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, str]:
        """Translate several keys with the same locale and variables."""
        return {key: self.translate(key, locale, variables) for key in keys}

    def has_translation(self, key: str, locale: Optional[str] = None) -> bool:
        """Check if a key is translated for a locale or its base language.

        The default-locale fallback is not considered.
        """
        normalized = normalize_locale(locale, self.default_locale)
        catalog = self._catalog
        return catalog.has_message(normalized, key) or catalog.has_message(
            base_language(normalized), key
        )

    def get_available_locales(self) -> list[str]:
        locales = set(self._catalog.locales) | set(self._functions.keys())
        return sorted(locales)

    def add_translations(self, locale: str, messages: Mapping[str, Any]) -> int:
        """Merge translations into a locale by swapping in a new catalog.

        Nested mappings are flattened into dotted keys.

        Args:
            locale: Locale to add to.
            messages: Flat or nested key -> template mapping.

        Returns:
            The new catalog version.
        """
        entries = flatten_messages(messages)
        with self._write_lock:
            self._catalog = self._catalog.with_translations(locale, entries)
            version = self._catalog.version
        logger.info(
            "added_translations",
            locale=normalize_locale(locale),
            key_count=len(entries),
            catalog_version=version,
        )
        return version

    def load_translations(
        self, locale: str, loader_fn: Callable[[], Mapping[str, Any]]
    ) -> int:
        """Load translations for a locale from a custom source.

        Args:
            locale: Locale to add to.
            loader_fn: Callable returning a key -> template mapping (for
                example a database or API fetch).

        Returns:
            The new catalog version.

        Raises:
            Exception: Whatever loader_fn raised, after logging it.
        """
        try:
            messages = loader_fn()
        except Exception as e:
            logger.error(
                "failed_to_load_translations",
                locale=normalize_locale(locale),
                error=str(e),
            )
            raise
        return self.add_translations(locale, messages)

    def register_translation_function(
        self, locale: str, translate_fn: TranslationFunction
    ) -> None:
        """Register a custom translator that replaces catalog lookups for a locale.

        Args:
            locale: Locale the function handles.
            translate_fn: Callable taking (key, variables) and returning text.
        """
        normalized = normalize_locale(locale)
        with self._write_lock:
            functions = dict(self._functions)
            functions[normalized] = translate_fn
            self._functions = functions
        logger.info("registered_translation_function", locale=normalized)
