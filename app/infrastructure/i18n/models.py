"""Translation models for the i18n system.

Locales are plain lowercase BCP 47 strings (``en``, ``en-us``, ``ar``).
Catalogs are immutable snapshots: adding translations produces a new catalog
with a bumped version instead of mutating the one readers hold.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

DEFAULT_LOCALE = "en"

RTL_LANGUAGES = frozenset({"ar", "fa", "he", "ur"})


def normalize_locale(value: Optional[str], fallback: str = DEFAULT_LOCALE) -> str:
    """Normalize a locale tag to its lowercase, hyphenated form.

    Args:
        value: Raw locale string (e.g. "en_US", " AR ").
        fallback: Locale returned when value is empty.

    Returns:
        Normalized locale (e.g. "en-us", "ar").
    """
    if not value or not str(value).strip():
        return fallback.strip().lower().replace("_", "-")
    return str(value).strip().lower().replace("_", "-")


def base_language(locale: str) -> str:
    """Get the language part of a locale ("en" from "en-us")."""
    return normalize_locale(locale).split("-")[0]


def is_rtl_locale(locale: Optional[str]) -> bool:
    """Whether the locale's language is written right to left."""
    return base_language(normalize_locale(locale)) in RTL_LANGUAGES


def flatten_messages(data: Mapping[str, Any], prefix: str = "") -> Dict[str, str]:
    """Flatten a nested message tree into dotted keys.

    Args:
        data: Nested mapping as parsed from a locale file.
        prefix: Key prefix for the current level.

    Returns:
        Flat mapping such as {"messages.email.auth.welcome.subject": "..."}.
    """
    flat: Dict[str, str] = {}
    for key, value in data.items():
        full_key = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            flat.update(flatten_messages(value, full_key))
        elif value is not None:
            flat[full_key] = str(value)
    return flat


@dataclass(frozen=True)
class TranslationCatalog:
    """Immutable snapshot of all translations, keyed by locale.

    Attributes:
        messages: {locale: {flat_key: template}}; read-only views.
        version: Incremented every time a new catalog is derived.
        loaded_at: When this snapshot was built (ISO 8601).
    """

    messages: Mapping[str, Mapping[str, str]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    version: int = 0
    loaded_at: Optional[str] = None

    @classmethod
    def build(
        cls, messages: Mapping[str, Mapping[str, str]], version: int = 1
    ) -> "TranslationCatalog":
        """Create a catalog from plain dictionaries.

        Args:
            messages: {locale: {flat_key: template}}.
            version: Version number for the snapshot.

        Returns:
            A frozen TranslationCatalog.
        """
        frozen = {
            normalize_locale(locale): MappingProxyType(dict(entries))
            for locale, entries in messages.items()
        }
        return cls(
            messages=MappingProxyType(frozen),
            version=version,
            loaded_at=datetime.now(timezone.utc).isoformat(),
        )

    def get_message(self, locale: str, key: str) -> Optional[str]:
        return self.messages.get(locale, {}).get(key)

    def has_message(self, locale: str, key: str) -> bool:
        return key in self.messages.get(locale, {})

    @property
    def locales(self) -> list[str]:
        return sorted(self.messages.keys())

    def with_translations(
        self, locale: str, entries: Mapping[str, str]
    ) -> "TranslationCatalog":
        """Derive a new catalog with entries merged into one locale.

        Later entries override existing ones. The current catalog is left
        untouched.

        Args:
            locale: Locale to merge into.
            entries: Flat key -> template mapping.

        Returns:
            New catalog with version + 1.
        """
        locale = normalize_locale(locale)
        merged = {loc: dict(msgs) for loc, msgs in self.messages.items()}
        merged.setdefault(locale, {}).update(entries)
        return TranslationCatalog.build(merged, version=self.version + 1)


@dataclass
class LocaleResolutionContext:
    """Context for picking a recipient's locale.

    Attributes:
        requested_locale: Locale explicitly requested for this send.
        user_locale: Recipient's stored preference.
        default_locale: Fallback locale.
        supported_locales: Locales the system ships translations for.
    """

    requested_locale: Optional[str] = None
    user_locale: Optional[str] = None
    default_locale: str = DEFAULT_LOCALE
    supported_locales: Optional[list] = field(default_factory=lambda: ["en", "ar"])

    def resolve(self) -> str:
        """Resolve the best matching locale.

        Resolution order:
        1. Requested locale (if supported, or its base language is)
        2. User locale (same rule)
        3. Default locale

        Returns:
            Normalized locale string.
        """
        supported = [normalize_locale(s) for s in (self.supported_locales or [])]
        for candidate in (self.requested_locale, self.user_locale):
            if not candidate:
                continue
            normalized = normalize_locale(candidate)
            if normalized in supported:
                return normalized
            if base_language(normalized) in supported:
                return base_language(normalized)
        return normalize_locale(self.default_locale)
