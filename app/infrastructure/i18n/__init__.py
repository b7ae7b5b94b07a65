"""i18n system - translation catalog, interpolation and locale resolution.

Main components:
- models: TranslationCatalog, LocaleResolutionContext, locale helpers
- loader: TranslationLoader and YAMLTranslationLoader
- translator: Translator with fallback chain and copy-on-write catalog
- resolvers: LocalizationResolver and LocaleResolver
"""

from infrastructure.i18n.loader import TranslationLoader, YAMLTranslationLoader
from infrastructure.i18n.models import (
    DEFAULT_LOCALE,
    LocaleResolutionContext,
    TranslationCatalog,
    base_language,
    flatten_messages,
    is_rtl_locale,
    normalize_locale,
)
from infrastructure.i18n.resolvers import (
    LocaleResolver,
    LocalizationResolver,
    ResolvedLocalization,
)
from infrastructure.i18n.translator import (
    Translator,
    interpolate,
    looks_like_translation_key,
)

__all__ = [
    "DEFAULT_LOCALE",
    "TranslationCatalog",
    "LocaleResolutionContext",
    "base_language",
    "flatten_messages",
    "is_rtl_locale",
    "normalize_locale",
    "TranslationLoader",
    "YAMLTranslationLoader",
    "Translator",
    "interpolate",
    "looks_like_translation_key",
    "LocaleResolver",
    "LocalizationResolver",
    "ResolvedLocalization",
]
