"""Locale resolution for notification dispatch.

Provides:
- LocalizationResolver: picks the localized content variant for an intent.
- LocaleResolver: picks a locale from headers or recipient preferences.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from infrastructure.i18n.models import (
    DEFAULT_LOCALE,
    LocaleResolutionContext,
    base_language,
    normalize_locale,
)
from infrastructure.logging import get_module_logger

logger = get_module_logger()


def _field(source: Any, name: str) -> Any:
    if source is None:
        return None
    if isinstance(source, Mapping):
        return source.get(name)
    return getattr(source, name, None)


@dataclass
class ResolvedLocalization:
    """Effective content for one dispatch.

    Attributes:
        locale: Locale key of the variant actually used, or the default
            locale when no variant applied.
        title: Title (literal or key) to send.
        message: Message (literal or key) to send.
        email: Email options override, if any.
        push: Push options override, if any.
        variant_used: Whether a localized variant was applied.
    """

    locale: str
    title: Optional[str] = None
    message: Optional[str] = None
    email: Any = None
    push: Any = None
    variant_used: bool = False


class LocalizationResolver:
    """Chooses the localized variant of an intent's content.

    The intent is read by attribute (or key) name: ``default_locale``,
    ``target_locale``, ``localized_content``, ``title``, ``message``,
    ``email`` and ``push``. Missing localized content is a normal path and
    degrades to the intent's own strings.
    """

    def __init__(self, default_locale: str = DEFAULT_LOCALE):
        self.default_locale = normalize_locale(default_locale)

    @staticmethod
    def _find_variant(content: Mapping[str, Any], locale: str) -> Optional[str]:
        for candidate in (locale, base_language(locale)):
            if candidate in content:
                return candidate
        return None

    def resolve(self, intent: Any) -> ResolvedLocalization:
        """Resolve the effective locale and content for an intent.

        Args:
            intent: NotificationIntent-like object.

        Returns:
            ResolvedLocalization. Never raises for missing content.
        """
        default_locale = normalize_locale(
            _field(intent, "default_locale"), self.default_locale
        )
        target_locale = normalize_locale(_field(intent, "target_locale"), default_locale)

        raw_content = _field(intent, "localized_content") or {}
        content = {normalize_locale(k): v for k, v in raw_content.items() if k}

        used = self._find_variant(content, target_locale)
        if used is None:
            used = self._find_variant(content, default_locale)

        base_title = _field(intent, "title")
        base_message = _field(intent, "message")
        base_email = _field(intent, "email")
        base_push = _field(intent, "push")

        if used is None:
            return ResolvedLocalization(
                locale=default_locale,
                title=base_title,
                message=base_message,
                email=base_email,
                push=base_push,
            )

        variant = content[used]
        logger.debug(
            "resolved_localized_variant",
            target_locale=target_locale,
            locale=used,
        )
        return ResolvedLocalization(
            locale=used,
            title=_field(variant, "title") or base_title,
            message=_field(variant, "message") or base_message,
            email=_field(variant, "email") or base_email,
            push=_field(variant, "push") or base_push,
            variant_used=True,
        )


class LocaleResolver:
    """Resolves a recipient's locale from the sources available.

    Fallback chain:
    1. Explicitly requested locale
    2. Recipient's stored preference
    3. Accept-Language header (when there is one)
    4. Default locale
    """

    def __init__(
        self,
        default_locale: str = DEFAULT_LOCALE,
        supported_locales: Optional[list] = None,
    ):
        self.default_locale = normalize_locale(default_locale)
        self.supported_locales = [
            normalize_locale(s) for s in (supported_locales or ["en", "ar"])
        ]
        self.log = logger.bind(default_locale=self.default_locale)

    def negotiate(
        self,
        accept_language: Optional[str],
        supported_locales: Optional[list] = None,
    ) -> str:
        """Pick a supported locale from an Accept-Language header.

        Parses "en-US,en;q=0.9,ar;q=0.8" into ranges ordered by quality.
        Ranges with q=0 are ignored; "*" matches the default locale.

        Args:
            accept_language: Accept-Language header value.
            supported_locales: Overrides the resolver's supported list.

        Returns:
            Matching supported locale, or the default when none match.
        """
        if not accept_language:
            return self.default_locale

        supported = [
            normalize_locale(s) for s in (supported_locales or self.supported_locales)
        ]

        preferences = []
        for position, part in enumerate(accept_language.split(",")):
            pieces = part.split(";")
            lang_range = pieces[0].strip()
            if not lang_range:
                continue
            quality = 1.0
            for param in pieces[1:]:
                name, _, value = param.strip().partition("=")
                if name.strip() == "q":
                    try:
                        quality = float(value)
                    except ValueError:
                        quality = 0.0
            if quality > 0:
                preferences.append((lang_range, quality, position))

        for lang_range, _, _ in sorted(preferences, key=lambda p: (-p[1], p[2])):
            if lang_range == "*":
                self.log.info("resolved_from_header_wildcard")
                return self.default_locale

            normalized = normalize_locale(lang_range)
            if normalized in supported:
                self.log.info("resolved_from_header", locale=normalized)
                return normalized

            lang_code = base_language(normalized)
            for locale in supported:
                if base_language(locale) == lang_code:
                    self.log.info("resolved_from_header", locale=locale)
                    return locale

        self.log.info("no_matching_locale_in_header")
        return self.default_locale

    def resolve_for_recipient(
        self,
        requested: Optional[str] = None,
        user_locale: Optional[str] = None,
        default: Optional[str] = None,
    ) -> str:
        """Resolve a locale from the requested locale and user preference.

        Args:
            requested: Locale explicitly requested for this send.
            user_locale: Recipient's stored preference.
            default: Overrides the resolver's default locale.

        Returns:
            Normalized locale string.
        """
        context = LocaleResolutionContext(
            requested_locale=requested,
            user_locale=user_locale,
            default_locale=default or self.default_locale,
            supported_locales=self.supported_locales,
        )
        return context.resolve()
