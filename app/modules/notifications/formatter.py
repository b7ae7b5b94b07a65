"""Stored payload reader.

Turns persisted notification payloads back into text for a reader's locale.
Payloads written by older producers may be JSON strings, may keep
``variables`` at the root and may lack the ``*_is_key`` flags; all of these
are accepted.
"""

import json
from typing import Any, Dict, Mapping, Optional

import structlog
from pydantic import ValidationError

from infrastructure.i18n import (
    Translator,
    base_language,
    interpolate,
    looks_like_translation_key,
    normalize_locale,
)
from modules.notifications.models import (
    LocalizedNotification,
    NotificationRecord,
    StoredPayload,
)

logger = structlog.get_logger()


def parse_payload(raw: Any) -> StoredPayload:
    """Parse a stored payload.

    Args:
        raw: StoredPayload, dict or JSON string.

    Returns:
        StoredPayload. Malformed input degrades to an empty payload with the
        original value under ``metadata["raw"]``.
    """
    if isinstance(raw, StoredPayload):
        return raw

    data: Any = raw
    if isinstance(raw, (str, bytes)):
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("stored_payload_not_json")
            return StoredPayload(metadata={"raw": raw})

    if not isinstance(data, Mapping):
        logger.warning("stored_payload_not_object", payload_type=type(data).__name__)
        return StoredPayload(metadata={"raw": raw})

    data = dict(data)
    metadata = dict(data.get("metadata") or {})
    if "variables" in data and "variables" not in metadata:
        metadata["variables"] = data.pop("variables")
    data["metadata"] = metadata

    try:
        return StoredPayload.model_validate(data)
    except ValidationError as e:
        logger.warning("stored_payload_invalid", error_count=e.error_count())
        return StoredPayload(metadata={"raw": raw})


def pick_localized_value(
    value: str,
    translations: Optional[Mapping[str, str]],
    target: str,
    default_locale: str = "en",
) -> str:
    """Choose the best stored translation: target, its base language, then default."""
    if not translations:
        return value
    normalized = {normalize_locale(k): v for k, v in translations.items() if v}
    target = normalize_locale(target, default_locale)
    for candidate in (target, base_language(target), normalize_locale(default_locale)):
        if candidate in normalized:
            return normalized[candidate]
    return value


def _is_key(flag: Optional[bool], value: str) -> bool:
    # Payloads without the flag predate it
    if flag is None:
        return looks_like_translation_key(value)
    return flag


def _render_field(
    translator: Translator,
    value: str,
    is_key: Optional[bool],
    translations: Dict[str, str],
    locale: str,
    default_locale: str,
    variables: Dict[str, Any],
) -> str:
    if _is_key(is_key, value):
        return translator.translate(value, locale, variables)
    chosen = pick_localized_value(value, translations, locale, default_locale)
    return interpolate(chosen, variables)


def format_for_locale(
    record: NotificationRecord,
    locale: Optional[str],
    translator: Translator,
) -> LocalizedNotification:
    """Render a stored notification for a reader.

    Args:
        record: Persisted notification.
        locale: Reader's locale; the stored default locale when None.
        translator: Translator for key-valued titles and messages.

    Returns:
        LocalizedNotification with translated, interpolated title and message.
    """
    payload = parse_payload(record.data)
    target = normalize_locale(locale, payload.default_locale)
    variables = dict(payload.metadata.get("variables") or {})

    title = _render_field(
        translator,
        payload.title,
        payload.title_is_key,
        payload.title_translations,
        target,
        payload.default_locale,
        variables,
    )
    message = _render_field(
        translator,
        payload.message,
        payload.message_is_key,
        payload.message_translations,
        target,
        payload.default_locale,
        variables,
    )

    return LocalizedNotification(
        id=record.id,
        type=record.type,
        title=title,
        message=message,
        locale=target,
        read=record.read_at is not None,
        read_at=record.read_at,
        created_at=record.created_at,
        metadata=payload.metadata,
        channels=payload.channels,
    )
