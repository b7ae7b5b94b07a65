"""Structlog processors used by the logging pipeline.

Usage:
    from infrastructure.logging.formatters import mask_sensitive_data
"""

from typing import Any

# Key fragments whose values never reach the log output. Device tokens and
# provider credentials are the usual suspects in notification payloads.
SENSITIVE_PATTERNS = frozenset(
    {
        "password",
        "secret",
        "token",
        "api_key",
        "apikey",
        "authorization",
        "credential",
        "private_key",
        "auth_token",
    }
)


def add_app_info(app_name: str, environment: str = "development"):
    """Create a processor that stamps application name and environment.

    Args:
        app_name: Name of the application (brand).
        environment: Deployment environment name.

    Returns:
        A structlog processor function.
    """

    def processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        event_dict.setdefault("app_name", app_name)
        event_dict.setdefault("environment", environment)
        return event_dict

    return processor


def mask_sensitive_data(
    mask_value: str = "***REDACTED***",
    additional_patterns: frozenset[str] | None = None,
):
    """Create a processor that masks sensitive values in log entries.

    Any key containing one of the sensitive fragments (case-insensitive) has
    its value replaced, unless the value is None.

    Args:
        mask_value: The string to replace sensitive values with.
        additional_patterns: Extra fragments to treat as sensitive.

    Returns:
        A structlog processor function.

    Example:
        processor = mask_sensitive_data(additional_patterns=frozenset({"phone"}))
    """
    patterns = SENSITIVE_PATTERNS
    if additional_patterns:
        patterns = patterns | additional_patterns

    def processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        masked = {}
        for key, value in event_dict.items():
            key_lower = key.lower()
            if value is not None and any(p in key_lower for p in patterns):
                masked[key] = mask_value
            else:
                masked[key] = value
        return masked

    return processor


def truncate_large_values(max_length: int = 500):
    """Create a processor that truncates overly long string values.

    Rendered email bodies end up in debug logs; this keeps them bounded.

    Args:
        max_length: Maximum length of any string value.

    Returns:
        A structlog processor function.
    """

    def processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        for key, value in event_dict.items():
            if isinstance(value, str) and len(value) > max_length:
                event_dict[key] = (
                    value[:max_length] + f"...[truncated, {len(value)} chars total]"
                )
        return event_dict

    return processor
