"""Email layouts and their renderer."""

from infrastructure.notifications.templates.renderer import (
    DEFAULT_TEMPLATE_ID,
    EmailTemplateRenderer,
    RenderedEmail,
    normalize_ctas,
)


def register_email_template(template_id: str, source: str) -> None:
    """Register a layout on the application's shared renderer."""
    # Import here to avoid circular dependency
    from infrastructure.services.providers import get_email_renderer

    get_email_renderer().register(template_id, source)


__all__ = [
    "DEFAULT_TEMPLATE_ID",
    "EmailTemplateRenderer",
    "RenderedEmail",
    "normalize_ctas",
    "register_email_template",
]
