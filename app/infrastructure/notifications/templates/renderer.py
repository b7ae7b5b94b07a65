"""Email template rendering.

Layouts live in ``layouts/<id>.html`` and are composed with the ``header``
and ``footer`` partials from ``partials/``. Placeholders use
``string.Template`` syntax (``${title}``); unknown placeholders are left as
is. Templates registered at runtime take precedence over files on disk.
"""

import html
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from string import Template
from typing import Any, Dict, List, Mapping, Optional

import structlog

from infrastructure.i18n import is_rtl_locale, normalize_locale
from infrastructure.notifications.exceptions import TemplateNotFoundError

logger = structlog.get_logger()

DEFAULT_TEMPLATE_ID = "master"
TEMPLATES_DIR = Path(__file__).resolve().parent

_PARAGRAPH = '<p style="margin:0 0 16px;">{}</p>'
_CTA = (
    '<p style="margin:24px 0;"><a href="{url}" style="display:inline-block;'
    "padding:12px 24px;background-color:#0b3d91;color:#ffffff;"
    'text-decoration:none;border-radius:4px;">{label}</a></p>'
)


@dataclass
class RenderedEmail:
    """Output of a template render."""

    subject: str
    html: str
    text: str


def _to_list(value: Any) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value if item is not None and str(item).strip()]
    return [str(value)]


def _optional_str(context: Mapping[str, Any], key: str) -> Optional[str]:
    value = context.get(key)
    return value if isinstance(value, str) and value else None


def _paragraphs(items: List[str]) -> str:
    return "".join(_PARAGRAPH.format(html.escape(item)) for item in items)


def normalize_ctas(value: Any) -> List[Dict[str, str]]:
    """Keep only call-to-action entries with a non-empty label and url."""
    if not isinstance(value, (list, tuple)):
        return []
    ctas = []
    for cta in value:
        if not isinstance(cta, Mapping):
            continue
        label = str(cta.get("label") or "").strip()
        url = str(cta.get("url") or "").strip()
        if label and url:
            ctas.append({"label": label, "url": url})
    return ctas


class EmailTemplateRenderer:
    """Renders named email layouts with header/footer composition.

    Attributes:
        brand: Application name shown in headers and the default footer.
        templates_dir: Directory holding ``layouts/`` and ``partials/``.
    """

    def __init__(self, brand: str, templates_dir: Optional[Path] = None):
        self.brand = brand
        self.templates_dir = Path(templates_dir or TEMPLATES_DIR)
        self._templates: Dict[str, Template] = {}
        self._partials: Optional[Dict[str, Template]] = None
        self._lock = threading.Lock()

    def register(self, template_id: str, source: str) -> None:
        """Register (or replace) a layout at runtime.

        Args:
            template_id: Identifier used by ``render``.
            source: Layout source with ``${placeholder}`` markers.

        Raises:
            ValueError: If template_id is empty.
        """
        if not template_id or not template_id.strip():
            raise ValueError("template_id cannot be empty")
        with self._lock:
            self._templates[template_id] = Template(source)
        logger.info("registered_email_template", template_id=template_id)

    def has_template(self, template_id: str) -> bool:
        try:
            self._resolve(template_id)
        except TemplateNotFoundError:
            return False
        return True

    def _load_partials(self) -> Dict[str, Template]:
        if self._partials is None:
            partials = {}
            partials_dir = self.templates_dir / "partials"
            if partials_dir.exists():
                for path in sorted(partials_dir.glob("*.html")):
                    partials[path.stem] = Template(path.read_text(encoding="utf-8"))
            self._partials = partials
        return self._partials

    def _resolve(self, template_id: str) -> Template:
        with self._lock:
            cached = self._templates.get(template_id)
            if cached is not None:
                return cached
            path = self.templates_dir / "layouts" / f"{template_id}.html"
            if not path.is_file():
                raise TemplateNotFoundError(template_id)
            template = Template(path.read_text(encoding="utf-8"))
            self._templates[template_id] = template
            return template

    def build_context(
        self,
        locale: Optional[str] = None,
        context: Optional[Mapping[str, Any]] = None,
        fallback_title: Optional[str] = None,
        fallback_message: Optional[str] = None,
        subject_override: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Normalize raw render input into the values layouts consume."""
        raw = dict(context or {})
        title = _optional_str(raw, "title") or fallback_title or self.brand
        subject = (
            subject_override
            or _optional_str(raw, "subject")
            or fallback_title
            or f"{self.brand} Notification"
        )
        resolved_locale = normalize_locale(locale or _optional_str(raw, "locale"))
        return {
            "raw": raw,
            "brand": self.brand,
            "locale": resolved_locale,
            "dir": "rtl" if is_rtl_locale(resolved_locale) else "ltr",
            "subject": subject,
            "title": title,
            "greeting": _optional_str(raw, "greeting"),
            "intro": _to_list(raw.get("intro") or fallback_message),
            "body": _to_list(raw.get("body")),
            "body_html": _optional_str(raw, "body_html"),
            "outro": _to_list(raw.get("outro")),
            "footer_note": _optional_str(raw, "footer_note"),
            "header_subtitle": _optional_str(raw, "header_subtitle"),
            "preview_text": _optional_str(raw, "preview_text") or fallback_message or "",
            "ctas": normalize_ctas(raw.get("ctas")),
            "text": _optional_str(raw, "text"),
            "year": datetime.now(timezone.utc).year,
        }

    @staticmethod
    def build_text(ctx: Mapping[str, Any]) -> str:
        """Plain-text fallback: paragraphs joined by blank lines."""
        segments: List[str] = [ctx["title"]]
        if ctx["greeting"]:
            segments.append(ctx["greeting"])
        segments.extend(ctx["intro"])
        segments.extend(ctx["body"])
        if ctx["text"]:
            segments.append(ctx["text"])
        segments.extend(ctx["outro"])
        segments.append(ctx["footer_note"] or f"© {ctx['year']} {ctx['brand']}")
        return "\n\n".join(s for s in segments if s and s.strip())

    def _substitutions(self, ctx: Mapping[str, Any]) -> Dict[str, str]:
        esc = html.escape
        values: Dict[str, str] = {
            key: esc(str(value))
            for key, value in ctx["raw"].items()
            if isinstance(value, (str, int, float))
        }
        values.update(
            {
                "brand": esc(ctx["brand"]),
                "locale": ctx["locale"],
                "dir": ctx["dir"],
                "align": "right" if ctx["dir"] == "rtl" else "left",
                "subject": esc(ctx["subject"]),
                "title": esc(ctx["title"]),
                "preview_text": esc(ctx["preview_text"]),
                "greeting": _PARAGRAPH.format(esc(ctx["greeting"]))
                if ctx["greeting"]
                else "",
                "intro": _paragraphs(ctx["intro"]),
                "body": _paragraphs(ctx["body"]),
                "body_html": ctx["body_html"] or "",
                "outro": _paragraphs(ctx["outro"]),
                "ctas": "".join(
                    _CTA.format(url=esc(c["url"]), label=esc(c["label"]))
                    for c in ctx["ctas"]
                ),
                "header_subtitle": (
                    f'<p style="margin:8px 0 0;font-size:14px;">{esc(ctx["header_subtitle"])}</p>'
                    if ctx["header_subtitle"]
                    else ""
                ),
                "footer_note": esc(
                    ctx["footer_note"] or f"© {ctx['year']} {ctx['brand']}"
                ),
                "year": str(ctx["year"]),
            }
        )
        return values

    def render(
        self,
        template_id: Optional[str] = None,
        locale: Optional[str] = None,
        context: Optional[Mapping[str, Any]] = None,
        fallback_title: Optional[str] = None,
        fallback_message: Optional[str] = None,
        subject_override: Optional[str] = None,
    ) -> RenderedEmail:
        """Render a layout into subject, HTML and plain text.

        Args:
            template_id: Layout id; "master" when omitted.
            locale: Locale for text direction.
            context: Template values (title, greeting, intro, body, ...).
            fallback_title: Used when the context has no title or subject.
            fallback_message: Used as intro and preview text when absent.
            subject_override: Wins over any subject in the context.

        Returns:
            RenderedEmail.

        Raises:
            TemplateNotFoundError: If the layout is not registered or on disk.
        """
        template_id = template_id or DEFAULT_TEMPLATE_ID
        template = self._resolve(template_id)
        ctx = self.build_context(
            locale=locale,
            context=context,
            fallback_title=fallback_title,
            fallback_message=fallback_message,
            subject_override=subject_override,
        )
        values = self._substitutions(ctx)
        for name, partial in self._load_partials().items():
            values[name] = partial.safe_substitute(values)

        rendered = RenderedEmail(
            subject=ctx["subject"],
            html=template.safe_substitute(values),
            text=self.build_text(ctx),
        )
        logger.debug(
            "rendered_email_template", template_id=template_id, locale=ctx["locale"]
        )
        return rendered
