"""
Template Rendering.

One Jinja2Templates instance for every server-rendered page, with the
filters and globals the templates rely on:

    markdown   Render post content. Raw HTML in the source is escaped.
    date       Format a datetime as dd/mm/yyyy (or a custom strftime).
    filesize   Human readable byte counts for the media library.

Site identity, navigation and the institutional page copy are exposed
as globals so every template can read them without route plumbing.
"""

from datetime import date, datetime
from functools import lru_cache
from pathlib import Path
from typing import Any

import markdown
import yaml
from fastapi import Request
from fastapi.templating import Jinja2Templates
from markdown.extensions import Extension
from markupsafe import Markup
from starlette.responses import Response

from asof.backend.core.config import get_app_config

FRONTEND_DIR = Path(__file__).resolve().parent
TEMPLATES_DIR = FRONTEND_DIR / "templates"
STATIC_DIR = FRONTEND_DIR / "static"
PAGES_FILE = FRONTEND_DIR / "data" / "pages.yaml"

MARKDOWN_EXTENSIONS = ["tables", "fenced_code", "sane_lists"]


class EscapeHtmlExtension(Extension):
    """Drop raw HTML support so tags in the source come out as text."""

    def extendMarkdown(self, md_inst):
        md_inst.preprocessors.deregister("html_block")
        md_inst.inlinePatterns.deregister("html")


def _markdown_renderer() -> markdown.Markdown:
    return markdown.Markdown(extensions=[*MARKDOWN_EXTENSIONS, EscapeHtmlExtension()])


md = _markdown_renderer()


def render_markdown(text: str | None) -> str:
    if not text:
        return ""
    md.reset()
    return md.convert(text)


def markdown_filter(text: str | None) -> Markup:
    return Markup(render_markdown(text))


def date_filter(value: datetime | date | str | None, fmt: str = "%d/%m/%Y") -> str:
    if not value:
        return ""
    if isinstance(value, str):
        try:
            value = date.fromisoformat(value[:10])
        except ValueError:
            return value
    return value.strftime(fmt)


def filesize_filter(size: int | None) -> str:
    if not size:
        return "0 B"
    value = float(size)
    for unit in ("B", "KB", "MB"):
        if value < 1024:
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GB"


@lru_cache
def load_page_content() -> dict[str, Any]:
    """Institutional copy for the static public pages."""
    with PAGES_FILE.open(encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _create_templates() -> Jinja2Templates:
    templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
    env = templates.env
    env.filters["markdown"] = markdown_filter
    env.filters["date"] = date_filter
    env.filters["filesize"] = filesize_filter

    app_config = get_app_config()
    env.globals["site"] = app_config.site
    env.globals["app_version"] = app_config.application.version
    env.globals["pages"] = load_page_content()
    env.globals["current_year"] = lambda: datetime.now().year
    return templates


@lru_cache
def get_templates() -> Jinja2Templates:
    return _create_templates()


def render(
    request: Request,
    template: str,
    context: dict[str, Any] | None = None,
    status_code: int = 200,
) -> Response:
    """Render a page template with the request in its context."""
    return get_templates().TemplateResponse(
        request,
        template,
        context or {},
        status_code=status_code,
    )


def render_error_page(request: Request, status_code: int, message: str) -> Response:
    """HTML error page used by the exception handlers for non-API paths."""
    template = "errors/404.html" if status_code == 404 else "errors/error.html"
    return render(
        request,
        template,
        {"status_code": status_code, "message": message},
        status_code=status_code,
    )
