"""
Unit Tests for Template Rendering Helpers and Form Parsing.
"""

from datetime import date, datetime

import pytest
from starlette.datastructures import FormData

from asof.backend.models.enums import ContentStatus
from asof.backend.schemas.post import PostCreate
from asof.frontend.routes.admin import parse_post_form
from asof.frontend.routes.auth import DEFAULT_REDIRECT, safe_redirect_target
from asof.frontend.templating import (
    date_filter,
    filesize_filter,
    get_templates,
    load_page_content,
    markdown_filter,
    render_markdown,
)


class TestMarkdown:
    """Tests for the markdown filter."""

    def test_basic_formatting(self):
        html = render_markdown("Texto em **negrito** e *itálico*.")
        assert "<strong>negrito</strong>" in html
        assert "<em>itálico</em>" in html

    def test_raw_html_block_is_escaped(self):
        html = render_markdown("<script>alert(1)</script>")
        assert "<script>" not in html
        assert "&lt;script&gt;" in html

    def test_inline_html_is_escaped(self):
        html = render_markdown('Clique <a href="javascript:x()">aqui</a>')
        assert "<a " not in html
        assert "&lt;a" in html

    def test_tables_extension(self):
        html = render_markdown("| Cargo | Nome |\n|---|---|\n| Presidente | Ana |\n")
        assert "<table>" in html
        assert "<td>Presidente</td>" in html

    def test_fenced_code(self):
        html = render_markdown("```\nprint('oi')\n```")
        assert "<code>" in html

    def test_renderer_state_does_not_leak(self):
        render_markdown("[ref]: https://asof.org.br\n\n[link][ref]")
        assert 'href="https://asof.org.br"' not in render_markdown("[link][ref]")

    @pytest.mark.parametrize("value", [None, ""])
    def test_empty(self, value):
        assert render_markdown(value) == ""

    def test_filter_returns_markup(self):
        assert markdown_filter("oi").__html__() == "<p>oi</p>"


class TestDateFilter:
    def test_datetime(self):
        assert date_filter(datetime(2025, 3, 10, 14, 0)) == "10/03/2025"

    def test_date_with_format(self):
        assert date_filter(date(2024, 5, 1), "%Y-%m-%d") == "2024-05-01"

    def test_iso_string(self):
        assert date_filter("2025-03-10T14:00:00") == "10/03/2025"

    def test_unparseable_string_is_returned(self):
        assert date_filter("em breve") == "em breve"

    @pytest.mark.parametrize("value", [None, ""])
    def test_empty(self, value):
        assert date_filter(value) == ""


class TestFilesizeFilter:
    @pytest.mark.parametrize(("size", "expected"), [
        (None, "0 B"),
        (0, "0 B"),
        (512, "512 B"),
        (1536, "1.5 KB"),
        (5 * 1024 * 1024, "5.0 MB"),
        (3 * 1024 ** 3, "3.0 GB"),
    ])
    def test_units(self, size, expected):
        assert filesize_filter(size) == expected


class TestTemplatesEnvironment:
    def test_filters_and_globals_registered(self):
        env = get_templates().env

        assert {"markdown", "date", "filesize"} <= set(env.filters)
        assert env.globals["site"].name
        assert env.globals["pages"] is load_page_content()
        assert env.globals["current_year"]() >= 2025

    def test_page_content_loaded(self):
        assert isinstance(load_page_content(), dict)
        assert load_page_content()


class TestSafeRedirectTarget:
    @pytest.mark.parametrize("target", ["/admin/posts", "/admin/posts?status=DRAFT", "/"])
    def test_same_site_paths(self, target):
        assert safe_redirect_target(target) == target

    @pytest.mark.parametrize("target", [
        None,
        "",
        "https://evil.example.com",
        "//evil.example.com/admin",
        "/\\evil.example.com",
        "admin",
    ])
    def test_everything_else_goes_to_default(self, target):
        assert safe_redirect_target(target) == DEFAULT_REDIRECT


class TestParsePostForm:
    """Tests for the admin editor form parser."""

    def test_full_form(self):
        form = FormData([
            ("title", "  Posse da nova diretoria  "),
            ("content", "Texto"),
            ("status", "SCHEDULED"),
            ("scheduled_for", "2026-01-15T10:00"),
            ("is_featured", "on"),
            ("category_id", "cat-1"),
            ("tag_ids", "tag-1"),
            ("tag_ids", ""),
            ("tag_ids", "tag-2"),
            ("slug", "  "),
            ("meta_title", " SEO "),
        ])

        data = parse_post_form(form)

        assert data["title"] == "Posse da nova diretoria"
        assert data["status"] == "SCHEDULED"
        assert data["is_featured"] is True
        assert data["tag_ids"] == ["tag-1", "tag-2"]
        assert data["slug"] is None
        assert data["meta_title"] == "SEO"
        assert data["category_id"] == "cat-1"

        post = PostCreate.model_validate(data)
        assert post.status == ContentStatus.SCHEDULED
        assert post.scheduled_for == datetime(2026, 1, 15, 10, 0)

    def test_empty_form_defaults(self):
        data = parse_post_form(FormData([]))

        assert data["title"] is None
        assert data["content"] is None
        assert data["status"] == "DRAFT"
        assert data["is_featured"] is False
        assert data["tag_ids"] == []
        assert data["excerpt"] is None
