"""
Sitemap and robots.txt.
"""

from fastapi import APIRouter, Request
from starlette.responses import PlainTextResponse, Response

from asof.backend.core.config import get_app_config
from asof.backend.core.dependencies import DbSession, News
from asof.backend.services.news_feed import NewsFeedService
from asof.frontend.templating import get_templates

router = APIRouter()

NEWS_PRIORITY = 0.7
NEWS_CHANGEFREQ = "weekly"


@router.get("/sitemap.xml")
async def sitemap(request: Request, db: DbSession, news: News) -> Response:
    """Static pages with their configured priority, then every news article."""
    site = get_app_config().site
    base_url = site.url.rstrip("/")
    entries = [
        {
            "loc": f"{base_url}{page.path}",
            "lastmod": None,
            "changefreq": page.changefreq,
            "priority": page.priority,
        }
        for page in site.sitemap
    ]
    for item in await NewsFeedService(db, news).list_entries():
        entries.append({
            "loc": f"{base_url}/noticias/{item.slug}",
            "lastmod": item.date,
            "changefreq": NEWS_CHANGEFREQ,
            "priority": NEWS_PRIORITY,
        })

    return get_templates().TemplateResponse(
        request,
        "sitemap.xml",
        {"entries": entries},
        media_type="application/xml",
    )


@router.get("/robots.txt")
async def robots() -> PlainTextResponse:
    base_url = get_app_config().site.url.rstrip("/")
    lines = [
        "User-agent: *",
        "Allow: /",
        "Disallow: /admin",
        "Disallow: /api",
        "",
        f"Sitemap: {base_url}/sitemap.xml",
    ]
    return PlainTextResponse("\n".join(lines) + "\n")
