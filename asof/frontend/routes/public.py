"""
Public Site Pages.

Home, institutional pages, the news listing and article pages, and the
contact form.
"""

from datetime import date

from fastapi import APIRouter, Form, Query, Request
from starlette.responses import Response

from asof.backend.core.dependencies import ClientIp, DbSession, Mailer, News
from asof.backend.core.exception_handlers import EXCEPTION_STATUS_MAP
from asof.backend.core.exceptions import ApplicationError
from asof.backend.schemas.contact import ContactRequest
from asof.backend.services.contact import ContactService
from asof.backend.services.news_feed import NewsFeedService
from asof.backend.services.taxonomy import TaxonomyService
from asof.frontend.templating import load_page_content, render

router = APIRouter()

HOME_NEWS_COUNT = 3


@router.get("/")
async def home(request: Request, db: DbSession, news: News) -> Response:
    latest = await NewsFeedService(db, news).list_entries()
    return render(request, "public/home.html", {"latest_news": latest[:HOME_NEWS_COUNT]})


@router.get("/sobre")
async def sobre(request: Request) -> Response:
    return render(request, "public/sobre.html")


@router.get("/atuacao")
async def atuacao(request: Request) -> Response:
    return render(request, "public/atuacao.html")


@router.get("/transparencia")
async def transparencia(request: Request) -> Response:
    return render(request, "public/transparencia.html")


@router.get("/convenios")
async def convenios(request: Request) -> Response:
    return render(request, "public/convenios.html")


@router.get("/membros")
async def membros(request: Request) -> Response:
    return render(request, "public/membros.html")


@router.get("/revista")
async def revista(request: Request) -> Response:
    return render(request, "public/revista.html")


@router.get("/eventos")
async def eventos(request: Request) -> Response:
    """Events split into upcoming and past relative to today."""
    today = date.today()
    upcoming, past = [], []
    for event in load_page_content()["eventos"]["events"]:
        event_date = date.fromisoformat(event["date"])
        (upcoming if event_date >= today else past).append(event)
    upcoming.sort(key=lambda event: event["date"])
    past.sort(key=lambda event: event["date"], reverse=True)
    return render(request, "public/eventos.html", {"upcoming": upcoming, "past": past})


@router.get("/noticias")
async def noticias(
    request: Request,
    db: DbSession,
    news: News,
    page: int = Query(default=1, ge=1),
    categoria: str | None = Query(default=None, max_length=100),
) -> Response:
    result = await NewsFeedService(db, news).list_page(page=page, category_slug=categoria)
    categories = await TaxonomyService(db).list_categories()
    return render(
        request,
        "public/noticias.html",
        {"page": result, "categories": categories, "current_category": categoria},
    )


@router.get("/noticias/{slug}")
async def noticia(request: Request, slug: str, db: DbSession, news: News) -> Response:
    article = await NewsFeedService(db, news).get_article(slug)
    return render(request, "public/noticia.html", {"article": article})


@router.get("/contato")
async def contato(request: Request) -> Response:
    return render(request, "public/contato.html", {"form": ContactRequest()})


@router.post("/contato")
async def contato_submit(
    request: Request,
    mailer: Mailer,
    client_ip: ClientIp,
    name: str = Form(default=""),
    email: str = Form(default=""),
    phone: str = Form(default=""),
    subject: str = Form(default=""),
    message: str = Form(default=""),
) -> Response:
    form = ContactRequest(name=name, email=email, phone=phone or None, subject=subject, message=message)
    try:
        result = await ContactService(mailer).send(form, ip_address=client_ip)
    except ApplicationError as e:
        return render(
            request,
            "public/contato.html",
            {"form": form, "error": e.message},
            status_code=EXCEPTION_STATUS_MAP.get(type(e), 500),
        )
    return render(request, "public/contato.html", {"form": ContactRequest(), "success": result.message})
