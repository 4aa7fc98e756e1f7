"""
Admin Pages.

Dashboard, post editor and media library. Every route needs a session;
anonymous visitors are sent to /login by the exception handlers.
"""

from typing import Any

import pydantic
from fastapi import APIRouter, File, Form, Query, Request, UploadFile
from starlette.datastructures import FormData
from starlette.responses import RedirectResponse, Response

from asof.backend.core.dependencies import ClientIp, CurrentUser, DbSession, Storage
from asof.backend.core.exception_handlers import EXCEPTION_STATUS_MAP
from asof.backend.core.exceptions import ApplicationError
from asof.backend.models.enums import ContentStatus, MediaType
from asof.backend.models.post import Post
from asof.backend.models.user import User
from asof.backend.schemas.post import PostCreate, PostUpdate
from asof.backend.services.media import MediaService
from asof.backend.services.permissions import can_delete_post, can_manage_posts, can_publish_post
from asof.backend.services.post import PostService
from asof.backend.services.taxonomy import TaxonomyService
from asof.frontend.templating import render

router = APIRouter()

MEDIA_PAGE_SIZE = 24
EDITABLE_STATUSES = [status for status in ContentStatus if status != ContentStatus.DELETED]
OPTIONAL_TEXT_FIELDS = (
    "slug", "excerpt", "cover_image", "cover_image_alt",
    "category_id", "meta_title", "meta_description", "scheduled_for",
)


def _status_for(exc: ApplicationError) -> int:
    return EXCEPTION_STATUS_MAP.get(type(exc), 500)


def _validation_message(exc: pydantic.ValidationError) -> str:
    first = exc.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ()))
    return f"Campo inválido: {field}" if field else "Dados inválidos"


async def _discard_failed_write(db: DbSession, user: User) -> None:
    # A failed flush leaves the transaction unusable for the page queries
    await db.rollback()
    await db.refresh(user)


def parse_post_form(form: FormData) -> dict[str, Any]:
    """Turn the editor form into PostCreate/PostUpdate input."""
    data: dict[str, Any] = {
        "title": (form.get("title") or "").strip() or None,
        "content": form.get("content") or None,
        "status": form.get("status") or ContentStatus.DRAFT.value,
        "is_featured": form.get("is_featured") in ("on", "true", "1"),
        "tag_ids": [tag_id for tag_id in form.getlist("tag_ids") if tag_id],
    }
    for field in OPTIONAL_TEXT_FIELDS:
        value = form.get(field)
        data[field] = value.strip() if isinstance(value, str) and value.strip() else None
    return data


def _user_context(user: User) -> dict[str, Any]:
    return {
        "user": user,
        "can_manage": can_manage_posts(user),
        "can_publish": can_publish_post(user),
        "can_delete": can_delete_post(user),
    }


async def _editor_context(db: DbSession, user: User, **extra: Any) -> dict[str, Any]:
    taxonomy = TaxonomyService(db)
    return {
        **_user_context(user),
        "categories": await taxonomy.list_categories(),
        "tags": await taxonomy.list_tags(),
        "statuses": EDITABLE_STATUSES,
        **extra,
    }


def _form_values(post: Post) -> dict[str, Any]:
    return {
        "title": post.title,
        "slug": post.slug,
        "content": post.content,
        "excerpt": post.excerpt,
        "cover_image": post.cover_image,
        "cover_image_alt": post.cover_image_alt,
        "status": post.status.value,
        "scheduled_for": post.scheduled_for.strftime("%Y-%m-%dT%H:%M") if post.scheduled_for else None,
        "is_featured": post.is_featured,
        "category_id": post.category_id,
        "tag_ids": [tag.id for tag in post.tags],
        "meta_title": post.meta_title,
        "meta_description": post.meta_description,
    }


@router.get("")
async def dashboard(request: Request, db: DbSession, user: CurrentUser) -> Response:
    summary = await PostService(db).dashboard()
    return render(request, "admin/dashboard.html", {**_user_context(user), **summary})


@router.get("/posts")
async def posts_list(
    request: Request,
    db: DbSession,
    user: CurrentUser,
    page: int = Query(default=1, ge=1),
    search: str | None = Query(default=None, max_length=200),
    status: ContentStatus | None = Query(default=None),
    category: str | None = Query(default=None),
) -> Response:
    result = await PostService(db).list_admin(
        user,
        page=page,
        search=search,
        status=status,
        category_id=category,
    )
    categories = await TaxonomyService(db).list_categories()
    return render(
        request,
        "admin/posts.html",
        {
            **_user_context(user),
            "page": result,
            "categories": categories,
            "statuses": EDITABLE_STATUSES,
            "filters": {
                "search": search or "",
                "status": status.value if status else "",
                "category": category or "",
            },
        },
    )


@router.get("/posts/new")
async def post_new(request: Request, db: DbSession, user: CurrentUser) -> Response:
    context = await _editor_context(
        db, user, post=None, values={"status": ContentStatus.DRAFT.value, "tag_ids": []},
    )
    return render(request, "admin/post_form.html", context)


@router.post("/posts/new")
async def post_create(
    request: Request,
    db: DbSession,
    user: CurrentUser,
    client_ip: ClientIp,
) -> Response:
    values = parse_post_form(await request.form())
    try:
        data = PostCreate.model_validate(values)
        post = await PostService(db).create(data, user, ip_address=client_ip)
    except pydantic.ValidationError as e:
        error, status_code = _validation_message(e), 400
    except ApplicationError as e:
        await _discard_failed_write(db, user)
        error, status_code = e.message, _status_for(e)
    else:
        return RedirectResponse(f"/admin/posts/{post.id}/edit?saved=1", status_code=303)

    context = await _editor_context(db, user, post=None, values=values, error=error)
    return render(request, "admin/post_form.html", context, status_code=status_code)


@router.get("/posts/{post_id}/edit")
async def post_edit(
    request: Request,
    post_id: str,
    db: DbSession,
    user: CurrentUser,
    saved: bool = Query(default=False),
) -> Response:
    post = await PostService(db).get_by_id(post_id)
    context = await _editor_context(db, user, post=post, values=_form_values(post), saved=saved)
    return render(request, "admin/post_form.html", context)


@router.post("/posts/{post_id}/edit")
async def post_update(
    request: Request,
    post_id: str,
    db: DbSession,
    user: CurrentUser,
    client_ip: ClientIp,
) -> Response:
    service = PostService(db)
    post = await service.get_by_id(post_id)
    values = parse_post_form(await request.form())
    try:
        data = PostUpdate.model_validate(values)
        await service.update(post_id, data, user, ip_address=client_ip)
    except pydantic.ValidationError as e:
        error, status_code = _validation_message(e), 400
    except ApplicationError as e:
        await _discard_failed_write(db, user)
        post = await service.get_by_id(post_id)
        error, status_code = e.message, _status_for(e)
    else:
        return RedirectResponse(f"/admin/posts/{post_id}/edit?saved=1", status_code=303)

    context = await _editor_context(db, user, post=post, values=values, error=error)
    return render(request, "admin/post_form.html", context, status_code=status_code)


@router.post("/posts/{post_id}/delete")
async def post_delete(post_id: str, db: DbSession, user: CurrentUser, client_ip: ClientIp) -> Response:
    await PostService(db).delete(post_id, user, ip_address=client_ip)
    return RedirectResponse("/admin/posts", status_code=303)


async def _render_media_page(
    request: Request,
    db: DbSession,
    storage: Storage,
    user: User,
    media_type: str | None = None,
    search: str | None = None,
    sort: str = "newest",
    page: int = 1,
    error: str | None = None,
    status_code: int = 200,
) -> Response:
    library = await MediaService(db, storage).list_media(
        media_type=media_type,
        search=search,
        sort=sort,
        limit=MEDIA_PAGE_SIZE,
        offset=(page - 1) * MEDIA_PAGE_SIZE,
    )
    return render(
        request,
        "admin/media.html",
        {
            **_user_context(user),
            "library": library,
            "page": page,
            "media_types": list(MediaType),
            "filters": {"type": media_type or "", "search": search or "", "sort": sort},
            "error": error,
        },
        status_code=status_code,
    )


@router.get("/media")
async def media_library(
    request: Request,
    db: DbSession,
    storage: Storage,
    user: CurrentUser,
    type: str | None = Query(default=None),
    search: str | None = Query(default=None, max_length=200),
    sort: str = Query(default="newest"),
    page: int = Query(default=1, ge=1),
) -> Response:
    return await _render_media_page(
        request, db, storage, user,
        media_type=type or None, search=search, sort=sort, page=page,
    )


@router.post("/media")
async def media_upload(
    request: Request,
    db: DbSession,
    storage: Storage,
    user: CurrentUser,
    client_ip: ClientIp,
    file: UploadFile = File(...),
    alt: str = Form(default=""),
    title: str = Form(default=""),
) -> Response:
    data = await file.read()
    try:
        await MediaService(db, storage).upload(
            data,
            file.filename or "",
            file.content_type,
            user,
            alt=alt or None,
            title=title or None,
            ip_address=client_ip,
        )
    except ApplicationError as e:
        await _discard_failed_write(db, user)
        return await _render_media_page(
            request, db, storage, user, error=e.message, status_code=_status_for(e),
        )
    return RedirectResponse("/admin/media", status_code=303)


@router.post("/media/{media_id}/delete")
async def media_delete(
    media_id: str,
    db: DbSession,
    storage: Storage,
    user: CurrentUser,
    client_ip: ClientIp,
) -> Response:
    await MediaService(db, storage).delete(media_id, user, ip_address=client_ip)
    return RedirectResponse("/admin/media", status_code=303)
