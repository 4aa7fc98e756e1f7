"""
Posts API Endpoints.

Public listing and detail by slug, plus the authenticated admin
operations (list with filters, create, update, soft delete).
"""

from typing import Any, Literal

from fastapi import APIRouter, Query

from asof.backend.core.dependencies import ClientIp, CurrentUser, DbSession, RequestId
from asof.backend.core.pagination import create_paginated_response
from asof.backend.models.enums import ContentStatus
from asof.backend.schemas.auth import MessageResponse
from asof.backend.schemas.base import ApiResponse, ResponseMetadata
from asof.backend.schemas.post import (
    PostCreate,
    PostDetailResponse,
    PostListResponse,
    PostResponse,
    PostUpdate,
)
from asof.backend.services.post import PostService

router = APIRouter()


@router.get(
    "",
    summary="List published posts (paginated)",
    description="Published posts, newest first, optionally filtered by category slug or featured flag.",
)
async def list_posts(
    db: DbSession,
    request_id: RequestId,
    page: int = Query(default=1, ge=1, description="Page number"),
    limit: int | None = Query(default=None, ge=1, le=100, description="Page size"),
    category: str | None = Query(default=None, description="Category slug"),
    featured: bool | None = Query(default=None, description="Only featured (or non-featured) posts"),
) -> dict[str, Any]:
    service = PostService(db)
    result = await service.list_published(
        page=page,
        limit=limit,
        category_slug=category,
        featured=featured,
    )
    return create_paginated_response(result, PostListResponse, request_id=request_id)


@router.get(
    "/admin",
    summary="List posts for the admin area (paginated)",
    description="All non-deleted posts with search, status and category filters.",
)
async def list_admin_posts(
    db: DbSession,
    request_id: RequestId,
    user: CurrentUser,
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1, le=100),
    search: str | None = Query(default=None, max_length=200),
    status: ContentStatus | None = Query(default=None),
    category_id: str | None = Query(default=None),
    sort_by: Literal["createdAt", "updatedAt", "publishedAt", "title"] = Query(default="createdAt"),
    sort_order: Literal["asc", "desc"] = Query(default="desc"),
) -> dict[str, Any]:
    service = PostService(db)
    result = await service.list_admin(
        user,
        page=page,
        limit=limit,
        search=search,
        status=status,
        category_id=category_id,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return create_paginated_response(result, PostListResponse, request_id=request_id)


@router.get(
    "/by-slug/{slug}",
    response_model=ApiResponse[PostDetailResponse],
    summary="Get a published post by slug",
    description="Counts a view and returns up to three related posts.",
)
async def get_post_by_slug(
    slug: str,
    db: DbSession,
    request_id: RequestId,
) -> ApiResponse[PostDetailResponse]:
    post, related = await PostService(db).get_by_slug(slug)
    return ApiResponse(
        data=PostDetailResponse(
            post=PostResponse.model_validate(post),
            related=[PostListResponse.model_validate(item) for item in related],
        ),
        metadata=ResponseMetadata(request_id=request_id),
    )


@router.post(
    "",
    response_model=ApiResponse[PostResponse],
    status_code=201,
    summary="Create a post",
)
async def create_post(
    data: PostCreate,
    db: DbSession,
    request_id: RequestId,
    user: CurrentUser,
    client_ip: ClientIp,
) -> ApiResponse[PostResponse]:
    post = await PostService(db).create(data, user, ip_address=client_ip)
    return ApiResponse(
        data=PostResponse.model_validate(post),
        metadata=ResponseMetadata(request_id=request_id),
    )


@router.get(
    "/{post_id}",
    response_model=ApiResponse[PostResponse],
    summary="Get a post by ID (admin)",
)
async def get_post(
    post_id: str,
    db: DbSession,
    request_id: RequestId,
    user: CurrentUser,
) -> ApiResponse[PostResponse]:
    post = await PostService(db).get_by_id(post_id)
    return ApiResponse(
        data=PostResponse.model_validate(post),
        metadata=ResponseMetadata(request_id=request_id),
    )


@router.put(
    "/{post_id}",
    response_model=ApiResponse[PostResponse],
    summary="Update a post",
    description="Only provided fields are updated.",
)
@router.patch(
    "/{post_id}",
    response_model=ApiResponse[PostResponse],
    summary="Update a post",
    description="Only provided fields are updated.",
)
async def update_post(
    post_id: str,
    data: PostUpdate,
    db: DbSession,
    request_id: RequestId,
    user: CurrentUser,
    client_ip: ClientIp,
) -> ApiResponse[PostResponse]:
    post = await PostService(db).update(post_id, data, user, ip_address=client_ip)
    return ApiResponse(
        data=PostResponse.model_validate(post),
        metadata=ResponseMetadata(request_id=request_id),
    )


@router.delete(
    "/{post_id}",
    response_model=ApiResponse[MessageResponse],
    summary="Delete a post",
    description="Soft delete: the post disappears from every listing.",
)
async def delete_post(
    post_id: str,
    db: DbSession,
    request_id: RequestId,
    user: CurrentUser,
    client_ip: ClientIp,
) -> ApiResponse[MessageResponse]:
    await PostService(db).delete(post_id, user, ip_address=client_ip)
    return ApiResponse(
        data=MessageResponse(message="Post excluído com sucesso"),
        metadata=ResponseMetadata(request_id=request_id),
    )
