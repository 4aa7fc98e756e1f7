"""
Category and Tag API Endpoints.
"""

from fastapi import APIRouter, Query

from asof.backend.core.dependencies import DbSession, RequestId
from asof.backend.schemas.base import ApiResponse, ResponseMetadata
from asof.backend.schemas.taxonomy import CategoryResponse, TagResponse
from asof.backend.services.taxonomy import TaxonomyService

router = APIRouter()


@router.get(
    "/categories",
    response_model=ApiResponse[list[CategoryResponse]],
    summary="List categories",
)
async def list_categories(
    db: DbSession,
    request_id: RequestId,
    include_count: bool = Query(default=False, description="Include published post counts"),
) -> ApiResponse[list[CategoryResponse]]:
    categories = await TaxonomyService(db).list_categories(include_count=include_count)
    return ApiResponse(data=categories, metadata=ResponseMetadata(request_id=request_id))


@router.get(
    "/tags",
    response_model=ApiResponse[list[TagResponse]],
    summary="List tags",
)
async def list_tags(db: DbSession, request_id: RequestId) -> ApiResponse[list[TagResponse]]:
    tags = await TaxonomyService(db).list_tags()
    return ApiResponse(
        data=[TagResponse.model_validate(tag) for tag in tags],
        metadata=ResponseMetadata(request_id=request_id),
    )
