"""
Media API Endpoints.

Upload and manage files in the media library. Every endpoint requires
an authenticated admin session.
"""

from typing import Literal

from fastapi import APIRouter, File, Form, Query, UploadFile

from asof.backend.core.dependencies import ClientIp, CurrentUser, DbSession, RequestId, Storage
from asof.backend.schemas.auth import MessageResponse
from asof.backend.schemas.base import ApiResponse, ResponseMetadata
from asof.backend.schemas.media import MediaListData, MediaResponse, MediaUpdate
from asof.backend.services.media import MediaService

router = APIRouter()

MediaSort = Literal["newest", "oldest", "name-asc", "name-desc", "size-asc", "size-desc"]


@router.get(
    "",
    response_model=ApiResponse[MediaListData],
    summary="List media",
    description="Media items with type filter, search, sorting and library statistics.",
)
async def list_media(
    db: DbSession,
    storage: Storage,
    request_id: RequestId,
    user: CurrentUser,
    type: str | None = Query(default=None, description="IMAGE, VIDEO, DOCUMENT or AUDIO"),
    search: str | None = Query(default=None, max_length=200),
    sort: MediaSort = Query(default="newest"),
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
) -> ApiResponse[MediaListData]:
    data = await MediaService(db, storage).list_media(
        media_type=type,
        search=search,
        sort=sort,
        limit=limit,
        offset=offset,
    )
    return ApiResponse(data=data, metadata=ResponseMetadata(request_id=request_id))


@router.post(
    "/upload",
    response_model=ApiResponse[MediaResponse],
    status_code=201,
    summary="Upload a file",
    description="Multipart upload. Images get dimensions and a 300x300 thumbnail.",
)
async def upload_media(
    db: DbSession,
    storage: Storage,
    request_id: RequestId,
    user: CurrentUser,
    client_ip: ClientIp,
    file: UploadFile = File(...),
    alt: str | None = Form(default=None, max_length=255),
    title: str | None = Form(default=None, max_length=255),
) -> ApiResponse[MediaResponse]:
    data = await file.read()
    media = await MediaService(db, storage).upload(
        data,
        original_name=file.filename or "",
        mime_type=file.content_type,
        user=user,
        alt=alt,
        title=title,
        ip_address=client_ip,
    )
    return ApiResponse(
        data=MediaResponse.model_validate(media),
        metadata=ResponseMetadata(request_id=request_id),
    )


@router.get(
    "/{media_id}",
    response_model=ApiResponse[MediaResponse],
    summary="Get a media item",
)
async def get_media(
    media_id: str,
    db: DbSession,
    storage: Storage,
    request_id: RequestId,
    user: CurrentUser,
) -> ApiResponse[MediaResponse]:
    media = await MediaService(db, storage).get(media_id)
    return ApiResponse(
        data=MediaResponse.model_validate(media),
        metadata=ResponseMetadata(request_id=request_id),
    )


@router.patch(
    "/{media_id}",
    response_model=ApiResponse[MediaResponse],
    summary="Update media metadata",
    description="Only alt, caption, title and description can change.",
)
async def update_media(
    media_id: str,
    data: MediaUpdate,
    db: DbSession,
    storage: Storage,
    request_id: RequestId,
    user: CurrentUser,
) -> ApiResponse[MediaResponse]:
    media = await MediaService(db, storage).update_metadata(media_id, data, user=user)
    return ApiResponse(
        data=MediaResponse.model_validate(media),
        metadata=ResponseMetadata(request_id=request_id),
    )


@router.delete(
    "/{media_id}",
    response_model=ApiResponse[MessageResponse],
    summary="Delete a media item",
    description="Removes the stored file and thumbnail, then soft-deletes the record.",
)
async def delete_media(
    media_id: str,
    db: DbSession,
    storage: Storage,
    request_id: RequestId,
    user: CurrentUser,
    client_ip: ClientIp,
) -> ApiResponse[MessageResponse]:
    await MediaService(db, storage).delete(media_id, user=user, ip_address=client_ip)
    return ApiResponse(
        data=MessageResponse(message="Mídia excluída com sucesso"),
        metadata=ResponseMetadata(request_id=request_id),
    )
