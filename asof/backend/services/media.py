"""
Media Service.

Upload, listing, metadata edits and deletion for the media library.

Stored files are named {timestamp_ms}-{random6}.{ext}. Raster images
also get their dimensions recorded and a cover-cropped JPEG thumbnail
named {thumbnail.prefix}{stem}.jpg. Image processing failures never
fail the upload.
"""

import secrets
import string
import time
from pathlib import PurePath

from sqlalchemy.ext.asyncio import AsyncSession

from asof.backend.core.concurrency import get_semaphore, run_blocking
from asof.backend.core.config import get_app_config
from asof.backend.core.exceptions import ApplicationError, PayloadTooLargeError, ValidationError
from asof.backend.core.images import IMAGE_ERRORS, build_thumbnail, is_raster, read_dimensions
from asof.backend.core.storage import LocalStorage
from asof.backend.core.utils import utc_now
from asof.backend.models.enums import AuditAction, MediaType
from asof.backend.models.media import Media
from asof.backend.models.user import User
from asof.backend.repositories.media import SORT_ORDERS, MediaRepository
from asof.backend.schemas.media import MediaListData, MediaResponse, MediaTypeStats, MediaUpdate
from asof.backend.services.base import BaseService

EDITABLE_FIELDS = ("alt", "caption", "title", "description")
_RANDOM_ALPHABET = string.ascii_lowercase + string.digits

# Fallback extensions when the uploaded name has none
MIME_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/svg+xml": "svg",
    "video/mp4": "mp4",
    "video/webm": "webm",
    "video/quicktime": "mov",
    "application/pdf": "pdf",
    "application/msword": "doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
    "audio/mpeg": "mp3",
    "audio/wav": "wav",
    "audio/ogg": "ogg",
}


def generate_file_name(original_name: str, mime_type: str) -> str:
    """Collision-resistant stored name that keeps the original extension."""
    suffix = PurePath(original_name or "").suffix.lower().lstrip(".")
    if not suffix.isalnum():
        suffix = ""
    extension = suffix or MIME_EXTENSIONS.get(mime_type, "bin")
    random_part = "".join(secrets.choice(_RANDOM_ALPHABET) for _ in range(6))
    return f"{int(time.time() * 1000)}-{random_part}.{extension}"


class MediaService(BaseService):
    """
    Service for the media library.
    """

    def __init__(self, session: AsyncSession, storage: LocalStorage) -> None:
        super().__init__(session)
        self.repo = MediaRepository(session)
        self.storage = storage
        self._app_config = get_app_config()

    def resolve_type(self, mime_type: str) -> MediaType | None:
        """Media type whose allow-list contains the MIME type."""
        for type_name, mime_types in self._app_config.storage.allowed_types.items():
            if mime_type in mime_types:
                return MediaType(type_name)
        return None

    async def upload(
        self,
        data: bytes,
        original_name: str,
        mime_type: str | None,
        user: User | None,
        alt: str | None = None,
        title: str | None = None,
        ip_address: str | None = None,
    ) -> Media:
        """
        Store an uploaded file and record it.

        Raises:
            PayloadTooLargeError: File larger than storage.max_file_size_bytes
            ValidationError: Empty file or MIME type not allowed
        """
        storage_config = self._app_config.storage
        size = len(data)

        if size > storage_config.max_file_size_bytes:
            raise PayloadTooLargeError(
                "Arquivo muito grande",
                details={"max_size_bytes": storage_config.max_file_size_bytes, "size": size},
            )
        if size == 0:
            raise ValidationError("Arquivo vazio")

        mime_type = (mime_type or "").split(";")[0].strip().lower()
        media_type = self.resolve_type(mime_type)
        if media_type is None:
            raise ValidationError(
                "Tipo de arquivo não permitido",
                details={"mime_type": mime_type},
            )

        file_name = generate_file_name(original_name, mime_type)
        url = await self.storage.save(file_name, data)

        width = height = None
        thumbnail_url = None
        if media_type == MediaType.IMAGE and is_raster(mime_type):
            width, height, thumbnail_url = await self._process_image(data, file_name)

        try:
            media = await self._execute_db_operation(
                "create_media",
                self.repo.create(
                    file_name=file_name,
                    original_name=(original_name or file_name)[:255],
                    mime_type=mime_type,
                    size=size,
                    type=media_type,
                    url=url,
                    thumbnail_url=thumbnail_url,
                    width=width,
                    height=height,
                    alt=alt or None,
                    title=title or None,
                    uploaded_by_id=user.id if user else None,
                ),
            )
            await self._record_audit(
                AuditAction.CREATE, "media", media.id, user.id if user else None,
                changes={"file_name": file_name},
                ip_address=ip_address,
            )
        except ApplicationError:
            # no row points at the stored files
            await self._remove_files(file_name, self.storage.name_from_url(thumbnail_url))
            raise

        self._log_operation(
            "Media uploaded",
            file_name=file_name,
            mime_type=mime_type,
            size=size,
        )
        return media

    async def list_media(
        self,
        media_type: str | None = None,
        search: str | None = None,
        sort: str = "newest",
        limit: int = 50,
        offset: int = 0,
    ) -> MediaListData:
        """
        Raises:
            ValidationError: Unknown media type or sort order
        """
        parsed_type = None
        if media_type:
            try:
                parsed_type = MediaType(media_type.upper())
            except ValueError as e:
                raise ValidationError("Tipo de mídia inválido") from e
        if sort not in SORT_ORDERS:
            raise ValidationError("Ordenação inválida", details={"allowed": list(SORT_ORDERS)})

        max_limit = self._app_config.application.pagination.max_limit
        limit = min(max(limit, 1), max_limit)
        offset = max(offset, 0)

        items, total = await self.repo.list_filtered(
            limit=limit,
            offset=offset,
            media_type=parsed_type,
            search=search or None,
            sort=sort,
        )
        stats = await self.repo.stats_by_type()

        return MediaListData(
            items=[MediaResponse.model_validate(item) for item in items],
            total=total,
            limit=limit,
            offset=offset,
            has_more=offset + len(items) < total,
            stats={name: MediaTypeStats(**values) for name, values in stats.items()},
        )

    async def get(self, media_id: str) -> Media:
        """
        Raises:
            NotFoundError: If the media item does not exist or was deleted
        """
        return await self.repo.get_active(media_id)

    async def update_metadata(
        self,
        media_id: str,
        data: MediaUpdate,
        user: User | None = None,
    ) -> Media:
        """
        Update alt, caption, title and description only.

        Raises:
            NotFoundError: If the media item does not exist or was deleted
            ValidationError: If none of the editable fields was sent
        """
        changes = {
            key: value
            for key, value in data.model_dump(exclude_unset=True).items()
            if key in EDITABLE_FIELDS
        }
        if not changes:
            raise ValidationError(
                "Nenhum campo para atualizar",
                details={"allowed_fields": list(EDITABLE_FIELDS)},
            )

        media = await self.repo.get_active(media_id)
        media = await self._execute_db_operation(
            "update_media", self.repo.apply(media, **changes),
        )
        await self._record_audit(
            AuditAction.UPDATE, "media", media.id, user.id if user else None,
            changes={"fields": sorted(changes)},
        )
        return media

    async def delete(
        self,
        media_id: str,
        user: User | None = None,
        ip_address: str | None = None,
    ) -> None:
        """
        Remove the stored files and soft-delete the record.

        Storage failures are logged and do not stop the delete.

        Raises:
            NotFoundError: If the media item does not exist or was deleted
        """
        media = await self.repo.get_active(media_id)

        await self._remove_files(media.file_name, self.storage.name_from_url(media.thumbnail_url))

        await self._execute_db_operation(
            "delete_media", self.repo.apply(media, deleted_at=utc_now()),
        )
        await self._record_audit(
            AuditAction.DELETE, "media", media.id, user.id if user else None,
            changes={"file_name": media.file_name},
            ip_address=ip_address,
        )
        self._log_operation("Media deleted", media_id=media.id)

    async def _remove_files(self, *file_names: str | None) -> None:
        for file_name in file_names:
            if not file_name:
                continue
            try:
                await self.storage.delete(file_name)
            except (OSError, ValueError) as e:
                self._logger.warning(
                    "Could not remove stored file",
                    extra={"file_name": file_name, "error": str(e)},
                )

    async def _process_image(
        self,
        data: bytes,
        file_name: str,
    ) -> tuple[int | None, int | None, str | None]:
        """Dimensions and thumbnail URL; (None, None, None) when Pillow fails."""
        thumb_config = self._app_config.storage.thumbnail
        try:
            async with get_semaphore("image_processing"):
                width, height = await run_blocking(read_dimensions, data)
                thumbnail_url = None
                if self._app_config.features.media_thumbnails_enabled:
                    thumbnail = await run_blocking(
                        build_thumbnail,
                        data,
                        thumb_config.width,
                        thumb_config.height,
                        thumb_config.quality,
                    )
                    thumb_name = f"{thumb_config.prefix}{PurePath(file_name).stem}.jpg"
                    thumbnail_url = await self.storage.save(thumb_name, thumbnail)
        except IMAGE_ERRORS as e:
            self._logger.warning(
                "Image processing failed, storing without thumbnail",
                extra={"file_name": file_name, "error": str(e)},
            )
            return None, None, None
        return width, height, thumbnail_url
