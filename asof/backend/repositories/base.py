"""
Base Repository.

Base class for all repositories with common CRUD operations.
"""

from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from asof.backend.core.exceptions import NotFoundError
from asof.backend.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Base repository with common CRUD operations.

    Subclasses should set the model class and, optionally, the message
    used when a lookup misses:

        class MediaRepository(BaseRepository[Media]):
            model = Media
            not_found_message = "Mídia não encontrada"
    """

    model: type[ModelType]
    not_found_message = "Recurso não encontrado"

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, id: str | UUID) -> ModelType:
        """
        Get a single record by ID.

        Raises:
            NotFoundError: If record not found
        """
        instance = await self.get_by_id_or_none(id)

        if instance is None:
            raise NotFoundError(self.not_found_message)

        return instance

    async def get_by_id_or_none(self, id: str | UUID) -> ModelType | None:
        """Get a single record by ID, returning None if not found."""
        result = await self.session.execute(
            select(self.model).where(self.model.id == str(id))
        )
        return result.scalar_one_or_none()

    async def create(self, **kwargs: Any) -> ModelType:
        """Create a new record."""
        instance = self.model(**kwargs)
        self.session.add(instance)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def apply(self, instance: ModelType, **kwargs: Any) -> ModelType:
        """Set attributes on an already loaded instance and flush."""
        for key, value in kwargs.items():
            if hasattr(instance, key):
                setattr(instance, key, value)

        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def exists(self, id: str | UUID) -> bool:
        """Check if a record exists by ID."""
        result = await self.session.execute(
            select(self.model.id).where(self.model.id == str(id))
        )
        return result.scalar_one_or_none() is not None
