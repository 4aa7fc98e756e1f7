"""
Base Service.

Base class for all services providing common patterns for business logic.
Services orchestrate repositories, handle transactions, and implement
business rules.

Usage:
    from asof.backend.services.base import BaseService

    class CategoryService(BaseService):
        def __init__(self, session: AsyncSession) -> None:
            super().__init__(session)
            self.repo = CategoryRepository(session)
"""

from typing import Any, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from asof.backend.core.exceptions import (
    ConflictError,
    DatabaseError,
    ValidationError,
)
from asof.backend.core.logging import get_logger
from asof.backend.models.enums import AuditAction
from asof.backend.repositories.audit_log import AuditLogRepository

T = TypeVar("T")


class BaseService:
    """
    Base class for all services.

    Provides:
    - Database session management
    - Error wrapping for database operations
    - Required-field validation with Portuguese messages
    - Audit trail recording

    Subclasses should:
    - Call super().__init__(session) in their __init__
    - Initialize repositories in __init__
    - Implement business logic methods
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize the service with a database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self._session = session
        self._logger = get_logger(self.__class__.__module__)
        self._audit = AuditLogRepository(session)

    @property
    def session(self) -> AsyncSession:
        """Get the database session."""
        return self._session

    async def _execute_db_operation(
        self,
        operation: str,
        coro: Any,
    ) -> T:
        """
        Execute a database operation with error handling.

        Wraps database operations to convert SQLAlchemy exceptions
        to application-specific exceptions.

        Args:
            operation: Description of the operation for logging
            coro: Coroutine to execute

        Returns:
            Result of the coroutine

        Raises:
            ConflictError: For unique constraint violations
            DatabaseError: For other database errors
        """
        try:
            return await coro
        except IntegrityError as e:
            self._logger.warning(
                "Database integrity error",
                extra={"operation": operation, "error": str(e)},
            )
            error_str = str(e).lower()
            if "unique" in error_str or "duplicate" in error_str:
                raise ConflictError("Registro já existe") from e
            raise DatabaseError(f"Violação de restrição no banco: {operation}") from e
        except SQLAlchemyError as e:
            self._logger.error(
                "Database error",
                extra={"operation": operation, "error": str(e)},
            )
            raise DatabaseError(f"Falha na operação de banco: {operation}") from e

    def _validate_required(
        self,
        fields: dict[str, Any],
        field_names: list[str],
        message: str = "Campos obrigatórios ausentes",
    ) -> None:
        """
        Validate that required fields are present and not empty.

        Raises:
            ValidationError: If any required field is missing or empty
        """
        missing = []
        for name in field_names:
            value = fields.get(name)
            if value is None or (isinstance(value, str) and not value.strip()):
                missing.append(name)

        if missing:
            raise ValidationError(message, details={"missing_fields": missing})

    async def _record_audit(
        self,
        action: AuditAction,
        entity_type: str,
        entity_id: str | None,
        user_id: str | None,
        changes: dict[str, Any] | None = None,
        ip_address: str | None = None,
    ) -> None:
        await self._execute_db_operation(
            f"audit_{action.value.lower()}",
            self._audit.record(
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                user_id=user_id,
                changes=changes,
                ip_address=ip_address,
            ),
        )

    def _log_operation(
        self,
        operation: str,
        **context: Any,
    ) -> None:
        """
        Log a service operation with context.

        Args:
            operation: Description of the operation
            **context: Additional context to include in log
        """
        self._logger.info(
            operation,
            extra={"service": self.__class__.__name__, **context},
        )
