"""
Custom Exceptions.

Application-specific exception classes for consistent error handling.
Messages are user-facing and written in Portuguese.
"""

from typing import Any


class ApplicationError(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str,
        code: str = "SYS_INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(ApplicationError):
    """Raised when a resource cannot be found."""

    def __init__(self, message: str = "Recurso não encontrado") -> None:
        super().__init__(message, code="RES_NOT_FOUND")


class ValidationError(ApplicationError):
    """Raised when validation fails."""

    def __init__(self, message: str = "Dados inválidos", details: dict | None = None) -> None:
        super().__init__(message, code="VAL_VALIDATION_ERROR", details=details)


class AuthenticationError(ApplicationError):
    """Raised when authentication fails."""

    def __init__(
        self,
        message: str = "Autenticação necessária",
        details: dict | None = None,
    ) -> None:
        super().__init__(message, code="AUTH_UNAUTHORIZED", details=details)


class AuthorizationError(ApplicationError):
    """Raised when authorization fails."""

    def __init__(self, message: str = "Permissão negada") -> None:
        super().__init__(message, code="AUTHZ_FORBIDDEN")


class ConflictError(ApplicationError):
    """Raised when there is a state conflict."""

    def __init__(self, message: str = "Conflito de recurso") -> None:
        super().__init__(message, code="RES_CONFLICT")


class PayloadTooLargeError(ApplicationError):
    """Raised when an uploaded payload exceeds the configured limit."""

    def __init__(
        self,
        message: str = "Arquivo muito grande",
        details: dict | None = None,
    ) -> None:
        super().__init__(message, code="VAL_PAYLOAD_TOO_LARGE", details=details)


class ExternalServiceError(ApplicationError):
    """Raised when an external service call fails."""

    def __init__(self, message: str = "Erro em serviço externo") -> None:
        super().__init__(message, code="SYS_EXTERNAL_SERVICE_ERROR")


class ServiceUnavailableError(ApplicationError):
    """Raised when a required service is not configured or unreachable."""

    def __init__(self, message: str = "Serviço indisponível") -> None:
        super().__init__(message, code="SYS_SERVICE_UNAVAILABLE")


class RateLimitError(ApplicationError):
    """Raised when rate limit is exceeded."""

    def __init__(
        self,
        message: str = "Muitas tentativas. Tente novamente mais tarde.",
        details: dict | None = None,
    ) -> None:
        super().__init__(message, code="RATE_LIMITED", details=details)


class DatabaseError(ApplicationError):
    """Raised when a database operation fails."""

    def __init__(self, message: str = "Erro de banco de dados") -> None:
        super().__init__(message, code="SYS_DATABASE_ERROR")
