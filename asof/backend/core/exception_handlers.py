"""
Exception Handlers.

FastAPI exception handlers that convert application exceptions
to standardized API responses. All exceptions are logged and
returned in the standard ErrorResponse format.

Requests for server-rendered pages (anything outside the API prefix
and health endpoints) receive an HTML error page instead of JSON.
An authentication failure on a page redirects to the login form.

Usage:
    from asof.backend.core.exception_handlers import register_exception_handlers

    app = FastAPI()
    register_exception_handlers(app)
"""

from urllib.parse import quote

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from asof.backend.core.config import get_app_config
from asof.backend.core.exceptions import (
    ApplicationError,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DatabaseError,
    ExternalServiceError,
    NotFoundError,
    PayloadTooLargeError,
    RateLimitError,
    ServiceUnavailableError,
    ValidationError,
)
from asof.backend.core.logging import get_logger
from asof.backend.schemas.base import ErrorDetail, ErrorResponse, ResponseMetadata

logger = get_logger(__name__)

# Map exception types to HTTP status codes
EXCEPTION_STATUS_MAP: dict[type[ApplicationError], int] = {
    NotFoundError: 404,
    ValidationError: 400,
    AuthenticationError: 401,
    AuthorizationError: 403,
    ConflictError: 409,
    PayloadTooLargeError: 413,
    RateLimitError: 429,
    ExternalServiceError: 502,
    DatabaseError: 503,
    ServiceUnavailableError: 503,
}

JSON_PATH_PREFIXES = ("/api", "/health")


def _get_request_id(request: Request) -> str | None:
    """Extract request ID from request state or headers."""
    if hasattr(request.state, "request_id"):
        return request.state.request_id
    return request.headers.get("x-request-id")


def wants_html(request: Request) -> bool:
    """True when the request targets a server-rendered page."""
    return not request.url.path.startswith(JSON_PATH_PREFIXES)


def _render_error_page(request: Request, status_code: int, message: str) -> Response:
    from asof.frontend.templating import render_error_page

    return render_error_page(request, status_code=status_code, message=message)


async def application_error_handler(
    request: Request,
    exc: ApplicationError,
) -> Response:
    """
    Handle all ApplicationError subclasses.

    Converts application exceptions to standardized JSON responses
    with appropriate HTTP status codes.
    """
    status_code = EXCEPTION_STATUS_MAP.get(type(exc), 500)
    request_id = _get_request_id(request)

    log_extra = {
        "code": exc.code,
        "message": exc.message,
        "status": status_code,
        "path": request.url.path,
        "method": request.method,
    }
    if request_id:
        log_extra["request_id"] = request_id

    if status_code >= 500:
        logger.error("Server error", extra=log_extra)
    else:
        logger.warning("Client error", extra=log_extra)

    if wants_html(request):
        if status_code == 401:
            target = quote(request.url.path, safe="/")
            return RedirectResponse(f"/login?redirect={target}", status_code=303)
        return _render_error_page(request, status_code, exc.message)

    error_detail = ErrorDetail(code=exc.code, message=exc.message)
    if exc.details:
        error_detail.details = exc.details

    metadata = ResponseMetadata(request_id=request_id)
    response = ErrorResponse(error=error_detail, metadata=metadata)

    headers = None
    if isinstance(exc, RateLimitError) and "retry_after_seconds" in exc.details:
        headers = {"Retry-After": str(exc.details["retry_after_seconds"])}

    return JSONResponse(
        status_code=status_code,
        content=response.model_dump(mode="json"),
        headers=headers,
    )


async def validation_error_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """
    Handle FastAPI/Pydantic request validation errors.

    Converts validation errors to standardized format matching
    our ErrorResponse schema.
    """
    request_id = _get_request_id(request)

    errors = exc.errors()
    details = {
        "validation_errors": [
            {
                "field": ".".join(str(loc) for loc in err.get("loc", [])),
                "message": err.get("msg", "Validation error"),
                "type": err.get("type", "unknown"),
            }
            for err in errors
        ]
    }

    logger.warning(
        "Request validation failed",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_count": len(errors),
            "request_id": request_id,
        },
    )

    error_detail = ErrorDetail(
        code="VAL_REQUEST_INVALID",
        message="Dados da requisição inválidos",
        details=details,
    )

    metadata = ResponseMetadata(request_id=request_id)
    response = ErrorResponse(error=error_detail, metadata=metadata)

    return JSONResponse(
        status_code=422,
        content=response.model_dump(mode="json"),
    )


async def page_not_found_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> Response:
    """Render the 404 page for unknown page routes; defer to FastAPI otherwise."""
    if exc.status_code == 404 and wants_html(request):
        return _render_error_page(request, 404, "Página não encontrada")
    return await http_exception_handler(request, exc)


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> Response:
    """
    Handle unexpected exceptions.

    Catches all unhandled exceptions and returns a generic error
    response. The exception type and text are only included when
    features.api_detailed_errors is on outside production.
    """
    request_id = _get_request_id(request)

    logger.exception(
        "Unhandled exception",
        extra={
            "path": request.url.path,
            "method": request.method,
            "exception_type": type(exc).__name__,
            "request_id": request_id,
        },
    )

    if wants_html(request):
        return _render_error_page(request, 500, "Erro interno do servidor")

    error_detail = ErrorDetail(
        code="SYS_INTERNAL_ERROR",
        message="Erro interno do servidor",
    )
    app_config = get_app_config()
    if app_config.features.api_detailed_errors and not app_config.is_production:
        error_detail.details = {"exception_type": type(exc).__name__, "error": str(exc)}

    metadata = ResponseMetadata(request_id=request_id)
    response = ErrorResponse(error=error_detail, metadata=metadata)

    return JSONResponse(
        status_code=500,
        content=response.model_dump(mode="json"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with the FastAPI app.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(ApplicationError, application_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, page_not_found_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    logger.debug("Exception handlers registered")
