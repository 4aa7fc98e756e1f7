"""
HTTP Middleware.

RequestContextMiddleware handles request tracking, timing and log context.
SecurityHeadersMiddleware adds the configured security headers to every
response (pages, API and static files alike).
RequestSizeLimitMiddleware rejects oversized bodies by Content-Length.
"""

import uuid
from datetime import datetime, timezone

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from asof.backend.core.config_schema import SecurityHeadersSchema
from asof.backend.core.logging import get_logger
from asof.backend.schemas.base import ErrorDetail, ErrorResponse

logger = get_logger(__name__)

# Valid frontend identifiers sent in X-Frontend-ID
KNOWN_FRONTENDS = {"web", "admin", "api", "cli", "internal"}


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Middleware that adds request context to every request.

    Features:
    - Generates or propagates request ID (X-Request-ID header)
    - Extracts frontend identifier (X-Frontend-ID header)
    - Records request timing (X-Response-Time header)
    - Binds request context to structlog for automatic inclusion in logs
    - Stores context in request.state for access by handlers

    Access in endpoints:
        request.state.request_id
        request.state.frontend
        request.state.start_time

    With log_requests enabled (features.api_request_logging), completed
    API requests are logged at INFO instead of DEBUG.
    """

    def __init__(self, app, log_requests: bool = False) -> None:
        super().__init__(app)
        self.log_requests = log_requests

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process request with context tracking."""
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

        frontend = request.headers.get("X-Frontend-ID", "unknown").lower()
        if frontend not in KNOWN_FRONTENDS:
            frontend = "unknown"

        start_time = datetime.now(timezone.utc).replace(tzinfo=None)

        request.state.request_id = request_id
        request.state.frontend = frontend
        request.state.start_time = start_time

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            frontend=frontend,
            method=request.method,
            path=request.url.path,
        )

        logger.debug(
            "Request started",
            extra={
                "client_host": request.client.host if request.client else None,
                "user_agent": request.headers.get("User-Agent"),
            },
        )

        try:
            response = await call_next(request)

            end_time = datetime.now(timezone.utc).replace(tzinfo=None)
            duration_ms = int((end_time - start_time).total_seconds() * 1000)

            response.headers["X-Request-ID"] = request_id
            response.headers["X-Response-Time"] = f"{duration_ms}ms"

            log = logger.info if self.log_requests and request.url.path.startswith("/api") else logger.debug
            log(
                "Request completed",
                extra={
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                },
            )

            return response

        except Exception as exc:
            end_time = datetime.now(timezone.utc).replace(tzinfo=None)
            duration_ms = int((end_time - start_time).total_seconds() * 1000)

            logger.error(
                "Request failed with exception",
                extra={
                    "duration_ms": duration_ms,
                    "error_type": type(exc).__name__,
                },
            )
            raise

        finally:
            structlog.contextvars.clear_contextvars()


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Adds security headers from security.yaml to every response.

    Strict-Transport-Security is only sent when hsts_enabled is true.
    Headers already set by a handler are left untouched.
    """

    def __init__(self, app, headers_config: SecurityHeadersSchema) -> None:
        super().__init__(app)
        self._headers = build_security_headers(headers_config)

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        response = await call_next(request)
        for name, value in self._headers.items():
            response.headers.setdefault(name, value)
        return response


def build_security_headers(config: SecurityHeadersSchema) -> dict[str, str]:
    """Build the header map applied by SecurityHeadersMiddleware."""
    headers = {
        "X-Content-Type-Options": config.x_content_type_options,
        "X-Frame-Options": config.x_frame_options,
        "X-XSS-Protection": config.x_xss_protection,
        "Referrer-Policy": config.referrer_policy,
        "Content-Security-Policy": config.content_security_policy,
    }
    if config.hsts_enabled:
        headers["Strict-Transport-Security"] = (
            f"max-age={config.hsts_max_age}; includeSubDomains"
        )
    return headers


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """
    Rejects requests whose Content-Length exceeds the configured limit.

    Answers 413 with the standard error envelope before the body is read.
    """

    def __init__(self, app, max_body_size: int) -> None:
        super().__init__(app)
        self.max_body_size = max_body_size

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.max_body_size:
            logger.warning(
                "Request body too large",
                extra={"content_length": int(content_length), "limit": self.max_body_size},
            )
            body = ErrorResponse(
                error=ErrorDetail(
                    code="VAL_PAYLOAD_TOO_LARGE",
                    message="Requisição muito grande",
                    details={"max_size_bytes": self.max_body_size},
                ),
            )
            return JSONResponse(status_code=413, content=body.model_dump(mode="json"))
        return await call_next(request)
