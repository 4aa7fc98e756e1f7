# Pydantic schemas package
from asof.backend.schemas.base import (
    ApiResponse,
    ErrorDetail,
    ErrorResponse,
    PaginatedResponse,
    PaginationInfo,
    ResponseMetadata,
)

__all__ = [
    "ApiResponse",
    "ErrorDetail",
    "ErrorResponse",
    "PaginatedResponse",
    "PaginationInfo",
    "ResponseMetadata",
]
