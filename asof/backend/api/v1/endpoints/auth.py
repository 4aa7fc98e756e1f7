"""
Auth API Endpoints.

Login, logout and the current user. The session token travels only in
the httpOnly admin-auth-token cookie; it is never returned in a body.
"""

from fastapi import APIRouter, Request, Response

from asof.backend.core.dependencies import ClientIp, CurrentUser, DbSession, RequestId, SessionToken
from asof.backend.core.session_cookie import clear_session_cookie, set_session_cookie
from asof.backend.schemas.auth import LoginRequest, LoginResponse, MessageResponse, UserResponse
from asof.backend.schemas.base import ApiResponse, ResponseMetadata
from asof.backend.services.auth import AuthService

router = APIRouter()


@router.post(
    "/login",
    response_model=ApiResponse[LoginResponse],
    summary="Log in",
    description="Check credentials and open a session. Sets the session cookie.",
)
async def login(
    data: LoginRequest,
    request: Request,
    response: Response,
    db: DbSession,
    request_id: RequestId,
    client_ip: ClientIp,
) -> ApiResponse[LoginResponse]:
    service = AuthService(db)
    result = await service.login(
        data.email,
        data.password,
        ip_address=client_ip,
        user_agent=request.headers.get("user-agent"),
    )
    set_session_cookie(response, result.token)
    return ApiResponse(
        data=LoginResponse(
            user=UserResponse.model_validate(result.user),
            expires_at=result.expires_at,
        ),
        metadata=ResponseMetadata(request_id=request_id),
    )


@router.post(
    "/logout",
    response_model=ApiResponse[MessageResponse],
    summary="Log out",
    description="End the current session. Succeeds even without a session.",
)
async def logout(
    response: Response,
    db: DbSession,
    request_id: RequestId,
    client_ip: ClientIp,
    token: SessionToken,
) -> ApiResponse[MessageResponse]:
    await AuthService(db).logout(token, ip_address=client_ip)
    clear_session_cookie(response)
    return ApiResponse(
        data=MessageResponse(message="Logout realizado com sucesso"),
        metadata=ResponseMetadata(request_id=request_id),
    )


@router.get(
    "/me",
    response_model=ApiResponse[UserResponse],
    summary="Current user",
)
async def me(user: CurrentUser, request_id: RequestId) -> ApiResponse[UserResponse]:
    return ApiResponse(
        data=UserResponse.model_validate(user),
        metadata=ResponseMetadata(request_id=request_id),
    )
