"""
Login and Logout Pages.
"""

from fastapi import APIRouter, Form, Query, Request
from starlette.responses import RedirectResponse, Response

from asof.backend.core.dependencies import ClientIp, DbSession, OptionalUser, SessionToken
from asof.backend.core.exception_handlers import EXCEPTION_STATUS_MAP
from asof.backend.core.exceptions import ApplicationError
from asof.backend.core.session_cookie import clear_session_cookie, set_session_cookie
from asof.backend.services.auth import AuthService
from asof.frontend.templating import render

router = APIRouter()

DEFAULT_REDIRECT = "/admin"


def safe_redirect_target(target: str | None) -> str:
    """Only same-site absolute paths are followed after login."""
    if not target or not target.startswith("/") or target.startswith("//") or "\\" in target:
        return DEFAULT_REDIRECT
    return target


@router.get("/login")
async def login_page(
    request: Request,
    user: OptionalUser,
    redirect: str | None = Query(default=None),
) -> Response:
    target = safe_redirect_target(redirect)
    if user is not None:
        return RedirectResponse(target, status_code=303)
    return render(request, "auth/login.html", {"redirect": target, "email": ""})


@router.post("/login")
async def login_submit(
    request: Request,
    db: DbSession,
    client_ip: ClientIp,
    email: str = Form(default=""),
    password: str = Form(default=""),
    redirect: str = Form(default=DEFAULT_REDIRECT),
) -> Response:
    target = safe_redirect_target(redirect)
    try:
        result = await AuthService(db).login(
            email,
            password,
            ip_address=client_ip,
            user_agent=request.headers.get("user-agent"),
        )
    except ApplicationError as e:
        return render(
            request,
            "auth/login.html",
            {"redirect": target, "email": email, "error": e.message},
            status_code=EXCEPTION_STATUS_MAP.get(type(e), 500),
        )

    response = RedirectResponse(target, status_code=303)
    set_session_cookie(response, result.token)
    return response


@router.post("/logout")
async def logout(db: DbSession, client_ip: ClientIp, token: SessionToken) -> Response:
    await AuthService(db).logout(token, ip_address=client_ip)
    response = RedirectResponse("/login", status_code=303)
    clear_session_cookie(response)
    return response
