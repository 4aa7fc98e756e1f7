"""
Session Cookie.

Sets and clears the admin session cookie with the attributes from
security.yaml. The cookie is always httpOnly; Secure is forced on in
production regardless of the YAML value.
"""

from datetime import timedelta

from starlette.responses import Response

from asof.backend.core.config import get_app_config


def set_session_cookie(response: Response, token: str) -> None:
    app_config = get_app_config()
    session_config = app_config.security.session
    response.set_cookie(
        key=session_config.cookie_name,
        value=token,
        max_age=int(timedelta(days=session_config.max_age_days).total_seconds()),
        path="/",
        httponly=True,
        secure=session_config.secure or app_config.is_production,
        samesite=session_config.same_site,
    )


def clear_session_cookie(response: Response) -> None:
    app_config = get_app_config()
    session_config = app_config.security.session
    response.delete_cookie(
        key=session_config.cookie_name,
        path="/",
        httponly=True,
        secure=session_config.secure or app_config.is_production,
        samesite=session_config.same_site,
    )
