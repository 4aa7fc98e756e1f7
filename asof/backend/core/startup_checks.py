"""
Startup Security Validation.

Checks security invariants before the application accepts traffic.
If any check fails, the application refuses to start with a clear
error message.

Called during FastAPI lifespan initialization.
"""

from asof.backend.core.config import AppConfig, Settings, get_app_config, get_settings
from asof.backend.core.logging import get_logger

logger = get_logger(__name__)


class StartupSecurityError(RuntimeError):
    """Raised when a startup security check fails."""


def run_startup_checks() -> None:
    """
    Validate all security invariants at startup.

    Raises:
        StartupSecurityError: If any check fails
    """
    app_config = get_app_config()
    settings = get_settings()
    environment = app_config.application.environment

    errors: list[str] = []

    _check_secret_strength(settings, app_config, errors)
    _check_production_safety(app_config, errors)
    _check_mail_configuration(settings, app_config, errors)

    if errors:
        for error in errors:
            logger.error("Startup security check failed", extra={"check": error})
        raise StartupSecurityError(
            f"Startup blocked: {len(errors)} security check(s) failed:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )

    logger.info(
        "Startup security checks passed",
        extra={"environment": environment, "checks_run": 3},
    )


def _check_secret_strength(settings: Settings, app_config: AppConfig, errors: list[str]) -> None:
    """Validate that secrets meet minimum length requirements."""
    minimum = app_config.security.secrets_validation.db_password_min_length
    if app_config.is_production and len(settings.db_password) < minimum:
        errors.append(
            f"DB_PASSWORD is {len(settings.db_password)} chars, minimum is {minimum}"
        )


def _check_production_safety(app_config: AppConfig, errors: list[str]) -> None:
    """Validate production environment safety constraints."""
    if not app_config.is_production:
        return

    app = app_config.application
    if app.debug:
        errors.append("debug is true in production environment")

    if app.docs_enabled:
        errors.append("docs_enabled is true in production environment")

    if app_config.features.api_detailed_errors:
        errors.append("api_detailed_errors is true in production environment")

    if not app_config.security.session.secure:
        errors.append("session cookie is not marked secure in production environment")

    if app_config.security.cors.enforce_in_production:
        localhost_origins = [o for o in app.cors.origins if "localhost" in o]
        if localhost_origins:
            errors.append(
                f"CORS origins contain localhost in production: {localhost_origins}"
            )


def _check_mail_configuration(settings: Settings, app_config: AppConfig, errors: list[str]) -> None:
    """An SMTP host with a user but no password can never authenticate."""
    smtp = app_config.mail.smtp
    if smtp.host and settings.smtp_user and not settings.smtp_password:
        errors.append("SMTP_USER is set but SMTP_PASSWORD is empty")
