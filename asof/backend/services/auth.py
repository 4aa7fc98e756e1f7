"""
Auth Service.

Email/password login with failed-attempt lockout, and database-backed
sessions referenced by an opaque cookie token.

Lockout: each wrong password increments failed_login_attempts; when it
reaches security.login.max_failed_attempts the account is locked for
security.login.lockout_minutes. A successful login clears both.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from asof.backend.core.config import get_app_config
from asof.backend.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    RateLimitError,
    ValidationError,
)
from asof.backend.core.rate_limiter import get_rate_limiter
from asof.backend.core.security import (
    generate_session_token,
    hash_session_token,
    verify_password,
)
from asof.backend.core.utils import is_valid_email, utc_now
from asof.backend.models.enums import AuditAction, UserRole, UserStatus
from asof.backend.models.user import User
from asof.backend.repositories.user import SessionRepository, UserRepository
from asof.backend.services.base import BaseService

INVALID_CREDENTIALS = "Email ou senha inválidos"


@dataclass
class LoginResult:
    user: User
    token: str
    expires_at: datetime


class AuthService(BaseService):
    """
    Service for login, logout and session validation.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.users = UserRepository(session)
        self.sessions = SessionRepository(session)
        self._app_config = get_app_config()

    async def login(
        self,
        email: str | None,
        password: str | None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> LoginResult:
        """
        Authenticate a user and open a session.

        Returns:
            LoginResult with the raw token for the cookie

        Raises:
            ValidationError: Missing or malformed credentials
            RateLimitError: Too many attempts from this IP, or account locked
            AuthenticationError: Unknown email or wrong password
            AuthorizationError: Account is not active
        """
        email = (email or "").strip().lower()
        password = password or ""

        if not email or not password:
            raise ValidationError("Email e senha são obrigatórios")
        if not is_valid_email(email):
            raise ValidationError("Email inválido")

        self._check_rate_limit(ip_address)

        user = await self.users.get_by_email(email)
        if user is None:
            self._log_operation("Login failed: unknown email", ip_address=ip_address)
            raise AuthenticationError(INVALID_CREDENTIALS)

        now = utc_now()
        if user.locked_until is not None and user.locked_until > now:
            raise RateLimitError(
                "Conta temporariamente bloqueada. Tente novamente mais tarde.",
                details={
                    "locked_until": user.locked_until.isoformat(),
                    "retry_after_seconds": int((user.locked_until - now).total_seconds()) + 1,
                },
            )

        if not verify_password(password, user.password_hash):
            await self._register_failed_attempt(user, now, ip_address)

        if user.status != UserStatus.ACTIVE:
            self._log_operation("Login refused: inactive account", user_id=user.id)
            raise AuthorizationError("Conta inativa ou suspensa")

        session_config = self._app_config.security.session
        expires_at = now + timedelta(days=session_config.max_age_days)
        token, token_hash = generate_session_token()

        await self._execute_db_operation(
            "create_session",
            self.sessions.create(
                user_id=user.id,
                token_hash=token_hash,
                expires_at=expires_at,
                ip_address=ip_address,
                user_agent=(user_agent or "")[:500] or None,
            ),
        )
        user = await self.users.apply(
            user,
            failed_login_attempts=0,
            locked_until=None,
            last_login_at=now,
        )
        await self._record_audit(
            AuditAction.LOGIN, "user", user.id, user.id, ip_address=ip_address,
        )

        self._log_operation("Login succeeded", user_id=user.id, role=user.role.value)
        return LoginResult(user=user, token=token, expires_at=expires_at)

    async def logout(self, token: str | None, ip_address: str | None = None) -> None:
        """End the session for a token. Unknown or missing tokens are ignored."""
        if not token:
            return

        removed = await self.sessions.delete_by_token_hash(hash_session_token(token))
        if removed is not None:
            await self._record_audit(
                AuditAction.LOGOUT, "user", removed.user_id, removed.user_id,
                ip_address=ip_address,
            )
            self._log_operation("Logout", user_id=removed.user_id)

    async def validate_session(
        self,
        token: str | None,
        required_roles: Iterable[UserRole] | None = None,
    ) -> User:
        """
        Resolve a cookie token to its user.

        Raises:
            AuthenticationError: No token, unknown token, or expired session
            AuthorizationError: User inactive or role not allowed
        """
        if not token:
            raise AuthenticationError("Não autenticado")

        session = await self.sessions.get_by_token_hash(hash_session_token(token))
        if session is None:
            raise AuthenticationError("Sessão inválida")

        if session.expires_at <= utc_now():
            await self.sessions.delete_by_token_hash(session.token_hash)
            await self.session.commit()
            raise AuthenticationError("Sessão expirada")

        user = session.user
        if user.status != UserStatus.ACTIVE:
            raise AuthorizationError("Conta inativa ou suspensa")

        if required_roles is not None and user.role not in set(required_roles):
            raise AuthorizationError("Permissão insuficiente")

        return user

    async def cleanup_expired_sessions(self) -> int:
        """Delete expired sessions. Returns how many were removed."""
        removed = await self._execute_db_operation(
            "cleanup_expired_sessions",
            self.sessions.delete_expired(utc_now()),
        )
        self._log_operation("Expired sessions removed", count=removed)
        return removed

    def _check_rate_limit(self, ip_address: str | None) -> None:
        if not self._app_config.features.auth_rate_limit_enabled:
            return
        result = get_rate_limiter().check("login", ip_address or "unknown")
        if not result.allowed:
            raise RateLimitError(
                "Muitas tentativas de login. Tente novamente mais tarde.",
                details={"retry_after_seconds": result.retry_after_seconds},
            )

    async def _register_failed_attempt(
        self,
        user: User,
        now: datetime,
        ip_address: str | None,
    ) -> None:
        """Count a wrong password and lock the account at the threshold. Always raises."""
        lockout = self._app_config.security.login
        lock_expired = user.locked_until is not None and user.locked_until <= now
        attempts = 1 if lock_expired else (user.failed_login_attempts or 0) + 1

        if attempts >= lockout.max_failed_attempts:
            locked_until = now + timedelta(minutes=lockout.lockout_minutes)
            await self.users.apply(user, failed_login_attempts=attempts, locked_until=locked_until)
            # Commit the lock even though the request ends in an error
            await self.session.commit()
            self._logger.warning(
                "Account locked after failed logins",
                extra={"user_id": user.id, "attempts": attempts, "ip_address": ip_address},
            )
            raise RateLimitError(
                "Muitas tentativas. Conta bloqueada por "
                f"{lockout.lockout_minutes} minutos.",
                details={
                    "locked_until": locked_until.isoformat(),
                    "retry_after_seconds": lockout.lockout_minutes * 60,
                },
            )

        await self.users.apply(user, failed_login_attempts=attempts, locked_until=None)
        await self.session.commit()
        self._log_operation("Login failed: wrong password", user_id=user.id, attempts=attempts)
        raise AuthenticationError(
            INVALID_CREDENTIALS,
            details={"attempts_remaining": lockout.max_failed_attempts - attempts},
        )
