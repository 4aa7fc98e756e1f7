"""
User and Session Repositories.
"""

from datetime import datetime

from sqlalchemy import delete, func, select

from asof.backend.models.user import Session, User
from asof.backend.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    model = User
    not_found_message = "Usuário não encontrado"

    async def get_by_email(self, email: str) -> User | None:
        """Look up a user by email, case-insensitively."""
        result = await self.session.execute(
            select(User).where(func.lower(User.email) == email.strip().lower())
        )
        return result.scalar_one_or_none()


class SessionRepository(BaseRepository[Session]):
    model = Session
    not_found_message = "Sessão não encontrada"

    async def get_by_token_hash(self, token_hash: str) -> Session | None:
        """Session for a hashed cookie token, with its user loaded."""
        result = await self.session.execute(
            select(Session).where(Session.token_hash == token_hash)
        )
        return result.scalar_one_or_none()

    async def delete_by_token_hash(self, token_hash: str) -> Session | None:
        """Delete the session for a token. Returns the deleted row, if any."""
        instance = await self.get_by_token_hash(token_hash)
        if instance is not None:
            await self.session.delete(instance)
            await self.session.flush()
        return instance

    async def delete_expired(self, now: datetime) -> int:
        """Delete every session that expired before `now`."""
        result = await self.session.execute(
            delete(Session).where(Session.expires_at <= now)
        )
        return result.rowcount or 0
