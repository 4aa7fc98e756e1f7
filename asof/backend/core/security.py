"""
Security Utilities.

Password hashing and opaque session tokens.

Session tokens are random strings handed to the browser in the
admin-auth-token cookie. Only their SHA-256 digest is stored, so a
leaked sessions table cannot be replayed.
"""

import hashlib
import secrets

import bcrypt

from asof.backend.core.logging import get_logger

logger = get_logger(__name__)

SESSION_TOKEN_BYTES = 32


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    password_bytes = password.encode("utf-8")
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(password_bytes, salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"),
            hashed_password.encode("utf-8"),
        )
    except ValueError:
        logger.warning("Malformed password hash encountered")
        return False


def hash_session_token(token: str) -> str:
    """SHA-256 hex digest of a session token, as stored in the database."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def generate_session_token() -> tuple[str, str]:
    """
    Generate a new session token.

    Returns:
        Tuple of (token, token_hash)
        - token: set in the cookie, never stored
        - token_hash: stored in the sessions table
    """
    token = secrets.token_urlsafe(SESSION_TOKEN_BYTES)
    return token, hash_session_token(token)


def generate_password(length: int = 16) -> str:
    """Random password for seeded accounts when none is configured."""
    return secrets.token_urlsafe(length)[:length]
