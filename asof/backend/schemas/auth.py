"""
Auth Schemas.

Pydantic schemas for login, logout and the current user.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from asof.backend.models.enums import UserRole, UserStatus


class LoginRequest(BaseModel):
    """
    Login credentials.

    Fields are not constrained here: missing or malformed values are
    reported by AuthService as a 400 with a user-facing message.
    """

    email: str = Field(default="", description="Account email", examples=["admin@asof.org.br"])
    password: str = Field(default="", description="Account password")


class UserResponse(BaseModel):
    """Schema for a user in API responses. Never includes the password hash."""

    id: str = Field(description="User unique identifier")
    email: str = Field(description="Account email")
    name: str = Field(description="Display name")
    role: UserRole = Field(description="Permission role")
    status: UserStatus = Field(description="Account status")
    bio: str | None = Field(default=None, description="Short biography")
    last_login_at: datetime | None = Field(default=None, description="Last successful login")

    model_config = ConfigDict(from_attributes=True)


class AuthorSummary(BaseModel):
    """Public author fields shown on posts."""

    id: str
    name: str
    bio: str | None = None

    model_config = ConfigDict(from_attributes=True)


class LoginResponse(BaseModel):
    user: UserResponse
    expires_at: datetime = Field(description="Session expiry (UTC)")


class MessageResponse(BaseModel):
    message: str
