"""Authentication request and response schemas."""
from __future__ import annotations

from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from .user import UserPrivate


class RegisterRequest(BaseModel):
    """Schema for account registration."""

    username: str = Field(..., description="Unique handle, stored lower-cased")
    email: str = Field(..., description="Unique email address")
    password: str = Field(..., description="At least 8 characters")


class LoginRequest(BaseModel):
    """Login with either a username or an email address."""

    identifier: str = Field(
        ...,
        validation_alias=AliasChoices("identifier", "email", "username"),
        description="Username or email",
    )
    password: str

    model_config = ConfigDict(populate_by_name=True)


class RefreshRequest(BaseModel):
    """Optional body for clients that do not use the refresh cookie."""

    refresh_token: str | None = None


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class AuthResponse(TokenResponse):
    """Token pair plus the account it was issued for."""

    user: UserPrivate


class SessionInfo(BaseModel):
    """One logged-in device; the token digest is never exposed."""

    id: int
    ip: str | None = None
    user_agent: str | None = None
    created_at: datetime
    last_used_at: datetime
    expires_at: datetime

    model_config = ConfigDict(from_attributes=True)
