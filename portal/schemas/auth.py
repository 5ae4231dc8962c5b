"""Request/response schemas for registration, password reset and login endpoints.

Fields are optional at the schema level; handlers check for missing values so
that an incomplete body answers 400 with a localized message.
"""

from typing import Any

from pydantic import BaseModel, Field


class SendCodeRequest(BaseModel):
    """Request a signup verification code."""

    email: str | None = None
    username: str | None = None


class RegisterRequest(BaseModel):
    username: str | None = None
    email: str | None = None
    code: str | None = None
    password: str | None = None


class SendResetCodeRequest(BaseModel):
    email: str | None = None


class PasswordResetRequest(BaseModel):
    email: str | None = None
    code: str | None = None
    newPassword: str | None = None


class MagicLinkRequest(BaseModel):
    email: str | None = None


class LoginRequest(BaseModel):
    """Email/password credentials for user or admin login."""

    email: str | None = None
    password: str | None = None


class MessageResponse(BaseModel):
    message: str


class SessionResponse(BaseModel):
    """Password login result: the identity provider's session object as-is."""

    message: str
    session: dict[str, Any]


class AdminTokenResponse(BaseModel):
    message: str
    accessToken: str = Field(..., description="Bearer token for the admin API")

