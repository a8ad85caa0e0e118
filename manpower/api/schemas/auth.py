"""
Pydantic v2 schemas for authentication API endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from manpower.api.schemas.user import UserOut


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class RegisterRequest(BaseModel):
    """Request body for POST /auth/register."""

    email: str = Field(..., min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+$", description="User email address")
    password: str = Field(
        ..., min_length=8, max_length=128, description="Password (min 8 characters)"
    )
    full_name: str = Field(..., min_length=1, max_length=200, description="Full name")
    role: str = Field(
        ...,
        pattern=r"^(client|employee)$",
        description="User role: client or employee (cannot be changed later)",
    )


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""

    email: str = Field(..., description="User email address")
    password: str = Field(..., description="Password")


class RefreshRequest(BaseModel):
    """Request body for POST /auth/refresh."""

    refresh_token: str = Field(..., description="Refresh token")


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class TokensOut(BaseModel):
    """JWT token pair returned after authentication."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_at: datetime


class AuthData(BaseModel):
    """Inner data object containing user, tokens and the landing route."""

    user: UserOut
    tokens: TokensOut
    home_route: str


class AuthResponse(BaseModel):
    """Response wrapper for login and register endpoints."""

    data: AuthData
    message: Optional[str] = None


class TokenRefreshData(BaseModel):
    tokens: TokensOut


class TokenRefreshResponse(BaseModel):
    """Response wrapper for token refresh endpoint."""

    data: TokenRefreshData
    message: Optional[str] = None


class LogoutResponse(BaseModel):
    """Response for POST /auth/logout; ``redirect_to`` is the public landing route."""

    data: None = None
    message: str
    redirect_to: str = "/"
