"""
Authentication API routes
=========================

Endpoints for registration, login, token refresh, the current user and
logout. Identity operations go through the gateway's auth client so that
session changes are announced on the auth event bus once committed.

Routes:
  POST /api/v1/auth/register   -- create a new account (client or employee)
  POST /api/v1/auth/login      -- authenticate with email & password
  POST /api/v1/auth/refresh    -- exchange a refresh token for new tokens
  GET  /api/v1/auth/me         -- get the currently authenticated user
  POST /api/v1/auth/logout     -- revoke the current session
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from manpower.api.deps import CurrentUser, Gateway, SessionDep
from manpower.api.schemas.auth import (
    AuthData,
    AuthResponse,
    LoginRequest,
    LogoutResponse,
    RefreshRequest,
    RegisterRequest,
    TokenRefreshData,
    TokenRefreshResponse,
    TokensOut,
)
from manpower.api.schemas.user import UserOut, UserResponse
from manpower.services import auth_service
from manpower.services.routeGuard import home_route_for

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _tokens_to_out(tokens: dict) -> TokensOut:
    """Convert a tokens dictionary to a TokensOut schema."""
    return TokensOut(
        access_token=tokens["access_token"],
        refresh_token=tokens["refresh_token"],
        expires_at=tokens["expires_at"],
    )


# ---------------------------------------------------------------------------
# POST /auth/register
# ---------------------------------------------------------------------------

@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user account",
    description=(
        "Creates a client or employee account and signs it in. The role is "
        "fixed for the lifetime of the account."
    ),
)
async def register(body: RegisterRequest, gateway: Gateway) -> AuthResponse:
    try:
        user, tokens = await gateway.auth.sign_up(
            email=body.email,
            password=body.password,
            full_name=body.full_name,
            role=body.role,
        )
    except auth_service.EmailAlreadyRegisteredError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))

    return AuthResponse(
        data=AuthData(
            user=UserOut.model_validate(user),
            tokens=_tokens_to_out(tokens),
            home_route=home_route_for(user.role),
        ),
        message="Account created successfully.",
    )


# ---------------------------------------------------------------------------
# POST /auth/login
# ---------------------------------------------------------------------------

@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Authenticate with email and password",
)
async def login(body: LoginRequest, gateway: Gateway) -> AuthResponse:
    try:
        user, tokens = await gateway.auth.sign_in(body.email, body.password)
    except auth_service.InvalidCredentialsError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        )

    return AuthResponse(
        data=AuthData(
            user=UserOut.model_validate(user),
            tokens=_tokens_to_out(tokens),
            home_route=home_route_for(user.role),
        ),
        message="Logged in successfully.",
    )


# ---------------------------------------------------------------------------
# POST /auth/refresh
# ---------------------------------------------------------------------------

@router.post(
    "/refresh",
    response_model=TokenRefreshResponse,
    summary="Refresh access token",
    description=(
        "Exchange a valid refresh token for a new token pair on the same "
        "session. Fails once the session has been signed out."
    ),
)
async def refresh(body: RefreshRequest, gateway: Gateway) -> TokenRefreshResponse:
    try:
        tokens = await gateway.auth.refresh(body.refresh_token)
    except auth_service.AuthError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        )

    return TokenRefreshResponse(
        data=TokenRefreshData(tokens=_tokens_to_out(tokens)),
        message="Tokens refreshed successfully.",
    )


# ---------------------------------------------------------------------------
# GET /auth/me
# ---------------------------------------------------------------------------

@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get current user profile",
)
async def me(current_user: CurrentUser) -> UserResponse:
    return UserResponse(data=UserOut.model_validate(current_user))


# ---------------------------------------------------------------------------
# POST /auth/logout
# ---------------------------------------------------------------------------

@router.post(
    "/logout",
    response_model=LogoutResponse,
    summary="Log out the current user",
    description=(
        "Revokes the session behind the Bearer token. Its access and refresh "
        "tokens stop working immediately and open realtime connections of "
        "that session are closed."
    ),
)
async def logout(session: SessionDep) -> LogoutResponse:
    if not session.is_authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    landing = await session.sign_out()
    return LogoutResponse(message="Logged out successfully.", redirect_to=landing)
