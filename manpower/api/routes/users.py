"""
User profile routes
===================

Routes:
  GET   /api/v1/users/me          -- own full profile
  PATCH /api/v1/users/me          -- edit own profile (role is fixed)
  GET   /api/v1/users/employees   -- employee search (clients only)
  GET   /api/v1/users/{user_id}   -- public profile of any user
"""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from manpower.api.deps import ClientUser, CurrentUser, DBSession, Gateway
from manpower.api.schemas.common import PaginationMeta
from manpower.api.schemas.user import (
    EmployeeCard,
    EmployeeListResponse,
    ProfileUpdateRequest,
    UserOut,
    UserResponse,
)
from manpower.services import profileService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/me", response_model=UserResponse, summary="Get own profile")
async def get_me(current_user: CurrentUser) -> UserResponse:
    return UserResponse(data=UserOut.model_validate(current_user))


@router.patch(
    "/me",
    response_model=UserResponse,
    summary="Update own profile",
    description="Edits profile fields. Attempts to change the role are refused.",
)
async def update_me(
    body: ProfileUpdateRequest,
    current_user: CurrentUser,
    db: DBSession,
    gateway: Gateway,
) -> UserResponse:
    try:
        user = await profileService.update_profile(
            db, current_user, body.model_dump(exclude_unset=True), actor=current_user
        )
    except profileService.ProfilePermissionError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))

    await db.commit()
    await gateway.auth.notify_user_updated(user.id)
    return UserResponse(data=UserOut.model_validate(user), message="Profile updated.")


@router.get(
    "/employees",
    response_model=EmployeeListResponse,
    summary="Search employees",
)
async def search_employees(
    db: DBSession,
    current_user: ClientUser,
    search: Optional[str] = Query(default=None, description="Matches name or bio"),
    location: Optional[str] = Query(default=None),
    skills: Optional[list[str]] = Query(default=None, description="All listed skills required"),
    min_rate: Optional[Decimal] = Query(default=None, ge=0),
    max_rate: Optional[Decimal] = Query(default=None, ge=0),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> EmployeeListResponse:
    result = await profileService.search_employees(
        db,
        search=search,
        location=location,
        skills=skills,
        min_rate=min_rate,
        max_rate=max_rate,
        page=page,
        page_size=page_size,
    )
    return EmployeeListResponse(
        data=[EmployeeCard.model_validate(user) for user in result.items],
        meta=PaginationMeta(
            page=result.page,
            page_size=result.page_size,
            total_items=result.total_items,
            total_pages=result.total_pages,
        ),
    )


@router.get("/{user_id}", response_model=EmployeeCard, summary="Public profile")
async def get_user(user_id: uuid.UUID, db: DBSession, current_user: CurrentUser) -> EmployeeCard:
    try:
        user = await profileService.get_user(db, user_id)
    except profileService.UserNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return EmployeeCard.model_validate(user)
