"""
Pydantic v2 schemas for user profiles and employee search.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from manpower.api.schemas.common import PaginationMeta
from manpower.models.user import UserRole


class UserOut(BaseModel):
    """Full profile of a user."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    role: UserRole
    full_name: Optional[str] = None
    display_name: str
    phone: Optional[str] = None
    location: Optional[str] = None
    bio: Optional[str] = None
    skills: list[str] = Field(default_factory=list)
    hourly_rate: Optional[float] = None
    company_name: Optional[str] = None
    website: Optional[str] = None
    resume_url: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class EmployeeCard(BaseModel):
    """Public view of an employee in search results (no contact details)."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    full_name: Optional[str] = None
    display_name: str
    location: Optional[str] = None
    bio: Optional[str] = None
    skills: list[str] = Field(default_factory=list)
    hourly_rate: Optional[float] = None
    avatar_url: Optional[str] = None
    resume_url: Optional[str] = None


class ProfileUpdateRequest(BaseModel):
    """Request body for PATCH /users/me. ``role`` is accepted only to be
    refused when it differs from the current role."""

    full_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    phone: Optional[str] = Field(default=None, max_length=30)
    location: Optional[str] = Field(default=None, max_length=200)
    bio: Optional[str] = Field(default=None, max_length=5000)
    skills: Optional[list[str]] = None
    hourly_rate: Optional[Decimal] = Field(default=None, ge=0)
    company_name: Optional[str] = Field(default=None, max_length=200)
    website: Optional[str] = Field(default=None, max_length=500)
    role: Optional[str] = None


class UserResponse(BaseModel):
    data: UserOut
    message: Optional[str] = None


class EmployeeListResponse(BaseModel):
    data: list[EmployeeCard]
    meta: PaginationMeta
