"""
Shared Pydantic v2 schemas reused across API modules.
"""

from __future__ import annotations

import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from manpower.models.user import UserRole


class PaginationMeta(BaseModel):
    """Pagination metadata included in every paginated response."""

    page: int = Field(ge=1, description="Current page number (1-indexed)")
    page_size: int = Field(ge=1, description="Number of items per page")
    total_items: int = Field(ge=0, description="Total number of matching items")
    total_pages: int = Field(ge=0, description="Total number of pages")


class UserBrief(BaseModel):
    """Minimal public view of a user, embedded in other resources."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    full_name: Optional[str] = None
    display_name: str
    role: UserRole
    avatar_url: Optional[str] = None


class MessageResponse(BaseModel):
    """Generic response with no data, just a message."""

    data: None = None
    message: str
