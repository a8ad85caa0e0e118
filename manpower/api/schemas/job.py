"""
Pydantic v2 schemas for job API endpoints.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from manpower.api.schemas.common import PaginationMeta, UserBrief
from manpower.models.job import JobStatus


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class JobCreateRequest(BaseModel):
    """Request body for posting a new job."""

    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1, max_length=10000)
    budget_min: Optional[Decimal] = Field(default=None, ge=0)
    budget_max: Optional[Decimal] = Field(default=None, ge=0)
    timeline: Optional[str] = Field(default=None, max_length=100)
    category: Optional[str] = Field(default=None, max_length=100)
    required_skills: list[str] = Field(default_factory=list)


class JobUpdateRequest(BaseModel):
    """Partial update of an owned job. ``status`` may only move to
    ``completed`` or ``cancelled``."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, min_length=1, max_length=10000)
    budget_min: Optional[Decimal] = Field(default=None, ge=0)
    budget_max: Optional[Decimal] = Field(default=None, ge=0)
    timeline: Optional[str] = Field(default=None, max_length=100)
    category: Optional[str] = Field(default=None, max_length=100)
    required_skills: Optional[list[str]] = None
    status: Optional[JobStatus] = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class JobOut(BaseModel):
    """Full job representation returned by detail and list endpoints."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    client_id: uuid.UUID
    title: str
    description: str
    budget_min: Optional[float] = None
    budget_max: Optional[float] = None
    timeline: Optional[str] = None
    category: Optional[str] = None
    required_skills: list[str] = Field(default_factory=list)
    status: JobStatus
    created_at: datetime
    updated_at: datetime


class JobWithClientOut(JobOut):
    client: Optional[UserBrief] = None


class ClientJobOut(JobOut):
    total_proposals: int = 0
    pending_proposals: int = 0


class JobResponse(BaseModel):
    data: JobWithClientOut
    message: Optional[str] = None


class JobListResponse(BaseModel):
    """Paginated list of jobs."""

    data: list[JobWithClientOut]
    meta: PaginationMeta


class ClientJobListResponse(BaseModel):
    data: list[ClientJobOut]
    meta: PaginationMeta
