"""
Pydantic v2 schemas for contract API endpoints.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from manpower.api.schemas.common import UserBrief
from manpower.models.contract import ContractStatus
from manpower.models.job import JobStatus


class ContractOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    job_id: uuid.UUID
    client_id: uuid.UUID
    employee_id: uuid.UUID
    proposal_id: uuid.UUID
    agreed_rate: float
    start_date: datetime
    end_date: Optional[datetime] = None
    status: ContractStatus
    created_at: datetime


class ContractJobOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    status: JobStatus


class ContractDetailOut(ContractOut):
    job: Optional[ContractJobOut] = None
    client: Optional[UserBrief] = None
    employee: Optional[UserBrief] = None


class ContractResponse(BaseModel):
    data: ContractDetailOut


class ContractListResponse(BaseModel):
    data: list[ContractDetailOut]
