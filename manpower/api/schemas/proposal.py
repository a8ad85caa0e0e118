"""
Pydantic v2 schemas for the proposal API.

Covers:
- Submitting a proposal on an open job (employee)
- Accept / reject decisions (job owner)
- Proposal output, including the contract produced by an acceptance
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from manpower.api.schemas.common import UserBrief
from manpower.api.schemas.contract import ContractOut
from manpower.models.job import JobStatus
from manpower.models.proposal import ProposalStatus
from manpower.services.proposalStateManager import ProposalDecision


class Attachment(BaseModel):
    url: str
    name: str
    type: Optional[str] = None
    size: Optional[int] = Field(default=None, ge=0)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class CreateProposalRequest(BaseModel):
    """Request body for submitting a proposal."""

    job_id: uuid.UUID = Field(description="UUID of the job to apply to")
    cover_letter: Optional[str] = Field(default=None, max_length=10000)
    proposed_rate: Optional[Decimal] = Field(
        default=None,
        ge=0,
        description="Proposed rate; the contract uses 0 when omitted",
    )
    estimated_duration: Optional[str] = Field(default=None, max_length=100)
    attachments: list[Attachment] = Field(default_factory=list)


class DecisionRequest(BaseModel):
    """Request body for accepting or rejecting a proposal."""

    decision: ProposalDecision = Field(description="'accept' or 'reject'")


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class JobSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    status: JobStatus
    client_id: uuid.UUID


class ProposalOut(BaseModel):
    """Proposal response object."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    job_id: uuid.UUID
    employee_id: uuid.UUID
    cover_letter: Optional[str] = None
    proposed_rate: Optional[float] = None
    estimated_duration: Optional[str] = None
    status: ProposalStatus
    attachments: list[dict[str, Any]] = Field(default_factory=list)
    decided_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class ProposalDetailOut(ProposalOut):
    job: Optional[JobSummary] = None
    employee: Optional[UserBrief] = None


class ProposalResponse(BaseModel):
    data: ProposalOut
    message: Optional[str] = None


class ProposalDetailResponse(BaseModel):
    data: ProposalDetailOut


class ProposalListResponse(BaseModel):
    data: list[ProposalDetailOut]


class DecisionData(BaseModel):
    proposal: ProposalOut
    contract: Optional[ContractOut] = None
    job_status: JobStatus
    resumed: bool = False
    contract_created: bool = False


class DecisionResponse(BaseModel):
    data: DecisionData
    message: Optional[str] = None


class AppliedResponse(BaseModel):
    job_id: uuid.UUID
    applied: bool
