"""
Pydantic v2 schemas for dashboard endpoints.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from manpower.api.schemas.job import JobOut, JobWithClientOut
from manpower.api.schemas.proposal import ProposalDetailOut


class ClientDashboardOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_jobs: int
    open_jobs: int
    pending_proposals: int
    active_contracts: int
    recent_jobs: list[JobOut] = Field(default_factory=list)


class EmployeeDashboardOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_proposals: int
    pending_proposals: int
    accepted_proposals: int
    active_contracts: int
    completed_contracts: int
    recent_open_jobs: list[JobWithClientOut] = Field(default_factory=list)
    recent_proposals: list[ProposalDetailOut] = Field(default_factory=list)
