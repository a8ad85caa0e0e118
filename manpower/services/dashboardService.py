"""
Dashboard Service
=================

Aggregates shown on the client and employee landing pages.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from manpower.models import (
    Contract,
    ContractStatus,
    Job,
    JobStatus,
    Proposal,
    ProposalStatus,
    User,
)

RECENT_LIMIT = 5


@dataclass
class ClientDashboard:
    total_jobs: int
    open_jobs: int
    pending_proposals: int
    active_contracts: int
    recent_jobs: Sequence[Job] = field(default_factory=list)


@dataclass
class EmployeeDashboard:
    total_proposals: int
    pending_proposals: int
    accepted_proposals: int
    active_contracts: int
    completed_contracts: int
    recent_open_jobs: Sequence[Job] = field(default_factory=list)
    recent_proposals: Sequence[Proposal] = field(default_factory=list)


async def _count(db: AsyncSession, stmt) -> int:
    return (await db.execute(stmt)).scalar_one()


async def client_dashboard(db: AsyncSession, client: User) -> ClientDashboard:
    total_jobs = await _count(db, select(func.count(Job.id)).where(Job.client_id == client.id))
    open_jobs = await _count(
        db,
        select(func.count(Job.id)).where(Job.client_id == client.id, Job.status == JobStatus.OPEN),
    )
    pending_proposals = await _count(
        db,
        select(func.count(Proposal.id))
        .join(Job, Proposal.job_id == Job.id)
        .where(Job.client_id == client.id, Proposal.status == ProposalStatus.PENDING),
    )
    active_contracts = await _count(
        db,
        select(func.count(Contract.id)).where(
            Contract.client_id == client.id, Contract.status == ContractStatus.ACTIVE
        ),
    )
    recent_jobs = (
        await db.execute(
            select(Job)
            .where(Job.client_id == client.id)
            .order_by(Job.created_at.desc())
            .limit(RECENT_LIMIT)
        )
    ).scalars().all()

    return ClientDashboard(
        total_jobs=total_jobs,
        open_jobs=open_jobs,
        pending_proposals=pending_proposals,
        active_contracts=active_contracts,
        recent_jobs=recent_jobs,
    )


async def employee_dashboard(db: AsyncSession, employee: User) -> EmployeeDashboard:
    status_counts = dict(
        (
            await db.execute(
                select(Proposal.status, func.count(Proposal.id))
                .where(Proposal.employee_id == employee.id)
                .group_by(Proposal.status)
            )
        ).all()
    )
    contract_counts = dict(
        (
            await db.execute(
                select(Contract.status, func.count(Contract.id))
                .where(Contract.employee_id == employee.id)
                .group_by(Contract.status)
            )
        ).all()
    )
    recent_open_jobs = (
        await db.execute(
            select(Job)
            .options(selectinload(Job.client))
            .where(Job.status == JobStatus.OPEN)
            .order_by(Job.created_at.desc())
            .limit(RECENT_LIMIT)
        )
    ).scalars().all()
    recent_proposals = (
        await db.execute(
            select(Proposal)
            .options(selectinload(Proposal.job), selectinload(Proposal.employee))
            .where(Proposal.employee_id == employee.id)
            .order_by(Proposal.created_at.desc())
            .limit(RECENT_LIMIT)
        )
    ).scalars().all()

    return EmployeeDashboard(
        total_proposals=sum(status_counts.values()),
        pending_proposals=status_counts.get(ProposalStatus.PENDING, 0),
        accepted_proposals=status_counts.get(ProposalStatus.ACCEPTED, 0),
        active_contracts=contract_counts.get(ContractStatus.ACTIVE, 0),
        completed_contracts=contract_counts.get(ContractStatus.COMPLETED, 0),
        recent_open_jobs=recent_open_jobs,
        recent_proposals=recent_proposals,
    )
