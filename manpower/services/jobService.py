"""
Job Service
===========

Business logic for jobs posted by clients. All operations use async
SQLAlchemy sessions and enforce:

  - Only clients post jobs; only the owner edits or deletes them
  - Status changes go through jobStateManager (``in_progress`` is reached
    only by accepting a proposal)
  - A job that already produced a contract cannot be deleted
  - Event emission on creation, status change and deletion

Key functions:
  - create_job / update_job / delete_job
  - get_job
  - list_open_jobs     -- public browse with search and category filter
  - list_client_jobs   -- owner view with proposal counts
"""

from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional, Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from manpower.events.jobEvents import (
    emit_job_created,
    emit_job_deleted,
    emit_job_status_changed,
)
from manpower.models.contract import Contract
from manpower.models.job import Job, JobStatus
from manpower.models.proposal import Proposal, ProposalStatus
from manpower.models.user import User, UserRole
from manpower.services.jobStateManager import ActorType, validate_transition

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Pagination helper
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PaginatedResult:
    """Generic container for a page of results plus metadata."""

    items: Sequence
    total_items: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        if self.total_items == 0:
            return 0
        return math.ceil(self.total_items / self.page_size)


@dataclass(frozen=True)
class ClientJobRow:
    job: Job
    total_proposals: int
    pending_proposals: int


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class JobError(Exception):
    """Base exception for job service errors."""


class JobNotFoundError(JobError):
    """Raised when a job cannot be found by ID."""

    def __init__(self, job_id: uuid.UUID) -> None:
        self.job_id = job_id
        super().__init__(f"Job with id '{job_id}' not found.")


class JobPermissionError(JobError):
    """Raised when the caller may not perform the action on the job."""


class InvalidTransitionError(JobError):
    """Raised when a job status transition is not allowed."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class JobHasContractError(JobError):
    def __init__(self, job_id: uuid.UUID) -> None:
        self.job_id = job_id
        super().__init__(f"Job '{job_id}' has a contract and cannot be deleted.")


_EDITABLE_FIELDS = frozenset({
    "title",
    "description",
    "budget_min",
    "budget_max",
    "timeline",
    "category",
    "required_skills",
})


def _check_budget(budget_min: Optional[Decimal], budget_max: Optional[Decimal]) -> None:
    if budget_min is not None and budget_max is not None and budget_min > budget_max:
        raise ValueError("budget_min cannot be greater than budget_max.")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

async def create_job(
    db: AsyncSession,
    client: User,
    *,
    title: str,
    description: str,
    budget_min: Optional[Decimal] = None,
    budget_max: Optional[Decimal] = None,
    timeline: Optional[str] = None,
    category: Optional[str] = None,
    required_skills: Optional[list[str]] = None,
) -> Job:
    """Post a new open job.

    Raises:
        JobPermissionError: If the caller is not a client.
        ValueError: If the budget range is inverted.
    """
    if client.role != UserRole.CLIENT:
        raise JobPermissionError("Only clients can post jobs.")
    _check_budget(budget_min, budget_max)

    job = Job(
        client_id=client.id,
        title=title.strip(),
        description=description.strip(),
        budget_min=budget_min,
        budget_max=budget_max,
        timeline=timeline,
        category=category,
        required_skills=list(required_skills or []),
        status=JobStatus.OPEN,
    )
    db.add(job)
    await db.flush()

    emit_job_created(job.id, client.id, job.title)
    logger.info("Job created: id=%s client=%s category=%s", job.id, client.id, category)
    return job


async def _get_owned_job(db: AsyncSession, job_id: uuid.UUID, owner: User) -> Job:
    job = await get_job(db, job_id)
    if job is None:
        raise JobNotFoundError(job_id)
    if job.client_id != owner.id:
        raise JobPermissionError("Only the client who posted this job can modify it.")
    return job


async def update_job(
    db: AsyncSession,
    job_id: uuid.UUID,
    owner: User,
    changes: dict[str, Any],
) -> Job:
    """Apply field edits and an optional status change to an owned job.

    Raises:
        JobNotFoundError, JobPermissionError, InvalidTransitionError,
        ValueError (inverted budget).
    """
    job = await _get_owned_job(db, job_id, owner)

    new_status = changes.get("status")
    if new_status is not None:
        target = JobStatus(new_status)
        if target != job.status:
            result = validate_transition(job.status, target, ActorType.OWNER)
            if not result.allowed:
                raise InvalidTransitionError(result.reason or "Transition not allowed.")

    fields = {key: value for key, value in changes.items() if key in _EDITABLE_FIELDS}
    _check_budget(
        fields.get("budget_min", job.budget_min),
        fields.get("budget_max", job.budget_max),
    )
    for key, value in fields.items():
        setattr(job, key, value)

    if new_status is not None and JobStatus(new_status) != job.status:
        old_status = job.status
        job.status = JobStatus(new_status)
        emit_job_status_changed(job.id, old_status.value, job.status.value, actor_id=owner.id)

    await db.flush()
    logger.info("Job updated: id=%s fields=%s", job.id, sorted(fields))
    return job


async def delete_job(db: AsyncSession, job_id: uuid.UUID, owner: User) -> None:
    """Delete an owned job together with its proposals.

    Raises:
        JobHasContractError: Once any proposal on the job was accepted
            into a contract.
    """
    job = await _get_owned_job(db, job_id, owner)

    contract_count = (
        await db.execute(select(func.count(Contract.id)).where(Contract.job_id == job.id))
    ).scalar_one()
    if contract_count:
        raise JobHasContractError(job.id)

    await db.delete(job)
    await db.flush()
    emit_job_deleted(job_id, owner.id)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

async def get_job(db: AsyncSession, job_id: uuid.UUID) -> Job | None:
    """Fetch a single job with its client eagerly loaded.

    Returns None if the job is not found.
    """
    stmt = (
        select(Job)
        .options(selectinload(Job.client))
        .where(Job.id == job_id)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def list_open_jobs(
    db: AsyncSession,
    *,
    search: str | None = None,
    category: str | None = None,
    page: int = 1,
    page_size: int = 20,
) -> PaginatedResult:
    """Open jobs, newest first. ``search`` matches title or description
    case-insensitively."""
    filters = [Job.status == JobStatus.OPEN]
    if search:
        pattern = f"%{search.strip().lower()}%"
        filters.append(
            or_(func.lower(Job.title).like(pattern), func.lower(Job.description).like(pattern))
        )
    if category:
        filters.append(Job.category == category)

    count_stmt = select(func.count(Job.id)).where(*filters)
    total_items: int = (await db.execute(count_stmt)).scalar_one()

    data_stmt = (
        select(Job)
        .options(selectinload(Job.client))
        .where(*filters)
        .order_by(Job.created_at.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    jobs = (await db.execute(data_stmt)).scalars().all()

    return PaginatedResult(items=jobs, total_items=total_items, page=page, page_size=page_size)


async def list_client_jobs(
    db: AsyncSession,
    client_id: uuid.UUID,
    *,
    status_filter: str | None = None,
    page: int = 1,
    page_size: int = 20,
) -> PaginatedResult:
    """Jobs posted by a client with total and pending proposal counts."""
    filters = [Job.client_id == client_id]
    if status_filter:
        filters.append(Job.status == JobStatus(status_filter))

    total_items: int = (
        await db.execute(select(func.count(Job.id)).where(*filters))
    ).scalar_one()

    data_stmt = (
        select(Job)
        .where(*filters)
        .order_by(Job.created_at.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    jobs = (await db.execute(data_stmt)).scalars().all()

    totals: dict[uuid.UUID, int] = {}
    pending: dict[uuid.UUID, int] = {}
    if jobs:
        count_stmt = (
            select(Proposal.job_id, Proposal.status, func.count(Proposal.id))
            .where(Proposal.job_id.in_([job.id for job in jobs]))
            .group_by(Proposal.job_id, Proposal.status)
        )
        for job_id, proposal_status, count in (await db.execute(count_stmt)).all():
            totals[job_id] = totals.get(job_id, 0) + count
            if proposal_status == ProposalStatus.PENDING:
                pending[job_id] = count

    rows = [
        ClientJobRow(job=job, total_proposals=totals.get(job.id, 0), pending_proposals=pending.get(job.id, 0))
        for job in jobs
    ]
    return PaginatedResult(items=rows, total_items=total_items, page=page, page_size=page_size)
