"""
Proposal Service
================

Handles the proposal lifecycle between an employee and a client:

- Submitting a proposal on an open job (one per employee per job)
- Client accept / reject decisions
- Listing proposals for a job, an employee or a client

Accepting runs a resumable sequence inside the caller's transaction::

    1. proposal.status = accepted           (skipped if already accepted)
    2. insert contract for the proposal     (skipped if one exists)
    3. job.status = in_progress             (skipped unless the job is open)
    4. opening message in the contract conversation, only when step 2
       created the contract in this call

Re-running accept on an accepted proposal completes whatever step is
missing and never creates a second contract; ``contracts.proposal_id`` is
unique as the final guard.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from manpower.events.jobEvents import (
    emit_contract_created,
    emit_job_status_changed,
    emit_proposal_decided,
    emit_proposal_submitted,
)
from manpower.models import (
    Contract,
    ContractStatus,
    ConversationKey,
    Job,
    JobStatus,
    Message,
    Proposal,
    ProposalStatus,
    User,
    UserRole,
)
from manpower.services.contractService import get_contract_for_proposal
from manpower.services.jobService import JobNotFoundError
from manpower.services.jobStateManager import ActorType, validate_transition
from manpower.services.proposalStateManager import (
    PlanAction,
    ProposalDecision,
    plan_decision,
)

logger = logging.getLogger(__name__)

ACCEPTANCE_MESSAGE = 'I accepted your proposal for "{title}"'


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class ProposalError(Exception):
    """Base exception for proposal service errors."""


class ProposalNotFoundError(ProposalError):
    def __init__(self, proposal_id: uuid.UUID) -> None:
        self.proposal_id = proposal_id
        super().__init__(f"Proposal with id '{proposal_id}' not found.")


class ProposalPermissionError(ProposalError):
    """Raised when the caller is not allowed to act on the proposal."""


class JobNotOpenError(ProposalError):
    def __init__(self, job_id: uuid.UUID, status: JobStatus) -> None:
        self.job_id = job_id
        self.status = status
        super().__init__(f"Job '{job_id}' is not open for proposals (current: {status.value}).")


class DuplicateProposalError(ProposalError):
    def __init__(self, job_id: uuid.UUID) -> None:
        self.job_id = job_id
        super().__init__("You have already submitted a proposal for this job.")


class InvalidDecisionError(ProposalError):
    """Raised when a decision is not allowed in the proposal's current state."""


@dataclass
class DecisionResult:
    proposal: Proposal
    job: Job
    contract: Optional[Contract] = None
    resumed: bool = False
    contract_created: bool = False
    opening_message: Optional[Message] = None


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------

async def has_applied(db: AsyncSession, job_id: uuid.UUID, employee_id: uuid.UUID) -> bool:
    stmt = select(Proposal.id).where(
        Proposal.job_id == job_id,
        Proposal.employee_id == employee_id,
    )
    return (await db.execute(stmt)).first() is not None


async def submit_proposal(
    db: AsyncSession,
    job_id: uuid.UUID,
    employee: User,
    *,
    cover_letter: Optional[str] = None,
    proposed_rate: Optional[Decimal] = None,
    estimated_duration: Optional[str] = None,
    attachments: Optional[list[dict[str, Any]]] = None,
) -> Proposal:
    """Employee applies to an open job.

    Raises:
        ProposalPermissionError: If the caller is not an employee.
        JobNotFoundError: If the job does not exist.
        JobNotOpenError: If the job no longer accepts proposals.
        DuplicateProposalError: If the employee already applied.
    """
    if employee.role != UserRole.EMPLOYEE:
        raise ProposalPermissionError("Only employees can submit proposals.")

    job = (await db.execute(select(Job).where(Job.id == job_id))).scalar_one_or_none()
    if job is None:
        raise JobNotFoundError(job_id)
    if job.status != JobStatus.OPEN:
        raise JobNotOpenError(job_id, job.status)

    if await has_applied(db, job_id, employee.id):
        raise DuplicateProposalError(job_id)

    proposal = Proposal(
        job_id=job_id,
        employee_id=employee.id,
        cover_letter=cover_letter,
        proposed_rate=proposed_rate,
        estimated_duration=estimated_duration,
        status=ProposalStatus.PENDING,
        attachments=list(attachments or []),
    )
    db.add(proposal)
    try:
        await db.flush()
    except IntegrityError:
        # A concurrent submission won the unique (job_id, employee_id) race
        await db.rollback()
        raise DuplicateProposalError(job_id) from None

    emit_proposal_submitted(proposal.id, job_id, employee.id)
    return proposal


# ---------------------------------------------------------------------------
# Decisions
# ---------------------------------------------------------------------------

async def decide_proposal(
    db: AsyncSession,
    proposal_id: uuid.UUID,
    client: User,
    decision: ProposalDecision | str,
) -> DecisionResult:
    """Accept or reject a proposal on one of the client's jobs.

    The proposal and job rows are locked for the rest of the transaction
    so concurrent decisions on the same proposal serialise.

    Raises:
        ProposalNotFoundError, ProposalPermissionError, InvalidDecisionError.
    """
    decision = ProposalDecision(decision)

    proposal = (
        await db.execute(
            select(Proposal).where(Proposal.id == proposal_id).with_for_update()
        )
    ).scalar_one_or_none()
    if proposal is None:
        raise ProposalNotFoundError(proposal_id)

    job = (
        await db.execute(select(Job).where(Job.id == proposal.job_id).with_for_update())
    ).scalar_one()
    if job.client_id != client.id:
        raise ProposalPermissionError("Only the client who posted this job can decide on its proposals.")

    plan = plan_decision(proposal.status, decision)
    if plan.action == PlanAction.REFUSE:
        raise InvalidDecisionError(plan.reason or "Decision not allowed.")

    if decision == ProposalDecision.REJECT:
        if plan.action == PlanAction.APPLY:
            proposal.status = ProposalStatus.REJECTED
            proposal.decided_at = datetime.now(timezone.utc)
            await db.flush()
        emit_proposal_decided(
            proposal.id, decision.value, client.id, resumed=plan.action == PlanAction.NOOP
        )
        return DecisionResult(proposal=proposal, job=job, resumed=plan.action == PlanAction.NOOP)

    resumed = plan.action == PlanAction.RESUME
    if not resumed and job.status != JobStatus.OPEN:
        raise InvalidDecisionError(
            f"Job '{job.id}' is no longer open (current: {job.status.value})."
        )

    result = await _run_acceptance(db, proposal, job, client, resumed=resumed)
    emit_proposal_decided(proposal.id, decision.value, client.id, resumed=resumed)
    return result


async def _run_acceptance(
    db: AsyncSession,
    proposal: Proposal,
    job: Job,
    client: User,
    *,
    resumed: bool,
) -> DecisionResult:
    now = datetime.now(timezone.utc)

    # Step 1: proposal status
    if proposal.status != ProposalStatus.ACCEPTED:
        proposal.status = ProposalStatus.ACCEPTED
        proposal.decided_at = now
        await db.flush()
        logger.info("Acceptance 1/4: proposal %s accepted", proposal.id)
    else:
        logger.info("Acceptance 1/4: proposal %s already accepted", proposal.id)

    # Step 2: contract, at most one per proposal
    contract = await get_contract_for_proposal(db, proposal.id)
    contract_created = False
    if contract is None:
        contract = Contract(
            job_id=job.id,
            client_id=job.client_id,
            employee_id=proposal.employee_id,
            proposal_id=proposal.id,
            agreed_rate=proposal.proposed_rate if proposal.proposed_rate is not None else Decimal("0"),
            start_date=now,
            status=ContractStatus.ACTIVE,
        )
        db.add(contract)
        await db.flush()
        contract_created = True
        emit_contract_created(contract.id, proposal.id, job.id)
        logger.info("Acceptance 2/4: contract %s created for proposal %s", contract.id, proposal.id)
    else:
        logger.info("Acceptance 2/4: contract %s already exists", contract.id)

    # Step 3: job status
    if job.status == JobStatus.OPEN:
        transition = validate_transition(job.status, JobStatus.IN_PROGRESS, ActorType.SYSTEM)
        if not transition.allowed:
            raise InvalidDecisionError(transition.reason or "Job cannot start.")
        job.status = JobStatus.IN_PROGRESS
        await db.flush()
        emit_job_status_changed(job.id, JobStatus.OPEN.value, JobStatus.IN_PROGRESS.value, actor_id=client.id)
        logger.info("Acceptance 3/4: job %s moved to in_progress", job.id)
    else:
        logger.info("Acceptance 3/4: job %s left at %s", job.id, job.status.value)

    # Step 4: opening message, only alongside a newly created contract
    opening_message = None
    if contract_created:
        opening_message = Message.for_conversation(
            ConversationKey.contract(contract.id),
            client.id,
            ACCEPTANCE_MESSAGE.format(title=job.title),
        )
        db.add(opening_message)
        await db.flush()
        logger.info("Acceptance 4/4: opening message posted on contract %s", contract.id)
    else:
        logger.info("Acceptance 4/4: skipped, contract %s predates this call", contract.id)

    return DecisionResult(
        proposal=proposal,
        job=job,
        contract=contract,
        resumed=resumed,
        contract_created=contract_created,
        opening_message=opening_message,
    )


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def _with_relations(stmt):
    return stmt.options(
        selectinload(Proposal.job).selectinload(Job.client),
        selectinload(Proposal.employee),
    )


async def get_proposal(db: AsyncSession, proposal_id: uuid.UUID, user: User) -> Proposal:
    """Fetch a proposal visible to ``user`` (its employee or the job owner)."""
    stmt = _with_relations(select(Proposal).where(Proposal.id == proposal_id))
    proposal = (await db.execute(stmt)).scalar_one_or_none()
    if proposal is None:
        raise ProposalNotFoundError(proposal_id)
    if user.id not in (proposal.employee_id, proposal.job.client_id):
        raise ProposalPermissionError("You are not a party to this proposal.")
    return proposal


async def list_proposals_for_job(
    db: AsyncSession,
    job_id: uuid.UUID,
    client: User,
) -> Sequence[Proposal]:
    job = (await db.execute(select(Job).where(Job.id == job_id))).scalar_one_or_none()
    if job is None:
        raise JobNotFoundError(job_id)
    if job.client_id != client.id:
        raise ProposalPermissionError("Only the client who posted this job can view its proposals.")

    stmt = _with_relations(
        select(Proposal).where(Proposal.job_id == job_id).order_by(Proposal.created_at.desc())
    )
    return (await db.execute(stmt)).scalars().all()


async def list_proposals_for_employee(
    db: AsyncSession,
    employee_id: uuid.UUID,
    *,
    status_filter: Optional[str] = None,
) -> Sequence[Proposal]:
    filters = [Proposal.employee_id == employee_id]
    if status_filter:
        filters.append(Proposal.status == ProposalStatus(status_filter))
    stmt = _with_relations(
        select(Proposal).where(*filters).order_by(Proposal.created_at.desc())
    )
    return (await db.execute(stmt)).scalars().all()


async def list_proposals_for_client(
    db: AsyncSession,
    client_id: uuid.UUID,
    *,
    status_filter: Optional[str] = None,
) -> Sequence[Proposal]:
    """All proposals received across the client's jobs."""
    filters = [Job.client_id == client_id]
    if status_filter:
        filters.append(Proposal.status == ProposalStatus(status_filter))
    stmt = _with_relations(
        select(Proposal)
        .join(Job, Proposal.job_id == Job.id)
        .where(*filters)
        .order_by(Proposal.created_at.desc())
    )
    return (await db.execute(stmt)).scalars().all()
