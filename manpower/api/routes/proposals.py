"""
Proposal API Routes
===================

Routes:
  POST /api/v1/proposals                          -- apply to an open job (employees)
  GET  /api/v1/proposals/mine                     -- own proposals (employees)
  GET  /api/v1/proposals/received                 -- proposals on own jobs (clients)
  GET  /api/v1/proposals/{proposal_id}            -- proposal detail (either party)
  POST /api/v1/proposals/{proposal_id}/decision   -- accept or reject (job owner)
  GET  /api/v1/jobs/{job_id}/proposals            -- proposals on one own job
  GET  /api/v1/jobs/{job_id}/applied              -- has the caller applied?

Accepting a proposal creates the contract, starts the job and posts the
opening message on the contract conversation. Repeating an accept that
was interrupted finishes the missing steps instead of failing.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from manpower.api.deps import ClientUser, CurrentUser, DBSession, EmployeeUser, Gateway
from manpower.api.schemas.contract import ContractOut
from manpower.api.schemas.proposal import (
    AppliedResponse,
    CreateProposalRequest,
    DecisionData,
    DecisionRequest,
    DecisionResponse,
    ProposalDetailOut,
    ProposalDetailResponse,
    ProposalListResponse,
    ProposalOut,
    ProposalResponse,
)
from manpower.models.proposal import ProposalStatus
from manpower.realtime import socketServer
from manpower.services import chatService, jobService, proposalService
from manpower.services.chatService import MessageView

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/proposals", tags=["Proposals"])
job_router = APIRouter(prefix="/jobs", tags=["Proposals"])


def _proposal_error(exc: Exception) -> HTTPException:
    if isinstance(exc, (proposalService.ProposalNotFoundError, jobService.JobNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, proposalService.ProposalPermissionError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))


# ---------------------------------------------------------------------------
# POST /proposals
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=ProposalResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a proposal",
    description="Apply to an open job. An employee can apply to a job only once.",
)
async def submit_proposal(
    body: CreateProposalRequest,
    db: DBSession,
    current_user: EmployeeUser,
) -> ProposalResponse:
    try:
        proposal = await proposalService.submit_proposal(
            db,
            body.job_id,
            current_user,
            cover_letter=body.cover_letter,
            proposed_rate=body.proposed_rate,
            estimated_duration=body.estimated_duration,
            attachments=[attachment.model_dump() for attachment in body.attachments],
        )
    except (proposalService.ProposalError, jobService.JobError) as exc:
        raise _proposal_error(exc)

    return ProposalResponse(data=ProposalOut.model_validate(proposal), message="Proposal submitted.")


# ---------------------------------------------------------------------------
# GET /proposals/mine, /proposals/received
# ---------------------------------------------------------------------------

@router.get("/mine", response_model=ProposalListResponse, summary="Own proposals")
async def list_my_proposals(
    db: DBSession,
    current_user: EmployeeUser,
    status_filter: Optional[ProposalStatus] = Query(default=None, alias="status"),
) -> ProposalListResponse:
    proposals = await proposalService.list_proposals_for_employee(
        db, current_user.id, status_filter=status_filter.value if status_filter else None
    )
    return ProposalListResponse(data=[ProposalDetailOut.model_validate(p) for p in proposals])


@router.get("/received", response_model=ProposalListResponse, summary="Proposals on own jobs")
async def list_received_proposals(
    db: DBSession,
    current_user: ClientUser,
    status_filter: Optional[ProposalStatus] = Query(default=None, alias="status"),
) -> ProposalListResponse:
    proposals = await proposalService.list_proposals_for_client(
        db, current_user.id, status_filter=status_filter.value if status_filter else None
    )
    return ProposalListResponse(data=[ProposalDetailOut.model_validate(p) for p in proposals])


# ---------------------------------------------------------------------------
# GET /proposals/{proposal_id}
# ---------------------------------------------------------------------------

@router.get("/{proposal_id}", response_model=ProposalDetailResponse, summary="Proposal detail")
async def get_proposal(
    proposal_id: uuid.UUID,
    db: DBSession,
    current_user: CurrentUser,
) -> ProposalDetailResponse:
    try:
        proposal = await proposalService.get_proposal(db, proposal_id, current_user)
    except proposalService.ProposalError as exc:
        raise _proposal_error(exc)
    return ProposalDetailResponse(data=ProposalDetailOut.model_validate(proposal))


# ---------------------------------------------------------------------------
# POST /proposals/{proposal_id}/decision
# ---------------------------------------------------------------------------

@router.post(
    "/{proposal_id}/decision",
    response_model=DecisionResponse,
    summary="Accept or reject a proposal",
    description=(
        "Rejecting marks the proposal rejected. Accepting marks it accepted, "
        "creates the contract at the proposed rate, moves the job to "
        "in_progress and posts the opening message on the new contract."
    ),
)
async def decide_proposal(
    proposal_id: uuid.UUID,
    body: DecisionRequest,
    db: DBSession,
    gateway: Gateway,
    current_user: ClientUser,
) -> DecisionResponse:
    try:
        result = await proposalService.decide_proposal(db, proposal_id, current_user, body.decision)
    except proposalService.ProposalError as exc:
        raise _proposal_error(exc)

    await db.commit()

    if result.opening_message is not None:
        chatService.publish_message(gateway.changes, result.opening_message)
        await socketServer.broadcast_new_message(
            MessageView.from_message(result.opening_message, sender_name=current_user.display_name)
        )

    if result.resumed:
        message = "Decision already applied." if result.contract is None else "Acceptance completed."
    else:
        message = f"Proposal {result.proposal.status.value}."

    return DecisionResponse(
        data=DecisionData(
            proposal=ProposalOut.model_validate(result.proposal),
            contract=ContractOut.model_validate(result.contract) if result.contract else None,
            job_status=result.job.status,
            resumed=result.resumed,
            contract_created=result.contract_created,
        ),
        message=message,
    )


# ---------------------------------------------------------------------------
# Job-scoped proposal routes
# ---------------------------------------------------------------------------

@job_router.get(
    "/{job_id}/proposals",
    response_model=ProposalListResponse,
    summary="Proposals on an own job",
)
async def list_job_proposals(
    job_id: uuid.UUID,
    db: DBSession,
    current_user: ClientUser,
) -> ProposalListResponse:
    try:
        proposals = await proposalService.list_proposals_for_job(db, job_id, current_user)
    except (proposalService.ProposalError, jobService.JobError) as exc:
        raise _proposal_error(exc)
    return ProposalListResponse(data=[ProposalDetailOut.model_validate(p) for p in proposals])


@job_router.get(
    "/{job_id}/applied",
    response_model=AppliedResponse,
    summary="Has the caller applied to this job",
)
async def has_applied(
    job_id: uuid.UUID,
    db: DBSession,
    current_user: EmployeeUser,
) -> AppliedResponse:
    applied = await proposalService.has_applied(db, job_id, current_user.id)
    return AppliedResponse(job_id=job_id, applied=applied)
