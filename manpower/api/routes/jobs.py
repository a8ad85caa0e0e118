"""
Job API Routes
==============

REST endpoints for job postings.

Routes:
  POST   /api/v1/jobs              -- post a job (clients)
  GET    /api/v1/jobs              -- browse open jobs (search, category)
  GET    /api/v1/jobs/mine         -- own jobs with proposal counts (clients)
  GET    /api/v1/jobs/{job_id}     -- job detail
  PATCH  /api/v1/jobs/{job_id}     -- edit / complete / cancel an own job
  DELETE /api/v1/jobs/{job_id}     -- delete an own job without a contract
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from manpower.api.deps import ClientUser, CurrentUser, DBSession
from manpower.api.schemas.common import MessageResponse, PaginationMeta
from manpower.api.schemas.job import (
    ClientJobListResponse,
    ClientJobOut,
    JobCreateRequest,
    JobListResponse,
    JobResponse,
    JobUpdateRequest,
    JobWithClientOut,
)
from manpower.models.job import JobStatus
from manpower.services import jobService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["Jobs"])


def _meta(result: jobService.PaginatedResult) -> PaginationMeta:
    return PaginationMeta(
        page=result.page,
        page_size=result.page_size,
        total_items=result.total_items,
        total_pages=result.total_pages,
    )


def _job_error(exc: jobService.JobError) -> HTTPException:
    if isinstance(exc, jobService.JobNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, jobService.JobPermissionError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))


# ---------------------------------------------------------------------------
# POST /api/v1/jobs
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=JobResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Post a new job",
    description="Creates an open job owned by the calling client.",
)
async def create_job(body: JobCreateRequest, db: DBSession, current_user: ClientUser) -> JobResponse:
    try:
        job = await jobService.create_job(
            db,
            current_user,
            title=body.title,
            description=body.description,
            budget_min=body.budget_min,
            budget_max=body.budget_max,
            timeline=body.timeline,
            category=body.category,
            required_skills=body.required_skills,
        )
    except jobService.JobError as exc:
        raise _job_error(exc)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))

    job = await jobService.get_job(db, job.id)
    return JobResponse(data=JobWithClientOut.model_validate(job), message="Job posted.")


# ---------------------------------------------------------------------------
# GET /api/v1/jobs
# ---------------------------------------------------------------------------

@router.get("", response_model=JobListResponse, summary="Browse open jobs")
async def list_jobs(
    db: DBSession,
    current_user: CurrentUser,
    search: Optional[str] = Query(default=None, description="Matches title or description"),
    category: Optional[str] = Query(default=None),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> JobListResponse:
    result = await jobService.list_open_jobs(
        db, search=search, category=category, page=page, page_size=page_size
    )
    return JobListResponse(
        data=[JobWithClientOut.model_validate(job) for job in result.items],
        meta=_meta(result),
    )


# ---------------------------------------------------------------------------
# GET /api/v1/jobs/mine
# ---------------------------------------------------------------------------

@router.get("/mine", response_model=ClientJobListResponse, summary="Own jobs")
async def list_my_jobs(
    db: DBSession,
    current_user: ClientUser,
    status_filter: Optional[JobStatus] = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> ClientJobListResponse:
    result = await jobService.list_client_jobs(
        db,
        current_user.id,
        status_filter=status_filter.value if status_filter else None,
        page=page,
        page_size=page_size,
    )
    data = []
    for row in result.items:
        out = ClientJobOut.model_validate(row.job)
        out.total_proposals = row.total_proposals
        out.pending_proposals = row.pending_proposals
        data.append(out)
    return ClientJobListResponse(data=data, meta=_meta(result))


# ---------------------------------------------------------------------------
# GET /api/v1/jobs/{job_id}
# ---------------------------------------------------------------------------

@router.get("/{job_id}", response_model=JobResponse, summary="Job detail")
async def get_job(job_id: uuid.UUID, db: DBSession, current_user: CurrentUser) -> JobResponse:
    job = await jobService.get_job(db, job_id)
    if job is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Job with id '{job_id}' not found.",
        )
    return JobResponse(data=JobWithClientOut.model_validate(job))


# ---------------------------------------------------------------------------
# PATCH /api/v1/jobs/{job_id}
# ---------------------------------------------------------------------------

@router.patch(
    "/{job_id}",
    response_model=JobResponse,
    summary="Update an own job",
    description=(
        "Edits job fields. ``status`` may move an open job to cancelled or an "
        "in-progress job to completed or cancelled; jobs start only by "
        "accepting a proposal."
    ),
)
async def update_job(
    job_id: uuid.UUID,
    body: JobUpdateRequest,
    db: DBSession,
    current_user: ClientUser,
) -> JobResponse:
    changes = body.model_dump(exclude_unset=True)
    if changes.get("status") is not None:
        changes["status"] = JobStatus(changes["status"])
    try:
        job = await jobService.update_job(db, job_id, current_user, changes)
    except jobService.JobError as exc:
        raise _job_error(exc)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))

    return JobResponse(data=JobWithClientOut.model_validate(job), message="Job updated.")


# ---------------------------------------------------------------------------
# DELETE /api/v1/jobs/{job_id}
# ---------------------------------------------------------------------------

@router.delete("/{job_id}", response_model=MessageResponse, summary="Delete an own job")
async def delete_job(job_id: uuid.UUID, db: DBSession, current_user: ClientUser) -> MessageResponse:
    try:
        await jobService.delete_job(db, job_id, current_user)
    except jobService.JobError as exc:
        raise _job_error(exc)
    return MessageResponse(message="Job deleted.")
