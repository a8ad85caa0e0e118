"""
Marketplace Event Emitters
==========================

Structured lifecycle events for jobs, proposals and contracts. Each
function logs the event and returns the payload dict so callers (and
tests) can inspect what was emitted.

Events emitted:
  - job.created
  - job.status_changed
  - job.deleted
  - proposal.submitted
  - proposal.decided
  - contract.created
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)


def _build_event(
    event_type: str,
    subject_id: uuid.UUID,
    *,
    data: dict[str, Any] | None = None,
    actor_id: uuid.UUID | None = None,
) -> dict[str, Any]:
    """Construct a standardised event payload."""
    return {
        "event_type": event_type,
        "subject_id": str(subject_id),
        "actor_id": str(actor_id) if actor_id else None,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "data": data or {},
    }


def emit_job_created(job_id: uuid.UUID, client_id: uuid.UUID, title: str) -> dict[str, Any]:
    """Emit event when a client posts a new job."""
    event = _build_event("job.created", job_id, actor_id=client_id, data={"title": title})
    logger.info("Event emitted: %s for job %s", event["event_type"], job_id)
    return event


def emit_job_status_changed(
    job_id: uuid.UUID,
    old_status: str,
    new_status: str,
    actor_id: uuid.UUID | None = None,
) -> dict[str, Any]:
    """Emit event when a job transitions between states."""
    event = _build_event(
        "job.status_changed",
        job_id,
        actor_id=actor_id,
        data={"old_status": old_status, "new_status": new_status},
    )
    logger.info(
        "Event emitted: %s for job %s (%s -> %s)",
        event["event_type"],
        job_id,
        old_status,
        new_status,
    )
    return event


def emit_job_deleted(job_id: uuid.UUID, client_id: uuid.UUID) -> dict[str, Any]:
    event = _build_event("job.deleted", job_id, actor_id=client_id)
    logger.info("Event emitted: %s for job %s", event["event_type"], job_id)
    return event


def emit_proposal_submitted(
    proposal_id: uuid.UUID,
    job_id: uuid.UUID,
    employee_id: uuid.UUID,
) -> dict[str, Any]:
    """Emit event when an employee applies to a job."""
    event = _build_event(
        "proposal.submitted",
        proposal_id,
        actor_id=employee_id,
        data={"job_id": str(job_id)},
    )
    logger.info(
        "Event emitted: %s for proposal %s (job=%s)",
        event["event_type"],
        proposal_id,
        job_id,
    )
    return event


def emit_proposal_decided(
    proposal_id: uuid.UUID,
    decision: str,
    client_id: uuid.UUID,
    *,
    resumed: bool = False,
) -> dict[str, Any]:
    """Emit event when a client accepts or rejects a proposal."""
    event = _build_event(
        "proposal.decided",
        proposal_id,
        actor_id=client_id,
        data={"decision": decision, "resumed": resumed},
    )
    logger.info(
        "Event emitted: %s for proposal %s (decision=%s, resumed=%s)",
        event["event_type"],
        proposal_id,
        decision,
        resumed,
    )
    return event


def emit_contract_created(
    contract_id: uuid.UUID,
    proposal_id: uuid.UUID,
    job_id: uuid.UUID,
) -> dict[str, Any]:
    event = _build_event(
        "contract.created",
        contract_id,
        data={"proposal_id": str(proposal_id), "job_id": str(job_id)},
    )
    logger.info(
        "Event emitted: %s for contract %s (proposal=%s)",
        event["event_type"],
        contract_id,
        proposal_id,
    )
    return event
