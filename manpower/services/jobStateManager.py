"""
Job State Manager
=================

Finite state machine governing job status transitions. Every status
change MUST go through ``validate_transition`` before being persisted.

State machine overview::

    open --> in_progress --> completed
      |           |
      +-----------+--> cancelled

Guards:
  - ``open -> in_progress`` happens only as part of accepting a proposal,
    so only the SYSTEM actor may trigger it.
  - Completion and cancellation are owner actions (SYSTEM may also apply
    them).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from manpower.models.job import JobStatus


# ---------------------------------------------------------------------------
# Actor types for guard enforcement
# ---------------------------------------------------------------------------

class ActorType(str, enum.Enum):
    OWNER = "owner"
    SYSTEM = "system"


# ---------------------------------------------------------------------------
# Transition guard result
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TransitionResult:
    """Result of a transition validation attempt."""
    allowed: bool
    reason: str | None = None


# ---------------------------------------------------------------------------
# Transition definitions
# ---------------------------------------------------------------------------

VALID_TRANSITIONS: dict[JobStatus, set[JobStatus]] = {
    JobStatus.OPEN: {
        JobStatus.IN_PROGRESS,
        JobStatus.CANCELLED,
    },
    JobStatus.IN_PROGRESS: {
        JobStatus.COMPLETED,
        JobStatus.CANCELLED,
    },
    # Terminal states
    JobStatus.COMPLETED: set(),
    JobStatus.CANCELLED: set(),
}

TERMINAL_STATUSES: frozenset[JobStatus] = frozenset(
    status for status, targets in VALID_TRANSITIONS.items() if not targets
)


def _guard_start(actor_type: ActorType) -> TransitionResult:
    """A job only starts when one of its proposals is accepted."""
    if actor_type != ActorType.SYSTEM:
        return TransitionResult(
            allowed=False,
            reason="A job moves to 'in_progress' only by accepting a proposal.",
        )
    return TransitionResult(allowed=True)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def validate_transition(
    current_status: JobStatus,
    new_status: JobStatus,
    actor_type: ActorType = ActorType.SYSTEM,
) -> TransitionResult:
    """Validate whether a job status transition is allowed.

    Checks the structural table first, then the actor guard.
    """
    allowed_targets = VALID_TRANSITIONS.get(current_status, set())
    if new_status not in allowed_targets:
        return TransitionResult(
            allowed=False,
            reason=(
                f"Invalid transition: '{current_status.value}' -> '{new_status.value}'. "
                f"Allowed transitions from '{current_status.value}': "
                f"{', '.join(s.value for s in sorted(allowed_targets, key=lambda s: s.value)) or 'none'}."
            ),
        )

    if new_status == JobStatus.IN_PROGRESS:
        return _guard_start(actor_type)

    return TransitionResult(allowed=True)


def get_valid_transitions(
    current_status: JobStatus,
    actor_type: ActorType = ActorType.SYSTEM,
) -> list[JobStatus]:
    """Return the statuses the given actor can move the job to.

    Useful for UI hints (e.g. showing available actions to the owner).
    """
    candidates = VALID_TRANSITIONS.get(current_status, set())
    valid = [
        target
        for target in candidates
        if validate_transition(current_status, target, actor_type).allowed
    ]
    return sorted(valid, key=lambda s: s.value)
