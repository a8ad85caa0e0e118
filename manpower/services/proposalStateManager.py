"""
Proposal State Manager
======================

Proposal statuses move ``pending -> accepted`` or ``pending -> rejected``
and never leave a terminal state. ``plan_decision`` maps a client's
decision on a proposal in its current status onto what the lifecycle
manager should do:

    ==========  ========  =======================================
    current     decision  plan
    ==========  ========  =======================================
    pending     accept    APPLY   (run the acceptance sequence)
    pending     reject    APPLY
    accepted    accept    RESUME  (complete any missing step)
    rejected    reject    NOOP
    accepted    reject    REFUSE
    rejected    accept    REFUSE
    ==========  ========  =======================================
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from manpower.models.proposal import ProposalStatus
from manpower.services.jobStateManager import TransitionResult


class ProposalDecision(str, enum.Enum):
    ACCEPT = "accept"
    REJECT = "reject"

    @property
    def target_status(self) -> ProposalStatus:
        if self is ProposalDecision.ACCEPT:
            return ProposalStatus.ACCEPTED
        return ProposalStatus.REJECTED


VALID_TRANSITIONS: dict[ProposalStatus, set[ProposalStatus]] = {
    ProposalStatus.PENDING: {ProposalStatus.ACCEPTED, ProposalStatus.REJECTED},
    ProposalStatus.ACCEPTED: set(),
    ProposalStatus.REJECTED: set(),
}

TERMINAL_STATUSES: frozenset[ProposalStatus] = frozenset(
    {ProposalStatus.ACCEPTED, ProposalStatus.REJECTED}
)


class PlanAction(str, enum.Enum):
    APPLY = "apply"
    RESUME = "resume"
    NOOP = "noop"
    REFUSE = "refuse"


@dataclass(frozen=True)
class DecisionPlan:
    action: PlanAction
    reason: str | None = None


def validate_transition(
    current_status: ProposalStatus,
    new_status: ProposalStatus,
) -> TransitionResult:
    allowed_targets = VALID_TRANSITIONS.get(current_status, set())
    if new_status in allowed_targets:
        return TransitionResult(allowed=True)
    return TransitionResult(
        allowed=False,
        reason=(
            f"Invalid transition: '{current_status.value}' -> '{new_status.value}'. "
            f"A proposal that is '{current_status.value}' can no longer change."
        ),
    )


def plan_decision(current_status: ProposalStatus, decision: ProposalDecision) -> DecisionPlan:
    target = decision.target_status
    if current_status == target:
        # Accept re-runs the idempotent sequence, reject has nothing left to do
        if decision is ProposalDecision.ACCEPT:
            return DecisionPlan(PlanAction.RESUME)
        return DecisionPlan(PlanAction.NOOP)

    result = validate_transition(current_status, target)
    if not result.allowed:
        return DecisionPlan(PlanAction.REFUSE, result.reason)
    return DecisionPlan(PlanAction.APPLY)
