"""
Unit tests for the Proposal State Manager.

Covers the pending -> accepted/rejected transitions and the decision
plan used to make accept/reject safe to repeat.
"""

import pytest

from manpower.models.proposal import ProposalStatus
from manpower.services.proposalStateManager import (
    TERMINAL_STATUSES,
    PlanAction,
    ProposalDecision,
    plan_decision,
    validate_transition,
)


class TestTransitions:

    def test_pending_to_accepted(self):
        assert validate_transition(ProposalStatus.PENDING, ProposalStatus.ACCEPTED).allowed

    def test_pending_to_rejected(self):
        assert validate_transition(ProposalStatus.PENDING, ProposalStatus.REJECTED).allowed

    @pytest.mark.parametrize("current", sorted(TERMINAL_STATUSES, key=lambda s: s.value))
    @pytest.mark.parametrize("target", list(ProposalStatus))
    def test_terminal_statuses_never_change(self, current, target):
        result = validate_transition(current, target)
        assert result.allowed is False
        assert "can no longer change" in result.reason

    def test_decision_targets(self):
        assert ProposalDecision.ACCEPT.target_status == ProposalStatus.ACCEPTED
        assert ProposalDecision.REJECT.target_status == ProposalStatus.REJECTED


class TestPlanDecision:

    def test_accept_pending_applies(self):
        plan = plan_decision(ProposalStatus.PENDING, ProposalDecision.ACCEPT)
        assert plan.action == PlanAction.APPLY
        assert plan.reason is None

    def test_reject_pending_applies(self):
        plan = plan_decision(ProposalStatus.PENDING, ProposalDecision.REJECT)
        assert plan.action == PlanAction.APPLY

    def test_accept_accepted_resumes(self):
        plan = plan_decision(ProposalStatus.ACCEPTED, ProposalDecision.ACCEPT)
        assert plan.action == PlanAction.RESUME

    def test_reject_rejected_is_noop(self):
        plan = plan_decision(ProposalStatus.REJECTED, ProposalDecision.REJECT)
        assert plan.action == PlanAction.NOOP

    def test_reject_accepted_refused(self):
        plan = plan_decision(ProposalStatus.ACCEPTED, ProposalDecision.REJECT)
        assert plan.action == PlanAction.REFUSE
        assert "'accepted' -> 'rejected'" in plan.reason

    def test_accept_rejected_refused(self):
        plan = plan_decision(ProposalStatus.REJECTED, ProposalDecision.ACCEPT)
        assert plan.action == PlanAction.REFUSE

    def test_decision_parses_from_string(self):
        assert plan_decision(ProposalStatus.PENDING, ProposalDecision("accept")).action == PlanAction.APPLY
        with pytest.raises(ValueError):
            ProposalDecision("maybe")
