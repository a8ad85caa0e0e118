"""
E2E: Proposal lifecycle.

An employee applies to an open job, the owning client accepts or rejects.
Acceptance creates exactly one contract at the proposed rate, starts the
job and posts the opening message on the contract conversation; repeating
it completes nothing twice.
"""

from __future__ import annotations

import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from manpower.models import Contract, Message, Proposal, ProposalStatus
from tests.e2e.conftest import API, apply, decide, post_job


pytestmark = pytest.mark.asyncio


class TestSubmitProposal:

    async def test_proposal_created_pending(self, client: AsyncClient, bob, alice):
        job = await post_job(client, bob)
        proposal = await apply(client, alice, job["id"])

        assert proposal["status"] == "pending"
        assert proposal["employee_id"] == str(alice.id)
        assert proposal["job_id"] == job["id"]
        assert proposal["proposed_rate"] == 50.0
        assert proposal["estimated_duration"] == "2 weeks"

    async def test_second_application_refused(self, client: AsyncClient, bob, alice):
        job = await post_job(client, bob)
        await apply(client, alice, job["id"])

        resp = await client.post(
            f"{API}/proposals",
            json={"job_id": job["id"], "proposed_rate": "45"},
            headers=alice.headers,
        )
        assert resp.status_code == 409
        assert "already submitted" in resp.json()["detail"]

    async def test_clients_cannot_apply(self, client: AsyncClient, bob, dave):
        job = await post_job(client, bob)
        resp = await client.post(f"{API}/proposals", json={"job_id": job["id"]}, headers=dave.headers)
        assert resp.status_code == 403

    async def test_unknown_job(self, client: AsyncClient, alice):
        resp = await client.post(
            f"{API}/proposals", json={"job_id": str(uuid.uuid4())}, headers=alice.headers
        )
        assert resp.status_code == 404

    async def test_cancelled_job_takes_no_proposals(self, client: AsyncClient, bob, alice):
        job = await post_job(client, bob)
        resp = await client.patch(
            f"{API}/jobs/{job['id']}", json={"status": "cancelled"}, headers=bob.headers
        )
        assert resp.status_code == 200

        resp = await client.post(f"{API}/proposals", json={"job_id": job["id"]}, headers=alice.headers)
        assert resp.status_code == 409
        assert "not open" in resp.json()["detail"]

    async def test_applied_flag(self, client: AsyncClient, bob, alice, carol):
        job = await post_job(client, bob)
        await apply(client, alice, job["id"])

        resp = await client.get(f"{API}/jobs/{job['id']}/applied", headers=alice.headers)
        assert resp.json() == {"job_id": job["id"], "applied": True}

        resp = await client.get(f"{API}/jobs/{job['id']}/applied", headers=carol.headers)
        assert resp.json()["applied"] is False


class TestAcceptProposal:
    """Employee Alice applies to Bob's job J; Bob accepts."""

    async def test_accept_creates_contract_and_starts_job(self, client: AsyncClient, bob, alice):
        job = await post_job(client, bob)
        proposal = await apply(client, alice, job["id"], rate="50", duration="2 weeks")

        resp = await decide(client, bob, proposal["id"], "accept")
        assert resp.status_code == 200, resp.text
        data = resp.json()["data"]

        assert data["proposal"]["status"] == "accepted"
        assert data["proposal"]["decided_at"] is not None
        assert data["job_status"] == "in_progress"
        assert data["contract_created"] is True
        assert data["resumed"] is False

        contract = data["contract"]
        assert contract["client_id"] == str(bob.id)
        assert contract["employee_id"] == str(alice.id)
        assert contract["job_id"] == job["id"]
        assert contract["proposal_id"] == proposal["id"]
        assert contract["agreed_rate"] == 50.0
        assert contract["status"] == "active"

        resp = await client.get(f"{API}/jobs/{job['id']}", headers=bob.headers)
        assert resp.json()["data"]["status"] == "in_progress"

    async def test_opening_message_posted(self, client: AsyncClient, bob, alice):
        job = await post_job(client, bob, title="Fix the roof")
        proposal = await apply(client, alice, job["id"])
        contract = (await decide(client, bob, proposal["id"], "accept")).json()["data"]["contract"]

        resp = await client.get(
            f"{API}/conversations/contract/{contract['id']}/messages", headers=alice.headers
        )
        assert resp.status_code == 200
        messages = resp.json()["data"]
        assert len(messages) == 1
        assert messages[0]["sender_id"] == str(bob.id)
        assert messages[0]["content"] == 'I accepted your proposal for "Fix the roof"'

    async def test_repeated_accept_creates_one_contract(
        self, client: AsyncClient, bob, alice, db_session
    ):
        job = await post_job(client, bob)
        proposal = await apply(client, alice, job["id"])

        first = await decide(client, bob, proposal["id"], "accept")
        second = await decide(client, bob, proposal["id"], "accept")

        assert first.status_code == 200
        assert second.status_code == 200
        again = second.json()["data"]
        assert again["resumed"] is True
        assert again["contract_created"] is False
        assert again["contract"]["id"] == first.json()["data"]["contract"]["id"]
        assert second.json()["message"] == "Acceptance completed."

        pid = uuid.UUID(proposal["id"])
        contracts = (
            await db_session.execute(select(func.count(Contract.id)).where(Contract.proposal_id == pid))
        ).scalar_one()
        assert contracts == 1
        messages = (
            await db_session.execute(select(func.count(Message.id)).where(Message.contract_id.is_not(None)))
        ).scalar_one()
        assert messages == 1

    async def test_interrupted_accept_is_completed(
        self, client: AsyncClient, bob, alice, db_session
    ):
        """A proposal left accepted without a contract is finished on retry."""
        job = await post_job(client, bob)
        proposal = await apply(client, alice, job["id"], rate="75")

        row = await db_session.get(Proposal, uuid.UUID(proposal["id"]))
        row.status = ProposalStatus.ACCEPTED
        await db_session.commit()

        resp = await decide(client, bob, proposal["id"], "accept")
        assert resp.status_code == 200, resp.text
        data = resp.json()["data"]
        assert data["resumed"] is True
        assert data["contract_created"] is True
        assert data["contract"]["agreed_rate"] == 75.0
        assert data["job_status"] == "in_progress"

    async def test_second_proposal_cannot_be_accepted(self, client: AsyncClient, bob, alice, carol):
        job = await post_job(client, bob)
        first = await apply(client, alice, job["id"])
        second = await apply(client, carol, job["id"])

        assert (await decide(client, bob, first["id"], "accept")).status_code == 200
        resp = await decide(client, bob, second["id"], "accept")

        assert resp.status_code == 409
        assert "no longer open" in resp.json()["detail"]

    async def test_missing_rate_agrees_zero(self, client: AsyncClient, bob, alice):
        job = await post_job(client, bob)
        proposal = await apply(client, alice, job["id"], rate=None)

        data = (await decide(client, bob, proposal["id"], "accept")).json()["data"]
        assert data["contract"]["agreed_rate"] == 0.0


class TestRejectProposal:

    async def test_reject_leaves_job_open(self, client: AsyncClient, bob, alice):
        job = await post_job(client, bob)
        proposal = await apply(client, alice, job["id"])

        resp = await decide(client, bob, proposal["id"], "reject")
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["proposal"]["status"] == "rejected"
        assert data["contract"] is None
        assert data["job_status"] == "open"

        resp = await client.get(f"{API}/contracts", headers=bob.headers)
        assert resp.json()["data"] == []

    async def test_reject_twice_is_a_noop(self, client: AsyncClient, bob, alice):
        job = await post_job(client, bob)
        proposal = await apply(client, alice, job["id"])
        await decide(client, bob, proposal["id"], "reject")

        resp = await decide(client, bob, proposal["id"], "reject")
        assert resp.status_code == 200
        assert resp.json()["data"]["resumed"] is True
        assert resp.json()["message"] == "Decision already applied."

    async def test_accepted_cannot_be_rejected(self, client: AsyncClient, bob, alice):
        job = await post_job(client, bob)
        proposal = await apply(client, alice, job["id"])
        await decide(client, bob, proposal["id"], "accept")

        resp = await decide(client, bob, proposal["id"], "reject")
        assert resp.status_code == 409

    async def test_rejected_cannot_be_accepted(self, client: AsyncClient, bob, alice):
        job = await post_job(client, bob)
        proposal = await apply(client, alice, job["id"])
        await decide(client, bob, proposal["id"], "reject")

        resp = await decide(client, bob, proposal["id"], "accept")
        assert resp.status_code == 409


class TestDecisionPermissions:

    async def test_only_job_owner_decides(self, client: AsyncClient, bob, alice, dave):
        job = await post_job(client, bob)
        proposal = await apply(client, alice, job["id"])

        resp = await decide(client, dave, proposal["id"], "accept")
        assert resp.status_code == 403

    async def test_employee_cannot_decide(self, client: AsyncClient, bob, alice):
        job = await post_job(client, bob)
        proposal = await apply(client, alice, job["id"])

        resp = await decide(client, alice, proposal["id"], "accept")
        assert resp.status_code == 403

    async def test_unknown_decision(self, client: AsyncClient, bob, alice):
        job = await post_job(client, bob)
        proposal = await apply(client, alice, job["id"])

        resp = await decide(client, bob, proposal["id"], "maybe")
        assert resp.status_code == 422

    async def test_unknown_proposal(self, client: AsyncClient, bob):
        resp = await decide(client, bob, str(uuid.uuid4()), "accept")
        assert resp.status_code == 404


class TestProposalQueries:

    async def test_lists_for_each_party(self, client: AsyncClient, bob, alice, carol, dave):
        job = await post_job(client, bob)
        first = await apply(client, alice, job["id"])
        await apply(client, carol, job["id"])
        await decide(client, bob, first["id"], "reject")

        received = (await client.get(f"{API}/proposals/received", headers=bob.headers)).json()["data"]
        assert len(received) == 2
        assert {p["employee"]["id"] for p in received} == {str(alice.id), str(carol.id)}

        pending = (
            await client.get(f"{API}/proposals/received", params={"status": "pending"}, headers=bob.headers)
        ).json()["data"]
        assert [p["employee_id"] for p in pending] == [str(carol.id)]

        mine = (await client.get(f"{API}/proposals/mine", headers=alice.headers)).json()["data"]
        assert len(mine) == 1
        assert mine[0]["job"]["title"] == job["title"]
        assert mine[0]["status"] == "rejected"

        resp = await client.get(f"{API}/jobs/{job['id']}/proposals", headers=dave.headers)
        assert resp.status_code == 403

    async def test_detail_visible_to_parties_only(self, client: AsyncClient, bob, alice, carol):
        job = await post_job(client, bob)
        proposal = await apply(client, alice, job["id"])

        for account in (alice, bob):
            resp = await client.get(f"{API}/proposals/{proposal['id']}", headers=account.headers)
            assert resp.status_code == 200
        resp = await client.get(f"{API}/proposals/{proposal['id']}", headers=carol.headers)
        assert resp.status_code == 403
