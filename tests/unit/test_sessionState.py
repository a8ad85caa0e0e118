"""
Unit tests for the Session State Holder.

The gateway is faked: ``auth`` resolves a fixed identity and publishes on a
real ``AuthEventBus``; ``sessions()`` yields a stub database whose ``get``
returns the profile (or raises).
"""

import uuid
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from manpower.events.authEvents import AuthChange, AuthEvent, AuthEventBus
from manpower.models.user import UserRole
from manpower.services.auth_service import AuthIdentity
from manpower.services.sessionState import SessionState, SessionStatus

pytestmark = pytest.mark.asyncio


class FakeAuth:
    def __init__(self, identity):
        self.events = AuthEventBus()
        self.get_current_session = AsyncMock(return_value=identity)
        self.sign_out = AsyncMock()

    def subscribe(self, callback, user_id=None):
        return self.events.subscribe(callback, user_id)


class FakeGateway:
    def __init__(self, identity, profile=None, error=None):
        self.auth = FakeAuth(identity)
        self.db = MagicMock()
        if error is not None:
            self.db.get = AsyncMock(side_effect=error)
        else:
            self.db.get = AsyncMock(return_value=profile)

    @asynccontextmanager
    async def sessions(self):
        yield self.db


@pytest.fixture
def identity(sample_client):
    return AuthIdentity(
        user_id=sample_client.id,
        email=sample_client.email,
        session_id=uuid.uuid4(),
        role="client",
    )


# ---------------------------------------------------------------------------
# initialize
# ---------------------------------------------------------------------------


class TestInitialize:

    async def test_anonymous_session(self):
        gateway = FakeGateway(identity=None)
        session = await SessionState(gateway).initialize(None)

        assert session.is_authenticated is False
        assert session.loading is False
        assert session.status == SessionStatus.READY
        assert session.profile is None
        assert session.home_route == "/"
        gateway.db.get.assert_not_awaited()

    async def test_starts_loading(self):
        session = SessionState(FakeGateway(identity=None))
        assert session.loading is True
        assert session.status == SessionStatus.INITIALIZING

    async def test_signed_in_session_loads_profile(self, identity, sample_client):
        gateway = FakeGateway(identity, profile=sample_client)
        session = await SessionState(gateway).initialize("token")

        assert session.user == identity
        assert session.profile is sample_client
        assert session.role == UserRole.CLIENT
        assert session.home_route == "/client/dashboard"
        assert session.status == SessionStatus.READY
        gateway.auth.get_current_session.assert_awaited_once_with("token")

    async def test_profile_failure_does_not_block(self, identity):
        gateway = FakeGateway(identity, error=OperationalError("SELECT", {}, Exception("down")))
        session = await SessionState(gateway).initialize("token")

        assert session.loading is False
        assert session.is_authenticated is True
        assert session.profile is None
        assert session.role is None
        assert session.status == SessionStatus.ERROR

    async def test_session_lookup_failure_does_not_block(self):
        gateway = FakeGateway(identity=None)
        gateway.auth.get_current_session.side_effect = OperationalError("SELECT", {}, Exception("down"))
        seen = []
        session = SessionState(gateway)
        session.subscribe(lambda s: seen.append(s.status))

        await session.initialize("token")

        assert session.loading is False
        assert session.status == SessionStatus.ERROR
        assert session.is_authenticated is False
        assert session.home_route == "/"
        assert seen == [SessionStatus.ERROR]
        assert gateway.auth.events.listener_count == 0

    async def test_missing_profile_row(self, identity):
        session = await SessionState(FakeGateway(identity, profile=None)).initialize("token")
        assert session.status == SessionStatus.READY
        assert session.home_route == "/"

    async def test_listeners_hear_initialization(self):
        session = SessionState(FakeGateway(identity=None))
        seen = []
        session.subscribe(lambda s: seen.append(s.loading))
        await session.initialize(None)
        assert seen == [False]


# ---------------------------------------------------------------------------
# Auth events
# ---------------------------------------------------------------------------


class TestAuthEvents:

    async def test_sign_out_of_same_session_clears_state(self, identity, sample_client):
        gateway = FakeGateway(identity, profile=sample_client)
        session = await SessionState(gateway).initialize("token")

        await gateway.auth.events.emit(
            AuthChange(AuthEvent.SIGNED_OUT, identity.user_id, identity.session_id)
        )

        assert session.is_authenticated is False
        assert session.profile is None
        assert session.status == SessionStatus.SIGNED_OUT
        assert gateway.auth.events.listener_count == 0

    async def test_sign_out_of_other_session_is_ignored(self, identity, sample_client):
        gateway = FakeGateway(identity, profile=sample_client)
        session = await SessionState(gateway).initialize("token")

        await gateway.auth.events.emit(
            AuthChange(AuthEvent.SIGNED_OUT, identity.user_id, uuid.uuid4())
        )

        assert session.is_authenticated is True
        assert session.profile is sample_client

    async def test_other_users_events_are_filtered(self, identity, sample_client):
        gateway = FakeGateway(identity, profile=sample_client)
        session = await SessionState(gateway).initialize("token")

        await gateway.auth.events.emit(AuthChange(AuthEvent.SIGNED_OUT, uuid.uuid4()))

        assert session.is_authenticated is True

    async def test_user_updated_refetches_profile(self, identity, sample_client):
        gateway = FakeGateway(identity, profile=sample_client)
        session = await SessionState(gateway).initialize("token")
        seen = []
        session.subscribe(seen.append)

        await gateway.auth.events.emit(AuthChange(AuthEvent.USER_UPDATED, identity.user_id))

        assert gateway.db.get.await_count == 2
        assert seen == [session]

    async def test_close_detaches_from_bus(self, identity, sample_client):
        gateway = FakeGateway(identity, profile=sample_client)
        session = await SessionState(gateway).initialize("token")
        assert gateway.auth.events.listener_count == 1

        session.close()

        assert gateway.auth.events.listener_count == 0


# ---------------------------------------------------------------------------
# sign_out
# ---------------------------------------------------------------------------


class TestSignOut:

    async def test_sign_out_revokes_and_returns_landing(self, identity, sample_client):
        gateway = FakeGateway(identity, profile=sample_client)
        session = await SessionState(gateway).initialize("token")

        landing = await session.sign_out()

        assert landing == "/"
        gateway.auth.sign_out.assert_awaited_once_with(identity.session_id)
        assert session.is_authenticated is False
        assert session.status == SessionStatus.SIGNED_OUT

    async def test_anonymous_sign_out_is_harmless(self):
        gateway = FakeGateway(identity=None)
        session = await SessionState(gateway).initialize(None)

        assert await session.sign_out() == "/"
        gateway.auth.sign_out.assert_not_awaited()
