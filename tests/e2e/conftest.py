"""
E2E test fixtures for the ManPower backend.

Provides:
- An in-process FastAPI test app with all routes registered
- httpx AsyncClient wired via ASGI transport (no network needed)
- A per-test SQLite database file, shared by request sessions and the
  data gateway so identity operations and realtime feeds see the same rows
- A test ``DataGateway`` with its own change feed, auth event bus and
  storage directory
- Registered client and employee accounts with ready-made auth headers
- Helper functions for posting jobs, applying and deciding via the API
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any, AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from manpower.events.authEvents import AuthEventBus
from manpower.models.base import Base
from manpower.realtime.changeFeed import ChangeFeed
from manpower.services.gateway import DataGateway, configure_gateway
from manpower.storage import LocalStorageProvider

API = "/api/v1"
PASSWORD = "correct-horse-battery"


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def _test_engine(tmp_path):
    """A fresh SQLite database file per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'manpower.db'}", echo=False)

    # SQLite does not enforce foreign keys by default
    @event.listens_for(engine.sync_engine, "connect")
    def _enable_fk(dbapi_conn, _):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(_test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=_test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """A session for direct assertions against the database."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def gateway(session_factory, tmp_path) -> DataGateway:
    gw = DataGateway(
        sessions=session_factory,
        storage=LocalStorageProvider(base_dir=str(tmp_path / "storage"), public_base_url="http://test"),
        changes=ChangeFeed(),
        events=AuthEventBus(),
    )
    configure_gateway(gw)
    yield gw
    configure_gateway(None)


# ---------------------------------------------------------------------------
# FastAPI test application
# ---------------------------------------------------------------------------

def _create_test_app(session_factory: async_sessionmaker[AsyncSession], gateway: DataGateway):
    """Build a FastAPI app with all routes registered and the DB and
    gateway dependencies overridden."""
    from fastapi import FastAPI

    from manpower.api import deps
    from manpower.api.routes import (
        auth,
        contracts,
        conversations,
        dashboard,
        files,
        jobs,
        proposals,
        session,
        users,
    )

    app = FastAPI(title="ManPower Test")

    async def _override_get_db():
        async with session_factory() as db:
            try:
                yield db
                await db.commit()
            except Exception:
                await db.rollback()
                raise

    app.dependency_overrides[deps.get_db] = _override_get_db
    app.dependency_overrides[deps.get_gateway] = lambda: gateway

    for router in (
        auth.router,
        session.router,
        users.router,
        jobs.router,
        proposals.router,
        proposals.job_router,
        contracts.router,
        conversations.router,
        files.router,
        dashboard.router,
    ):
        app.include_router(router, prefix=API)

    return app


@pytest_asyncio.fixture
async def client(session_factory, gateway) -> AsyncGenerator[AsyncClient, None]:
    """httpx AsyncClient connected to the test app via ASGI transport."""
    app = _create_test_app(session_factory, gateway)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------

@dataclass
class Account:
    id: uuid.UUID
    email: str
    role: str
    access_token: str
    refresh_token: str

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}


async def register(client: AsyncClient, email: str, role: str, full_name: str) -> Account:
    resp = await client.post(
        f"{API}/auth/register",
        json={"email": email, "password": PASSWORD, "full_name": full_name, "role": role},
    )
    assert resp.status_code == 201, resp.text
    data = resp.json()["data"]
    return Account(
        id=uuid.UUID(data["user"]["id"]),
        email=email,
        role=role,
        access_token=data["tokens"]["access_token"],
        refresh_token=data["tokens"]["refresh_token"],
    )


@pytest_asyncio.fixture
async def bob(client) -> Account:
    """A client who posts jobs."""
    return await register(client, "bob@example.com", "client", "Bob Client")


@pytest_asyncio.fixture
async def alice(client) -> Account:
    """An employee who applies to jobs."""
    return await register(client, "alice@example.com", "employee", "Alice Employee")


@pytest_asyncio.fixture
async def carol(client) -> Account:
    """A second employee."""
    return await register(client, "carol@example.com", "employee", "Carol Employee")


@pytest_asyncio.fixture
async def dave(client) -> Account:
    """A second client with no stake in Bob's jobs."""
    return await register(client, "dave@example.com", "client", "Dave Client")


# ---------------------------------------------------------------------------
# Flow helpers
# ---------------------------------------------------------------------------

async def post_job(client: AsyncClient, owner: Account, **fields: Any) -> dict[str, Any]:
    payload = {
        "title": "Build a garden shed",
        "description": "Timber shed, 3x2m, on an existing slab.",
        "budget_min": "400",
        "budget_max": "900",
        "timeline": "1 month",
        "category": "carpentry",
        "required_skills": ["carpentry"],
        **fields,
    }
    resp = await client.post(f"{API}/jobs", json=payload, headers=owner.headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


async def apply(
    client: AsyncClient,
    employee: Account,
    job_id: str,
    *,
    rate: Optional[str] = "50",
    duration: Optional[str] = "2 weeks",
) -> dict[str, Any]:
    resp = await client.post(
        f"{API}/proposals",
        json={
            "job_id": job_id,
            "cover_letter": "I have built several sheds.",
            "proposed_rate": rate,
            "estimated_duration": duration,
        },
        headers=employee.headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


async def decide(client: AsyncClient, owner: Account, proposal_id: str, decision: str):
    return await client.post(
        f"{API}/proposals/{proposal_id}/decision",
        json={"decision": decision},
        headers=owner.headers,
    )
