"""ManPower API -- Main Application Entry Point

Creates the FastAPI application, configures CORS middleware, registers
all API route modules under the /api/v1 prefix, serves locally stored
uploads under /files and mounts the Socket.IO ASGI application for live
conversations.

Run with::

    uvicorn manpower.main:app --host 0.0.0.0 --port 8000 --reload
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from manpower.core.config import settings
from manpower.core.logging import setup_logging

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan: startup / shutdown hooks
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager.

    Startup:
      - Configure logging.
      - Import realtime handlers to register Socket.IO event listeners.

    Shutdown:
      - Close conversation feeds.
    """
    setup_logging()
    # Importing handlers is sufficient to register all Socket.IO events
    from manpower.realtime import handlers  # noqa: F401

    logger.info("%s %s started", settings.app_name, settings.app_version)
    yield

    from manpower.realtime.socketServer import close_feeds

    await close_feeds()


# ---------------------------------------------------------------------------
# Application instance
# ---------------------------------------------------------------------------

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# CORS middleware
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get("/health", tags=["Health"])
async def health():
    """Lightweight health check for load balancers and readiness probes."""
    return {"status": "ok", "version": settings.app_version}


# ---------------------------------------------------------------------------
# Register API route modules
# ---------------------------------------------------------------------------
# Each router already defines its own prefix (e.g. /jobs, /proposals) and
# tags.  We mount them under the shared /api/v1 prefix so the full paths
# become /api/v1/jobs, /api/v1/proposals, etc.
# ---------------------------------------------------------------------------

from manpower.api.routes import (  # noqa: E402
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

_prefix = settings.api_v1_prefix

app.include_router(auth.router, prefix=_prefix)
app.include_router(session.router, prefix=_prefix)
app.include_router(users.router, prefix=_prefix)
app.include_router(jobs.router, prefix=_prefix)
app.include_router(proposals.router, prefix=_prefix)
app.include_router(proposals.job_router, prefix=_prefix)
app.include_router(contracts.router, prefix=_prefix)
app.include_router(conversations.router, prefix=_prefix)
app.include_router(files.router, prefix=_prefix)
app.include_router(dashboard.router, prefix=_prefix)


# ---------------------------------------------------------------------------
# Locally stored uploads
# ---------------------------------------------------------------------------

_storage_dir = Path(settings.storage_dir)
_storage_dir.mkdir(parents=True, exist_ok=True)
app.mount("/files", StaticFiles(directory=_storage_dir), name="files")


# ---------------------------------------------------------------------------
# Mount Socket.IO ASGI application
# ---------------------------------------------------------------------------

from manpower.realtime.socketServer import socket_app  # noqa: E402

app.mount("/ws", socket_app)
