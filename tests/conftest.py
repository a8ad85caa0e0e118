"""
Shared pytest fixtures for ManPower backend unit tests.

Provides mock database sessions and sample domain objects that mirror
production ORM models without requiring a live database connection.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from manpower.models.job import Job, JobStatus
from manpower.models.proposal import Proposal, ProposalStatus
from manpower.models.user import User, UserRole


# ---------------------------------------------------------------------------
# Database session mock
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_db() -> AsyncMock:
    """Async mock of ``AsyncSession``.

    Provides a mock that supports ``db.execute()``, ``db.add()``,
    ``db.flush()``, and ``db.commit()`` out of the box.  Individual tests
    can configure ``mock_db.execute.return_value`` to control query results.
    """
    session = AsyncMock()
    session.add = MagicMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    return session


def scalar_result(value) -> MagicMock:
    """A mock ``Result`` whose ``scalar_one_or_none()`` returns ``value``."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    result.scalar_one.return_value = value
    result.first.return_value = value
    return result


# ---------------------------------------------------------------------------
# User fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_client() -> User:
    """A client who posts jobs."""
    user = MagicMock(spec=User)
    user.id = uuid.uuid4()
    user.email = "client@example.com"
    user.full_name = "Casey Client"
    user.display_name = "Casey Client"
    user.role = UserRole.CLIENT
    user.skills = []
    return user


@pytest.fixture
def sample_employee() -> User:
    """An employee who applies to jobs."""
    user = MagicMock(spec=User)
    user.id = uuid.uuid4()
    user.email = "employee@example.com"
    user.full_name = "Eli Employee"
    user.display_name = "Eli Employee"
    user.role = UserRole.EMPLOYEE
    user.skills = ["carpentry", "Painting"]
    user.hourly_rate = Decimal("35.00")
    return user


# ---------------------------------------------------------------------------
# Job & proposal fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_job(sample_client) -> Job:
    """An open job owned by ``sample_client``."""
    job = MagicMock(spec=Job)
    job.id = uuid.uuid4()
    job.client_id = sample_client.id
    job.title = "Paint the fence"
    job.status = JobStatus.OPEN
    job.created_at = datetime.now(timezone.utc)
    return job


@pytest.fixture
def sample_proposal(sample_job, sample_employee) -> Proposal:
    """A pending proposal by ``sample_employee`` on ``sample_job``."""
    proposal = MagicMock(spec=Proposal)
    proposal.id = uuid.uuid4()
    proposal.job_id = sample_job.id
    proposal.employee_id = sample_employee.id
    proposal.proposed_rate = Decimal("250.00")
    proposal.status = ProposalStatus.PENDING
    proposal.decided_at = None
    return proposal
