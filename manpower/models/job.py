"""
SQLAlchemy model for jobs.
Corresponds to migration 0001_initial_schema.
"""

import enum
import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import JSON, Enum, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class JobStatus(str, enum.Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"      # a proposal was accepted
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Job(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "jobs"

    # Owner
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Job details
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    budget_min: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    budget_max: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    timeline: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    required_skills: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    status: Mapped[JobStatus] = mapped_column(
        Enum(JobStatus, name="job_status"),
        nullable=False,
        default=JobStatus.OPEN,
        server_default="OPEN",
        index=True,
    )

    # Relationships
    client: Mapped["User"] = relationship(
        "User", back_populates="client_jobs", foreign_keys=[client_id]
    )
    proposals: Mapped[list["Proposal"]] = relationship(
        "Proposal", back_populates="job", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Job(id={self.id}, title={self.title!r}, status={self.status})>"
