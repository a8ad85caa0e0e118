"""
SQLAlchemy model for contracts.
Corresponds to migration 0001_initial_schema.

A contract is only ever created by accepting a proposal, and
``proposal_id`` is unique so a proposal yields at most one contract.
"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Numeric, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class ContractStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Contract(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "contracts"

    job_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("jobs.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    proposal_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("proposals.id", ondelete="RESTRICT"),
        nullable=False,
        unique=True,
    )
    agreed_rate: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0")
    )
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    status: Mapped[ContractStatus] = mapped_column(
        Enum(ContractStatus, name="contract_status"),
        nullable=False,
        default=ContractStatus.ACTIVE,
        server_default="ACTIVE",
    )

    # Relationships
    job: Mapped["Job"] = relationship("Job")
    proposal: Mapped["Proposal"] = relationship("Proposal")
    client: Mapped["User"] = relationship("User", foreign_keys=[client_id])
    employee: Mapped["User"] = relationship("User", foreign_keys=[employee_id])

    def __repr__(self) -> str:
        return (
            f"<Contract(id={self.id}, proposal={self.proposal_id}, "
            f"rate={self.agreed_rate}, status={self.status})>"
        )
