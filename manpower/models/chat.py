"""
SQLAlchemy model for conversation messages.
Corresponds to migration 0001_initial_schema.

A message belongs to exactly one conversation, anchored either on a
contract or on a (pre-contract) proposal. ``kind`` names the anchor
explicitly and the ``ck_messages_single_anchor`` constraint keeps it in
step with the two foreign keys. Messages are append-only.
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Enum, ForeignKey, Index, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, UUIDPrimaryKeyMixin, utcnow


class ConversationKind(str, enum.Enum):
    CONTRACT = "contract"
    PROPOSAL = "proposal"


@dataclass(frozen=True)
class ConversationKey:
    """Tagged conversation identifier: which anchor table, and which row."""

    kind: ConversationKind
    id: uuid.UUID

    @property
    def column(self) -> str:
        return "contract_id" if self.kind == ConversationKind.CONTRACT else "proposal_id"

    @classmethod
    def contract(cls, contract_id: uuid.UUID) -> ConversationKey:
        return cls(ConversationKind.CONTRACT, contract_id)

    @classmethod
    def proposal(cls, proposal_id: uuid.UUID) -> ConversationKey:
        return cls(ConversationKind.PROPOSAL, proposal_id)

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.id}"


class Message(UUIDPrimaryKeyMixin, Base):
    """A single message in a contract or proposal conversation."""

    __tablename__ = "messages"
    __table_args__ = (
        CheckConstraint(
            "(kind = 'CONTRACT' AND contract_id IS NOT NULL AND proposal_id IS NULL)"
            " OR (kind = 'PROPOSAL' AND proposal_id IS NOT NULL AND contract_id IS NULL)",
            name="ck_messages_single_anchor",
        ),
        Index("ix_messages_contract_created", "contract_id", "created_at"),
        Index("ix_messages_proposal_created", "proposal_id", "created_at"),
    )

    kind: Mapped[ConversationKind] = mapped_column(
        Enum(ConversationKind, name="conversation_kind"),
        nullable=False,
    )
    contract_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("contracts.id", ondelete="CASCADE"),
        nullable=True,
    )
    proposal_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("proposals.id", ondelete="CASCADE"),
        nullable=True,
    )
    sender_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )

    # Relationships
    sender: Mapped["User"] = relationship("User")

    @property
    def conversation_key(self) -> ConversationKey:
        anchor = self.contract_id if self.kind == ConversationKind.CONTRACT else self.proposal_id
        return ConversationKey(self.kind, anchor)

    @classmethod
    def for_conversation(
        cls,
        key: ConversationKey,
        sender_id: uuid.UUID,
        content: str,
    ) -> Message:
        """Build a message anchored on exactly the key's column."""
        if key.kind == ConversationKind.CONTRACT:
            return cls(kind=key.kind, contract_id=key.id, sender_id=sender_id, content=content)
        return cls(kind=key.kind, proposal_id=key.id, sender_id=sender_id, content=content)

    def __repr__(self) -> str:
        return (
            f"<Message(id={self.id}, conversation={self.kind}, "
            f"sender_id={self.sender_id})>"
        )
