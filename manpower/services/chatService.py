"""
Chat Service
============

Business logic for conversations. A conversation is anchored either on a
proposal (employee and job owner talk before hiring) or on a contract
(client and employee talk during the engagement); the anchor is always
given explicitly as a ``ConversationKey``.

Business rules:
  - Only the two parties of the anchor may read or write.
  - Content is stripped, must be non-empty and at most
    ``settings.max_message_length`` characters.
  - Messages are append-only and read back in ``created_at`` order
    (ties broken by id).
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from manpower.core.config import settings
from manpower.models import (
    Contract,
    ConversationKey,
    ConversationKind,
    Job,
    Message,
    Proposal,
    User,
)
from manpower.realtime.changeFeed import ChangeFeed

logger = logging.getLogger(__name__)

MESSAGES_TABLE = "messages"


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class ChatError(Exception):
    """Base exception for chat service errors."""


class ConversationNotFoundError(ChatError):
    def __init__(self, key: ConversationKey) -> None:
        self.key = key
        super().__init__(f"Conversation '{key}' not found.")


class NotParticipantError(ChatError):
    """Raised when the user is not a party to the conversation."""


class InvalidMessageError(ChatError):
    """Raised for empty or oversized message content."""


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MessageView:
    """Serializable message with the sender's display name resolved.

    ``pending`` entries are optimistic local copies that have not been
    stored yet; they have no id.
    """

    id: Optional[uuid.UUID]
    kind: ConversationKind
    conversation_id: uuid.UUID
    sender_id: uuid.UUID
    sender_name: Optional[str]
    content: str
    created_at: datetime
    pending: bool = False

    @classmethod
    def from_message(cls, message: Message, sender_name: Optional[str] = None) -> MessageView:
        if sender_name is None and "sender" in message.__dict__ and message.sender is not None:
            sender_name = message.sender.display_name
        return cls(
            id=message.id,
            kind=message.kind,
            conversation_id=message.conversation_key.id,
            sender_id=message.sender_id,
            sender_name=sender_name,
            content=message.content,
            created_at=message.created_at,
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": str(self.id) if self.id else None,
            "kind": self.kind.value,
            "conversation_id": str(self.conversation_id),
            "sender_id": str(self.sender_id),
            "sender_name": self.sender_name,
            "content": self.content,
            "created_at": self.created_at.isoformat(),
            "pending": self.pending,
        }


@dataclass(frozen=True)
class ConversationSummary:
    key: ConversationKey
    job_id: uuid.UUID
    job_title: str
    status: str
    counterpart_id: uuid.UUID
    counterpart_name: Optional[str]
    last_message_at: Optional[datetime] = None
    started_at: Optional[datetime] = None


@dataclass
class Participants:
    user_ids: set[uuid.UUID] = field(default_factory=set)
    job_title: str = ""


# ---------------------------------------------------------------------------
# Participants & validation
# ---------------------------------------------------------------------------

def parse_key(kind: str | ConversationKind, conversation_id: uuid.UUID | str) -> ConversationKey:
    """Build a key from loose input; raises ValueError for unknown kinds."""
    return ConversationKey(ConversationKind(kind), uuid.UUID(str(conversation_id)))


async def get_participants(db: AsyncSession, key: ConversationKey) -> Participants:
    if key.kind == ConversationKind.PROPOSAL:
        stmt = (
            select(Proposal.employee_id, Job.client_id, Job.title)
            .join(Job, Proposal.job_id == Job.id)
            .where(Proposal.id == key.id)
        )
    else:
        stmt = (
            select(Contract.employee_id, Contract.client_id, Job.title)
            .join(Job, Contract.job_id == Job.id)
            .where(Contract.id == key.id)
        )
    row = (await db.execute(stmt)).one_or_none()
    if row is None:
        raise ConversationNotFoundError(key)
    employee_id, client_id, title = row
    return Participants(user_ids={employee_id, client_id}, job_title=title)


async def verify_participant(db: AsyncSession, key: ConversationKey, user_id: uuid.UUID) -> Participants:
    participants = await get_participants(db, key)
    if user_id not in participants.user_ids:
        raise NotParticipantError("You are not a participant in this conversation.")
    return participants


def validate_content(content: str) -> str:
    text = (content or "").strip()
    if not text:
        raise InvalidMessageError("Message text cannot be empty.")
    if len(text) > settings.max_message_length:
        raise InvalidMessageError(
            f"Message exceeds maximum length of {settings.max_message_length} characters."
        )
    return text


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------

async def fetch_messages(db: AsyncSession, key: ConversationKey) -> Sequence[Message]:
    """All messages of a conversation, oldest first. No access check."""
    anchor = getattr(Message, key.column)
    stmt = (
        select(Message)
        .options(selectinload(Message.sender))
        .where(Message.kind == key.kind, anchor == key.id)
        .order_by(Message.created_at.asc(), Message.id.asc())
    )
    return (await db.execute(stmt)).scalars().all()


async def get_messages(db: AsyncSession, key: ConversationKey, user_id: uuid.UUID) -> list[MessageView]:
    await verify_participant(db, key, user_id)
    return [MessageView.from_message(message) for message in await fetch_messages(db, key)]


async def send_message(
    db: AsyncSession,
    key: ConversationKey,
    sender_id: uuid.UUID,
    content: str,
) -> Message:
    """Persist a message in the conversation; the caller commits.

    Raises:
        ConversationNotFoundError, NotParticipantError, InvalidMessageError.
    """
    text = validate_content(content)
    await verify_participant(db, key, sender_id)

    message = Message.for_conversation(key, sender_id, text)
    db.add(message)
    await db.flush()
    await db.refresh(message, attribute_names=["sender"])

    logger.info("Message %s created in %s by %s", message.id, key, sender_id)
    return message


def message_record(message: Message) -> dict[str, Any]:
    """Row image published on the change feed for an inserted message."""
    return {
        "id": str(message.id),
        "kind": message.kind.value,
        "contract_id": str(message.contract_id) if message.contract_id else None,
        "proposal_id": str(message.proposal_id) if message.proposal_id else None,
        "sender_id": str(message.sender_id),
        "content": message.content,
        "created_at": message.created_at.isoformat(),
    }


def publish_message(changes: ChangeFeed, message: Message) -> int:
    """Announce a committed message to change-feed subscribers."""
    return changes.publish_insert(MESSAGES_TABLE, message_record(message))


# ---------------------------------------------------------------------------
# Conversation list
# ---------------------------------------------------------------------------

async def _last_message_times(
    db: AsyncSession,
    column,
    ids: list[uuid.UUID],
) -> dict[uuid.UUID, datetime]:
    if not ids:
        return {}
    stmt = (
        select(column, func.max(Message.created_at))
        .where(column.in_(ids))
        .group_by(column)
    )
    return {anchor: last for anchor, last in (await db.execute(stmt)).all()}


async def list_conversations(db: AsyncSession, user: User) -> list[ConversationSummary]:
    """Every proposal and contract conversation the user takes part in,
    most recently active first."""
    proposals = (
        await db.execute(
            select(Proposal)
            .join(Job, Proposal.job_id == Job.id)
            .options(
                selectinload(Proposal.job).selectinload(Job.client),
                selectinload(Proposal.employee),
            )
            .where(or_(Proposal.employee_id == user.id, Job.client_id == user.id))
        )
    ).scalars().all()

    contracts = (
        await db.execute(
            select(Contract)
            .options(
                selectinload(Contract.job),
                selectinload(Contract.client),
                selectinload(Contract.employee),
            )
            .where(or_(Contract.client_id == user.id, Contract.employee_id == user.id))
        )
    ).scalars().all()

    proposal_last = await _last_message_times(db, Message.proposal_id, [p.id for p in proposals])
    contract_last = await _last_message_times(db, Message.contract_id, [c.id for c in contracts])

    summaries: list[ConversationSummary] = []
    for proposal in proposals:
        is_employee = proposal.employee_id == user.id
        counterpart = proposal.job.client if is_employee else proposal.employee
        summaries.append(
            ConversationSummary(
                key=ConversationKey.proposal(proposal.id),
                job_id=proposal.job_id,
                job_title=proposal.job.title,
                status=proposal.status.value,
                counterpart_id=counterpart.id,
                counterpart_name=counterpart.display_name,
                last_message_at=proposal_last.get(proposal.id),
                started_at=proposal.created_at,
            )
        )
    for contract in contracts:
        counterpart = contract.employee if contract.client_id == user.id else contract.client
        summaries.append(
            ConversationSummary(
                key=ConversationKey.contract(contract.id),
                job_id=contract.job_id,
                job_title=contract.job.title,
                status=contract.status.value,
                counterpart_id=counterpart.id,
                counterpart_name=counterpart.display_name,
                last_message_at=contract_last.get(contract.id),
                started_at=contract.created_at,
            )
        )

    summaries.sort(key=lambda s: _sort_key(s.last_message_at or s.started_at), reverse=True)
    return summaries


def _sort_key(moment: Optional[datetime]) -> float:
    if moment is None:
        return 0.0
    # SQLite hands back naive datetimes; ordering only needs consistency
    return moment.replace(tzinfo=None).timestamp()
