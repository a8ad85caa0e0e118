"""
Pydantic v2 schemas for conversation API endpoints.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from manpower.core.config import settings
from manpower.models.chat import ConversationKind


class SendMessageRequest(BaseModel):
    """Request body for posting a message to a conversation."""

    content: str = Field(
        ...,
        min_length=1,
        max_length=settings.max_message_length,
        description=f"Message text (max {settings.max_message_length} characters)",
    )


class MessageOut(BaseModel):
    """A single message, as returned by history and send endpoints."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    kind: ConversationKind
    conversation_id: uuid.UUID
    sender_id: uuid.UUID
    sender_name: Optional[str] = None
    content: str
    created_at: datetime


class MessageListResponse(BaseModel):
    data: list[MessageOut]


class SendMessageResponse(BaseModel):
    data: MessageOut
    message: str = "Message sent."


class ConversationOut(BaseModel):
    kind: ConversationKind
    id: uuid.UUID
    job_id: uuid.UUID
    job_title: str
    status: str
    counterpart_id: uuid.UUID
    counterpart_name: Optional[str] = None
    last_message_at: Optional[datetime] = None


class ConversationListResponse(BaseModel):
    data: list[ConversationOut]
