"""
Conversation API Routes
=======================

REST access to contract and proposal conversations. Live updates are
delivered over the ``/chat`` Socket.IO namespace; messages posted here
are announced there as well.

Routes:
  GET  /api/v1/conversations                          -- conversations of the caller
  GET  /api/v1/conversations/{kind}/{id}/messages     -- history, oldest first
  POST /api/v1/conversations/{kind}/{id}/messages     -- post a message
"""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, HTTPException, status

from manpower.api.deps import CurrentUser, DBSession, Gateway
from manpower.api.schemas.chat import (
    ConversationListResponse,
    ConversationOut,
    MessageListResponse,
    MessageOut,
    SendMessageRequest,
    SendMessageResponse,
)
from manpower.models.chat import ConversationKey, ConversationKind
from manpower.realtime import socketServer
from manpower.services import chatService
from manpower.services.chatService import MessageView

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/conversations", tags=["Conversations"])


def _chat_error(exc: chatService.ChatError) -> HTTPException:
    if isinstance(exc, chatService.ConversationNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, chatService.NotParticipantError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))


@router.get("", response_model=ConversationListResponse, summary="Own conversations")
async def list_conversations(db: DBSession, current_user: CurrentUser) -> ConversationListResponse:
    summaries = await chatService.list_conversations(db, current_user)
    return ConversationListResponse(
        data=[
            ConversationOut(
                kind=summary.key.kind,
                id=summary.key.id,
                job_id=summary.job_id,
                job_title=summary.job_title,
                status=summary.status,
                counterpart_id=summary.counterpart_id,
                counterpart_name=summary.counterpart_name,
                last_message_at=summary.last_message_at,
            )
            for summary in summaries
        ]
    )


@router.get(
    "/{kind}/{conversation_id}/messages",
    response_model=MessageListResponse,
    summary="Conversation history",
)
async def get_messages(
    kind: ConversationKind,
    conversation_id: uuid.UUID,
    db: DBSession,
    current_user: CurrentUser,
) -> MessageListResponse:
    key = ConversationKey(kind, conversation_id)
    try:
        views = await chatService.get_messages(db, key, current_user.id)
    except chatService.ChatError as exc:
        raise _chat_error(exc)
    return MessageListResponse(data=[MessageOut.model_validate(view) for view in views])


@router.post(
    "/{kind}/{conversation_id}/messages",
    response_model=SendMessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Post a message",
)
async def send_message(
    kind: ConversationKind,
    conversation_id: uuid.UUID,
    body: SendMessageRequest,
    db: DBSession,
    gateway: Gateway,
    current_user: CurrentUser,
) -> SendMessageResponse:
    key = ConversationKey(kind, conversation_id)
    try:
        message = await chatService.send_message(db, key, current_user.id, body.content)
    except chatService.ChatError as exc:
        raise _chat_error(exc)

    view = MessageView.from_message(message)
    await db.commit()

    chatService.publish_message(gateway.changes, message)
    await socketServer.broadcast_new_message(view)
    return SendMessageResponse(data=MessageOut.model_validate(view))
