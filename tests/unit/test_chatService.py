"""Unit tests for chat content rules, conversation keys and message views."""

import uuid
from datetime import datetime, timezone

import pytest

from manpower.core.config import settings
from manpower.models.chat import ConversationKey, ConversationKind, Message
from manpower.services import chatService
from manpower.services.chatService import InvalidMessageError, MessageView


class TestValidateContent:

    def test_strips_whitespace(self):
        assert chatService.validate_content("  hello \n") == "hello"

    @pytest.mark.parametrize("content", ["", "   ", None])
    def test_empty_refused(self, content):
        with pytest.raises(InvalidMessageError, match="empty"):
            chatService.validate_content(content)

    def test_length_limit(self):
        chatService.validate_content("x" * settings.max_message_length)
        with pytest.raises(InvalidMessageError, match="maximum length"):
            chatService.validate_content("x" * (settings.max_message_length + 1))


class TestConversationKey:

    def test_parse_key(self):
        conversation_id = uuid.uuid4()
        key = chatService.parse_key("proposal", str(conversation_id))
        assert key == ConversationKey.proposal(conversation_id)
        assert key.column == "proposal_id"
        assert str(key) == f"proposal:{conversation_id}"

    def test_parse_key_rejects_unknown_kind(self):
        with pytest.raises(ValueError):
            chatService.parse_key("job", uuid.uuid4())

    def test_contract_and_proposal_keys_differ(self):
        same_id = uuid.uuid4()
        assert ConversationKey.contract(same_id) != ConversationKey.proposal(same_id)
        assert ConversationKey.contract(same_id).column == "contract_id"

    def test_message_anchors_on_one_column(self):
        contract_id = uuid.uuid4()
        message = Message.for_conversation(ConversationKey.contract(contract_id), uuid.uuid4(), "hi")
        assert message.kind == ConversationKind.CONTRACT
        assert message.contract_id == contract_id
        assert message.proposal_id is None


class TestMessageView:

    def test_payload(self):
        message_id, conversation_id, sender_id = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
        created = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        view = MessageView(
            id=message_id,
            kind=ConversationKind.CONTRACT,
            conversation_id=conversation_id,
            sender_id=sender_id,
            sender_name="Casey",
            content="hello",
            created_at=created,
        )
        assert view.to_payload() == {
            "id": str(message_id),
            "kind": "contract",
            "conversation_id": str(conversation_id),
            "sender_id": str(sender_id),
            "sender_name": "Casey",
            "content": "hello",
            "created_at": "2026-01-02T03:04:05+00:00",
            "pending": False,
        }

    def test_pending_view_has_no_id(self):
        view = MessageView(
            id=None,
            kind=ConversationKind.PROPOSAL,
            conversation_id=uuid.uuid4(),
            sender_id=uuid.uuid4(),
            sender_name=None,
            content="draft",
            created_at=datetime.now(timezone.utc),
            pending=True,
        )
        payload = view.to_payload()
        assert payload["id"] is None
        assert payload["pending"] is True
