"""Conversation tracking for delegated work."""

from agent_relay.conversation.models import (
    VALID_CONVERSATION_TRANSITIONS,
    Conversation,
    ConversationStats,
    ConversationStatus,
    is_valid_transition,
)
from agent_relay.conversation.tree import ConversationTree, generate_conversation_id

__all__ = [
    "VALID_CONVERSATION_TRANSITIONS",
    "Conversation",
    "ConversationStats",
    "ConversationStatus",
    "is_valid_transition",
    "ConversationTree",
    "generate_conversation_id",
]
