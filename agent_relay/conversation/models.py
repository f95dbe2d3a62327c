"""Conversation records and their status state machine.

A conversation is created for every delegated child execution and for every
entry agent that is adopted as a root. Status transitions:
- active → completed (report delivered or explicit termination)
- active → failed (executor failure, timeout, orphaned completion)
- active → cancelled (explicit cancellation)

Terminal states have no outgoing transitions.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set


class ConversationStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


VALID_CONVERSATION_TRANSITIONS: Dict[ConversationStatus, Set[ConversationStatus]] = {
    ConversationStatus.ACTIVE: {
        ConversationStatus.COMPLETED,
        ConversationStatus.FAILED,
        ConversationStatus.CANCELLED,
    },
    ConversationStatus.COMPLETED: set(),
    ConversationStatus.FAILED: set(),
    ConversationStatus.CANCELLED: set(),
}


def is_valid_transition(from_status: ConversationStatus, to_status: ConversationStatus) -> bool:
    return to_status in VALID_CONVERSATION_TRANSITIONS.get(from_status, set())


@dataclass
class Conversation:
    """A tracked delegation conversation.

    Attributes:
        id: Conversation ID
        agent_name: Agent running in this conversation
        parent_id: Parent conversation ID, None for roots
        child_ids: Ordered, duplicate-free child conversation IDs
        delegation_chain: Ancestor agent names, root first
        status: Current status
        failure_cause: Why the conversation failed, if it did
    """

    id: str
    agent_name: str
    parent_id: Optional[str] = None
    child_ids: List[str] = field(default_factory=list)
    delegation_chain: List[str] = field(default_factory=list)
    status: ConversationStatus = ConversationStatus.ACTIVE
    created_at: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.time)
    failure_cause: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == ConversationStatus.ACTIVE

    def add_child(self, child_id: str) -> None:
        if child_id not in self.child_ids:
            self.child_ids.append(child_id)

    def remove_child(self, child_id: str) -> bool:
        if child_id in self.child_ids:
            self.child_ids.remove(child_id)
            return True
        return False


@dataclass
class ConversationStats:
    total: int = 0
    active: int = 0
    completed: int = 0
    failed: int = 0
    cancelled: int = 0
    roots: int = 0
