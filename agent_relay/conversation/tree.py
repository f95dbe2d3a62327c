"""Conversation tree lifecycle manager.

Tracks every delegated conversation together with its parent/child links and
delegation chain. The tree is owned by one DelegationEngine and is only
touched from that engine's event loop.

Status changes are checked against VALID_CONVERSATION_TRANSITIONS and return
Result values instead of raising, since most callers are settlement paths
that must not fail.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Dict, Iterator, List, Optional

from agent_relay.conversation.models import (
    Conversation,
    ConversationStats,
    ConversationStatus,
    is_valid_transition,
)
from agent_relay.core.result import Err, Ok, Result


logger = logging.getLogger(__name__)

DEFAULT_MAX_IDLE_SECONDS = 3600.0


def generate_conversation_id(agent_name: str) -> str:
    return f"{agent_name}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"


class ConversationTree:
    """In-memory forest of delegation conversations."""

    def __init__(self, max_idle_seconds: float = DEFAULT_MAX_IDLE_SECONDS):
        self.max_idle_seconds = max_idle_seconds
        self._conversations: Dict[str, Conversation] = {}

    def __len__(self) -> int:
        return len(self._conversations)

    def __contains__(self, conversation_id: object) -> bool:
        return conversation_id in self._conversations

    def __iter__(self) -> Iterator[Conversation]:
        return iter(list(self._conversations.values()))

    def create(
        self,
        agent_name: str,
        parent_id: Optional[str] = None,
        *,
        conversation_id: Optional[str] = None,
        delegation_chain: Optional[List[str]] = None,
    ) -> str:
        """Create a conversation and link it under its parent.

        Args:
            agent_name: Agent that runs in the new conversation
            parent_id: Parent conversation, None for a root
            conversation_id: Externally allocated ID (generated when omitted)
            delegation_chain: Chain for a root; ignored when parent_id is set

        Returns:
            The new conversation ID

        Raises:
            KeyError: If parent_id is not tracked
            ValueError: If conversation_id is already tracked
        """
        conversation_id = conversation_id or generate_conversation_id(agent_name)
        if conversation_id in self._conversations:
            raise ValueError(f"Conversation already tracked: {conversation_id}")

        if parent_id is not None:
            parent = self._conversations.get(parent_id)
            if parent is None:
                raise KeyError(f"Parent conversation not found: {parent_id}")
            chain = list(parent.delegation_chain) + [parent.agent_name]
            parent.add_child(conversation_id)
            parent.last_activity = time.time()
        else:
            chain = list(delegation_chain or [])

        self._conversations[conversation_id] = Conversation(
            id=conversation_id,
            agent_name=agent_name,
            parent_id=parent_id,
            delegation_chain=chain,
        )
        logger.debug(
            f"Created conversation {conversation_id} for {agent_name} "
            f"(parent={parent_id}, chain={chain})"
        )
        return conversation_id

    def get(self, conversation_id: str) -> Optional[Conversation]:
        return self._conversations.get(conversation_id)

    def children_of(self, parent_id: str) -> List[Conversation]:
        """Return every tracked conversation whose parent is parent_id."""
        return [c for c in self._conversations.values() if c.parent_id == parent_id]

    def active(self) -> List[Conversation]:
        return [c for c in self._conversations.values() if c.is_active]

    def subtree_ids(self, conversation_id: str) -> List[str]:
        """Snapshot of a conversation's descendants followed by itself (post-order)."""
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            return []
        ids: List[str] = []
        for child_id in list(conversation.child_ids):
            ids.extend(self.subtree_ids(child_id))
        ids.append(conversation_id)
        return ids

    def touch(self, conversation_id: str) -> None:
        conversation = self._conversations.get(conversation_id)
        if conversation is not None:
            conversation.last_activity = time.time()

    def _transition(
        self,
        conversation_id: str,
        to_status: ConversationStatus,
        cause: Optional[str] = None,
    ) -> Result[None]:
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            return Err(f"Conversation not found: {conversation_id}", code="NOT_FOUND")
        if not is_valid_transition(conversation.status, to_status):
            return Err(
                f"Invalid conversation transition: {conversation.status.value} -> {to_status.value}",
                code="INVALID_TRANSITION",
            )
        conversation.status = to_status
        conversation.last_activity = time.time()
        if cause is not None:
            conversation.failure_cause = cause
        logger.debug(f"Conversation {conversation_id} -> {to_status.value}")
        return Ok(None)

    def _detach(self, conversation: Conversation) -> None:
        if conversation.parent_id is None:
            return
        parent = self._conversations.get(conversation.parent_id)
        if parent is not None:
            parent.remove_child(conversation.id)

    def terminate(self, conversation_id: str) -> Result[None]:
        """Complete an active conversation and detach it from its parent.

        A conversation that already reached a terminal status keeps that
        status; detaching is idempotent either way.
        """
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            return Err(f"Conversation not found: {conversation_id}", code="NOT_FOUND")

        result: Result[None] = Ok(None)
        if conversation.is_active:
            result = self._transition(conversation_id, ConversationStatus.COMPLETED)
        else:
            conversation.last_activity = time.time()
        self._detach(conversation)
        return result

    def mark_failed(self, conversation_id: str, cause: Optional[str] = None) -> Result[None]:
        return self._transition(conversation_id, ConversationStatus.FAILED, cause=cause or "error")

    def mark_cancelled(self, conversation_id: str) -> Result[None]:
        return self._transition(conversation_id, ConversationStatus.CANCELLED)

    def terminate_tree(self, conversation_id: str) -> List[str]:
        """Terminate a conversation and all descendants, children first.

        Returns:
            IDs that were visited, in termination order
        """
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            return []

        terminated: List[str] = []
        # terminate() mutates child_ids, so walk a snapshot
        for child_id in list(conversation.child_ids):
            terminated.extend(self.terminate_tree(child_id))
        self.terminate(conversation_id)
        terminated.append(conversation_id)
        return terminated

    def cleanup_orphans(
        self,
        now: Optional[float] = None,
        max_idle: Optional[float] = None,
    ) -> List[str]:
        """Remove finished conversations that are no longer needed.

        A conversation is removed when it is not active and either idle for
        longer than max_idle, a root without children, or failed/cancelled.
        Active conversations are never removed. Children of a removed parent
        are re-rooted.

        Returns:
            IDs of removed conversations
        """
        now = time.time() if now is None else now
        max_idle = self.max_idle_seconds if max_idle is None else max_idle

        doomed: List[str] = []
        for conversation in self._conversations.values():
            if conversation.is_active:
                continue
            idle = now - conversation.last_activity > max_idle
            lone_root = conversation.parent_id is None and not conversation.child_ids
            aborted = conversation.status in (
                ConversationStatus.FAILED,
                ConversationStatus.CANCELLED,
            )
            if idle or lone_root or aborted:
                doomed.append(conversation.id)

        for conversation_id in doomed:
            conversation = self._conversations.pop(conversation_id)
            self._detach(conversation)
            for child_id in conversation.child_ids:
                child = self._conversations.get(child_id)
                if child is not None and child.parent_id == conversation_id:
                    child.parent_id = None

        if doomed:
            logger.debug(f"Removed {len(doomed)} finished conversation(s)")
        return doomed

    def stats(self) -> ConversationStats:
        stats = ConversationStats(total=len(self._conversations))
        for conversation in self._conversations.values():
            if conversation.parent_id is None:
                stats.roots += 1
            if conversation.status == ConversationStatus.ACTIVE:
                stats.active += 1
            elif conversation.status == ConversationStatus.COMPLETED:
                stats.completed += 1
            elif conversation.status == ConversationStatus.FAILED:
                stats.failed += 1
            elif conversation.status == ConversationStatus.CANCELLED:
                stats.cancelled += 1
        return stats
