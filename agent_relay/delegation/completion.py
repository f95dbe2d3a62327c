"""Single-use completion registry for pending delegations.

Each pending delegation owns one asyncio.Future and one timer handle, keyed
by the child conversation ID. Whoever settles a delegation first (report,
timeout, cancellation, executor failure, orphan cleanup) must take() the
entry; take() pops under a lock, so every later settler gets None and does
nothing. Settling always cancels the timer.
"""

from __future__ import annotations

import asyncio
import logging
from threading import Lock
from typing import Callable, Dict, List, Optional


logger = logging.getLogger(__name__)


class PendingCompletion:
    """Completion handle for one delegation."""

    def __init__(
        self,
        conversation_id: str,
        request_id: str,
        future: "asyncio.Future[str]",
    ):
        self.conversation_id = conversation_id
        self.request_id = request_id
        self.future = future
        self.timer: Optional[asyncio.TimerHandle] = None

    @property
    def done(self) -> bool:
        return self.future.done()

    def cancel_timer(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None

    def resolve(self, value: str) -> bool:
        """Fulfil the future. Returns False if it was already settled."""
        self.cancel_timer()
        if self.future.done():
            return False
        self.future.set_result(value)
        return True

    def reject(self, error: BaseException) -> bool:
        """Fail the future. Returns False if it was already settled."""
        self.cancel_timer()
        if self.future.done():
            return False
        self.future.set_exception(error)
        return True


class CompletionRegistry:
    """Lock-protected map of conversation ID to PendingCompletion."""

    def __init__(self):
        self._pending: Dict[str, PendingCompletion] = {}
        self._lock = Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    def __contains__(self, conversation_id: object) -> bool:
        with self._lock:
            return conversation_id in self._pending

    def register(
        self,
        conversation_id: str,
        request_id: str,
        timeout: Optional[float] = None,
        on_timeout: Optional[Callable[[str], None]] = None,
    ) -> PendingCompletion:
        """Create the pending completion and arm its timer.

        Must be called from a running event loop.

        Raises:
            ValueError: If a completion is already pending for the conversation
        """
        loop = asyncio.get_running_loop()
        pending = PendingCompletion(conversation_id, request_id, loop.create_future())
        with self._lock:
            if conversation_id in self._pending:
                raise ValueError(f"Completion already pending for conversation {conversation_id}")
            self._pending[conversation_id] = pending
        if timeout is not None and on_timeout is not None:
            pending.timer = loop.call_later(timeout, on_timeout, conversation_id)
        return pending

    def get(self, conversation_id: str) -> Optional[PendingCompletion]:
        with self._lock:
            return self._pending.get(conversation_id)

    def take(self, conversation_id: str) -> Optional[PendingCompletion]:
        """Remove and return the pending completion, or None if already taken."""
        with self._lock:
            return self._pending.pop(conversation_id, None)

    def conversation_ids(self) -> List[str]:
        with self._lock:
            return list(self._pending)
