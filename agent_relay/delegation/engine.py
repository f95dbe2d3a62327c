"""Delegation Engine module for agent-to-agent work handoff.

Provides the DelegationEngine class, which validates a delegation against the
configured policies and the live delegation chain, starts the target agent in
a child conversation, and waits until that agent reports out (or the
delegation times out, fails, or is cancelled).

Settlement protocol: every pending delegation has exactly one entry in the
CompletionRegistry. Report, timeout, cancellation, executor failure and
orphan cleanup all race to take() that entry; the winner settles the future
and does the bookkeeping, the others are no-ops.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
import uuid
from typing import Any, Dict, List, Optional, Set

from agent_relay.agents.entry import resolve_entry_agent
from agent_relay.agents.models import RelayConfiguration
from agent_relay.conversation.models import Conversation, ConversationStats
from agent_relay.conversation.tree import ConversationTree
from agent_relay.core.exceptions import (
    CircularDelegationError,
    ConfigurationError,
    DelegationCancelledError,
    DelegationError,
    DelegationTimeoutError,
    ExecutionError,
    PermissionDeniedError,
)
from agent_relay.executor.protocols import (
    AgentExecutionContext,
    AgentExecutor,
    ConfigurationProvider,
)
from agent_relay.permissions.evaluate import PermissionEvaluator, is_delegation_allowed

from .completion import CompletionRegistry, PendingCompletion
from .types import (
    DelegationConfig,
    DelegationHistory,
    DelegationOutcome,
    DelegationReport,
    DelegationRequest,
    DelegationStats,
)


logger = logging.getLogger(__name__)


def build_delegation_instruction(work_description: str, report_expectations: str) -> str:
    """Build the instruction handed to a delegated agent."""
    return "\n".join(
        [
            "DELEGATION REQUEST:",
            "",
            "Work Description:",
            work_description,
            "",
            "Report Expectations:",
            report_expectations,
            "",
            'Please complete the requested work and use the "report_out" tool to provide your findings.',
            "Your report should address the expectations outlined above.",
        ]
    )


def generate_delegation_id(from_agent: str, to_agent: str) -> str:
    return f"{from_agent}->{to_agent}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


class DelegationEngine:
    """Coordinates delegated work between configured agents.

    Attributes:
        config: Timeouts, retention windows and lifecycle callbacks.
        provider: Source of configuration snapshots.
        executor: Runs agent contexts.
        tree: Conversation tree tracking every delegation.
        _requests: Active delegation requests by ID.
        _completions: Pending completions by child conversation ID.
        _reports: Delivered reports by conversation ID.
        _tasks: Background executor tasks, held until done.
    """

    def __init__(
        self,
        configuration_provider: ConfigurationProvider,
        executor: AgentExecutor,
        config: Optional[DelegationConfig] = None,
        conversation_tree: Optional[ConversationTree] = None,
    ):
        """Initialize the delegation engine.

        Args:
            configuration_provider: Provider of configuration snapshots.
            executor: Executor used to start and run agents.
            config: Delegation configuration (defaults to DelegationConfig()).
            conversation_tree: Conversation tree to use (a new one by default).
        """
        self.config = config or DelegationConfig()
        self.provider = configuration_provider
        self.executor = executor
        self.tree = conversation_tree or ConversationTree(
            max_idle_seconds=self.config.orphan_max_idle_seconds
        )
        self._requests: Dict[str, DelegationRequest] = {}
        self._completions = CompletionRegistry()
        self._reports: Dict[str, DelegationReport] = {}
        self._tasks: Set["asyncio.Task[Any]"] = set()

    async def _load_configuration(self) -> RelayConfiguration:
        try:
            return await self.provider.load_configuration()
        except DelegationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"Failed to load configuration: {e}") from e

    def _find_context(self, agent_name: str) -> Optional[AgentExecutionContext]:
        """Locate a live context for an agent.

        Direct lookup first, then a scan of active contexts. A context whose
        conversation has a pending completion wins over one that does not.
        """
        direct = self.executor.get_agent_context(agent_name)
        candidates: List[AgentExecutionContext] = [direct] if direct is not None else []
        for context in self.executor.get_active_agents():
            if context.agent_name == agent_name and context is not direct:
                candidates.append(context)

        for context in candidates:
            if context.conversation_id in self._completions:
                return context
        return candidates[0] if candidates else None

    def _find_context_by_conversation(self, conversation_id: str) -> Optional[AgentExecutionContext]:
        for context in self.executor.get_active_agents():
            if context.conversation_id == conversation_id:
                return context
        return None

    def _ensure_tracked(self, context: AgentExecutionContext) -> str:
        """Adopt a context's conversation as a tree root if it is not tracked yet."""
        if context.conversation_id not in self.tree:
            self.tree.create(
                context.agent_name,
                conversation_id=context.conversation_id,
                delegation_chain=list(context.delegation_chain),
            )
        return context.conversation_id

    async def _invoke_callback(self, callback: Any, *args: Any) -> None:
        try:
            result = callback(*args)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Delegation callback failed")

    async def _notify_start(self, request: DelegationRequest) -> None:
        if self.config.on_delegation_start is not None:
            await self._invoke_callback(self.config.on_delegation_start, request)

    def _notify_settled(self, request: Optional[DelegationRequest], outcome: DelegationOutcome) -> None:
        if request is None or self.config.on_delegation_settled is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"No running event loop, skipping settled callback for {request.id}")
            return
        self._track(loop.create_task(self._invoke_callback(self.config.on_delegation_settled, request, outcome)))

    def _track(self, task: "asyncio.Task[Any]") -> None:
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def is_valid_delegation(self, from_agent: str, to_agent: str) -> bool:
        """Check whether from_agent's policy permits delegating to to_agent.

        Returns False when either agent is not configured or the
        configuration cannot be loaded.
        """
        try:
            configuration = await self._load_configuration()
        except ConfigurationError:
            logger.exception(f"Error validating delegation from {from_agent} to {to_agent}")
            return False
        return PermissionEvaluator.evaluate(configuration, from_agent, to_agent)

    async def delegate_work(
        self,
        from_agent: str,
        to_agent: str,
        work_description: str,
        report_expectations: str,
        *,
        timeout: Optional[float] = None,
    ) -> str:
        """Delegate work and wait for the target agent's report.

        Args:
            from_agent: Delegating agent
            to_agent: Agent that should do the work
            work_description: What to do
            report_expectations: What the report should contain
            timeout: Per-call ceiling in seconds (config.timeout_seconds by default)

        Returns:
            The report passed to report_out by the target agent

        Raises:
            ConfigurationError: Source or target agent is not configured
            PermissionDeniedError: Source policy forbids the target
            CircularDelegationError: Target is already in the live delegation chain
            ExecutionError: No live source context, or the target failed
            DelegationTimeoutError: No report within the ceiling
            DelegationCancelledError: Delegation was cancelled
        """
        ceiling = self.config.timeout_seconds if timeout is None else timeout
        if ceiling <= 0:
            raise ValueError(f"timeout must be > 0, got {ceiling}")

        configuration = await self._load_configuration()
        source = configuration.get_agent(from_agent)
        if source is None:
            raise ConfigurationError(
                f'Source agent "{from_agent}" not found',
                agent_name=from_agent,
                details={"side": "source"},
            )
        target = configuration.get_agent(to_agent)
        if target is None:
            raise ConfigurationError(
                f'Target agent "{to_agent}" not found',
                agent_name=from_agent,
                details={"side": "target", "target_agent": to_agent},
            )

        if not is_delegation_allowed(source.delegation_permissions, from_agent, to_agent):
            raise PermissionDeniedError(
                f'Delegation from "{from_agent}" to "{to_agent}" is not allowed',
                agent_name=from_agent,
                details={"from_agent": from_agent, "to_agent": to_agent},
            )

        parent_context = self._find_context(from_agent)
        chain = parent_context.active_chain if parent_context is not None else [from_agent]
        if to_agent in chain:
            raise CircularDelegationError(
                f'Circular delegation detected: "{from_agent}" -> "{to_agent}" '
                f"would loop through {' -> '.join(chain)}",
                agent_name=from_agent,
                chain=chain,
                details={"from_agent": from_agent, "to_agent": to_agent},
            )
        if parent_context is None:
            raise ExecutionError(
                f'Parent agent context not found for "{from_agent}"',
                agent_name=from_agent,
            )

        request = DelegationRequest(
            id=generate_delegation_id(from_agent, to_agent),
            from_agent=from_agent,
            to_agent=to_agent,
            work_description=work_description,
            report_expectations=report_expectations,
        )
        self._requests[request.id] = request
        conversation_id: Optional[str] = None
        child: Optional[AgentExecutionContext] = None

        # Any await below may be cancelled by the caller; _abandon unwinds what exists so far
        try:
            parent_conversation_id = self._ensure_tracked(parent_context)
            conversation_id = self.tree.create(to_agent, parent_conversation_id)
            request.conversation_id = conversation_id

            try:
                child = await self.executor.initialize_child_agent(target, parent_context, configuration)
            except Exception as e:
                self._requests.pop(request.id, None)
                self.tree.mark_failed(conversation_id, cause="initialization")
                if isinstance(e, DelegationError):
                    raise
                raise ExecutionError(
                    f'Failed to initialize "{to_agent}": {e}',
                    agent_name=from_agent,
                    details={"to_agent": to_agent},
                ) from e

            child.conversation_id = conversation_id
            child.parent_conversation_id = parent_conversation_id

            pending = self._completions.register(
                conversation_id,
                request.id,
                timeout=ceiling,
                on_timeout=lambda cid: self._on_timeout(cid, ceiling),
            )
            await self._notify_start(request)

            instruction = build_delegation_instruction(work_description, report_expectations)
            self._track(asyncio.create_task(self._run_child(request, child, instruction)))
            logger.info(f"Delegation {request.id} started ({from_agent} -> {to_agent})")

            return await pending.future
        except asyncio.CancelledError:
            self._abandon(request, conversation_id, child_started=child is not None)
            raise

    async def _run_child(
        self,
        request: DelegationRequest,
        child: AgentExecutionContext,
        instruction: str,
    ) -> None:
        """Run the delegated agent; its result arrives through report_out."""
        try:
            await self.executor.execute_agent(child, instruction)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._on_execution_failed(request, child.conversation_id, e)

    def _on_execution_failed(self, request: DelegationRequest, conversation_id: str, error: Exception) -> None:
        self.tree.mark_failed(conversation_id, cause="execution_error")
        pending = self._completions.take(conversation_id)
        if pending is None:
            logger.warning(f"Ignoring late failure of {request.to_agent} in {conversation_id}: {error}")
            return

        self._requests.pop(pending.request_id, None)
        self.executor.terminate_agent_by_conversation(conversation_id)
        pending.reject(
            ExecutionError(
                f'Agent execution failed for "{request.to_agent}": {error}',
                agent_name=request.from_agent,
                details={"to_agent": request.to_agent, "conversation_id": conversation_id},
            )
        )
        logger.error(f"Delegation {request.id} failed: {error}")
        self._notify_settled(request, DelegationOutcome.FAILED)

    def _on_timeout(self, conversation_id: str, ceiling: float) -> None:
        pending = self._completions.take(conversation_id)
        if pending is None:
            return

        request = self._requests.pop(pending.request_id, None)
        self.tree.mark_failed(conversation_id, cause="timeout")
        to_agent = request.to_agent if request else None
        pending.reject(
            DelegationTimeoutError(
                f'Delegation to "{to_agent}" timed out after {ceiling}s',
                agent_name=request.from_agent if request else None,
                details={
                    "to_agent": to_agent,
                    "conversation_id": conversation_id,
                    "timeout_seconds": ceiling,
                },
            )
        )
        logger.warning(f"Delegation {pending.request_id} timed out after {ceiling}s")
        self._notify_settled(request, DelegationOutcome.TIMEOUT)

    def _abandon(
        self,
        request: DelegationRequest,
        conversation_id: Optional[str],
        child_started: bool,
    ) -> None:
        """Clean up after the awaiting caller was cancelled.

        The caller may be cancelled while the child is being initialized,
        while the start callback runs, or while waiting for the report. A
        delegation already settled by another path is left alone.
        """
        pending = self._completions.take(conversation_id) if conversation_id is not None else None
        if pending is None and request.id not in self._requests:
            return
        if pending is not None:
            pending.cancel_timer()

        self._requests.pop(request.id, None)
        if conversation_id is not None:
            self.tree.mark_cancelled(conversation_id)
            if child_started:
                self.executor.terminate_agent_by_conversation(conversation_id)
        logger.info(f"Delegation {request.id} abandoned by its caller")
        if pending is not None:
            self._notify_settled(request, DelegationOutcome.CANCELLED)

    def report_out(self, agent_name: str, report: str) -> None:
        """Deliver an agent's report to the delegation waiting on it.

        Never raises. A report with no pending delegation (late, or from a
        root agent) is stored and the conversation is still closed.
        """
        try:
            context = self._find_context(agent_name)
            if context is None:
                logger.warning(f'Ignoring report from "{agent_name}": no active context')
                return
            self._process_report(context, report)
        except Exception:
            logger.exception(f'Error in report_out for agent "{agent_name}"')

    def _process_report(self, context: AgentExecutionContext, report: str) -> None:
        conversation_id = context.conversation_id
        self._reports[conversation_id] = DelegationReport(
            agent_name=context.agent_name,
            report=report,
            conversation_id=conversation_id,
        )
        self.tree.touch(conversation_id)

        pending = self._completions.take(conversation_id)
        request: Optional[DelegationRequest] = None
        if pending is not None:
            request = self._requests.pop(pending.request_id, None)
            pending.resolve(report)
            logger.info(f"Delegation {pending.request_id} completed by {context.agent_name}")
        else:
            request_id = self._find_request_id(conversation_id)
            if request_id is not None:
                request = self._requests.pop(request_id, None)
            logger.debug(f"Report from {context.agent_name} in {conversation_id} had no pending delegation")

        self.tree.terminate(conversation_id)
        self.executor.terminate_agent_by_conversation(conversation_id)

        if pending is not None:
            self._notify_settled(request, DelegationOutcome.COMPLETED)

    def _find_request_id(self, conversation_id: str) -> Optional[str]:
        for request_id, request in self._requests.items():
            if request.conversation_id == conversation_id:
                return request_id
        return None

    def _find_child_context(self, request: DelegationRequest) -> Optional[AgentExecutionContext]:
        if request.conversation_id is not None:
            context = self._find_context_by_conversation(request.conversation_id)
            if context is not None:
                return context
        for context in self.executor.get_active_agents():
            if context.agent_name == request.to_agent and request.from_agent in context.delegation_chain:
                return context
        return None

    def cancel_delegation(self, delegation_id: str) -> bool:
        """Cancel an active delegation and everything it delegated further.

        Returns:
            False if the delegation is unknown, True otherwise
        """
        request = self._requests.get(delegation_id)
        if request is None:
            return False

        context = self._find_child_context(request)
        conversation_id = context.conversation_id if context is not None else request.conversation_id

        if conversation_id is not None:
            # Descendants first, so nested waiters settle before their parents
            for cid in self.tree.subtree_ids(conversation_id) or [conversation_id]:
                self.tree.mark_cancelled(cid)
                pending = self._completions.take(cid)
                if pending is not None:
                    settled = self._requests.pop(pending.request_id, None)
                    pending.reject(
                        DelegationCancelledError(
                            f'Delegation to "{settled.to_agent if settled else request.to_agent}" was cancelled',
                            agent_name=settled.from_agent if settled else request.from_agent,
                            details={"delegation_id": pending.request_id, "cancelled_by": delegation_id},
                        )
                    )
                    self._notify_settled(settled, DelegationOutcome.CANCELLED)
                self.executor.terminate_agent_by_conversation(cid)
            self.tree.terminate_tree(conversation_id)

        self._requests.pop(delegation_id, None)
        logger.info(f"Delegation {delegation_id} cancelled")
        return True

    def cleanup(self, now: Optional[float] = None) -> None:
        """Reclaim orphaned completions, expired reports and finished conversations.

        Never raises.
        """
        try:
            now = time.time() if now is None else now
            live = {context.conversation_id for context in self.executor.get_active_agents()}

            for conversation_id in self._completions.conversation_ids():
                if conversation_id in live:
                    continue
                pending = self._completions.take(conversation_id)
                if pending is None:
                    continue
                self._reject_orphan(pending)

            retention = self.config.report_retention_seconds
            expired = [cid for cid, r in self._reports.items() if r.age_seconds(now) > retention]
            for conversation_id in expired:
                del self._reports[conversation_id]

            removed = self.tree.cleanup_orphans(now=now, max_idle=self.config.orphan_max_idle_seconds)
            if expired or removed:
                logger.debug(
                    f"Cleanup expired {len(expired)} report(s), removed {len(removed)} conversation(s)"
                )
        except Exception:
            logger.exception("Delegation cleanup failed")

    def _reject_orphan(self, pending: PendingCompletion) -> None:
        request = self._requests.pop(pending.request_id, None)
        self.tree.mark_failed(pending.conversation_id, cause="orphaned")
        pending.reject(
            ExecutionError(
                "Delegation was cleaned up due to orphaned state",
                agent_name=request.from_agent if request else None,
                details={"delegation_id": pending.request_id, "conversation_id": pending.conversation_id},
            )
        )
        logger.warning(f"Delegation {pending.request_id} orphaned: no live context")
        self._notify_settled(request, DelegationOutcome.ORPHANED)

    async def start_entry_agent(self, agent_name: Optional[str] = None) -> AgentExecutionContext:
        """Start the entry agent (or agent_name) and adopt its conversation as a root.

        Unknown or missing names fall back to the first configured agent.
        """
        configuration = await self._load_configuration()
        resolution = resolve_entry_agent(configuration, agent_name)
        if resolution.agent is None:
            raise ConfigurationError("No agents configured")
        for warning in resolution.warnings:
            logger.warning(warning)

        context = await self.executor.initialize_agent(resolution.agent, configuration)
        self._ensure_tracked(context)
        logger.info(f"Entry agent {context.agent_name} started ({context.conversation_id})")
        return context

    def terminate_conversation_tree(self, conversation_id: str) -> List[str]:
        return self.tree.terminate_tree(conversation_id)

    def get_active_delegations(self) -> List[DelegationRequest]:
        return list(self._requests.values())

    def get_delegation_request(self, delegation_id: str) -> Optional[DelegationRequest]:
        return self._requests.get(delegation_id)

    def get_delegation_history(self, agent_name: str) -> DelegationHistory:
        """Active delegations sent by (delegated_to) and to (delegated_from) an agent."""
        requests = list(self._requests.values())
        return DelegationHistory(
            delegated_to=[r for r in requests if r.from_agent == agent_name],
            delegated_from=[r for r in requests if r.to_agent == agent_name],
        )

    def get_delegation_stats(self) -> DelegationStats:
        return DelegationStats(
            active=len(self._requests),
            completed=len(self._reports),
            pending=len(self._completions),
        )

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        return self.tree.get(conversation_id)

    def get_child_conversations(self, conversation_id: str) -> List[Conversation]:
        return self.tree.children_of(conversation_id)

    def get_active_conversations(self) -> List[Conversation]:
        return self.tree.active()

    def get_conversation_stats(self) -> ConversationStats:
        return self.tree.stats()

    def get_report(self, conversation_id: str) -> Optional[DelegationReport]:
        return self._reports.get(conversation_id)
