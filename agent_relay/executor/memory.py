"""In-memory reference AgentExecutor.

Keeps execution contexts in a dict and runs agents through an injected async
handler. Useful for tests, local experiments and as a template for real
executors that talk to a model.

Context keys:
- root contexts: the agent name
- child contexts: "{agent_name}-{conversation_id}"
"""

from __future__ import annotations

import logging
import uuid
from threading import Lock
from typing import Awaitable, Callable, Dict, List, Optional

from agent_relay.agents.models import AgentDefinition, RelayConfiguration
from agent_relay.core.exceptions import CircularDelegationError, ExecutionError
from agent_relay.executor.protocols import AgentExecutionContext
from agent_relay.permissions.evaluate import PermissionEvaluator


logger = logging.getLogger(__name__)

AgentHandler = Callable[[AgentExecutionContext, str], Awaitable[str]]


async def _acknowledge(context: AgentExecutionContext, instruction: str) -> str:
    return f"{context.agent_name} received: {instruction}"


class InMemoryAgentExecutor:
    """
    AgentExecutor that stores contexts in memory.

    Thread-safe context bookkeeping (Lock-protected); execution itself is
    delegated to the handler.
    """

    def __init__(self, handler: Optional[AgentHandler] = None):
        self.handler: AgentHandler = handler or _acknowledge
        self._contexts: Dict[str, AgentExecutionContext] = {}
        self._lock = Lock()

    @staticmethod
    def _targets(definition: AgentDefinition, configuration: Optional[RelayConfiguration]) -> List[str]:
        if configuration is None:
            return []
        return PermissionEvaluator.delegation_targets(configuration, definition.name)

    async def initialize_agent(
        self,
        definition: AgentDefinition,
        configuration: Optional[RelayConfiguration] = None,
    ) -> AgentExecutionContext:
        context = AgentExecutionContext(
            agent_name=definition.name,
            conversation_id=str(uuid.uuid4()),
            system_prompt=definition.system_prompt,
            available_delegation_targets=self._targets(definition, configuration),
        )
        with self._lock:
            self._contexts[definition.name] = context
        logger.debug(f"Initialized agent {definition.name} ({context.conversation_id})")
        return context

    async def initialize_child_agent(
        self,
        definition: AgentDefinition,
        parent_context: AgentExecutionContext,
        configuration: Optional[RelayConfiguration] = None,
    ) -> AgentExecutionContext:
        chain = parent_context.active_chain
        if definition.name in chain:
            raise CircularDelegationError(
                f"Cannot start {definition.name}: already in delegation chain {' -> '.join(chain)}",
                agent_name=definition.name,
                chain=chain,
            )

        context = AgentExecutionContext(
            agent_name=definition.name,
            conversation_id=str(uuid.uuid4()),
            parent_conversation_id=parent_context.conversation_id,
            system_prompt=definition.system_prompt,
            delegation_chain=chain,
            available_delegation_targets=self._targets(definition, configuration),
        )
        with self._lock:
            self._contexts[f"{definition.name}-{context.conversation_id}"] = context
        logger.debug(
            f"Initialized child agent {definition.name} under {parent_context.agent_name} "
            f"(chain={chain})"
        )
        return context

    async def execute_agent(self, context: AgentExecutionContext, instruction: str) -> str:
        try:
            return await self.handler(context, instruction)
        except ExecutionError:
            raise
        except Exception as e:
            raise ExecutionError(
                f"Agent {context.agent_name} failed: {e}",
                agent_name=context.agent_name,
                details={"conversation_id": context.conversation_id},
            ) from e

    def get_agent_context(self, agent_name: str) -> Optional[AgentExecutionContext]:
        with self._lock:
            return self._contexts.get(agent_name)

    def get_agent_context_by_conversation(self, conversation_id: str) -> Optional[AgentExecutionContext]:
        with self._lock:
            for context in self._contexts.values():
                if context.conversation_id == conversation_id:
                    return context
        return None

    def get_active_agents(self) -> List[AgentExecutionContext]:
        with self._lock:
            return list(self._contexts.values())

    def terminate_agent(self, agent_name: str) -> None:
        """Remove an agent's contexts and every context it delegated to."""
        with self._lock:
            doomed = [
                key
                for key, context in self._contexts.items()
                if context.agent_name == agent_name or agent_name in context.delegation_chain
            ]
            for key in doomed:
                del self._contexts[key]
        if doomed:
            logger.debug(f"Terminated {len(doomed)} context(s) for {agent_name}")

    def terminate_agent_by_conversation(self, conversation_id: str) -> None:
        with self._lock:
            for key, context in self._contexts.items():
                if context.conversation_id == conversation_id:
                    del self._contexts[key]
                    logger.debug(f"Terminated context {key}")
                    break
