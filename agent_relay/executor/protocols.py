"""Interfaces consumed by the DelegationEngine.

The engine never runs agents or loads configuration itself. It consumes:
- ConfigurationProvider: hands out an immutable configuration snapshot
- AgentExecutor: creates, runs and tears down agent execution contexts

Both are structural protocols; any object with the right methods works.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from agent_relay.agents.models import AgentDefinition, RelayConfiguration


@dataclass
class AgentExecutionContext:
    """
    Live execution state of one agent instance.

    Attributes:
        agent_name: Agent running in this context
        conversation_id: Conversation the context is bound to
        parent_conversation_id: Conversation of the delegating agent, None for roots
        system_prompt: Effective system prompt
        delegation_chain: Ancestor agent names, root first
        available_delegation_targets: Agents this one may delegate to
        metadata: Executor-specific extras
    """

    agent_name: str
    conversation_id: str
    parent_conversation_id: Optional[str] = None
    system_prompt: str = ""
    delegation_chain: List[str] = field(default_factory=list)
    available_delegation_targets: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def active_chain(self) -> List[str]:
        """Delegation chain including this context's own agent."""
        return list(self.delegation_chain) + [self.agent_name]


@runtime_checkable
class ConfigurationProvider(Protocol):
    """Source of configuration snapshots."""

    async def load_configuration(self) -> RelayConfiguration:
        """Return the current configuration snapshot."""
        ...


@runtime_checkable
class AgentExecutor(Protocol):
    """Runs agents on behalf of the DelegationEngine.

    Example:
        executor = InMemoryAgentExecutor(handler=my_handler)
        root = await executor.initialize_agent(coordinator_definition)
        child = await executor.initialize_child_agent(reviewer_definition, root)
        reply = await executor.execute_agent(child, "Review this diff")
    """

    async def initialize_agent(
        self,
        definition: AgentDefinition,
        configuration: Optional[RelayConfiguration] = None,
    ) -> AgentExecutionContext:
        """Create a root context for an agent."""
        ...

    async def initialize_child_agent(
        self,
        definition: AgentDefinition,
        parent_context: AgentExecutionContext,
        configuration: Optional[RelayConfiguration] = None,
    ) -> AgentExecutionContext:
        """Create a context for an agent delegated to from parent_context."""
        ...

    async def execute_agent(self, context: AgentExecutionContext, instruction: str) -> str:
        """Run the agent with an instruction and return its reply."""
        ...

    def get_agent_context(self, agent_name: str) -> Optional[AgentExecutionContext]:
        ...

    def get_active_agents(self) -> List[AgentExecutionContext]:
        ...

    def terminate_agent(self, agent_name: str) -> None:
        ...

    def terminate_agent_by_conversation(self, conversation_id: str) -> None:
        ...
