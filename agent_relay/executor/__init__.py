"""Agent execution interfaces and reference implementations."""

from agent_relay.executor.memory import AgentHandler, InMemoryAgentExecutor
from agent_relay.executor.protocols import (
    AgentExecutionContext,
    AgentExecutor,
    ConfigurationProvider,
)
from agent_relay.executor.provider import StaticConfigurationProvider

__all__ = [
    "AgentExecutionContext",
    "AgentExecutor",
    "ConfigurationProvider",
    "AgentHandler",
    "InMemoryAgentExecutor",
    "StaticConfigurationProvider",
]
