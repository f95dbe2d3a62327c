"""Agent definitions and entry agent resolution."""

from agent_relay.agents.entry import EntryAgentResolution, resolve_entry_agent
from agent_relay.agents.models import (
    AGENT_NAME_PATTERN,
    AgentDefinition,
    DelegationPolicy,
    PolicyKind,
    RelayConfiguration,
    ToolPolicy,
    default_configuration_document,
)

__all__ = [
    "AGENT_NAME_PATTERN",
    "AgentDefinition",
    "DelegationPolicy",
    "PolicyKind",
    "RelayConfiguration",
    "ToolPolicy",
    "default_configuration_document",
    "EntryAgentResolution",
    "resolve_entry_agent",
]
