"""
Entry agent resolution.

The entry agent receives unrouted, top-level requests. A configuration may
name it explicitly; when the name is missing or stale the first configured
agent is used instead and the fallback is reported.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from agent_relay.agents.models import AgentDefinition, RelayConfiguration


logger = logging.getLogger(__name__)


@dataclass
class EntryAgentResolution:
    """
    Outcome of resolving the entry agent.

    Attributes:
        agent: Resolved agent definition, None when no agents are configured
        configured: Entry agent name as written in the configuration
        used_fallback: True when the first agent was used instead
        warnings: Human-readable notes about the fallback
    """

    agent: Optional[AgentDefinition]
    configured: Optional[str] = None
    used_fallback: bool = False
    warnings: List[str] = field(default_factory=list)

    @property
    def name(self) -> Optional[str]:
        return self.agent.name if self.agent else None


def resolve_entry_agent(
    configuration: RelayConfiguration,
    requested: Optional[str] = None,
) -> EntryAgentResolution:
    """
    Resolve the entry agent with fallback to the first configured agent.

    Args:
        configuration: Configuration snapshot
        requested: Explicit agent name overriding configuration.entry_agent

    Returns:
        EntryAgentResolution describing the chosen agent
    """
    configured = requested if requested is not None else configuration.entry_agent
    if not configuration.agents:
        return EntryAgentResolution(agent=None, configured=configured)

    first = configuration.agents[0]
    if not configured or not configured.strip():
        return EntryAgentResolution(
            agent=first,
            configured=configured,
            used_fallback=True,
            warnings=[f"No entry agent configured, using first agent '{first.name}'"],
        )

    agent = configuration.get_agent(configured.strip())
    if agent is None:
        logger.warning(f"Entry agent '{configured}' not found, falling back to '{first.name}'")
        return EntryAgentResolution(
            agent=first,
            configured=configured,
            used_fallback=True,
            warnings=[
                f"Entry agent '{configured}' does not exist, using first agent '{first.name}'"
            ],
        )

    return EntryAgentResolution(agent=agent, configured=configured)
