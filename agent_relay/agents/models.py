"""
Agent definition models.

Typed, validated snapshot of a relay configuration. Raw documents are
checked and repaired by PermissionValidator first; these models are what
the DelegationEngine consumes once a document is known to be valid.

Models:
- PolicyKind: all / none / specific
- DelegationPolicy: which agents an agent may hand work to
- ToolPolicy: which tools an agent may invoke (orthogonal to delegation)
- AgentDefinition: a named role with both policies
- RelayConfiguration: entry agent plus the agent list
"""

from __future__ import annotations

import copy
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

AGENT_NAME_PATTERN = r"^[A-Za-z0-9_-]{1,50}$"
CURRENT_CONFIG_VERSION = "1.0.0"


class PolicyKind(str, Enum):
    """Permission policy kinds shared by delegation and tool policies."""

    ALL = "all"
    NONE = "none"
    SPECIFIC = "specific"


class DelegationPolicy(BaseModel):
    """Delegation permissions for one agent.

    Attributes:
        type: Policy kind
        agents: Target agent names (only meaningful for SPECIFIC)
    """

    model_config = ConfigDict(frozen=True)

    type: PolicyKind = PolicyKind.NONE
    agents: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_targets(self) -> "DelegationPolicy":
        if self.type == PolicyKind.SPECIFIC:
            if not self.agents:
                raise ValueError("specific delegation policy requires at least one agent")
            if len(set(self.agents)) != len(self.agents):
                raise ValueError("specific delegation policy contains duplicate agents")
        return self

    def permits(self, from_name: str, to_name: str) -> bool:
        """Return True if from_name may delegate to to_name under this policy."""
        from agent_relay.permissions.evaluate import is_delegation_allowed

        return is_delegation_allowed(self, from_name, to_name)

    @classmethod
    def all(cls) -> "DelegationPolicy":
        return cls(type=PolicyKind.ALL)

    @classmethod
    def none(cls) -> "DelegationPolicy":
        return cls(type=PolicyKind.NONE)

    @classmethod
    def specific(cls, *agents: str) -> "DelegationPolicy":
        return cls(type=PolicyKind.SPECIFIC, agents=list(agents))


class ToolPolicy(BaseModel):
    """Tool permissions for one agent."""

    model_config = ConfigDict(frozen=True)

    type: PolicyKind = PolicyKind.ALL
    tools: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_tools(self) -> "ToolPolicy":
        if self.type == PolicyKind.SPECIFIC:
            if not self.tools:
                raise ValueError("specific tool policy requires at least one tool")
            if len(set(self.tools)) != len(self.tools):
                raise ValueError("specific tool policy contains duplicate tools")
        return self

    def permits(self, tool_name: str) -> bool:
        """Return True if the tool may be invoked under this policy."""
        if self.type == PolicyKind.ALL:
            return True
        if self.type == PolicyKind.NONE:
            return False
        return tool_name in self.tools


class AgentDefinition(BaseModel):
    """
    A named agent role.

    Attributes:
        name: Unique name, letters/digits/hyphens/underscores, max 50 chars
        system_prompt: Base instructions handed to the executor (10-5000 chars)
        description: Short description shown to other agents
        use_for: When other agents should delegate to this one
        delegation_permissions: Who this agent may delegate to
        tool_permissions: Which tools this agent may use
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., pattern=AGENT_NAME_PATTERN)
    system_prompt: str = Field(..., min_length=10, max_length=5000)
    description: str = Field(..., min_length=1, max_length=500)
    use_for: str = Field(..., min_length=1, max_length=500)
    delegation_permissions: DelegationPolicy = Field(default_factory=DelegationPolicy.none)
    tool_permissions: ToolPolicy = Field(default_factory=ToolPolicy)

    @field_validator("system_prompt", "description", "use_for")
    @classmethod
    def strip_text(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("cannot be empty or whitespace only")
        return stripped

    def can_delegate_to(self, to_name: str) -> bool:
        return self.delegation_permissions.permits(self.name, to_name)


class RelayConfiguration(BaseModel):
    """
    Immutable configuration snapshot consumed by one engine operation.

    Attributes:
        entry_agent: Agent receiving unrouted requests (first agent when unset)
        agents: Configured agents, names unique
        version: Document schema version
    """

    model_config = ConfigDict(frozen=True)

    entry_agent: Optional[str] = None
    agents: List[AgentDefinition] = Field(..., min_length=1)
    version: str = CURRENT_CONFIG_VERSION

    @model_validator(mode="after")
    def validate_references(self) -> "RelayConfiguration":
        names = [agent.name for agent in self.agents]
        if len(set(names)) != len(names):
            raise ValueError("agent names must be unique")
        known = set(names)
        for agent in self.agents:
            policy = agent.delegation_permissions
            if policy.type == PolicyKind.SPECIFIC:
                missing = [target for target in policy.agents if target not in known]
                if missing:
                    raise ValueError(
                        f"agent '{agent.name}' references unknown agents: {', '.join(missing)}"
                    )
        if self.entry_agent is not None and self.entry_agent not in known:
            raise ValueError(f"entry agent '{self.entry_agent}' is not configured")
        return self

    def get_agent(self, name: str) -> Optional[AgentDefinition]:
        for agent in self.agents:
            if agent.name == name:
                return agent
        return None

    def agent_names(self) -> List[str]:
        return [agent.name for agent in self.agents]

    def agents_by_name(self) -> Dict[str, AgentDefinition]:
        return {agent.name: agent for agent in self.agents}


DEFAULT_COORDINATOR: Dict[str, object] = {
    "name": "coordinator",
    "system_prompt": (
        "You are a coordinator agent responsible for orchestrating tasks and "
        "delegating work to specialized agents. Analyze the request and decide "
        "whether to handle it directly or delegate it to a more specialized agent."
    ),
    "description": "Coordinates work between specialized agents",
    "use_for": "Task orchestration and delegation",
    "delegation_permissions": {"type": "all"},
    "tool_permissions": {"type": "specific", "tools": ["delegate_work", "report_out"]},
}


def default_configuration_document() -> Dict[str, object]:
    """Return a fresh default configuration document (a single coordinator)."""
    return {
        "version": CURRENT_CONFIG_VERSION,
        "entry_agent": "coordinator",
        "agents": [copy.deepcopy(DEFAULT_COORDINATOR)],
    }
