"""agent-relay - Delegation orchestration core for multi-agent handoffs."""

from agent_relay.agents.models import (
    AgentDefinition,
    DelegationPolicy,
    PolicyKind,
    RelayConfiguration,
    ToolPolicy,
)
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
from agent_relay.delegation.engine import DelegationEngine
from agent_relay.delegation.types import DelegationConfig
from agent_relay.permissions.validator import PermissionValidator, ValidationReport

__version__ = "0.1.0"

__all__ = [
    "AgentDefinition",
    "DelegationPolicy",
    "PolicyKind",
    "RelayConfiguration",
    "ToolPolicy",
    "ConversationTree",
    "DelegationEngine",
    "DelegationConfig",
    "PermissionValidator",
    "ValidationReport",
    "DelegationError",
    "ConfigurationError",
    "PermissionDeniedError",
    "CircularDelegationError",
    "ExecutionError",
    "DelegationTimeoutError",
    "DelegationCancelledError",
]
