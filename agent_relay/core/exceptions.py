"""Delegation error taxonomy.

Every user-facing delegation failure is raised as one of the subclasses of
DelegationError. Each error carries the agent it concerns, a details dict for
diagnostics, and a stable code that callers can switch on without relying on
class identity (useful when errors cross a serialization boundary).
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class DelegationError(Exception):
    """Base class for all delegation failures."""

    code = "DELEGATION_ERROR"

    def __init__(
        self,
        message: str,
        agent_name: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.agent_name = agent_name
        self.details: Dict[str, Any] = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging and presentation layers."""
        return {
            "code": self.code,
            "message": self.message,
            "agent_name": self.agent_name,
            "details": self.details,
        }


class ConfigurationError(DelegationError):
    """Raised when an agent definition is missing or a configuration is invalid."""

    code = "CONFIGURATION_ERROR"


class PermissionDeniedError(DelegationError):
    """Raised when the source agent's delegation policy forbids the target."""

    code = "PERMISSION_DENIED"


class CircularDelegationError(DelegationError):
    """Raised when the target already appears in the caller's active chain."""

    code = "CIRCULAR_DELEGATION"

    def __init__(
        self,
        message: str,
        agent_name: Optional[str] = None,
        chain: Optional[List[str]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = dict(details or {})
        self.chain: List[str] = list(chain or [])
        details.setdefault("delegation_chain", self.chain)
        super().__init__(message, agent_name, details)


class ExecutionError(DelegationError):
    """Raised when the executor fails or an execution context is missing."""

    code = "EXECUTION_ERROR"


class DelegationTimeoutError(DelegationError):
    """Raised when no report arrives before the delegation ceiling elapses."""

    code = "TIMEOUT"


class DelegationCancelledError(DelegationError):
    """Raised into the awaiting caller when its delegation is cancelled."""

    code = "CANCELLED"
