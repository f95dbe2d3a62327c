"""Shared fixtures for agent-relay tests"""

from typing import Any, Callable, Dict, List, Optional

import pytest

from agent_relay.agents.models import RelayConfiguration
from agent_relay.executor.memory import InMemoryAgentExecutor
from agent_relay.executor.provider import StaticConfigurationProvider


DEFAULT_PROMPT = "You are a careful agent. Do the work you are given and report back."


@pytest.fixture
def agent_doc() -> Callable[..., Dict[str, Any]]:
    """Factory for raw agent documents."""

    def _make(
        name: str,
        delegation: Any = "none",
        targets: Optional[List[str]] = None,
        tools: Any = "all",
        **overrides: Any,
    ) -> Dict[str, Any]:
        delegation_permissions: Dict[str, Any] = {"type": delegation}
        if targets is not None:
            delegation_permissions["agents"] = targets
        doc: Dict[str, Any] = {
            "name": name,
            "system_prompt": DEFAULT_PROMPT,
            "description": f"The {name} agent",
            "use_for": f"Work suited to {name}",
            "delegation_permissions": delegation_permissions,
            "tool_permissions": {"type": tools},
        }
        doc.update(overrides)
        return doc

    return _make


@pytest.fixture
def coordinator_reviewer_document(agent_doc) -> Dict[str, Any]:
    """Coordinator may delegate to anyone, reviewer to no one."""
    return {
        "version": "1.0.0",
        "entry_agent": "coordinator",
        "agents": [
            agent_doc("coordinator", delegation="all"),
            agent_doc("reviewer", delegation="none"),
        ],
    }


@pytest.fixture
def chain_document(agent_doc) -> Dict[str, Any]:
    """coordinator -> planner -> coder -> coordinator (static cycle)."""
    return {
        "version": "1.0.0",
        "entry_agent": "coordinator",
        "agents": [
            agent_doc("coordinator", delegation="specific", targets=["planner"]),
            agent_doc("planner", delegation="specific", targets=["coder"]),
            agent_doc("coder", delegation="specific", targets=["coordinator"]),
        ],
    }


@pytest.fixture
def configuration(coordinator_reviewer_document) -> RelayConfiguration:
    return RelayConfiguration.model_validate(coordinator_reviewer_document)


@pytest.fixture
def provider(configuration) -> StaticConfigurationProvider:
    return StaticConfigurationProvider(configuration)


@pytest.fixture
def executor() -> InMemoryAgentExecutor:
    return InMemoryAgentExecutor()
