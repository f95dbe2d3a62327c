"""Delegation Engine Package.

Agent-to-agent work handoff with policy checks, runtime cycle prevention,
single-use completions and timeout/cancellation handling.

Example:
    from agent_relay.delegation import DelegationConfig, DelegationEngine
    from agent_relay.executor import InMemoryAgentExecutor, StaticConfigurationProvider

    provider = StaticConfigurationProvider.from_document(document)
    executor = InMemoryAgentExecutor(handler=run_agent)
    engine = DelegationEngine(provider, executor, DelegationConfig(timeout_seconds=120))

    await engine.start_entry_agent()
    report = await engine.delegate_work(
        "coordinator",
        "reviewer",
        "Review the attached diff",
        "Return pass or fail with reasons",
    )
"""

from agent_relay.delegation.completion import CompletionRegistry, PendingCompletion
from agent_relay.delegation.engine import (
    DelegationEngine,
    build_delegation_instruction,
    generate_delegation_id,
)
from agent_relay.delegation.types import (
    DelegationConfig,
    DelegationHistory,
    DelegationOutcome,
    DelegationReport,
    DelegationRequest,
    DelegationStats,
)

__all__ = [
    # Core types
    "DelegationConfig",
    "DelegationHistory",
    "DelegationOutcome",
    "DelegationReport",
    "DelegationRequest",
    "DelegationStats",
    # Completion tracking
    "CompletionRegistry",
    "PendingCompletion",
    # Engine
    "DelegationEngine",
    "build_delegation_instruction",
    "generate_delegation_id",
]
