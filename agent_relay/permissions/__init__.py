"""Delegation permissions: evaluation, migration, validation."""

from agent_relay.permissions.evaluate import (
    PermissionEvaluator,
    build_delegation_graph,
    detect_cycles,
    find_cycles,
    format_cycle,
    is_delegation_allowed,
)
from agent_relay.permissions.migration import MigrationResult, migrate_configuration
from agent_relay.permissions.validator import (
    PermissionValidator,
    ValidationReport,
    validate_configuration,
)

__all__ = [
    "PermissionEvaluator",
    "build_delegation_graph",
    "detect_cycles",
    "find_cycles",
    "format_cycle",
    "is_delegation_allowed",
    "MigrationResult",
    "migrate_configuration",
    "PermissionValidator",
    "ValidationReport",
    "validate_configuration",
]
