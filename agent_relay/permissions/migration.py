"""Configuration document migration.

Rewrites legacy configuration shapes into the unified agent-list shape
before validation. Every transformation is recorded as a human-readable
change so the validator can surface it as a warning.

Handled legacy shapes:
- a distinguished "coordinator" agent plus a separate "customAgents" list
- camelCase keys (entryAgent, systemPrompt, useFor, delegationPermissions,
  toolPermissions)
- boolean permissions (True -> all, False -> none)
- missing version, agents list, entry agent, or permission objects
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping

from agent_relay.agents.models import CURRENT_CONFIG_VERSION, default_configuration_document


logger = logging.getLogger(__name__)

_TOP_LEVEL_RENAMES = {
    "entryAgent": "entry_agent",
    "customAgents": "custom_agents",
}

_AGENT_RENAMES = {
    "systemPrompt": "system_prompt",
    "useFor": "use_for",
    "delegationPermissions": "delegation_permissions",
    "toolPermissions": "tool_permissions",
}

_DEFAULT_PERMISSIONS = {
    "delegation_permissions": {"type": "none"},
    "tool_permissions": {"type": "all"},
}


@dataclass
class MigrationResult:
    """Outcome of migrating a configuration document.

    Attributes:
        migrated: True if any change was applied
        changes: One entry per transformation performed
        document: Migrated copy of the input (the input is never mutated)
    """

    migrated: bool
    changes: List[str] = field(default_factory=list)
    document: Dict[str, Any] = field(default_factory=dict)


def _rename_keys(target: Dict[str, Any], renames: Mapping[str, str], where: str, changes: List[str]) -> None:
    for old, new in renames.items():
        if old not in target:
            continue
        value = target.pop(old)
        if new in target:
            changes.append(f"Dropped legacy key '{old}' from {where}, '{new}' already set")
            continue
        target[new] = value
        changes.append(f"Renamed '{old}' to '{new}' in {where}")


def _migrate_permission(agent: Dict[str, Any], key: str, label: str, where: str, changes: List[str]) -> None:
    value = agent.get(key)
    if value is None:
        agent[key] = dict(_DEFAULT_PERMISSIONS[key])
        changes.append(
            f"Defaulted {label} permissions of {where} to '{agent[key]['type']}'"
        )
    elif isinstance(value, bool):
        agent[key] = {"type": "all" if value else "none"}
        changes.append(f"Migrated legacy {label} permissions of {where} from boolean to object format")


def migrate_configuration(document: Mapping[str, Any]) -> MigrationResult:
    """Migrate a configuration document to the current shape.

    Args:
        document: Raw configuration document (not mutated)

    Returns:
        MigrationResult with the migrated copy and the list of changes
    """
    changes: List[str] = []
    migrated: Dict[str, Any] = copy.deepcopy(dict(document))

    if not migrated.get("version"):
        migrated["version"] = CURRENT_CONFIG_VERSION
        changes.append("Added version field")

    _rename_keys(migrated, _TOP_LEVEL_RENAMES, "configuration", changes)

    if "coordinator" in migrated or "custom_agents" in migrated:
        agents: List[Any] = []
        coordinator = migrated.pop("coordinator", None)
        if coordinator:
            agents.append(coordinator)
        custom_agents = migrated.pop("custom_agents", None)
        if isinstance(custom_agents, list):
            agents.extend(custom_agents)

        existing = migrated.get("agents")
        if isinstance(existing, list):
            agents.extend(existing)
        migrated["agents"] = agents

        if not migrated.get("entry_agent") and agents and isinstance(agents[0], Mapping):
            migrated["entry_agent"] = agents[0].get("name")

        changes.append("Migrated from coordinator/customAgents structure to unified agents structure")

    if not isinstance(migrated.get("agents"), list):
        migrated["agents"] = default_configuration_document()["agents"]
        changes.append("Initialized agents array with default configuration")

    agents = migrated["agents"]
    for index, agent in enumerate(agents):
        if not isinstance(agent, dict):
            continue
        where = f"agents[{index}]"
        _rename_keys(agent, _AGENT_RENAMES, where, changes)
        _migrate_permission(agent, "delegation_permissions", "delegation", where, changes)
        _migrate_permission(agent, "tool_permissions", "tool", where, changes)

    if not migrated.get("entry_agent") and agents and isinstance(agents[0], Mapping):
        first_name = agents[0].get("name")
        if isinstance(first_name, str) and first_name:
            migrated["entry_agent"] = first_name
            changes.append("Set entry agent to first configured agent")

    if changes:
        logger.debug(f"Configuration migrated: {', '.join(changes)}")

    return MigrationResult(migrated=bool(changes), changes=changes, document=migrated)
