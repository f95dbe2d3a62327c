"""Configuration validation with migration, auto-repair and cycle detection.

PermissionValidator checks a raw configuration document and reports every
problem as a structured result instead of raising, so callers can decide
whether to auto-repair, fall back, or refuse the document.

Error strings carry a dotted context path, for example
"configuration.agents[1].delegation_permissions.agents[0]: ...", so a
presentation layer can point at the offending field.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Set

from pydantic import ValidationError

from agent_relay.agents.models import AGENT_NAME_PATTERN, PolicyKind, RelayConfiguration
from agent_relay.core.exceptions import ConfigurationError
from agent_relay.permissions.evaluate import detect_cycles, format_cycle
from agent_relay.permissions.migration import migrate_configuration


logger = logging.getLogger(__name__)

_NAME_RE = re.compile(AGENT_NAME_PATTERN)
_POLICY_KINDS = {kind.value for kind in PolicyKind}


@dataclass
class ValidationReport:
    """Structured outcome of validating a configuration document.

    Attributes:
        valid: True when no errors were found
        errors: Problems that make the document unusable
        warnings: Migrations, repairs and potential cycles
        repaired: Migrated and repaired copy of the document
        cycles: Static delegation cycles found in the policy graph
    """

    valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    repaired: Dict[str, Any] = field(default_factory=dict)
    cycles: List[List[str]] = field(default_factory=list)

    def to_configuration(self) -> RelayConfiguration:
        """Build the typed configuration snapshot from the repaired document.

        Raises:
            ConfigurationError: If the report is not valid
        """
        if not self.valid:
            raise ConfigurationError(
                f"Invalid configuration: {'; '.join(self.errors)}",
                details={"errors": list(self.errors), "warnings": list(self.warnings)},
            )
        try:
            return RelayConfiguration.model_validate(self.repaired)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid configuration: {e}",
                details={"errors": [str(err) for err in e.errors()]},
            ) from e


class PermissionValidator:
    """Validates and repairs relay configuration documents."""

    MAX_AGENTS = 20
    MIN_PROMPT_LENGTH = 10
    MAX_PROMPT_LENGTH = 5000
    MAX_DESCRIPTION_LENGTH = 500
    MAX_NAME_LENGTH = 50
    MAX_DELEGATION_RELATIONSHIPS = 100

    def __init__(self, max_agents: Optional[int] = None):
        self.max_agents = max_agents if max_agents is not None else self.MAX_AGENTS

    def validate(
        self,
        document: Any,
        auto_repair: bool = False,
        context: str = "configuration",
    ) -> ValidationReport:
        """Validate a configuration document.

        Args:
            document: Raw configuration document (not mutated)
            auto_repair: Drop dangling delegation targets instead of reporting them
            context: Prefix for error paths

        Returns:
            ValidationReport with errors, warnings, cycles and the repaired document
        """
        if not isinstance(document, Mapping):
            return ValidationReport(
                valid=False,
                errors=[f"{context}: Must be a configuration object, got {type(document).__name__}"],
            )

        errors: List[str] = []
        warnings: List[str] = []

        migration = migrate_configuration(document)
        warnings.extend(f"Migration: {change}" for change in migration.changes)
        repaired = migration.document

        names = self._validate_agents(repaired.get("agents"), f"{context}.agents", errors)
        self._validate_entry_agent(repaired, names, f"{context}.entry_agent", errors, warnings)
        self._validate_cross_references(repaired, names, context, auto_repair, errors, warnings)
        self._validate_limits(repaired, context, errors)

        agents = [a for a in repaired.get("agents", []) if isinstance(a, Mapping)]
        cycles = detect_cycles(agents)
        for cycle in cycles:
            warnings.append(f"{context}: Potential circular delegation detected: {format_cycle(cycle)}")

        if errors:
            logger.debug(f"Configuration invalid with {len(errors)} error(s)")

        return ValidationReport(
            valid=not errors,
            errors=errors,
            warnings=warnings,
            repaired=repaired,
            cycles=cycles,
        )

    def _validate_agents(self, agents: Any, context: str, errors: List[str]) -> List[str]:
        """Validate the agents array, returning the valid, unique names in order."""
        if not isinstance(agents, list):
            errors.append(f"{context}: Must be an array, got {type(agents).__name__}")
            return []
        if not agents:
            errors.append(f"{context}: At least one agent must be configured")
            return []
        if len(agents) > self.max_agents:
            errors.append(f"{context}: Too many agents ({len(agents)}), maximum is {self.max_agents}")

        names: List[str] = []
        seen: Set[str] = set()
        for index, agent in enumerate(agents):
            agent_context = f"{context}[{index}]"
            if not isinstance(agent, Mapping):
                errors.append(f"{agent_context}: Must be an object, got {type(agent).__name__}")
                continue

            name = agent.get("name")
            if self._validate_name(name, f"{agent_context}.name", errors):
                if name in seen:
                    errors.append(f"{agent_context}.name: Duplicate agent name '{name}'")
                else:
                    seen.add(name)
                    names.append(name)

            self._validate_text(
                agent.get("system_prompt"),
                f"{agent_context}.system_prompt",
                "System prompt",
                errors,
                min_length=self.MIN_PROMPT_LENGTH,
                max_length=self.MAX_PROMPT_LENGTH,
            )
            self._validate_text(
                agent.get("description"),
                f"{agent_context}.description",
                "Description",
                errors,
                max_length=self.MAX_DESCRIPTION_LENGTH,
            )
            self._validate_text(
                agent.get("use_for"),
                f"{agent_context}.use_for",
                "Use for description",
                errors,
                max_length=self.MAX_DESCRIPTION_LENGTH,
            )
            self._validate_policy(
                agent.get("delegation_permissions"),
                f"{agent_context}.delegation_permissions",
                "agents",
                "agent",
                errors,
            )
            self._validate_policy(
                agent.get("tool_permissions"),
                f"{agent_context}.tool_permissions",
                "tools",
                "tool",
                errors,
            )
        return names

    def _validate_name(self, name: Any, context: str, errors: List[str]) -> bool:
        if name is None:
            errors.append(f"{context}: Agent name is required")
            return False
        if not isinstance(name, str):
            errors.append(f"{context}: Must be a string, got {type(name).__name__}")
            return False
        if not name.strip():
            errors.append(f"{context}: Cannot be empty or whitespace only")
            return False
        ok = True
        if len(name) > self.MAX_NAME_LENGTH:
            errors.append(
                f"{context}: Too long ({len(name)} characters), maximum is {self.MAX_NAME_LENGTH}"
            )
            ok = False
        if not _NAME_RE.fullmatch(name[: self.MAX_NAME_LENGTH]):
            errors.append(
                f"{context}: Can only contain letters, numbers, hyphens, and underscores. Got '{name}'"
            )
            ok = False
        return ok

    @staticmethod
    def _validate_text(
        value: Any,
        context: str,
        label: str,
        errors: List[str],
        min_length: int = 1,
        max_length: int = 500,
    ) -> None:
        if value is None or value == "":
            errors.append(f"{context}: {label} is required")
            return
        if not isinstance(value, str):
            errors.append(f"{context}: Must be a string, got {type(value).__name__}")
            return
        trimmed = value.strip()
        if not trimmed:
            errors.append(f"{context}: Cannot be empty or whitespace only")
            return
        if len(trimmed) > max_length:
            errors.append(f"{context}: Too long ({len(trimmed)} characters), maximum is {max_length}")
        if len(trimmed) < min_length:
            errors.append(f"{context}: Too short ({len(trimmed)} characters), minimum is {min_length}")

    @staticmethod
    def _validate_policy(
        policy: Any,
        context: str,
        list_key: str,
        item_label: str,
        errors: List[str],
    ) -> None:
        if not isinstance(policy, Mapping):
            errors.append(f"{context}: Must be an object, got {type(policy).__name__}")
            return

        kind = policy.get("type")
        if not kind:
            errors.append(f"{context}.type: Permission type is required")
            return
        if kind not in _POLICY_KINDS:
            errors.append(f"{context}.type: Must be 'all', 'none', or 'specific', got '{kind}'")
            return
        if kind != PolicyKind.SPECIFIC.value:
            return

        items = policy.get(list_key)
        if items is None:
            errors.append(f"{context}.{list_key}: {item_label.capitalize()} list is required for specific permissions")
            return
        if not isinstance(items, list):
            errors.append(f"{context}.{list_key}: Must be an array, got {type(items).__name__}")
            return
        if not items:
            errors.append(f"{context}.{list_key}: Cannot be empty for specific permissions")
            return

        for index, item in enumerate(items):
            if not isinstance(item, str):
                errors.append(f"{context}.{list_key}[{index}]: Must be a string, got {type(item).__name__}")
            elif not item.strip():
                errors.append(f"{context}.{list_key}[{index}]: Cannot be empty or whitespace only")

        hashable = [item for item in items if isinstance(item, str)]
        if len(set(hashable)) != len(hashable):
            errors.append(f"{context}.{list_key}: Contains duplicate {item_label} names")

    @staticmethod
    def _validate_entry_agent(
        document: Dict[str, Any],
        names: List[str],
        context: str,
        errors: List[str],
        warnings: List[str],
    ) -> None:
        entry_agent = document.get("entry_agent")
        if entry_agent is None or not names:
            return
        if not isinstance(entry_agent, str):
            errors.append(f"{context}: Must be a string, got {type(entry_agent).__name__}")
            return

        if entry_agent.strip() in names:
            document["entry_agent"] = entry_agent.strip()
            return

        first = names[0]
        document["entry_agent"] = first
        warnings.append(
            f"{context}: Entry agent '{entry_agent}' does not exist, using first agent '{first}'"
        )

    @staticmethod
    def _validate_cross_references(
        document: Dict[str, Any],
        names: List[str],
        context: str,
        auto_repair: bool,
        errors: List[str],
        warnings: List[str],
    ) -> None:
        agents = document.get("agents")
        if not isinstance(agents, list):
            return

        known = set(names)
        for index, agent in enumerate(agents):
            if not isinstance(agent, Mapping):
                continue
            policy = agent.get("delegation_permissions")
            if not isinstance(policy, dict) or policy.get("type") != PolicyKind.SPECIFIC.value:
                continue
            targets = policy.get("agents")
            if not isinstance(targets, list):
                continue

            agent_name = agent.get("name")
            kept: List[Any] = []
            for target_index, target in enumerate(targets):
                if not isinstance(target, str) or target in known:
                    kept.append(target)
                    continue
                if auto_repair:
                    continue
                errors.append(
                    f"{context}.agents[{index}].delegation_permissions.agents[{target_index}]: "
                    f"Agent '{agent_name}' references non-existent agent '{target}'"
                )

            if auto_repair and len(kept) != len(targets):
                if kept:
                    policy["agents"] = kept
                else:
                    agent["delegation_permissions"] = {"type": PolicyKind.NONE.value}
                    warnings.append(
                        f"{context}.agents[{index}].delegation_permissions: "
                        f"No valid targets left for '{agent_name}', delegation disabled"
                    )

    def _validate_limits(self, document: Dict[str, Any], context: str, errors: List[str]) -> None:
        agents = document.get("agents")
        if not isinstance(agents, list):
            return
        relationships = 0
        for agent in agents:
            if not isinstance(agent, Mapping):
                continue
            policy = agent.get("delegation_permissions")
            if isinstance(policy, Mapping) and policy.get("type") == PolicyKind.SPECIFIC.value:
                targets = policy.get("agents")
                if isinstance(targets, list):
                    relationships += len(targets)
        if relationships > self.MAX_DELEGATION_RELATIONSHIPS:
            errors.append(
                f"{context}: Too many delegation relationships ({relationships}), "
                f"maximum is {self.MAX_DELEGATION_RELATIONSHIPS}"
            )


def validate_configuration(document: Any, auto_repair: bool = False) -> ValidationReport:
    """Validate a document with the default limits."""
    return PermissionValidator().validate(document, auto_repair=auto_repair)
