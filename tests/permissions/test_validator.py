"""Tests for PermissionValidator."""

import copy

import pytest

from agent_relay.core.exceptions import ConfigurationError
from agent_relay.permissions.validator import PermissionValidator, validate_configuration


@pytest.fixture
def validator():
    return PermissionValidator()


class TestValidDocuments:
    """Well-formed documents validate cleanly."""

    def test_valid_document(self, validator, coordinator_reviewer_document):
        report = validator.validate(coordinator_reviewer_document)
        assert report.valid is True
        assert report.errors == []
        assert report.warnings == []
        assert report.cycles == []

    def test_to_configuration(self, validator, coordinator_reviewer_document):
        configuration = validator.validate(coordinator_reviewer_document).to_configuration()
        assert configuration.agent_names() == ["coordinator", "reviewer"]
        assert configuration.entry_agent == "coordinator"

    def test_caller_document_is_not_mutated(self, validator, agent_doc):
        document = {"entryAgent": "ghost", "agents": [agent_doc("a", delegation="specific", targets=["x"])]}
        snapshot = copy.deepcopy(document)
        validator.validate(document, auto_repair=True)
        assert document == snapshot

    def test_module_helper(self, coordinator_reviewer_document):
        assert validate_configuration(coordinator_reviewer_document).valid is True


class TestStructuralErrors:
    """Structural problems become context-prefixed error strings."""

    def test_non_mapping_document(self, validator):
        report = validator.validate(["not", "a", "document"])
        assert report.valid is False
        assert report.errors[0].startswith("configuration:")

    def test_empty_agents(self, validator):
        report = validator.validate({"version": "1.0.0", "agents": []})
        assert report.valid is False
        assert "configuration.agents: At least one agent must be configured" in report.errors

    def test_too_many_agents(self, agent_doc):
        document = {"agents": [agent_doc(f"agent{i}") for i in range(4)]}
        report = PermissionValidator(max_agents=3).validate(document)
        assert any("Too many agents (4), maximum is 3" in e for e in report.errors)

    def test_agent_must_be_mapping(self, validator, agent_doc):
        report = validator.validate({"agents": [agent_doc("a"), "bogus"]})
        assert "configuration.agents[1]: Must be an object, got str" in report.errors

    def test_invalid_name(self, validator, agent_doc):
        report = validator.validate({"agents": [agent_doc("bad name")]})
        assert any(e.startswith("configuration.agents[0].name: Can only contain") for e in report.errors)

    def test_name_with_trailing_newline(self, validator, agent_doc):
        report = validator.validate({"agents": [agent_doc("reviewer\n")]})
        assert not report.valid
        assert any(e.startswith("configuration.agents[0].name: Can only contain") for e in report.errors)

    def test_missing_name(self, validator, agent_doc):
        agent = agent_doc("a")
        del agent["name"]
        report = validator.validate({"agents": [agent]})
        assert "configuration.agents[0].name: Agent name is required" in report.errors

    def test_duplicate_names(self, validator, agent_doc):
        report = validator.validate({"agents": [agent_doc("a"), agent_doc("a")]})
        assert "configuration.agents[1].name: Duplicate agent name 'a'" in report.errors

    def test_prompt_length(self, validator, agent_doc):
        report = validator.validate({"agents": [agent_doc("a", system_prompt="   short   ")]})
        assert any(
            e.startswith("configuration.agents[0].system_prompt: Too short") for e in report.errors
        )

    def test_prompt_too_long(self, validator, agent_doc):
        report = validator.validate({"agents": [agent_doc("a", system_prompt="x" * 5001)]})
        assert any("Too long (5001 characters)" in e for e in report.errors)

    def test_blank_description(self, validator, agent_doc):
        report = validator.validate({"agents": [agent_doc("a", description="  ")]})
        assert "configuration.agents[0].description: Cannot be empty or whitespace only" in report.errors

    def test_missing_use_for(self, validator, agent_doc):
        agent = agent_doc("a")
        del agent["use_for"]
        report = validator.validate({"agents": [agent]})
        assert "configuration.agents[0].use_for: Use for description is required" in report.errors

    def test_unknown_policy_type(self, validator, agent_doc):
        report = validator.validate({"agents": [agent_doc("a", delegation="some")]})
        assert any(
            e.startswith("configuration.agents[0].delegation_permissions.type: Must be")
            for e in report.errors
        )

    def test_specific_requires_list(self, validator, agent_doc):
        report = validator.validate({"agents": [agent_doc("a", delegation="specific")]})
        assert any("delegation_permissions.agents" in e for e in report.errors)

    def test_specific_empty_list(self, validator, agent_doc):
        report = validator.validate({"agents": [agent_doc("a", delegation="specific", targets=[])]})
        assert any("Cannot be empty for specific permissions" in e for e in report.errors)

    def test_specific_duplicates(self, validator, agent_doc):
        document = {
            "agents": [agent_doc("a", delegation="specific", targets=["b", "b"]), agent_doc("b")]
        }
        report = validator.validate(document)
        assert any("Contains duplicate agent names" in e for e in report.errors)

    def test_specific_tools_require_list(self, validator, agent_doc):
        report = validator.validate({"agents": [agent_doc("a", tools="specific")]})
        assert any("tool_permissions.tools" in e for e in report.errors)

    def test_to_configuration_raises_when_invalid(self, validator):
        report = validator.validate({"agents": []})
        with pytest.raises(ConfigurationError) as exc_info:
            report.to_configuration()
        assert exc_info.value.details["errors"] == report.errors


class TestEntryAgent:
    """Entry agent repair."""

    def test_unknown_entry_agent_repaired(self, validator, agent_doc):
        report = validator.validate({"entry_agent": "ghost", "agents": [agent_doc("a"), agent_doc("b")]})
        assert report.valid is True
        assert report.repaired["entry_agent"] == "a"
        assert any("Entry agent 'ghost' does not exist" in w for w in report.warnings)

    def test_blank_entry_agent_repaired(self, validator, agent_doc):
        report = validator.validate({"entry_agent": "  ", "agents": [agent_doc("a")]})
        assert report.valid is True
        assert report.repaired["entry_agent"] == "a"

    def test_non_string_entry_agent(self, validator, agent_doc):
        report = validator.validate({"entry_agent": 7, "agents": [agent_doc("a")]})
        assert "configuration.entry_agent: Must be a string, got int" in report.errors


class TestCrossReferences:
    """Specific delegation targets must exist."""

    def test_dangling_reference_is_error(self, validator, agent_doc):
        document = {"agents": [agent_doc("a", delegation="specific", targets=["ghost"])]}
        report = validator.validate(document)
        assert report.valid is False
        error = next(e for e in report.errors if "non-existent" in e)
        assert error.startswith("configuration.agents[0].delegation_permissions.agents[0]")
        assert "'a'" in error
        assert "'ghost'" in error

    def test_auto_repair_drops_dangling_reference(self, validator, agent_doc):
        document = {
            "agents": [agent_doc("a", delegation="specific", targets=["ghost", "b"]), agent_doc("b")]
        }
        report = validator.validate(document, auto_repair=True)
        assert report.valid is True
        assert report.repaired["agents"][0]["delegation_permissions"]["agents"] == ["b"]
        assert not any("ghost" in w for w in report.warnings)
        assert report.to_configuration().get_agent("a").can_delegate_to("b")

    def test_auto_repair_with_no_targets_left(self, validator, agent_doc):
        document = {"agents": [agent_doc("a", delegation="specific", targets=["ghost"])]}
        report = validator.validate(document, auto_repair=True)
        assert report.valid is True
        assert report.repaired["agents"][0]["delegation_permissions"] == {"type": "none"}

    def test_relationship_limit(self, agent_doc):
        names = [f"agent{i}" for i in range(12)]
        agents = [
            agent_doc(name, delegation="specific", targets=[n for n in names if n != name])
            for name in names
        ]
        report = PermissionValidator(max_agents=20).validate({"agents": agents})
        assert any("Too many delegation relationships (132)" in e for e in report.errors)


class TestMigrationWarnings:
    """Migration changes surface as warnings."""

    def test_legacy_document_validates(self, validator):
        legacy = {
            "coordinator": {
                "name": "coordinator",
                "systemPrompt": "You coordinate the work of other agents.",
                "description": "Coordinator",
                "useFor": "Coordination",
                "delegationPermissions": True,
            },
            "customAgents": [
                {
                    "name": "helper",
                    "systemPrompt": "You help with anything you are asked to.",
                    "description": "Helper",
                    "useFor": "Help",
                }
            ],
        }
        report = validator.validate(legacy)
        assert report.valid is True, report.errors
        assert report.repaired["entry_agent"] == "coordinator"
        assert all(w.startswith("Migration: ") for w in report.warnings)
        assert any("unified agents structure" in w for w in report.warnings)


class TestCycleWarnings:
    """Static cycles are warnings, not errors."""

    def test_cycle_reported(self, validator, chain_document):
        report = validator.validate(chain_document)
        assert report.valid is True
        assert len(report.cycles) == 1
        assert set(report.cycles[0]) == {"coordinator", "planner", "coder"}
        assert any("Potential circular delegation detected" in w for w in report.warnings)
