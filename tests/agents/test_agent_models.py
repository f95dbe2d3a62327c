"""Tests for agent definition models."""

import pytest
from pydantic import ValidationError

from agent_relay.agents.models import (
    AgentDefinition,
    DelegationPolicy,
    PolicyKind,
    RelayConfiguration,
    ToolPolicy,
    default_configuration_document,
)


class TestDelegationPolicy:
    """DelegationPolicy construction and evaluation."""

    def test_default_is_none(self):
        assert DelegationPolicy().type == PolicyKind.NONE

    def test_none_never_permits(self):
        assert DelegationPolicy.none().permits("a", "b") is False

    def test_all_permits_others_only(self):
        policy = DelegationPolicy.all()
        assert policy.permits("a", "b") is True
        assert policy.permits("a", "a") is False

    def test_specific_permits_listed_targets(self):
        policy = DelegationPolicy.specific("b")
        assert policy.permits("a", "b") is True
        assert policy.permits("a", "c") is False

    def test_specific_requires_targets(self):
        with pytest.raises(ValidationError):
            DelegationPolicy(type=PolicyKind.SPECIFIC)

    def test_specific_rejects_duplicates(self):
        with pytest.raises(ValidationError):
            DelegationPolicy.specific("b", "b")

    def test_frozen(self):
        policy = DelegationPolicy.all()
        with pytest.raises(ValidationError):
            policy.type = PolicyKind.NONE


class TestToolPolicy:
    """ToolPolicy evaluation is independent of delegation."""

    def test_all(self):
        assert ToolPolicy().permits("report_out") is True

    def test_none(self):
        assert ToolPolicy(type=PolicyKind.NONE).permits("report_out") is False

    def test_specific(self):
        policy = ToolPolicy(type=PolicyKind.SPECIFIC, tools=["report_out"])
        assert policy.permits("report_out") is True
        assert policy.permits("delegate_work") is False


class TestAgentDefinition:
    """AgentDefinition field validation."""

    def _agent(self, **overrides):
        values = {
            "name": "reviewer",
            "system_prompt": "Review code changes carefully.",
            "description": "Reviews code",
            "use_for": "Code review",
        }
        values.update(overrides)
        return AgentDefinition(**values)

    def test_defaults(self):
        agent = self._agent()
        assert agent.delegation_permissions.type == PolicyKind.NONE
        assert agent.tool_permissions.type == PolicyKind.ALL

    def test_text_is_stripped(self):
        assert self._agent(description="  Reviews code  ").description == "Reviews code"

    @pytest.mark.parametrize("name", ["has space", "dot.name", "", "x" * 51])
    def test_invalid_names(self, name):
        with pytest.raises(ValidationError):
            self._agent(name=name)

    def test_short_prompt_rejected(self):
        with pytest.raises(ValidationError):
            self._agent(system_prompt="too short")

    def test_blank_description_rejected(self):
        with pytest.raises(ValidationError):
            self._agent(description="   ")

    def test_can_delegate_to(self):
        agent = self._agent(delegation_permissions=DelegationPolicy.all())
        assert agent.can_delegate_to("coordinator") is True
        assert agent.can_delegate_to("reviewer") is False


class TestRelayConfiguration:
    """RelayConfiguration cross-reference checks and helpers."""

    def test_lookup_helpers(self, configuration):
        assert configuration.get_agent("reviewer").name == "reviewer"
        assert configuration.get_agent("missing") is None
        assert configuration.agent_names() == ["coordinator", "reviewer"]
        assert set(configuration.agents_by_name()) == {"coordinator", "reviewer"}

    def test_duplicate_names_rejected(self, agent_doc):
        with pytest.raises(ValidationError, match="unique"):
            RelayConfiguration.model_validate({"agents": [agent_doc("a"), agent_doc("a")]})

    def test_unknown_target_rejected(self, agent_doc):
        with pytest.raises(ValidationError, match="unknown agents"):
            RelayConfiguration.model_validate(
                {"agents": [agent_doc("a", delegation="specific", targets=["ghost"])]}
            )

    def test_unknown_entry_agent_rejected(self, agent_doc):
        with pytest.raises(ValidationError, match="entry agent"):
            RelayConfiguration.model_validate({"entry_agent": "ghost", "agents": [agent_doc("a")]})

    def test_empty_agents_rejected(self):
        with pytest.raises(ValidationError):
            RelayConfiguration.model_validate({"agents": []})

    def test_default_document_is_valid_and_fresh(self):
        first = default_configuration_document()
        configuration = RelayConfiguration.model_validate(first)
        assert configuration.entry_agent == "coordinator"

        first["agents"][0]["name"] = "changed"
        assert default_configuration_document()["agents"][0]["name"] == "coordinator"
