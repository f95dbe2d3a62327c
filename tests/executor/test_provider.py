"""Tests for StaticConfigurationProvider."""

import pytest

from agent_relay.core.exceptions import ConfigurationError
from agent_relay.executor.protocols import ConfigurationProvider
from agent_relay.executor.provider import StaticConfigurationProvider


class TestStaticConfigurationProvider:
    """Snapshot loading and document validation."""

    def test_satisfies_protocol(self, provider):
        assert isinstance(provider, ConfigurationProvider)

    @pytest.mark.asyncio
    async def test_load_configuration(self, provider, configuration):
        assert await provider.load_configuration() is configuration

    @pytest.mark.asyncio
    async def test_from_document(self, coordinator_reviewer_document):
        provider = StaticConfigurationProvider.from_document(coordinator_reviewer_document)
        loaded = await provider.load_configuration()
        assert loaded.agent_names() == ["coordinator", "reviewer"]

    def test_from_invalid_document(self, agent_doc):
        document = {"agents": [agent_doc("a", delegation="specific", targets=["ghost"])]}
        with pytest.raises(ConfigurationError, match="ghost"):
            StaticConfigurationProvider.from_document(document)

    @pytest.mark.asyncio
    async def test_from_document_with_repair(self, agent_doc):
        document = {"agents": [agent_doc("a", delegation="specific", targets=["ghost"])]}
        provider = StaticConfigurationProvider.from_document(document, auto_repair=True)
        loaded = await provider.load_configuration()
        assert loaded.get_agent("a").can_delegate_to("ghost") is False

    @pytest.mark.asyncio
    async def test_update(self, provider, agent_doc):
        replacement = StaticConfigurationProvider.from_document({"agents": [agent_doc("solo")]})
        provider.update(await replacement.load_configuration())
        assert (await provider.load_configuration()).agent_names() == ["solo"]
