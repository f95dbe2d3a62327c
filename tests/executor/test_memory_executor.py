"""Tests for InMemoryAgentExecutor."""

from unittest.mock import AsyncMock

import pytest

from agent_relay.core.exceptions import CircularDelegationError, ExecutionError
from agent_relay.executor.memory import InMemoryAgentExecutor
from agent_relay.executor.protocols import AgentExecutor


class TestInitialization:
    """Context creation."""

    def test_satisfies_protocol(self, executor):
        assert isinstance(executor, AgentExecutor)

    @pytest.mark.asyncio
    async def test_initialize_root(self, executor, configuration):
        definition = configuration.get_agent("coordinator")
        context = await executor.initialize_agent(definition, configuration)

        assert context.agent_name == "coordinator"
        assert context.delegation_chain == []
        assert context.parent_conversation_id is None
        assert context.available_delegation_targets == ["reviewer"]
        assert executor.get_agent_context("coordinator") is context

    @pytest.mark.asyncio
    async def test_initialize_child(self, executor, configuration):
        root = await executor.initialize_agent(configuration.get_agent("coordinator"))
        child = await executor.initialize_child_agent(configuration.get_agent("reviewer"), root)

        assert child.delegation_chain == ["coordinator"]
        assert child.parent_conversation_id == root.conversation_id
        assert child.available_delegation_targets == []
        # child contexts are keyed by name and conversation
        assert executor.get_agent_context("reviewer") is None
        assert executor.get_agent_context_by_conversation(child.conversation_id) is child
        assert len(executor.get_active_agents()) == 2

    @pytest.mark.asyncio
    async def test_circular_child_refused(self, executor, configuration):
        root = await executor.initialize_agent(configuration.get_agent("coordinator"))
        with pytest.raises(CircularDelegationError) as exc_info:
            await executor.initialize_child_agent(configuration.get_agent("coordinator"), root)
        assert exc_info.value.chain == ["coordinator"]


class TestExecution:
    """Running agents through the handler."""

    @pytest.mark.asyncio
    async def test_default_handler_acknowledges(self, executor, configuration):
        context = await executor.initialize_agent(configuration.get_agent("coordinator"))
        assert await executor.execute_agent(context, "hello") == "coordinator received: hello"

    @pytest.mark.asyncio
    async def test_custom_handler(self, configuration):
        handler = AsyncMock(return_value="done")
        executor = InMemoryAgentExecutor(handler=handler)
        context = await executor.initialize_agent(configuration.get_agent("coordinator"))

        assert await executor.execute_agent(context, "work") == "done"
        handler.assert_awaited_once_with(context, "work")

    @pytest.mark.asyncio
    async def test_handler_failure_wrapped(self, configuration):
        executor = InMemoryAgentExecutor(handler=AsyncMock(side_effect=RuntimeError("model down")))
        context = await executor.initialize_agent(configuration.get_agent("coordinator"))

        with pytest.raises(ExecutionError, match="model down") as exc_info:
            await executor.execute_agent(context, "work")
        assert exc_info.value.agent_name == "coordinator"


class TestTermination:
    """Context teardown."""

    @pytest.mark.asyncio
    async def test_terminate_agent_removes_descendants(self, executor, configuration):
        root = await executor.initialize_agent(configuration.get_agent("coordinator"))
        await executor.initialize_child_agent(configuration.get_agent("reviewer"), root)

        executor.terminate_agent("coordinator")
        assert executor.get_active_agents() == []

    @pytest.mark.asyncio
    async def test_terminate_by_conversation(self, executor, configuration):
        root = await executor.initialize_agent(configuration.get_agent("coordinator"))
        child = await executor.initialize_child_agent(configuration.get_agent("reviewer"), root)

        executor.terminate_agent_by_conversation(child.conversation_id)
        assert executor.get_active_agents() == [root]

    def test_terminate_unknown_is_noop(self, executor):
        executor.terminate_agent("ghost")
        executor.terminate_agent_by_conversation("missing")
        assert executor.get_active_agents() == []
