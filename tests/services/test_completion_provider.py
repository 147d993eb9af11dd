"""
Tests for AgentCompletionProvider - settings passthrough, timeout and
error wrapping. The Pydantic AI agent is replaced with a mock.
"""

import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from creatorscook.core.config import Config
from creatorscook.services.completion_provider import AgentCompletionProvider, CompletionError


def _provider(agent, timeout=5):
    provider = AgentCompletionProvider(timeout=timeout)
    provider._agent = agent
    return provider


class TestAgentCompletionProvider:

    @pytest.mark.asyncio
    async def test_returns_output_text(self):
        agent = MagicMock()
        agent.run = AsyncMock(return_value=MagicMock(output='{"virality_packs": []}'))

        text = await _provider(agent).complete("prompt", temperature=0.3, max_tokens=1000)

        assert text == '{"virality_packs": []}'
        agent.run.assert_awaited_once_with(
            "prompt", model_settings={"temperature": 0.3, "max_tokens": 1000}
        )

    @pytest.mark.asyncio
    async def test_timeout(self):
        async def never_finishes(*args, **kwargs):
            await asyncio.sleep(10)

        agent = MagicMock()
        agent.run = never_finishes

        with pytest.raises(CompletionError, match="timed out"):
            await _provider(agent, timeout=0.01).complete("prompt", temperature=0.7, max_tokens=10)

    @pytest.mark.asyncio
    async def test_provider_error_is_wrapped(self):
        agent = MagicMock()
        agent.run = AsyncMock(side_effect=RuntimeError("overloaded"))

        with pytest.raises(CompletionError, match="overloaded"):
            await _provider(agent).complete("prompt", temperature=0.7, max_tokens=10)

        assert agent.run.await_count == 1

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("ANGLE_MODEL", raising=False)
        provider = AgentCompletionProvider()

        assert provider.model == Config.DEFAULT_MODEL
        assert provider.timeout == Config.COMPLETION_TIMEOUT_SECONDS

    def test_agent_is_built_lazily(self):
        with patch("creatorscook.services.completion_provider.Agent") as mock_agent:
            provider = AgentCompletionProvider()
            mock_agent.assert_not_called()

            provider._get_agent()
            provider._get_agent()
            mock_agent.assert_called_once_with(model=provider.model, system_prompt=provider.system_prompt)
