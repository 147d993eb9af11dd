"""
Completion providers - the single seam between CreatorsCook and an LLM.

Everything above this layer owns prompt construction and response
parsing; a provider only turns (prompt, temperature, max_tokens) into
raw text. Calls are bounded by a timeout and are never retried.
"""

import asyncio
import logging
from typing import Optional, Protocol

import logfire
from pydantic_ai import Agent

from ..core.config import Config

logger = logging.getLogger(__name__)


class CompletionError(Exception):
    """Raised when the completion provider fails or times out."""
    pass


class CompletionProvider(Protocol):
    async def complete(self, prompt: str, *, temperature: float, max_tokens: int) -> str:
        ...


class AgentCompletionProvider:
    """
    Completion provider backed by a Pydantic AI Agent.

    Example:
        provider = AgentCompletionProvider(model_key="angle")
        text = await provider.complete(prompt, temperature=0.7, max_tokens=4000)
    """

    def __init__(
        self,
        model_key: str = "angle",
        system_prompt: str = "You are an expert TikTok content strategist.",
        timeout: Optional[float] = None,
    ):
        self.model = Config.get_model(model_key)
        self.timeout = timeout if timeout is not None else Config.COMPLETION_TIMEOUT_SECONDS
        self.system_prompt = system_prompt
        self._agent: Optional[Agent] = None

    def _get_agent(self) -> Agent:
        if self._agent is None:
            self._agent = Agent(model=self.model, system_prompt=self.system_prompt)
        return self._agent

    async def complete(self, prompt: str, *, temperature: float, max_tokens: int) -> str:
        with logfire.span("llm_completion", model=self.model, temperature=temperature, max_tokens=max_tokens):
            try:
                result = await asyncio.wait_for(
                    self._get_agent().run(
                        prompt,
                        model_settings={"temperature": temperature, "max_tokens": max_tokens},
                    ),
                    timeout=self.timeout,
                )
            except asyncio.TimeoutError as e:
                logger.error(f"Completion timed out after {self.timeout}s ({self.model})")
                raise CompletionError(f"Completion timed out after {self.timeout}s") from e
            except Exception as e:
                logger.error(f"Completion failed ({self.model}): {type(e).__name__}: {e}")
                raise CompletionError(str(e)) from e

        return result.output
