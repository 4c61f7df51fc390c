"""Claude API wrapper used for the pipeline's completion stages."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any

import anthropic
from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential

from learnpath.errors import CompletionError
from learnpath.utils.json_parser import coerce_completion

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-5-20250929"


@dataclass
class LLMResponse:
    """Response from the LLM including usage metadata."""

    text: str
    input_tokens: int
    output_tokens: int


class LLMClient:
    """Async Claude client with per-call timeout and retry budgets."""

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float | None = None,
        *,
        model: str = DEFAULT_MODEL,
        max_tokens: int = 8192,
        temperature: float = 0.2,
        max_retries: int = 3,
    ):
        kwargs: dict = {}
        if api_key is not None:
            kwargs["api_key"] = api_key
        if timeout is not None:
            kwargs["timeout"] = timeout
        self.client = anthropic.AsyncAnthropic(**kwargs)
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.max_retries = max_retries
        self.retry_wait = wait_exponential(min=1, max=10)
        # usage_key -> [(model, input_tokens, output_tokens)]
        self._token_log: dict[str | None, list[tuple[str, int, int]]] = defaultdict(list)

    async def generate(
        self,
        prompt: str,
        system: str = "",
        *,
        timeout: float | None = None,
        max_retries: int | None = None,
        usage_key: str | None = None,
    ) -> LLMResponse:
        """Send a prompt to Claude and return the text response with usage."""
        attempts = max_retries or self.max_retries
        logger.debug("LLM call: model=%s attempts=%d timeout=%s", self.model, attempts, timeout)
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(attempts),
                wait=self.retry_wait,
                reraise=True,
            ):
                with attempt:
                    message = await self._call_api(prompt, system, timeout)
        except Exception as exc:
            logger.error("LLM call failed after %d attempts", attempts, exc_info=True)
            raise CompletionError(f"Completion failed after {attempts} attempts: {exc}") from exc

        input_tokens = message.usage.input_tokens
        output_tokens = message.usage.output_tokens
        logger.debug("LLM response: %d input, %d output tokens", input_tokens, output_tokens)
        self._token_log[usage_key].append((self.model, input_tokens, output_tokens))
        return LLMResponse(
            text=message.content[0].text,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )

    async def complete(
        self,
        prompt: str,
        context: str = "",
        *,
        timeout: float | None = None,
        max_retries: int | None = None,
        usage_key: str | None = None,
    ) -> Any:
        """Run a prompt and return parsed JSON, or the raw text when it holds none.

        ``context`` is appended under an ``Input:`` heading when given.
        """
        full_prompt = f"{prompt}\n\nInput:\n{context}" if context else prompt
        response = await self.generate(
            full_prompt,
            timeout=timeout,
            max_retries=max_retries,
            usage_key=usage_key,
        )
        return coerce_completion(response.text)

    async def _call_api(self, prompt: str, system: str, timeout: float | None) -> anthropic.types.Message:
        kwargs: dict = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            kwargs["system"] = system
        if timeout is not None:
            kwargs["timeout"] = timeout
        return await self.client.messages.create(**kwargs)

    def get_token_summary(self, usage_key: str | None = None) -> dict:
        """Return token usage recorded under ``usage_key`` and forget it."""
        calls = self._token_log.pop(usage_key, [])
        return {
            "input": sum(c[1] for c in calls),
            "output": sum(c[2] for c in calls),
            "calls": list(calls),
        }
