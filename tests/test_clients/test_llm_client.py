"""Tests for LLMClient (Claude API wrapper)."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from tenacity import wait_none

from learnpath.clients.llm_client import LLMClient, LLMResponse
from learnpath.errors import CompletionError


def _make_api_message(text: str, input_tokens: int = 100, output_tokens: int = 50) -> MagicMock:
    """Build a mock anthropic Message-like object."""
    message = MagicMock()
    message.usage.input_tokens = input_tokens
    message.usage.output_tokens = output_tokens
    message.content = [MagicMock(text=text)]
    return message


def _client_returning(mock_cls, *responses) -> MagicMock:
    mock_client = MagicMock()
    mock_client.messages.create = AsyncMock(side_effect=list(responses))
    mock_cls.return_value = mock_client
    return mock_client


class TestLLMClientInit:
    def test_init_default_creates_client_with_no_kwargs(self):
        with patch("learnpath.clients.llm_client.anthropic.AsyncAnthropic") as mock_cls:
            LLMClient()
            mock_cls.assert_called_once_with()

    def test_init_with_api_key_and_timeout(self):
        with patch("learnpath.clients.llm_client.anthropic.AsyncAnthropic") as mock_cls:
            LLMClient(api_key="test-key", timeout=30.0)
            mock_cls.assert_called_once_with(api_key="test-key", timeout=30.0)


class TestLLMClientGenerate:
    async def test_generate_returns_llm_response(self):
        with patch("learnpath.clients.llm_client.anthropic.AsyncAnthropic") as mock_cls:
            _client_returning(mock_cls, _make_api_message("hello world", 100, 50))
            llm = LLMClient()
            result = await llm.generate("say hello")

        assert isinstance(result, LLMResponse)
        assert result.text == "hello world"
        assert result.input_tokens == 100
        assert result.output_tokens == 50

    async def test_generate_passes_per_call_timeout(self):
        with patch("learnpath.clients.llm_client.anthropic.AsyncAnthropic") as mock_cls:
            mock_client = _client_returning(mock_cls, _make_api_message("ok"))
            llm = LLMClient(model="claude-haiku-4-5-20251001")
            await llm.generate("prompt", timeout=12.5)

        kwargs = mock_client.messages.create.call_args.kwargs
        assert kwargs["timeout"] == 12.5
        assert kwargs["model"] == "claude-haiku-4-5-20251001"
        assert kwargs["messages"] == [{"role": "user", "content": "prompt"}]

    async def test_generate_retries_then_succeeds(self):
        with patch("learnpath.clients.llm_client.anthropic.AsyncAnthropic") as mock_cls:
            mock_client = _client_returning(mock_cls, RuntimeError("overloaded"), _make_api_message("ok"))
            llm = LLMClient()
            llm.retry_wait = wait_none()
            result = await llm.generate("prompt", max_retries=2)

        assert result.text == "ok"
        assert mock_client.messages.create.await_count == 2

    async def test_generate_raises_completion_error_when_budget_exhausted(self):
        with patch("learnpath.clients.llm_client.anthropic.AsyncAnthropic") as mock_cls:
            mock_client = _client_returning(mock_cls, RuntimeError("a"), RuntimeError("b"), RuntimeError("c"))
            llm = LLMClient(max_retries=3)
            llm.retry_wait = wait_none()
            with pytest.raises(CompletionError, match="after 3 attempts"):
                await llm.generate("prompt")

        assert mock_client.messages.create.await_count == 3


class TestLLMClientComplete:
    async def test_complete_parses_json(self):
        with patch("learnpath.clients.llm_client.anthropic.AsyncAnthropic") as mock_cls:
            _client_returning(mock_cls, _make_api_message('```json\n{"key": "value"}\n```'))
            llm = LLMClient()
            result = await llm.complete("give me json")

        assert result == {"key": "value"}

    async def test_complete_returns_text_when_no_json(self):
        with patch("learnpath.clients.llm_client.anthropic.AsyncAnthropic") as mock_cls:
            _client_returning(mock_cls, _make_api_message("  plain answer \n"))
            llm = LLMClient()
            result = await llm.complete("talk to me")

        assert result == "plain answer"

    async def test_complete_appends_context(self):
        with patch("learnpath.clients.llm_client.anthropic.AsyncAnthropic") as mock_cls:
            mock_client = _client_returning(mock_cls, _make_api_message("{}"))
            llm = LLMClient()
            await llm.complete("Do the thing", "some context")

        content = mock_client.messages.create.call_args.kwargs["messages"][0]["content"]
        assert content == "Do the thing\n\nInput:\nsome context"


class TestLLMClientTokenSummary:
    async def test_usage_is_tracked_per_key(self):
        with patch("learnpath.clients.llm_client.anthropic.AsyncAnthropic") as mock_cls:
            _client_returning(
                mock_cls,
                _make_api_message("{}", 100, 50),
                _make_api_message("{}", 200, 80),
                _make_api_message("{}", 7, 3),
            )
            llm = LLMClient()
            await llm.complete("a", usage_key="job-1")
            await llm.complete("b", usage_key="job-1")
            await llm.complete("c", usage_key="job-2")

        summary = llm.get_token_summary("job-1")
        assert summary["input"] == 300
        assert summary["output"] == 130
        assert len(summary["calls"]) == 2
        assert llm.get_token_summary("job-2")["input"] == 7

    def test_get_token_summary_forgets_key(self):
        with patch("learnpath.clients.llm_client.anthropic.AsyncAnthropic"):
            llm = LLMClient()
        llm._token_log["job-1"].append(("claude-sonnet-4-5-20250929", 50, 25))

        llm.get_token_summary("job-1")
        second = llm.get_token_summary("job-1")

        assert second == {"input": 0, "output": 0, "calls": []}
