"""Unit tests for provider adapters."""

from types import SimpleNamespace

import httpx
import ollama
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from pydantic import BaseModel

from brandlens.core.adapters.anthropic import AnthropicAdapter
from brandlens.core.adapters.base import MOCK_API_KEY
from brandlens.core.adapters.chat_completions import OpenAIAdapter, OpenRouterAdapter, PerplexityAdapter
from brandlens.core.adapters.gemini import GeminiAdapter
from brandlens.core.adapters.ollama import OllamaAdapter
from brandlens.core.context import RunContext
from brandlens.core.exceptions import (
    APIClientError,
    APITimeoutError,
    MalformedResponseError,
    ProviderCallError,
    ProviderUnavailableError,
)
from brandlens.schemas.llm import CallOptions, FailureKind


class Verdict(BaseModel):
    winner: str
    confidence: float


def _chat_response(content, **extra):
    return {
        "model": "gpt-4o-2024-08-06",
        "choices": [{"message": {"role": "assistant", "content": content, **extra}}],
        "usage": {"prompt_tokens": 12, "completion_tokens": 7},
    }


@pytest.mark.asyncio
async def test_call_returns_raw_response_with_usage(make_adapter):
    adapter = make_adapter("openai", responder=lambda prompt: f"echo: {prompt}")

    response = await adapter.call("hello", prompt_id="p-1")

    assert response.success is True
    assert response.text == "echo: hello"
    assert response.prompt_id == "p-1"
    assert response.provider == "openai"
    assert response.token_usage.input == 10
    assert response.token_usage.output == 5
    assert adapter.usage.snapshot()["calls"] == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error, expected",
    [
        (APIClientError("bad request", status_code=400), FailureKind.MALFORMED_REQUEST),
        (APIClientError("rate limited", status_code=429), FailureKind.PROVIDER_ERROR),
        (APIClientError("server error", status_code=503), FailureKind.PROVIDER_ERROR),
        (APITimeoutError("slow"), FailureKind.TIMEOUT),
        (RuntimeError("boom"), FailureKind.PROVIDER_ERROR),
    ],
)
async def test_call_turns_failures_into_unsuccessful_responses(make_adapter, error, expected):
    adapter = make_adapter("mistral", error=error)

    response = await adapter.call("hello")

    assert response.success is False
    assert response.failure_kind == expected
    assert response.error
    snapshot = adapter.usage.snapshot()
    assert snapshot["calls"] == 1
    assert snapshot["failures"] == 1


@pytest.mark.asyncio
async def test_call_times_out_at_option_timeout(make_adapter):
    adapter = make_adapter("gemini", delay=0.5)

    response = await adapter.call("hello", CallOptions(timeout=0.05))

    assert response.success is False
    assert response.failure_kind == FailureKind.TIMEOUT


@pytest.mark.asyncio
async def test_unavailable_adapter_raises(make_adapter):
    adapter = make_adapter("anthropic", api_key="")

    assert adapter.is_available() is False
    with pytest.raises(ProviderUnavailableError):
        await adapter.call("hello")


@pytest.mark.asyncio
async def test_mock_key_returns_canned_completion(make_adapter):
    adapter = make_adapter("openai", api_key=MOCK_API_KEY)

    response = await adapter.call("Describe the brand Acme")

    assert response.success is True
    assert response.text.startswith("[mock openai/openai-model]")
    assert adapter.prompts == []


@pytest.mark.asyncio
async def test_usage_is_recorded_on_run_context(make_adapter):
    adapter = make_adapter("openai")

    with RunContext("corr-1") as context:
        await adapter.call("one", context=context)
        await adapter.call("two", context=context)

    usage = context.usage_by_provider()
    assert usage["openai"].input == 20
    assert usage["openai"].output == 10
    assert context.total_usage().total == 30


@pytest.mark.asyncio
async def test_closed_context_ignores_usage(make_adapter):
    adapter = make_adapter("openai")
    context = RunContext()
    context.close()

    await adapter.call("late", context=context)

    assert context.usage_by_provider() == {}
    assert adapter.usage.snapshot()["calls"] == 1


@pytest.mark.asyncio
async def test_call_structured_parses_json(make_adapter):
    adapter = make_adapter("openai", responder=lambda prompt: '{"winner": "Acme", "confidence": 0.8}')

    verdict = await adapter.call_structured("Who wins?", Verdict)

    assert verdict == Verdict(winner="Acme", confidence=0.8)
    assert len(adapter.prompts) == 1
    assert '"winner"' in adapter.prompts[0]


@pytest.mark.asyncio
async def test_call_structured_repairs_once(make_adapter):
    answers = iter(["Acme wins, fairly confidently.", '{"winner": "Acme", "confidence": 0.7}'])
    adapter = make_adapter("openai", responder=lambda prompt: next(answers))

    verdict = await adapter.call_structured("Who wins?", Verdict)

    assert verdict.winner == "Acme"
    assert len(adapter.prompts) == 2
    assert "Acme wins, fairly confidently." in adapter.prompts[1]


@pytest.mark.asyncio
async def test_call_structured_raises_after_failed_repair(make_adapter):
    adapter = make_adapter("openai", responder=lambda prompt: "still prose")

    with pytest.raises(MalformedResponseError):
        await adapter.call_structured("Who wins?", Verdict)
    assert len(adapter.prompts) == 2


@pytest.mark.asyncio
async def test_call_structured_raises_on_call_failure(make_adapter):
    adapter = make_adapter("openai", error=APIClientError("down", status_code=500))

    with pytest.raises(ProviderCallError) as exc_info:
        await adapter.call_structured("Who wins?", Verdict)
    assert exc_info.value.failure_kind == FailureKind.PROVIDER_ERROR.value


@pytest.mark.asyncio
async def test_openai_adapter_requests_web_search_and_reads_citations():
    adapter = OpenAIAdapter("sk-test", "gpt-4o", "https://api.openai.com/v1/chat/completions")
    annotations = [
        {"type": "url_citation", "url_citation": {"url": "https://www.example.com/a", "title": "A"}},
        {"type": "other"},
    ]
    call_api = AsyncMock(return_value=_chat_response("Acme is popular.", annotations=annotations))

    with patch.object(adapter.client, "call_api", call_api):
        response = await adapter.call("Best shoes?", CallOptions(model="gpt-4o-search-preview", web_search=True))

    payload = call_api.call_args.kwargs["payload"]
    assert payload["web_search_options"] == {}
    assert "temperature" not in payload
    assert response.text == "Acme is popular."
    assert response.model_version == "gpt-4o-2024-08-06"
    assert [c.url for c in response.citations] == ["https://www.example.com/a"]
    assert response.used_web_search is True
    assert response.token_usage.input == 12


@pytest.mark.asyncio
async def test_openai_adapter_rejects_response_without_choices():
    adapter = OpenAIAdapter("sk-test", "gpt-4o", "https://api.openai.com/v1/chat/completions")

    with patch.object(adapter.client, "call_api", AsyncMock(return_value={"error": "nope"})):
        response = await adapter.call("Best shoes?")

    assert response.success is False
    assert response.failure_kind == FailureKind.PROVIDER_ERROR


@pytest.mark.asyncio
async def test_perplexity_adapter_reads_search_results():
    adapter = PerplexityAdapter("pplx-test", "sonar", "https://api.perplexity.ai/chat/completions")
    raw = _chat_response("Answer")
    raw["search_results"] = [{"url": "https://news.example.org/x", "title": "X"}, {"title": "no url"}]

    with patch.object(adapter.client, "call_api", AsyncMock(return_value=raw)):
        response = await adapter.call("Best shoes?")

    assert [c.url for c in response.citations] == ["https://news.example.org/x"]
    assert response.used_web_search is True


@pytest.mark.asyncio
async def test_openrouter_adapter_appends_online_suffix_when_searching():
    adapter = OpenRouterAdapter("or-test", "openai/gpt-4o", "https://openrouter.ai/api/v1/chat/completions")
    call_api = AsyncMock(return_value=_chat_response("Answer"))

    with patch.object(adapter.client, "call_api", call_api):
        await adapter.call("Best shoes?", CallOptions(model="openai/gpt-4o", web_search=True))

    assert call_api.call_args.kwargs["payload"]["model"] == "openai/gpt-4o:online"


@pytest.mark.asyncio
async def test_anthropic_adapter_joins_text_blocks():
    adapter = AnthropicAdapter("sk-ant-test", "claude-sonnet")
    raw = {
        "model": "claude-sonnet-20250101",
        "content": [
            {"type": "server_tool_use", "name": "web_search"},
            {"type": "text", "text": "Acme ", "citations": [{"url": "https://acme.example", "title": "Acme"}]},
            {"type": "text", "text": "leads."},
        ],
        "usage": {"input_tokens": 30, "output_tokens": 8},
    }
    call_api = AsyncMock(return_value=raw)

    with patch.object(adapter.client, "call_api", call_api):
        response = await adapter.call("Who leads?", CallOptions(web_search=True, temperature=1.5))

    payload = call_api.call_args.kwargs["payload"]
    assert payload["temperature"] == 1.0
    assert payload["tools"][0]["type"] == "web_search_20250305"
    assert call_api.call_args.kwargs["headers"]["anthropic-version"] == "2023-06-01"
    assert response.text == "Acme leads."
    assert response.used_web_search is True
    assert [c.url for c in response.citations] == ["https://acme.example"]
    assert response.token_usage.total == 38


def _gemini_response(text):
    return SimpleNamespace(text=text, usage_metadata=None, candidates=[], model_version="gemini-2.0-flash-001")


def _ollama_response(content):
    return SimpleNamespace(
        message=SimpleNamespace(content=content), model="llama3.1", prompt_eval_count=4, eval_count=2
    )


@pytest.mark.asyncio
async def test_gemini_adapter_retries_timeouts_with_backoff():
    adapter = GeminiAdapter(api_key="gm-key", max_retries=3, retry_delay=2)
    adapter.client = MagicMock()
    adapter.client.aio.models.generate_content = AsyncMock(
        side_effect=[httpx.ReadTimeout("slow"), httpx.ReadTimeout("slow"), _gemini_response("Acme")]
    )

    with patch("brandlens.core.adapters.base.asyncio.sleep", AsyncMock()) as sleep:
        response = await adapter.call("hello", CallOptions(timeout=5))

    assert response.success is True
    assert response.text == "Acme"
    assert adapter.client.aio.models.generate_content.await_count == 3
    assert [c.args[0] for c in sleep.await_args_list] == [2, 4]


@pytest.mark.asyncio
async def test_gemini_adapter_gives_up_after_max_retries():
    adapter = GeminiAdapter(api_key="gm-key", max_retries=2, retry_delay=1)
    adapter.client = MagicMock()
    adapter.client.aio.models.generate_content = AsyncMock(side_effect=httpx.ReadTimeout("slow"))

    with patch("brandlens.core.adapters.base.asyncio.sleep", AsyncMock()):
        response = await adapter.call("hello", CallOptions(timeout=5))

    assert response.success is False
    assert response.failure_kind == FailureKind.TIMEOUT
    assert adapter.client.aio.models.generate_content.await_count == 2


@pytest.mark.asyncio
async def test_ollama_adapter_retries_server_errors():
    adapter = OllamaAdapter(enabled=True, max_retries=3, retry_delay=1)
    adapter.client = MagicMock()
    adapter.client.chat = AsyncMock(
        side_effect=[ollama.ResponseError("overloaded", 503), _ollama_response("Acme leads")]
    )

    with patch("brandlens.core.adapters.base.asyncio.sleep", AsyncMock()) as sleep:
        response = await adapter.call("hello", CallOptions(timeout=5))

    assert response.success is True
    assert response.text == "Acme leads"
    assert response.token_usage.input == 4
    sleep.assert_awaited_once_with(1)


@pytest.mark.asyncio
async def test_ollama_adapter_does_not_retry_client_errors():
    adapter = OllamaAdapter(enabled=True, max_retries=3, retry_delay=1)
    adapter.client = MagicMock()
    adapter.client.chat = AsyncMock(side_effect=ollama.ResponseError("model not found", 404))

    with patch("brandlens.core.adapters.base.asyncio.sleep", AsyncMock()) as sleep:
        response = await adapter.call("hello", CallOptions(timeout=5))

    assert response.success is False
    assert response.failure_kind == FailureKind.MALFORMED_REQUEST
    assert adapter.client.chat.await_count == 1
    sleep.assert_not_awaited()
