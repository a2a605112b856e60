from __future__ import annotations

import json

import httpx
import pytest

from ai_reviewer.config import AIConfig
from ai_reviewer.config import PromptConfig
from ai_reviewer.errors import ConfigurationError
from ai_reviewer.errors import TransportError
from ai_reviewer.llm.factory import create_model_client
from ai_reviewer.llm.ollama_client import OllamaModelClient
from ai_reviewer.llm.openai_client import OpenAICompatModelClient
from ai_reviewer.llm.openai_client import _normalize_base_url
from ai_reviewer.review.models import ReviewOutcome


def _completion(content: str | None) -> dict:
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "created": 0,
        "model": "deepseek-chat",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}],
    }


def test_normalize_base_url() -> None:
    assert _normalize_base_url("https://api.deepseek.com") == "https://api.deepseek.com/v1"
    assert _normalize_base_url("https://proxy.local/v1/") == "https://proxy.local/v1"


def test_openai_client_requires_api_key() -> None:
    with pytest.raises(ConfigurationError):
        OpenAICompatModelClient(AIConfig(), PromptConfig(), httpx.AsyncClient())


def test_factory_picks_client_by_provider() -> None:
    http_client = httpx.AsyncClient()
    assert isinstance(create_model_client(AIConfig(api_key="k"), PromptConfig(), http_client), OpenAICompatModelClient)
    assert isinstance(create_model_client(AIConfig(provider="ollama"), PromptConfig(), http_client), OllamaModelClient)


@pytest.mark.asyncio
async def test_openai_review_change_sends_prompts(make_change) -> None:
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v1/chat/completions"
        seen.append(json.loads(request.content))
        return httpx.Response(200, json=_completion("10: [error] boom"))

    config = AIConfig(api_key="k", base_url="https://llm.example.com", model="deepseek-chat", temperature=0.2, max_tokens=500)
    client = OpenAICompatModelClient(
        config,
        PromptConfig(system="SYS", review="review {{filePath}}"),
        httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )

    text = await client.review_change(make_change("src/app.py"))

    assert text == "10: [error] boom"
    body = seen[0]
    assert body["model"] == "deepseek-chat"
    assert body["temperature"] == 0.2
    assert body["max_tokens"] == 500
    assert body["messages"] == [
        {"role": "system", "content": "SYS"},
        {"role": "user", "content": "review src/app.py"},
    ]


@pytest.mark.asyncio
async def test_openai_http_error_is_transport_error_without_retry(make_change) -> None:
    calls: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        return httpx.Response(500, json={"error": {"message": "upstream down"}})

    client = OpenAICompatModelClient(
        AIConfig(api_key="k", base_url="https://llm.example.com"),
        PromptConfig(),
        httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )

    with pytest.raises(TransportError):
        await client.review_change(make_change("a.py"))
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_openai_empty_content_is_transport_error() -> None:
    client = OpenAICompatModelClient(
        AIConfig(api_key="k", base_url="https://llm.example.com"),
        PromptConfig(),
        httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, json=_completion(None)))),
    )
    with pytest.raises(TransportError):
        await client.summarize([ReviewOutcome(file="a.py")])


@pytest.mark.asyncio
async def test_ollama_generate_is_used_first(make_change) -> None:
    seen: list[tuple[str, dict]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.url.path, json.loads(request.content)))
        return httpx.Response(200, json={"response": "looks fine", "done": True})

    client = OllamaModelClient(
        AIConfig(provider="ollama", model="qwen2.5-coder", max_tokens=256),
        PromptConfig(system="SYS", review="R {{filePath}}"),
        httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )

    assert await client.review_change(make_change("a.py")) == "looks fine"
    path, body = seen[0]
    assert path == "/api/generate"
    assert body["prompt"] == "SYS\n\nR a.py"
    assert body["stream"] is False
    assert body["options"]["num_predict"] == 256


@pytest.mark.asyncio
async def test_ollama_falls_back_to_chat() -> None:
    paths: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        if request.url.path == "/api/generate":
            return httpx.Response(404, json={"error": "model does not support generate"})
        return httpx.Response(200, json={"message": {"role": "assistant", "content": "summary text"}})

    client = OllamaModelClient(
        AIConfig(provider="ollama", base_url="http://ollama:11434/"),
        PromptConfig(),
        httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )

    assert await client.summarize([ReviewOutcome(file="a.py")]) == "summary text"
    assert paths == ["/api/generate", "/api/chat"]


@pytest.mark.asyncio
async def test_ollama_both_endpoints_failing_raises() -> None:
    client = OllamaModelClient(
        AIConfig(provider="ollama"),
        PromptConfig(),
        httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(500, text="down"))),
    )
    with pytest.raises(TransportError):
        await client.complete_text("s", "u")
