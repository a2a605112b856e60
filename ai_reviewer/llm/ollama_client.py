"""
Ollama ModelClient（本地模型）。

说明：
- 先走 `/api/generate`（system prompt 拼在 user prompt 前面，所有模型都支持）
- generate 失败时改走 `/api/chat`（部分模型只在 chat 接口上表现正常）
- 两个接口都失败才抛 `TransportError`
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import httpx

from ai_reviewer.config import AIConfig, PromptConfig
from ai_reviewer.errors import TransportError
from ai_reviewer.llm.client import ChatMessage
from ai_reviewer.review.models import FileChange, ReviewOutcome
from ai_reviewer.review.prompts import build_review_prompt
from ai_reviewer.review.prompts import build_summary_prompt
from ai_reviewer.review.prompts import review_system_prompt
from ai_reviewer.review.prompts import summary_system_prompt

logger = logging.getLogger(__name__)

DEFAULT_OLLAMA_BASE_URL = "http://localhost:11434"


class OllamaModelClient:
    def __init__(self, config: AIConfig, prompts: PromptConfig, http_client: httpx.AsyncClient) -> None:
        self._base_url = (config.base_url or DEFAULT_OLLAMA_BASE_URL).rstrip("/")
        self._model = config.model
        self._options = {"temperature": config.temperature, "num_predict": config.max_tokens}
        self._prompts = prompts
        self._http_client = http_client

    async def _post(self, path: str, payload: dict[str, object]) -> dict[str, object]:
        url = f"{self._base_url}{path}"
        try:
            response = await self._http_client.post(url, json=payload)
        except httpx.HTTPError as exc:
            raise TransportError(f"Ollama request failed: {exc}") from exc
        if response.status_code >= 400:
            raise TransportError(f"Ollama API error {response.status_code}: {response.text}", response.status_code)
        try:
            data = response.json()
        except ValueError as exc:
            raise TransportError(f"Ollama returned invalid JSON: {response.text}") from exc
        if not isinstance(data, dict):
            raise TransportError(f"Unexpected Ollama response shape: {data}")
        return data

    async def generate(self, prompt: str) -> str:
        data = await self._post(
            "/api/generate",
            {"model": self._model, "prompt": prompt, "stream": False, "options": self._options},
        )
        content = data.get("response")
        if not isinstance(content, str) or not content:
            raise TransportError("Ollama generate returned empty response")
        return content

    async def chat(self, messages: Sequence[ChatMessage]) -> str:
        data = await self._post(
            "/api/chat",
            {
                "model": self._model,
                "messages": [m.model_dump() for m in messages],
                "stream": False,
                "options": self._options,
            },
        )
        message = data.get("message")
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str) or not content:
            raise TransportError("Ollama chat returned empty content")
        return content

    async def complete_text(self, system_prompt: str, user_prompt: str) -> str:
        logger.info(f"LLM request: model={self._model} (ollama)")
        try:
            content = await self.generate(f"{system_prompt}\n\n{user_prompt}")
        except TransportError as exc:
            logger.warning(f"Ollama generate API failed, falling back to chat API: {exc}")
            content = await self.chat(
                [
                    ChatMessage(role="system", content=system_prompt),
                    ChatMessage(role="user", content=user_prompt),
                ]
            )
        logger.info(f"LLM response: {len(content)} chars")
        return content

    async def review_change(self, change: FileChange) -> str:
        logger.debug(f"Reviewing {change.new_path} with Ollama model {self._model}")
        return await self.complete_text(review_system_prompt(self._prompts), build_review_prompt(change, self._prompts))

    async def summarize(self, outcomes: Sequence[ReviewOutcome]) -> str:
        logger.debug("Generating review summary with Ollama")
        return await self.complete_text(summary_system_prompt(self._prompts), build_summary_prompt(outcomes, self._prompts))
