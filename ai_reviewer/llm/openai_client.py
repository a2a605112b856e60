"""
OpenAI-compatible ModelClient（基于 OpenAI SDK）。

目标：
- **尽量薄**：只做协议适配与错误处理
- **统一接口**：任何 OpenAI-compatible 网关（LiteLLM Proxy / DeepSeek / vLLM）都可以接
- 出错统一转为 `TransportError`，不在这里重试
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import httpx
from openai import AsyncOpenAI, OpenAIError

from ai_reviewer.config import AIConfig, PromptConfig
from ai_reviewer.errors import ConfigurationError, TransportError
from ai_reviewer.llm.client import ChatMessage
from ai_reviewer.review.models import FileChange, ReviewOutcome
from ai_reviewer.review.prompts import build_review_prompt
from ai_reviewer.review.prompts import build_summary_prompt
from ai_reviewer.review.prompts import review_system_prompt
from ai_reviewer.review.prompts import summary_system_prompt

logger = logging.getLogger(__name__)


def _normalize_base_url(base_url: str) -> str:
    normalized = base_url.rstrip("/")
    if normalized.endswith("/v1"):
        return normalized
    return f"{normalized}/v1"


class OpenAICompatModelClient:
    def __init__(self, config: AIConfig, prompts: PromptConfig, http_client: httpx.AsyncClient) -> None:
        """
        - config: 模型名 / key / base_url / temperature / max_tokens
        - prompts: 自定义 prompt 模板（可为空）
        - http_client: 复用 httpx.AsyncClient 连接池
        """
        if not config.api_key:
            raise ConfigurationError("OpenAI API key is not configured")
        self._model = config.model
        self._temperature = config.temperature
        self._max_tokens = config.max_tokens
        self._prompts = prompts
        base_url = _normalize_base_url(config.base_url) if config.base_url else None
        # SDK 默认会自动重试；重试策略交给调用方
        self._client = AsyncOpenAI(api_key=config.api_key, base_url=base_url, http_client=http_client, max_retries=0)

    async def complete_text(self, messages: Sequence[ChatMessage]) -> str:
        """调用 chat completion 并返回纯文本 content；空 content 视为失败。"""
        try:
            logger.info(f"LLM request: model={self._model}, messages={len(messages)} msg(s)")
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[m.model_dump() for m in messages],
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
        except OpenAIError as exc:
            logger.error(f"LLM API error: {exc}")
            raise TransportError(f"OpenAI request failed: {exc}") from exc
        except httpx.HTTPError as exc:
            logger.error(f"LLM HTTP error: {exc}")
            raise TransportError(f"OpenAI request failed: {exc}") from exc

        content = response.choices[0].message.content if response.choices else None
        if not content:
            logger.error("LLM returned empty content")
            raise TransportError("OpenAI returned empty content")

        logger.info(f"LLM response: {len(content)} chars")
        return str(content)

    async def review_change(self, change: FileChange) -> str:
        logger.debug(f"Reviewing {change.new_path} with OpenAI")
        messages = [
            ChatMessage(role="system", content=review_system_prompt(self._prompts)),
            ChatMessage(role="user", content=build_review_prompt(change, self._prompts)),
        ]
        return await self.complete_text(messages)

    async def summarize(self, outcomes: Sequence[ReviewOutcome]) -> str:
        logger.debug("Generating review summary with OpenAI")
        messages = [
            ChatMessage(role="system", content=summary_system_prompt(self._prompts)),
            ChatMessage(role="user", content=build_summary_prompt(outcomes, self._prompts)),
        ]
        return await self.complete_text(messages)
