"""按 `ModelProviderType` 创建 ModelClient。"""

from __future__ import annotations

import logging

import httpx

from ai_reviewer.config import AIConfig, ModelProviderType, PromptConfig
from ai_reviewer.errors import ConfigurationError
from ai_reviewer.llm.client import ModelClient
from ai_reviewer.llm.ollama_client import OllamaModelClient
from ai_reviewer.llm.openai_client import OpenAICompatModelClient

logger = logging.getLogger(__name__)


def create_model_client(config: AIConfig, prompts: PromptConfig, http_client: httpx.AsyncClient) -> ModelClient:
    logger.debug(f"Creating model client: {config.provider.value}")
    if config.provider == ModelProviderType.OPENAI:
        return OpenAICompatModelClient(config=config, prompts=prompts, http_client=http_client)
    if config.provider == ModelProviderType.OLLAMA:
        return OllamaModelClient(config=config, prompts=prompts, http_client=http_client)
    raise ConfigurationError(f"Unsupported model provider: {config.provider}")
