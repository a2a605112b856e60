"""
组装一次 review 运行。

这里只负责“装配”：校验配置 -> 平台 / 模型 / 通知 -> ReviewEngine。
业务流程在 `review/engine.py`。
"""

from __future__ import annotations

import httpx

from ai_reviewer.config import ReviewerConfig
from ai_reviewer.config import validate_config
from ai_reviewer.llm.factory import create_model_client
from ai_reviewer.notify.router import NotificationRouter
from ai_reviewer.notify.wecom import WecomWebhookClient
from ai_reviewer.platforms import create_source_provider
from ai_reviewer.review.engine import ReviewEngine
from ai_reviewer.review.engine import ReviewRunResult
from ai_reviewer.review.filters import FilterPolicy
from ai_reviewer.review.models import ReviewTarget

DEFAULT_HTTP_TIMEOUT = 60.0


def build_notification_router(config: ReviewerConfig, http_client: httpx.AsyncClient) -> NotificationRouter:
    wecom = config.notifications.wecom
    webhook = None
    if wecom.enabled and wecom.webhook:
        webhook = WecomWebhookClient(
            webhook_url=wecom.webhook,
            http_client=http_client,
            max_content_length=wecom.max_content_length,
        )
    return NotificationRouter(config=config.notifications, webhook=webhook)


def build_review_engine(config: ReviewerConfig, target: ReviewTarget, http_client: httpx.AsyncClient) -> ReviewEngine:
    """缺少凭证/标识会在这里抛 `ConfigurationError`，此时还没有任何网络调用。"""
    validate_config(config)
    return ReviewEngine(
        source=create_source_provider(config.platform, target=target, http_client=http_client),
        model=create_model_client(config.ai, prompts=config.review.prompts, http_client=http_client),
        notifier=build_notification_router(config, http_client=http_client),
        filter_policy=FilterPolicy.from_review_config(config.review),
    )


async def run_review(config: ReviewerConfig, target: ReviewTarget) -> ReviewRunResult:
    """独立运行一次 review（自带 http client 生命周期）。"""
    async with httpx.AsyncClient(timeout=httpx.Timeout(DEFAULT_HTTP_TIMEOUT)) as http_client:
        engine = build_review_engine(config, target=target, http_client=http_client)
        return await engine.run()
