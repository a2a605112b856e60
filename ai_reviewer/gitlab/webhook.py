"""
GitLab Webhook 接入层。

职责：
- 校验 `X-Gitlab-Token`（防止被随意调用）
- 解析 webhook payload -> Pydantic schema（类型安全）
- 过滤掉不关心的事件（只处理 MR open/update/reopen）
- 调用业务 handler（真正的 review 流程在 engine 里）
"""

from __future__ import annotations

import hmac
from collections.abc import Awaitable, Callable

from fastapi import APIRouter
from fastapi import Header
from fastapi import HTTPException
from fastapi import Request
from pydantic import ValidationError

from ai_reviewer.gitlab.schemas import GitLabMergeRequestWebhookEvent

WebhookHandler = Callable[[GitLabMergeRequestWebhookEvent], Awaitable[dict[str, str]]]

HANDLED_ACTIONS = ("open", "update", "reopen")


def build_gitlab_webhook_router(webhook_secret: str, handler: WebhookHandler) -> APIRouter:
    """创建 GitLab webhook 路由。"""
    router = APIRouter()

    @router.post("/gitlab/webhook")
    async def gitlab_webhook(
        request: Request,
        x_gitlab_token: str = Header(alias="X-Gitlab-Token"),
    ) -> dict[str, str]:
        # 1) Webhook secret 校验（GitLab UI 里配置）
        if not hmac.compare_digest(x_gitlab_token, webhook_secret):
            raise HTTPException(status_code=401, detail="Invalid webhook token")

        # 2) 只接 merge_request 事件
        payload = await request.json()
        if not isinstance(payload, dict) or payload.get("object_kind") != "merge_request":
            return {"status": "ignored"}
        try:
            event = GitLabMergeRequestWebhookEvent.model_validate(payload)
        except ValidationError as exc:
            raise HTTPException(status_code=422, detail=f"Invalid merge request payload: {exc}") from exc

        # 3) 只处理我们关心的 MR 动作
        if event.object_attributes.action not in HANDLED_ACTIONS:
            return {"status": "ignored"}

        # 4) 交给业务 handler
        return await handler(event)

    return router
