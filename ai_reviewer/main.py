"""
FastAPI webhook 服务入口。

这里做三件事：
- 加载配置（严格校验环境变量）
- 根据平台类型装配 webhook 路由（GitLab MR / GitHub PR）
- 收到事件后为该 review unit 跑一次 ReviewEngine

注意：
- 业务流程不写在这里（由 `review/engine.py` 负责）
- 每个事件一个独立的 engine 实例，互不共享状态

启动：
  uvicorn ai_reviewer.main:build_app --factory
  python -m ai_reviewer.main
"""

from __future__ import annotations

import logging
import os
from collections.abc import Awaitable, Callable

import uvicorn
from fastapi import FastAPI

from ai_reviewer.config import PlatformType
from ai_reviewer.config import ReviewerConfig
from ai_reviewer.config import load_config_from_env
from ai_reviewer.config import validate_config
from ai_reviewer.errors import ConfigurationError
from ai_reviewer.github.schemas import GitHubPullRequestWebhookEvent
from ai_reviewer.github.webhook import build_github_webhook_router
from ai_reviewer.gitlab.schemas import GitLabMergeRequestWebhookEvent
from ai_reviewer.gitlab.webhook import build_gitlab_webhook_router
from ai_reviewer.review.engine import ReviewRunResult
from ai_reviewer.review.models import ReviewTarget
from ai_reviewer.runner import run_review

logger = logging.getLogger(__name__)

ReviewRunner = Callable[[ReviewerConfig, ReviewTarget], Awaitable[ReviewRunResult]]


def _result_body(result: ReviewRunResult) -> dict[str, str]:
    return {
        "status": result.state.value,
        "reviewed": str(len(result.outcomes)),
        "failed": str(len(result.failed_files)),
    }


def build_app(config: ReviewerConfig | None = None, runner: ReviewRunner = run_review) -> FastAPI:
    """创建并返回 FastAPI app（config/runner 可注入，便于测试）。"""

    # 1) 配置：缺失会直接抛错，启动失败（这是期望行为）
    if config is None:
        config = load_config_from_env(os.environ)
    validate_config(config)
    platform = config.platform
    if platform.type != PlatformType.LOCAL and not platform.webhook_secret:
        raise ConfigurationError("Webhook secret is not configured (AI_REVIEWER_WEBHOOK_SECRET)")

    app = FastAPI(title="AI Reviewer", version="0.1.0")

    @app.get("/health")
    async def health() -> dict[str, str]:
        """健康检查：用于 k8s / LB 探活。"""
        return {"status": "ok"}

    # 2) 按平台类型只挂一个 webhook 路由
    if platform.type == PlatformType.GITLAB and platform.webhook_secret:

        async def handle_gitlab(event: GitLabMergeRequestWebhookEvent) -> dict[str, str]:
            logger.info(f"GitLab MR event: project={event.project.id} mr=!{event.object_attributes.iid}")
            target = ReviewTarget(project_id=str(event.project.id), merge_request_id=event.object_attributes.iid)
            return _result_body(await runner(config, target))

        app.include_router(build_gitlab_webhook_router(webhook_secret=platform.webhook_secret, handler=handle_gitlab))

    if platform.type == PlatformType.GITHUB and platform.webhook_secret:

        async def handle_github(event: GitHubPullRequestWebhookEvent) -> dict[str, str]:
            repo = event.repository
            logger.info(f"GitHub PR event: {repo.full_name}#{event.pull_request.number}")
            target = ReviewTarget(owner=repo.owner.login, repo=repo.name, pull_id=event.pull_request.number)
            return _result_body(await runner(config, target))

        app.include_router(build_github_webhook_router(webhook_secret=platform.webhook_secret, handler=handle_github))

    return app


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    host = os.environ.get("AI_REVIEWER_HOST", "127.0.0.1")
    port = int(os.environ.get("AI_REVIEWER_PORT", "8000"))
    uvicorn.run(build_app(), host=host, port=port)


if __name__ == "__main__":
    main()
