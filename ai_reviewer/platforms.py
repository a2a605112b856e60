"""
SourceProvider 能力集合 + 工厂。

能力拆成几个 Protocol，由 router 在运行时判断平台支持哪些：
- `SourceProvider`：拉取变更 + 发总结评论（所有平台都有）
- `SupportsLineComments`：行内评论
- `SupportsBatchComments`：一次请求提交多条行内评论（目前只有 GitHub）
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol, runtime_checkable

import httpx

from ai_reviewer.config import PlatformConfig, PlatformType
from ai_reviewer.errors import ConfigurationError
from ai_reviewer.github.provider import GitHubSourceProvider
from ai_reviewer.gitlab.provider import GitLabSourceProvider
from ai_reviewer.local.provider import LocalSourceProvider
from ai_reviewer.review.models import ChangeSet, LineComment, ReviewTarget

logger = logging.getLogger(__name__)


@runtime_checkable
class SourceProvider(Protocol):
    async def fetch_change_set(self) -> ChangeSet: ...

    async def submit_summary_comment(self, body: str) -> None: ...


@runtime_checkable
class SupportsLineComments(Protocol):
    async def submit_line_comment(self, path: str, line: int, body: str) -> None: ...


@runtime_checkable
class SupportsBatchComments(Protocol):
    async def submit_batch_comments(self, path: str, comments: Sequence[LineComment]) -> None: ...


def create_source_provider(
    config: PlatformConfig,
    target: ReviewTarget,
    http_client: httpx.AsyncClient,
) -> SourceProvider:
    """按 `PlatformType` 创建平台实例；缺少 token / 标识时构造即失败。"""
    logger.debug(f"Creating platform: {config.type.value}")
    if config.type == PlatformType.GITLAB:
        return GitLabSourceProvider(config=config, target=target, http_client=http_client)
    if config.type == PlatformType.GITHUB:
        return GitHubSourceProvider(config=config, target=target, http_client=http_client)
    if config.type == PlatformType.LOCAL:
        return LocalSourceProvider(target=target)
    raise ConfigurationError(f"Unsupported platform: {config.type}")
