"""
GitHub Webhook / API response schemas（Pydantic）。

说明：
- 字段只覆盖当前流程需要的子集（PR webhook + PR 详情 + list files + review）。
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel


class GitHubOwner(BaseModel):
    login: str


class GitHubRepository(BaseModel):
    name: str
    owner: GitHubOwner
    full_name: str


class GitHubPullRequestRef(BaseModel):
    sha: str
    ref: str


class GitHubPullRequest(BaseModel):
    number: int
    head: GitHubPullRequestRef
    base: GitHubPullRequestRef


class GitHubPullRequestWebhookEvent(BaseModel):
    """
    GitHub `pull_request` webhook event（最小结构）。

    action: opened/reopened/synchronize 等；其余 action 直接忽略
    """

    action: str
    pull_request: GitHubPullRequest
    repository: GitHubRepository


class GitHubPullRequestFile(BaseModel):
    """
    PR 文件列表 item（GET /pulls/{pull_number}/files）。

    patch 可能缺失（例如大文件/二进制/被截断），此时 diff 为空字符串。
    """

    filename: str
    status: Literal["added", "modified", "removed", "renamed", "changed", "copied", "unchanged"]
    patch: str | None = None
    previous_filename: str | None = None


class GitHubReview(BaseModel):
    id: int
