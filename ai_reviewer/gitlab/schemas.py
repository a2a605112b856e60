"""
GitLab Webhook / API response schemas（Pydantic）。

为什么要单独放 schema：
- GitLab 的 payload 结构复杂，直接用 dict 容易写错 key
- schema 校验失败会立刻暴露问题（比“默默 None”安全）

说明：
- 这里的字段只覆盖当前流程所需子集，其余字段忽略
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel


class GitLabUser(BaseModel):
    """Webhook 里的 user 子结构（只取 username）。"""

    username: str


class GitLabProject(BaseModel):
    """Webhook 里的 project 子结构（id/web_url）。"""

    id: int
    web_url: str


class GitLabMergeRequestObjectAttributes(BaseModel):
    """Merge request webhook 的 object_attributes 子结构。"""

    iid: int
    action: Literal["open", "update", "reopen", "merge", "close", "approved", "unapproved", "approval", "unapproval"]
    target_branch: str
    source_branch: str


class GitLabMergeRequestWebhookEvent(BaseModel):
    """Merge request webhook 的最小结构。"""

    object_kind: Literal["merge_request"]
    user: GitLabUser
    project: GitLabProject
    object_attributes: GitLabMergeRequestObjectAttributes


class GitLabDiffRefs(BaseModel):
    """GitLab 返回的 diff refs（行内评论 position 必需）。"""

    base_sha: str
    head_sha: str
    start_sha: str


class GitLabMergeRequest(BaseModel):
    """GET /projects/:id/merge_requests/:iid 的子集。"""

    iid: int
    source_branch: str
    target_branch: str
    diff_refs: GitLabDiffRefs | None = None


class GitLabMRChange(BaseModel):
    """单个文件变更（包含 diff 字符串）。"""

    old_path: str
    new_path: str
    new_file: bool = False
    renamed_file: bool = False
    deleted_file: bool = False
    diff: str = ""


class GitLabMergeRequestChanges(BaseModel):
    """MR changes API 返回结构（changes + diff_refs）。"""

    changes: list[GitLabMRChange]
    diff_refs: GitLabDiffRefs | None = None


class GitLabNote(BaseModel):
    """MR note 返回结构。"""

    id: int
    body: str
