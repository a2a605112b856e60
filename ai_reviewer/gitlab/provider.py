"""
GitLab SourceProvider。

职责：
- 将 MR changes 转换为平台无关的 `ChangeSet`
- 新旧文件内容按 MR 的分支解析（旧内容 -> target 分支的 old_path，新内容 -> source 分支的 new_path）
- 单个文件内容获取失败只告警并返回空内容，不影响整批
- 行内评论 / 全局评论写回 MR
"""

from __future__ import annotations

import logging

import httpx

from ai_reviewer.config import PlatformConfig
from ai_reviewer.errors import ConfigurationError, TransportError
from ai_reviewer.gitlab.client import DEFAULT_GITLAB_API_URL
from ai_reviewer.gitlab.client import GitLabClient
from ai_reviewer.gitlab.schemas import GitLabDiffRefs
from ai_reviewer.review.language import infer_language_from_path
from ai_reviewer.review.models import ChangeSet, FileChange, ReviewTarget

logger = logging.getLogger(__name__)


class GitLabSourceProvider:
    def __init__(self, config: PlatformConfig, target: ReviewTarget, http_client: httpx.AsyncClient) -> None:
        if not config.token:
            raise ConfigurationError("GitLab token is not configured")
        if not target.project_id or not target.merge_request_id:
            raise ConfigurationError("GitLab project id and merge request id are required")

        self._project_id = str(target.project_id)
        self._mr_iid = target.merge_request_id
        self._client = GitLabClient(
            api_url=config.url or DEFAULT_GITLAB_API_URL,
            token=config.token,
            http_client=http_client,
        )
        self._diff_refs: GitLabDiffRefs | None = None
        self._old_paths: dict[str, str] = {}

    async def _file_content(self, path: str, ref: str) -> str:
        try:
            return await self._client.get_raw_file(project_id=self._project_id, path=path, ref=ref)
        except TransportError as exc:
            logger.warning(f"Could not fetch GitLab file content {path}@{ref}: {exc}")
            return ""

    async def fetch_change_set(self) -> ChangeSet:
        logger.info(f"Fetching GitLab project {self._project_id} merge request !{self._mr_iid}")
        mr = await self._client.get_merge_request(project_id=self._project_id, mr_iid=self._mr_iid)
        changes = await self._client.get_merge_request_changes(project_id=self._project_id, mr_iid=self._mr_iid)
        self._diff_refs = changes.diff_refs or mr.diff_refs

        file_changes: list[FileChange] = []
        for c in changes.changes:
            if not c.diff:
                logger.debug(f"Skip {c.new_path}: empty diff")
                continue
            old_path = c.old_path or c.new_path
            self._old_paths[c.new_path] = old_path
            old_content = "" if c.new_file else await self._file_content(old_path, ref=mr.target_branch)
            new_content = "" if c.deleted_file else await self._file_content(c.new_path, ref=mr.source_branch)
            file_changes.append(
                FileChange(
                    old_path=old_path,
                    new_path=c.new_path,
                    old_content=old_content,
                    new_content=new_content,
                    diff=c.diff,
                    language=infer_language_from_path(path=c.new_path),
                )
            )
        return ChangeSet(unit=f"gitlab:{self._project_id}!{self._mr_iid}", changes=file_changes)

    async def _get_diff_refs(self) -> GitLabDiffRefs:
        if self._diff_refs is None:
            mr = await self._client.get_merge_request(project_id=self._project_id, mr_iid=self._mr_iid)
            if mr.diff_refs is None:
                raise TransportError(f"GitLab merge request !{self._mr_iid} has no diff_refs")
            self._diff_refs = mr.diff_refs
        return self._diff_refs

    async def submit_line_comment(self, path: str, line: int, body: str) -> None:
        refs = await self._get_diff_refs()
        position: dict[str, object] = {
            "position_type": "text",
            "base_sha": refs.base_sha,
            "start_sha": refs.start_sha,
            "head_sha": refs.head_sha,
            "old_path": self._old_paths.get(path, path),
            "new_path": path,
            "new_line": line,
        }
        await self._client.create_merge_request_discussion(
            project_id=self._project_id,
            mr_iid=self._mr_iid,
            body=body,
            position=position,
        )
        logger.debug(f"Posted GitLab comment on {path}:{line}")

    async def submit_summary_comment(self, body: str) -> None:
        await self._client.create_merge_request_note(project_id=self._project_id, mr_iid=self._mr_iid, body=body)
        logger.debug("Posted GitLab merge request note")
