"""
GitHub SourceProvider。

职责：
- 将 PR files/patch 转为平台无关的 `ChangeSet`
- 文件内容按 PR 的 base/head commit 解析（重命名时旧内容用 previous_filename）
- 行内评论支持批量：同一文件的多条意见合成一次 review 提交
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import httpx

from ai_reviewer.config import PlatformConfig
from ai_reviewer.errors import ConfigurationError, TransportError
from ai_reviewer.github.client import DEFAULT_GITHUB_API_URL
from ai_reviewer.github.client import GitHubClient
from ai_reviewer.github.schemas import GitHubPullRequest
from ai_reviewer.review.language import infer_language_from_path
from ai_reviewer.review.models import ChangeSet, FileChange, LineComment, ReviewTarget

logger = logging.getLogger(__name__)


class GitHubSourceProvider:
    def __init__(self, config: PlatformConfig, target: ReviewTarget, http_client: httpx.AsyncClient) -> None:
        if not config.token:
            raise ConfigurationError("GitHub token is not configured")
        if not target.owner or not target.repo or not target.pull_id:
            raise ConfigurationError("GitHub owner, repo and pull request number are required")

        self._owner = target.owner
        self._repo = target.repo
        self._pull_number = target.pull_id
        self._client = GitHubClient(
            api_base_url=config.url or DEFAULT_GITHUB_API_URL,
            token=config.token,
            http_client=http_client,
        )
        self._pull_request: GitHubPullRequest | None = None

    async def _get_pull_request(self) -> GitHubPullRequest:
        if self._pull_request is None:
            self._pull_request = await self._client.get_pull_request(self._owner, self._repo, self._pull_number)
        return self._pull_request

    async def _file_content(self, path: str, ref: str) -> str:
        try:
            return await self._client.get_file_content(self._owner, self._repo, path=path, ref=ref)
        except TransportError as exc:
            logger.warning(f"Could not fetch GitHub file content {path}@{ref}: {exc}")
            return ""

    async def fetch_change_set(self) -> ChangeSet:
        logger.info(f"Fetching GitHub {self._owner}/{self._repo} PR #{self._pull_number}")
        pull_request = await self._get_pull_request()
        files = await self._client.list_pull_request_files(self._owner, self._repo, self._pull_number)

        file_changes: list[FileChange] = []
        for f in files:
            old_path = f.previous_filename or f.filename
            old_content = "" if f.status == "added" else await self._file_content(old_path, ref=pull_request.base.sha)
            new_content = "" if f.status == "removed" else await self._file_content(f.filename, ref=pull_request.head.sha)
            file_changes.append(
                FileChange(
                    old_path=old_path,
                    new_path=f.filename,
                    old_content=old_content,
                    new_content=new_content,
                    diff=f.patch or "",
                    language=infer_language_from_path(path=f.filename),
                )
            )
        return ChangeSet(unit=f"github:{self._owner}/{self._repo}#{self._pull_number}", changes=file_changes)

    async def submit_line_comment(self, path: str, line: int, body: str) -> None:
        pull_request = await self._get_pull_request()
        await self._client.create_review_comment(
            self._owner,
            self._repo,
            self._pull_number,
            commit_id=pull_request.head.sha,
            path=path,
            line=line,
            body=body,
        )
        logger.debug(f"Posted GitHub comment on {path}:{line}")

    async def submit_batch_comments(self, path: str, comments: Sequence[LineComment]) -> None:
        if not comments:
            return
        pull_request = await self._get_pull_request()
        await self._client.create_pull_request_review(
            self._owner,
            self._repo,
            self._pull_number,
            commit_id=pull_request.head.sha,
            body="",
            comments=[{"path": path, "line": c.line, "side": "RIGHT", "body": c.body} for c in comments],
        )
        logger.debug(f"Posted GitHub review with {len(comments)} comment(s) on {path}")

    async def submit_summary_comment(self, body: str) -> None:
        await self._client.create_issue_comment(self._owner, self._repo, self._pull_number, body=body)
        logger.debug("Posted GitHub PR comment")
