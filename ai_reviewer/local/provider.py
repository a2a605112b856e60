"""
本地 SourceProvider（基于 git 工作区）。

两种模式：
- 指定 commit：审查该提交引入的变更（`git show`）
- 未指定：审查相对 HEAD 的全部未提交变更（含暂存区，`git diff HEAD`）

评论没有地方可写回，直接输出到日志。
"""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence

import anyio

from ai_reviewer.errors import TransportError
from ai_reviewer.local.git import NameStatusEntry
from ai_reviewer.local.git import parse_name_status
from ai_reviewer.local.git import run_git
from ai_reviewer.review.language import infer_language_from_path
from ai_reviewer.review.models import ChangeSet, FileChange, ReviewTarget

logger = logging.getLogger(__name__)


class LocalSourceProvider:
    def __init__(self, target: ReviewTarget) -> None:
        self._path = target.path or os.getcwd()
        self._commit_sha = target.commit_sha

    def _name_status_args(self) -> list[str]:
        if self._commit_sha:
            return ["show", "--name-status", "--format=", self._commit_sha]
        return ["diff", "--name-status", "HEAD"]

    def _diff_args(self, entry: NameStatusEntry) -> list[str]:
        # 重命名要同时给出新旧路径，否则 diff 会变成整文件新增
        paths = [entry.new_path] if entry.old_path == entry.new_path else [entry.old_path, entry.new_path]
        if self._commit_sha:
            return ["show", "--format=", self._commit_sha, "--", *paths]
        return ["diff", "HEAD", "--", *paths]

    def _old_revision(self) -> str:
        return f"{self._commit_sha}^" if self._commit_sha else "HEAD"

    async def _read_working_file(self, path: str) -> str:
        """先按给定路径解析，找不到再回退到进程工作目录。"""
        candidates: Sequence[str] = [self._path]
        cwd = os.getcwd()
        if os.path.abspath(self._path) != os.path.abspath(cwd):
            candidates = [self._path, cwd]
        last_error: OSError | None = None
        for base in candidates:
            try:
                return await anyio.Path(base, path).read_text(encoding="utf-8", errors="replace")
            except OSError as exc:
                last_error = exc
        logger.warning(f"Could not read local file {path}: {last_error}")
        return ""

    async def _read_old_file(self, path: str) -> str:
        try:
            return await run_git(["show", f"{self._old_revision()}:{path}"], cwd=self._path)
        except TransportError as exc:
            logger.warning(f"Could not read {path} at {self._old_revision()}: {exc}")
            return ""

    async def fetch_change_set(self) -> ChangeSet:
        scope = f"commit {self._commit_sha}" if self._commit_sha else "uncommitted changes"
        logger.info(f"Collecting local diff for {self._path} ({scope})")
        output = await run_git(self._name_status_args(), cwd=self._path)

        file_changes: list[FileChange] = []
        for entry in parse_name_status(output):
            if entry.status == "D":
                continue
            try:
                diff = await run_git(self._diff_args(entry), cwd=self._path)
            except TransportError as exc:
                logger.warning(f"Could not get diff for {entry.new_path}: {exc}")
                continue
            old_content = "" if entry.status == "A" else await self._read_old_file(entry.old_path)
            file_changes.append(
                FileChange(
                    old_path=entry.old_path,
                    new_path=entry.new_path,
                    old_content=old_content,
                    new_content=await self._read_working_file(entry.new_path),
                    diff=diff,
                    language=infer_language_from_path(path=entry.new_path),
                )
            )
        return ChangeSet(unit=f"local:{self._path}@{self._commit_sha or 'HEAD'}", changes=file_changes)

    async def submit_line_comment(self, path: str, line: int, body: str) -> None:
        logger.info(f"Comment on {path}:{line}\n{body}")

    async def submit_summary_comment(self, body: str) -> None:
        logger.info(f"Review summary:\n{body}")
