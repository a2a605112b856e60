"""
文件过滤策略（纯函数，非 AI）。

规则按固定顺序执行，偏向“拒绝”：前面规则删掉的文件不会被后面的 include 规则捞回来。
1. ignore_files：通配模式（`*` -> `.*`，其余字符按字面量，整串锚定）
2. ignore_paths：字面量前缀（不是 glob）
3. include_patterns：配置了就必须至少匹配一个
4. exclude_patterns：通配模式
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from functools import lru_cache

from pydantic import BaseModel, ConfigDict, Field

from ai_reviewer.config import ReviewConfig
from ai_reviewer.review.models import ChangeSet, FileChange

logger = logging.getLogger(__name__)


class FilterPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    ignore_files: tuple[str, ...] = ()
    ignore_paths: tuple[str, ...] = ()
    include_patterns: tuple[str, ...] = ()
    exclude_patterns: tuple[str, ...] = Field(default=())

    @classmethod
    def from_review_config(cls, config: ReviewConfig) -> FilterPolicy:
        return cls(
            ignore_files=tuple(config.ignore_files),
            ignore_paths=tuple(config.ignore_paths),
            include_patterns=tuple(config.include_patterns),
            exclude_patterns=tuple(config.exclude_patterns),
        )


@lru_cache(maxsize=256)
def _compile_pattern(pattern: str) -> re.Pattern[str]:
    # 只有 `*` 是通配符；其余字符全部转义（包括 `.`、`?`、`[`）
    collapsed = re.sub(r"\*+", "*", pattern)
    regex = ".*".join(re.escape(part) for part in collapsed.split("*"))
    return re.compile(regex, re.DOTALL)


def match_pattern(path: str, pattern: str) -> bool:
    """单个模式匹配：不含 `*` 时就是精确相等。"""
    if "*" not in pattern:
        return path == pattern
    return _compile_pattern(pattern).fullmatch(path) is not None


def matches_any(path: str, patterns: Sequence[str]) -> bool:
    return any(match_pattern(path, pattern) for pattern in patterns)


def _rejection_reason(path: str, policy: FilterPolicy) -> str | None:
    if matches_any(path, policy.ignore_files):
        return "ignore_files"
    if any(path.startswith(prefix) for prefix in policy.ignore_paths):
        return "ignore_paths"
    if policy.include_patterns and not matches_any(path, policy.include_patterns):
        return "include_patterns"
    if matches_any(path, policy.exclude_patterns):
        return "exclude_patterns"
    return None


def filter_changes(changes: Sequence[FileChange], policy: FilterPolicy) -> list[FileChange]:
    """返回入参的子集：保持顺序，同一 new_path 只保留第一次出现。"""
    kept: list[FileChange] = []
    seen: set[str] = set()
    for change in changes:
        path = change.new_path
        if path in seen:
            logger.debug(f"Skip duplicate path: {path}")
            continue
        reason = _rejection_reason(path=path, policy=policy)
        if reason is not None:
            logger.debug(f"Filtered out {path} ({reason})")
            continue
        seen.add(path)
        kept.append(change)
    return kept


def filter_change_set(change_set: ChangeSet, policy: FilterPolicy) -> ChangeSet:
    return ChangeSet(unit=change_set.unit, changes=filter_changes(change_set.changes, policy=policy))
