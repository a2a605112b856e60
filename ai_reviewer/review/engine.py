"""
Review Engine（核心流程编排）。

关键思想：
- **流程由工程代码控制**：固定顺序的状态机，逐文件串行
- **LLM 只负责“思考”**：每个文件一次 review 调用 + 一次总结调用

状态：
IDLE -> FETCHING_CHANGES -> FILTERING -> REVIEWING_FILES -> SUMMARIZING -> NOTIFYING -> DONE
拉取变更失败 -> FETCH_FAILED（终态，返回空结果）

失败策略：
- 单个文件 review 失败：记录日志，跳过该文件，继续下一个
- 总结失败：只放弃总结和总结通知，已产生的结果照常返回
- 通知失败：由 router 自己吞掉
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from ai_reviewer.errors import TransportError
from ai_reviewer.llm.client import ModelClient
from ai_reviewer.platforms import SourceProvider
from ai_reviewer.review.filters import FilterPolicy
from ai_reviewer.review.filters import filter_change_set
from ai_reviewer.review.interpreter import interpret_review_response
from ai_reviewer.review.models import ReviewOutcome

logger = logging.getLogger(__name__)


class EngineState(str, Enum):
    IDLE = "idle"
    FETCHING_CHANGES = "fetching_changes"
    FETCH_FAILED = "fetch_failed"
    FILTERING = "filtering"
    REVIEWING_FILES = "reviewing_files"
    SUMMARIZING = "summarizing"
    NOTIFYING = "notifying"
    DONE = "done"


class Notifier(Protocol):
    async def notify_outcome(self, outcome: ReviewOutcome, provider: SourceProvider) -> None: ...

    async def notify_batch_summary(self, summary: str, provider: SourceProvider) -> None: ...


@dataclass(frozen=True)
class ReviewRunResult:
    """一次运行的结果：outcomes 按原始文件顺序；summary 为 None 表示没有生成总结。"""

    outcomes: list[ReviewOutcome]
    summary: str | None = None
    failed_files: list[str] = field(default_factory=list)
    state: EngineState = EngineState.DONE


@dataclass(frozen=True)
class ReviewEngine:
    """运行时依赖集合（构造后不再变化，每个 review unit 一个实例）。"""

    source: SourceProvider
    model: ModelClient
    notifier: Notifier
    filter_policy: FilterPolicy = field(default_factory=FilterPolicy)

    def _enter(self, state: EngineState) -> EngineState:
        logger.debug(f"Review engine state -> {state.value}")
        return state

    async def run(self) -> ReviewRunResult:
        """
        跑一次完整 review。

        - 每个文件出结果后立刻通知（而不是全部 review 完再统一通知），评审人可以尽早看到
        - 所有外部调用串行 await，输出顺序确定
        """
        self._enter(EngineState.FETCHING_CHANGES)
        try:
            change_set = await self.source.fetch_change_set()
        except TransportError as exc:
            logger.error(f"Failed to fetch changes: {exc}")
            return ReviewRunResult(outcomes=[], state=self._enter(EngineState.FETCH_FAILED))
        logger.info(f"Fetched {len(change_set.changes)} changed file(s) for {change_set.unit}")

        self._enter(EngineState.FILTERING)
        filtered = filter_change_set(change_set, policy=self.filter_policy)
        logger.info(f"{len(filtered.changes)} file(s) left after filtering")

        self._enter(EngineState.REVIEWING_FILES)
        outcomes: list[ReviewOutcome] = []
        failed: list[str] = []
        for index, change in enumerate(filtered.changes, start=1):
            logger.info(f"Reviewing [{index}/{len(filtered.changes)}] {change.new_path}")
            try:
                raw = await self.model.review_change(change)
            except TransportError as exc:
                logger.error(f"Review failed for {change.new_path}, skipping: {exc}")
                failed.append(change.new_path)
                continue
            outcome = interpret_review_response(raw, file_path=change.new_path)
            outcomes.append(outcome)
            await self.notifier.notify_outcome(outcome, self.source)

        summary = await self._summarize(outcomes) if outcomes else None
        if summary:
            self._enter(EngineState.NOTIFYING)
            await self.notifier.notify_batch_summary(summary, self.source)

        self._enter(EngineState.DONE)
        logger.info(f"Review finished: {len(outcomes)} reviewed, {len(failed)} failed")
        return ReviewRunResult(outcomes=outcomes, summary=summary, failed_files=failed, state=EngineState.DONE)

    async def _summarize(self, outcomes: Sequence[ReviewOutcome]) -> str | None:
        self._enter(EngineState.SUMMARIZING)
        try:
            return await self.model.summarize(outcomes)
        except TransportError as exc:
            logger.error(f"Failed to generate review summary: {exc}")
            return None
