"""
ModelClient 接口（能力集合）。

约定：
- `review_change`：单个文件 diff -> 模型原始文本（由 interpreter 解析）
- `summarize`：全部文件结果 -> 总结文本
- 任何传输/SDK 错误都包装为 `TransportError` 抛出，影响范围由调用方（engine）决定
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from pydantic import BaseModel

from ai_reviewer.review.models import FileChange, ReviewOutcome


class ChatMessage(BaseModel):
    """OpenAI chat message 的最小结构。"""

    role: str
    content: str


class ModelClient(Protocol):
    async def review_change(self, change: FileChange) -> str: ...

    async def summarize(self, outcomes: Sequence[ReviewOutcome]) -> str: ...
