"""
Review 领域模型（Pydantic）。

用途：
- 明确各阶段输入/输出的数据结构（provider -> engine -> router）
- 作为模型 JSON 输出中 findings 的校验 schema（宽松：未知 severity 回落为 info）
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Severity(str, Enum):
    """问题严重程度（封闭枚举）。"""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    @classmethod
    def parse(cls, value: object) -> Severity:
        """大小写不敏感；无法识别的值一律视为 info。"""
        if isinstance(value, Severity):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                return cls.INFO
        return cls.INFO


class FileChange(BaseModel):
    """单个文件的变更（由 SourceProvider 创建，之后只读）。"""

    model_config = ConfigDict(frozen=True)

    old_path: str
    new_path: str
    old_content: str = ""
    new_content: str = ""
    diff: str
    language: str | None = None


class ChangeSet(BaseModel):
    """一次 review unit（MR / PR / 本地 diff）的全部文件变更，保持原始顺序。"""

    unit: str
    changes: list[FileChange] = Field(default_factory=list)


class Finding(BaseModel):
    """
    单条审查意见。

    - line 为空表示文件级意见；行号只是提示，不做范围校验
    - 模型 JSON 里的 `code` 字段映射到 `example_code`
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    line: int | None = None
    severity: Severity = Severity.INFO
    message: str
    suggestion: str | None = None
    example_code: str | None = Field(default=None, alias="code")

    @field_validator("severity", mode="before")
    @classmethod
    def _coerce_severity(cls, value: object) -> Severity:
        return Severity.parse(value)

    @field_validator("line", mode="before")
    @classmethod
    def _coerce_line(cls, value: object) -> int | None:
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, str):
            value = value.strip()
            if not value.isdigit():
                return None
        try:
            line = int(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return None
        return line if line > 0 else None

    @field_validator("message", "suggestion", "example_code", mode="before")
    @classmethod
    def _coerce_text(cls, value: object) -> str | None:
        if value is None or isinstance(value, str):
            return value
        return str(value)


class ReviewOutcome(BaseModel):
    """单个文件的审查结果（每个被审查的 FileChange 恰好一个）。"""

    model_config = ConfigDict(frozen=True)

    file: str
    findings: list[Finding] = Field(default_factory=list)
    summary: str = ""


class LineComment(BaseModel):
    """交给支持批量评论的平台的一条行内评论。"""

    line: int
    body: str


class ReviewTarget(BaseModel):
    """
    选择 review unit 的标识：
    - GitLab: project_id + merge_request_id
    - GitHub: owner + repo + pull_id
    - 本地: path（可选）+ commit_sha（可选）
    """

    project_id: str | None = None
    merge_request_id: int | None = None
    owner: str | None = None
    repo: str | None = None
    pull_id: int | None = None
    path: str | None = None
    commit_sha: str | None = None
