"""
模型输出解析（ResponseInterpreter）。

模型输出是非结构化文本，这里把它转为 `ReviewOutcome`，并且**永不抛错**：
1. 优先使用 ``` 代码块里的 JSON（包含 `findings` 数组）
2. 否则逐行扫描 `行号: [severity] 描述`
3. 仍然没有结果且文本非空：整段文本作为一条 info 意见
4. 摘要：`总结:` / `Summary:` 之后的一行，否则取最后一个非空段落

逐行扫描是手写的状态机而不是正则：模型输出可能很长/很畸形，
带嵌套量词的正则会出现灾难性回溯，这里必须保证线性时间。
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterator

from pydantic import ValidationError

from ai_reviewer.review.models import Finding, ReviewOutcome, Severity

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = "review feedback"
PARSE_FAILURE_MESSAGE = "failed to parse review response"

_FENCE = "```"
_COLONS = (":", "：")
_BULLETS = ("-", "*", "•")
_DIGITS = "0123456789"
_SEVERITY_TAGS = {s.value: s for s in Severity}
_MAX_LINE_DIGITS = 9
_MAX_TAG_LENGTH = 16

# 字面量分支 + 有界空白，不会回溯
_SUMMARY_MARKER = re.compile(r"(?:总结|总体评价|summary)[ \t]*[:：]", re.IGNORECASE)


def interpret_review_response(raw_text: str, file_path: str) -> ReviewOutcome:
    """把模型原始输出解析为单个文件的 `ReviewOutcome`。相同输入总是得到相同输出。"""
    try:
        return _interpret(text=raw_text or "", file_path=file_path)
    except Exception as exc:
        logger.exception(f"Failed to interpret review response for {file_path}")
        return ReviewOutcome(
            file=file_path,
            findings=[Finding(severity=Severity.ERROR, message=PARSE_FAILURE_MESSAGE, suggestion=str(exc))],
            summary=PARSE_FAILURE_MESSAGE,
        )


def _interpret(text: str, file_path: str) -> ReviewOutcome:
    embedded = extract_fenced_findings(text)
    if embedded is not None:
        findings, summary = embedded
        return ReviewOutcome(file=file_path, findings=findings, summary=summary or extract_summary(text))

    findings = scan_findings(text)
    if not findings and text.strip():
        findings = [Finding(severity=Severity.INFO, message=FALLBACK_MESSAGE, suggestion=text.strip())]
    return ReviewOutcome(file=file_path, findings=findings, summary=extract_summary(text))


def _iter_fenced_blocks(text: str) -> Iterator[str]:
    start = 0
    while True:
        open_idx = text.find(_FENCE, start)
        if open_idx == -1:
            return
        body_start = open_idx + len(_FENCE)
        close_idx = text.find(_FENCE, body_start)
        if close_idx == -1:
            return
        body = text[body_start:close_idx]
        first_line, sep, rest = body.partition("\n")
        # ```json 这类语言标记单独占第一行
        if sep and not first_line.strip().startswith(("{", "[")):
            body = rest
        yield body
        start = close_idx + len(_FENCE)


def extract_fenced_findings(text: str) -> tuple[list[Finding], str] | None:
    """
    找到第一个可解析为 `{"findings": [...]}` 的代码块。

    - 兼容旧字段名 `issues`
    - 数组元素逐个校验；无法校验的元素被丢弃（记录 debug 日志）
    - 没有可用代码块时返回 None
    """
    for body in _iter_fenced_blocks(text):
        try:
            parsed = json.loads(body.strip())
        except json.JSONDecodeError:
            continue
        if not isinstance(parsed, dict):
            continue
        items = parsed.get("findings", parsed.get("issues"))
        if not isinstance(items, list):
            continue

        findings: list[Finding] = []
        for item in items:
            if not isinstance(item, dict):
                logger.debug(f"Skip non-object finding: {item!r}")
                continue
            try:
                findings.append(Finding.model_validate(item))
            except ValidationError as exc:
                logger.debug(f"Skip invalid finding {item!r}: {exc}")
        summary = parsed.get("summary")
        return findings, summary.strip() if isinstance(summary, str) else ""
    return None


def _skip_blanks(line: str, i: int) -> int:
    while i < len(line) and line[i] in " \t":
        i += 1
    return i


def scan_line(line: str) -> Finding | None:
    """
    `[- ][行号] : [severity] 描述` -> Finding。

    - 行号可省略（文件级）；severity 标签大小写不敏感，只认 info/warning/error
    - 其他方括号内容保留在描述里，severity 视为缺省（info）
    """
    n = len(line)
    i = _skip_blanks(line, 0)
    if i + 1 < n and line[i] in _BULLETS and line[i + 1] in " \t":
        i = _skip_blanks(line, i + 1)

    digits_start = i
    while i < n and line[i] in _DIGITS and i - digits_start < _MAX_LINE_DIGITS:
        i += 1
    line_no = int(line[digits_start:i]) if i > digits_start else None

    i = _skip_blanks(line, i)
    if i >= n or line[i] not in _COLONS:
        return None
    i = _skip_blanks(line, i + 1)

    severity = Severity.INFO
    if i < n and line[i] == "[":
        close = line.find("]", i + 1, i + 2 + _MAX_TAG_LENGTH)
        if close != -1:
            tag = _SEVERITY_TAGS.get(line[i + 1 : close].strip().lower())
            if tag is not None:
                severity = tag
                i = _skip_blanks(line, close + 1)

    message = line[i:].strip()
    if not message:
        return None
    return Finding(line=line_no, severity=severity, message=message)


def scan_findings(text: str) -> list[Finding]:
    findings: list[Finding] = []
    for line in text.splitlines():
        finding = scan_line(line)
        if finding is not None:
            findings.append(finding)
    return findings


def extract_summary(text: str) -> str:
    lines = text.splitlines()
    for idx, line in enumerate(lines):
        match = _SUMMARY_MARKER.search(line)
        if match is None:
            continue
        rest = line[match.end() :].strip()
        if rest:
            return rest
        for following in lines[idx + 1 :]:
            if following.strip():
                return following.strip()
        return ""

    # 没有明确的总结：取最后一个非空段落
    paragraph: list[str] = []
    last: list[str] = []
    for line in lines:
        if line.strip():
            paragraph.append(line)
            continue
        if paragraph:
            last = paragraph
            paragraph = []
    if paragraph:
        last = paragraph
    return "\n".join(last).strip()
