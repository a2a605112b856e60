"""
评论 / 通知文本格式化（确定性输出，不依赖 LLM）。
"""

from __future__ import annotations

from collections.abc import Sequence

from ai_reviewer.review.models import Finding, ReviewOutcome, Severity

SUMMARY_HEADER = "## AI代码审查总结"

_SEVERITY_EMOJI = {
    Severity.ERROR: "❌",
    Severity.WARNING: "⚠️",
    Severity.INFO: "ℹ️",
}


def format_finding_comment(finding: Finding) -> str:
    lines = [f"{_SEVERITY_EMOJI[finding.severity]} **{finding.message}**"]
    if finding.suggestion:
        lines.append("")
        lines.append(f"建议: {finding.suggestion}")
    if finding.example_code:
        lines.append("")
        lines.append("示例代码:")
        lines.append(f"```\n{finding.example_code}\n```")
    return "\n".join(lines)


def format_file_comment(path: str, findings: Sequence[Finding]) -> str:
    """没有行号（或平台不支持行内评论）的意见合并成一条文件级评论。"""
    body = "\n\n".join(format_finding_comment(f) for f in findings)
    return f"## 文件: {path}\n\n{body}"


def format_summary_comment(summary: str) -> str:
    return f"{SUMMARY_HEADER}\n\n{summary}"


def outcome_notification(outcome: ReviewOutcome) -> tuple[str, str]:
    """webhook 用的 (标题, 正文)。"""
    title = f"🔍 文件 {outcome.file} 代码审查结果"
    body = f"发现 {len(outcome.findings)} 个问题\n\n{outcome.summary}"
    return title, body


def summary_notification(summary: str) -> tuple[str, str]:
    return "📊 代码审查总结", summary
