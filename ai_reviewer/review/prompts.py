"""
Prompt 组装（模型无关）。

- 模板里的占位符（`{{language}}` 等）区分大小写、精确匹配
- 单遍替换：替换进去的值（例如 diff 内容）不会被再次扫描
- 没有配置模板时使用内置默认模板
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence

from ai_reviewer.config import PromptConfig
from ai_reviewer.review.models import FileChange, ReviewOutcome, Severity

UNKNOWN_LANGUAGE = "未知"

_PLACEHOLDER = re.compile(r"\{\{([A-Za-z]+)\}\}")

DEFAULT_REVIEW_SYSTEM_PROMPT = (
    "你是一个专业的代码审查助手，擅长识别代码中的问题并提供改进建议。\n"
    "请按照以下格式提供反馈:\n"
    "1. 分析代码差异\n"
    "2. 列出具体问题\n"
    "3. 对每个问题提供改进建议\n"
    "4. 提供总结"
)

DEFAULT_SUMMARY_SYSTEM_PROMPT = (
    "你是一个专业的代码审查助手，擅长总结代码审查结果并提供改进建议。\n"
    "请按照以下格式提供完整的审查报告:\n"
    "1. 总体概述 - 代码库整体质量评估\n"
    "2. 按文件列出详细问题 - 每个文件的具体问题及建议\n"
    "3. 通用改进建议 - 适用于整个代码库的改进建议\n"
    "4. 优先修复项 - 需要优先处理的问题"
)

DEFAULT_REVIEW_TEMPLATE = """请审查以下{{language}}代码差异，并提供改进建议:

文件路径: {{filePath}}

代码差异:
```diff
{{diffContent}}
```

请关注以下方面:
1. 代码质量问题
2. 潜在的错误和缺陷
3. 性能优化建议
4. 安全隐患
5. 可读性和维护性改进
6. 最佳实践建议

请在 ```json 代码块中返回审查结果，格式:
{"findings":[{"line":12,"severity":"info|warning|error","message":"...","suggestion":"...","code":"..."}],"summary":"..."}
line 使用新文件中的行号；无法定位到行时省略 line。"""

DEFAULT_SUMMARY_TEMPLATE = """请对以下代码审查结果进行全面总结，并提供详细的整体改进建议:

审查了 {{filesCount}} 个文件，共发现 {{issuesCount}} 个问题。

问题严重程度分布:
{{severityDistribution}}

详细审查结果:
{{resultsSummary}}

请基于以上结果提供:
1. 代码库整体质量评估
2. 按文件列出关键问题及建议
3. 最常见的问题类型及改进方向
4. 优先修复的关键问题
5. 整体代码质量改进建议"""


def render_template(template: str, values: Mapping[str, str]) -> str:
    """未知占位符原样保留。"""

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in values:
            return match.group(0)
        return values[name]

    return _PLACEHOLDER.sub(_replace, template)


def build_review_prompt(change: FileChange, prompts: PromptConfig) -> str:
    template = prompts.review or DEFAULT_REVIEW_TEMPLATE
    return render_template(
        template,
        {
            "language": change.language or UNKNOWN_LANGUAGE,
            "filePath": change.new_path,
            "diffContent": change.diff,
        },
    )


def review_system_prompt(prompts: PromptConfig) -> str:
    return prompts.system or DEFAULT_REVIEW_SYSTEM_PROMPT


def summary_system_prompt(prompts: PromptConfig) -> str:
    return prompts.system or DEFAULT_SUMMARY_SYSTEM_PROMPT


def _count_by_severity(outcomes: Sequence[ReviewOutcome]) -> dict[Severity, int]:
    counts = {severity: 0 for severity in Severity}
    for outcome in outcomes:
        for finding in outcome.findings:
            counts[finding.severity] += 1
    return counts


def _percent(part: int, total: int) -> int:
    if total == 0:
        return 0
    return round(part / total * 100)


def build_severity_distribution(outcomes: Sequence[ReviewOutcome]) -> str:
    counts = _count_by_severity(outcomes)
    total = sum(counts.values())
    return "\n".join(
        [
            f"严重问题: {counts[Severity.ERROR]}个 ({_percent(counts[Severity.ERROR], total)}%)",
            f"警告: {counts[Severity.WARNING]}个 ({_percent(counts[Severity.WARNING], total)}%)",
            f"信息: {counts[Severity.INFO]}个 ({_percent(counts[Severity.INFO], total)}%)",
        ]
    )


def build_results_digest(outcomes: Sequence[ReviewOutcome]) -> str:
    """每个文件一段：严重程度统计、文件摘要、逐条问题。"""
    sections: list[str] = []
    for outcome in outcomes:
        counts = _count_by_severity([outcome])
        lines = [
            f"## 文件: {outcome.file}",
            f"严重问题: {counts[Severity.ERROR]}个, 警告: {counts[Severity.WARNING]}个, 信息: {counts[Severity.INFO]}个",
        ]
        if outcome.summary:
            lines.append(f"文件摘要: {outcome.summary}")
        lines.append("")
        lines.append("详细问题:")
        for finding in outcome.findings:
            location = f"第{finding.line}行" if finding.line else "通用"
            lines.append(f"- [{finding.severity.value.upper()}] {location}: {finding.message}")
            if finding.suggestion:
                lines.append(f"  建议: {finding.suggestion}")
        sections.append("\n".join(lines))
    return "\n\n".join(sections)


def build_summary_prompt(outcomes: Sequence[ReviewOutcome], prompts: PromptConfig) -> str:
    template = prompts.summary or DEFAULT_SUMMARY_TEMPLATE
    return render_template(
        template,
        {
            "filesCount": str(len(outcomes)),
            "issuesCount": str(sum(len(o.findings) for o in outcomes)),
            "resultsSummary": build_results_digest(outcomes),
            "severityDistribution": build_severity_distribution(outcomes),
        },
    )
