"""
通过文件扩展名推断语言。

这是一个非常“工程”的步骤：不需要 LLM，且必须确定性。
"""

from __future__ import annotations

import posixpath

_LANGUAGE_BY_EXTENSION: dict[str, str] = {
    "js": "javascript",
    "jsx": "javascript",
    "ts": "typescript",
    "tsx": "typescript",
    "py": "python",
    "rb": "ruby",
    "php": "php",
    "java": "java",
    "go": "go",
    "cs": "csharp",
    "cpp": "cpp",
    "hpp": "cpp",
    "c": "c",
    "h": "c",
    "rs": "rust",
    "swift": "swift",
    "kt": "kotlin",
    "scala": "scala",
    "md": "markdown",
    "html": "html",
    "css": "css",
    "scss": "scss",
    "sass": "sass",
    "less": "less",
    "json": "json",
    "yml": "yaml",
    "yaml": "yaml",
    "xml": "xml",
    "sql": "sql",
    "sh": "shell",
    "bash": "shell",
}


def infer_language_from_path(path: str) -> str | None:
    """未知扩展名返回 None（prompt 里显示为“未知”）。"""
    _, ext = posixpath.splitext(path.lower())
    if not ext:
        return None
    return _LANGUAGE_BY_EXTENSION.get(ext[1:])
