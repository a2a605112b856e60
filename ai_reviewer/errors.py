"""
错误类型。

约定：
- `ConfigurationError`：启动前（任何网络调用之前）发现配置缺失，直接失败
- `TransportError`：单次外部调用失败（GitLab/GitHub/LLM/git/webhook），不在内部重试，交给调用方决定影响范围
- 模型输出解析失败不对外暴露（由 interpreter 降级处理）
"""

from __future__ import annotations


class ConfigurationError(ValueError):
    """缺少凭证或必需标识（token / project id / PR 编号等）。"""

    pass


class TransportError(RuntimeError):
    """外部调用失败。`status_code` 仅在 HTTP 调用返回错误码时存在。"""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
