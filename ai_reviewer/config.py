"""
应用配置加载。

设计目标：
- **显式**：配置是一个值对象，在构造时传给每个组件；核心组件内部不读环境变量
- **类型安全**：使用 Pydantic 校验 URL/数字/布尔等，减少运行时踩坑
- **可测试**：加载函数接收 `environ` 显式输入，便于单元测试
- **严格**：缺少必要凭证直接抛 `ConfigurationError`（在任何网络调用之前）
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import Enum

from pydantic import BaseModel, Field, ValidationError

from ai_reviewer.errors import ConfigurationError
from ai_reviewer.notify.wecom import TRUNCATION_MARKER

logger = logging.getLogger(__name__)


class ModelProviderType(str, Enum):
    """模型后端（封闭枚举）。"""

    OPENAI = "openai"
    OLLAMA = "ollama"


class PlatformType(str, Enum):
    """代码托管平台 / 本地（封闭枚举）。"""

    GITLAB = "gitlab"
    GITHUB = "github"
    LOCAL = "local"


class AIConfig(BaseModel):
    provider: ModelProviderType = ModelProviderType.OPENAI
    model: str = "deepseek-r1:1.5b"
    api_key: str | None = None
    base_url: str | None = None
    temperature: float = Field(default=0.1, ge=0.0, le=2.0)
    max_tokens: int = Field(default=4000, gt=0)


class PlatformConfig(BaseModel):
    type: PlatformType = PlatformType.LOCAL
    token: str | None = None
    url: str | None = None
    webhook_secret: str | None = None


class WecomConfig(BaseModel):
    """企业微信机器人 webhook（markdown 消息有长度上限）。"""

    enabled: bool = False
    webhook: str | None = None
    max_content_length: int = Field(default=4096, gt=len(TRUNCATION_MARKER))


class NotificationConfig(BaseModel):
    platform_comment: bool = True
    wecom: WecomConfig = Field(default_factory=WecomConfig)


class PromptConfig(BaseModel):
    """自定义 prompt 模板；为空时使用内置默认值。"""

    system: str | None = None
    review: str | None = None
    summary: str | None = None


def _default_ignore_files() -> list[str]:
    return ["*.lock", "package-lock.json", "yarn.lock", "pnpm-lock.yaml", "*.min.js", "*.min.css"]


def _default_ignore_paths() -> list[str]:
    return ["node_modules/", "dist/", "build/", ".git/"]


class ReviewConfig(BaseModel):
    ignore_files: list[str] = Field(default_factory=_default_ignore_files)
    ignore_paths: list[str] = Field(default_factory=_default_ignore_paths)
    include_patterns: list[str] = Field(default_factory=list)
    exclude_patterns: list[str] = Field(default_factory=list)
    prompts: PromptConfig = Field(default_factory=PromptConfig)


class ReviewerConfig(BaseModel):
    """一次 review 运行所需的全部配置。"""

    ai: AIConfig = Field(default_factory=AIConfig)
    platform: PlatformConfig = Field(default_factory=PlatformConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    review: ReviewConfig = Field(default_factory=ReviewConfig)


_TRUE_VALUES = ("1", "true", "yes", "on")


def _env(environ: Mapping[str, str], key: str) -> str | None:
    value = environ.get(key)
    if value is None or not value.strip():
        return None
    return value.strip()


def _env_flag(environ: Mapping[str, str], key: str, default: bool) -> bool:
    value = _env(environ, key)
    if value is None:
        return default
    return value.lower() in _TRUE_VALUES


def load_config_from_env(environ: Mapping[str, str]) -> ReviewerConfig:
    """
    从环境变量加载并校验配置。

    - **输入**：`environ`（例如 `os.environ`）
    - **输出**：`ReviewerConfig`（未设置的项使用默认值）
    - **失败**：取值非法（例如未知 provider）抛 `ConfigurationError`
    """
    ai: dict[str, object] = {}
    platform: dict[str, object] = {}

    for key, field in (
        ("AI_REVIEWER_PROVIDER", "provider"),
        ("AI_REVIEWER_MODEL", "model"),
        ("AI_REVIEWER_OPENAI_KEY", "api_key"),
        ("AI_REVIEWER_BASE_URL", "base_url"),
        ("AI_REVIEWER_TEMPERATURE", "temperature"),
        ("AI_REVIEWER_MAX_TOKENS", "max_tokens"),
    ):
        value = _env(environ, key)
        if value is not None:
            ai[field] = value

    platform_type = _env(environ, "AI_REVIEWER_PLATFORM")
    if platform_type is not None:
        platform["type"] = platform_type
    token = _env(environ, "AI_REVIEWER_GITLAB_TOKEN") or _env(environ, "AI_REVIEWER_GITHUB_TOKEN")
    if token is not None:
        platform["token"] = token
    for key, field in (("AI_REVIEWER_PLATFORM_URL", "url"), ("AI_REVIEWER_WEBHOOK_SECRET", "webhook_secret")):
        value = _env(environ, key)
        if value is not None:
            platform[field] = value

    notifications = {
        "platform_comment": _env_flag(environ, "AI_REVIEWER_PLATFORM_COMMENT", default=True),
        "wecom": {
            "enabled": _env_flag(environ, "AI_REVIEWER_WECOM_ENABLED", default=False),
            "webhook": _env(environ, "AI_REVIEWER_WECOM_WEBHOOK"),
        },
    }

    # 交给 Pydantic 做类型校验（枚举/数字范围等）
    try:
        return ReviewerConfig.model_validate({"ai": ai, "platform": platform, "notifications": notifications})
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid reviewer configuration: {exc}") from exc


def validate_config(config: ReviewerConfig) -> None:
    """
    启动前校验（fail fast）：
    - OpenAI 需要 API key
    - 非本地平台需要 token
    - 开启了企业微信但没配 webhook 只告警，不阻断
    """
    if config.ai.provider == ModelProviderType.OPENAI and not config.ai.api_key:
        raise ConfigurationError("OpenAI API key is not configured (AI_REVIEWER_OPENAI_KEY)")

    if config.platform.type != PlatformType.LOCAL and not config.platform.token:
        raise ConfigurationError(f"{config.platform.type.value} token is not configured")

    if config.notifications.wecom.enabled and not config.notifications.wecom.webhook:
        logger.warning("WeCom notification is enabled but no webhook URL is configured")
