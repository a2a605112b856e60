"""
NotificationRouter（结果分发）。

两个相互独立的通道：
- 平台评论：有行号的意见 -> 行内评论（平台支持批量就一次提交）；文件级意见 -> 一条全局评论
- webhook（企业微信）：markdown 消息，超长截断

任一通道失败只记录日志，不向上抛，也不影响另一个通道和后续文件。
"""

from __future__ import annotations

import logging

from ai_reviewer.config import NotificationConfig
from ai_reviewer.notify.formatting import format_file_comment
from ai_reviewer.notify.formatting import format_finding_comment
from ai_reviewer.notify.formatting import format_summary_comment
from ai_reviewer.notify.formatting import outcome_notification
from ai_reviewer.notify.formatting import summary_notification
from ai_reviewer.notify.wecom import WecomWebhookClient
from ai_reviewer.platforms import SourceProvider
from ai_reviewer.platforms import SupportsBatchComments
from ai_reviewer.platforms import SupportsLineComments
from ai_reviewer.review.models import Finding, LineComment, ReviewOutcome

logger = logging.getLogger(__name__)


class NotificationRouter:
    def __init__(self, config: NotificationConfig, webhook: WecomWebhookClient | None = None) -> None:
        """
        - config: 通道开关
        - webhook: 企业微信客户端；为 None 时即使开关打开也不发送
        """
        self._config = config
        self._webhook = webhook if config.wecom.enabled else None

    async def _post_outcome_comments(self, outcome: ReviewOutcome, provider: SourceProvider) -> None:
        anchored = [(f.line, f) for f in outcome.findings if f.line is not None]
        file_findings: list[Finding] = [f for f in outcome.findings if f.line is None]

        if anchored:
            if isinstance(provider, SupportsBatchComments):
                comments = [LineComment(line=line, body=format_finding_comment(f)) for line, f in anchored]
                try:
                    await provider.submit_batch_comments(outcome.file, comments)
                except Exception:
                    logger.exception(f"Failed to post {len(comments)} batched comment(s) on {outcome.file}")
            elif isinstance(provider, SupportsLineComments):
                for line, finding in anchored:
                    try:
                        await provider.submit_line_comment(outcome.file, line, format_finding_comment(finding))
                    except Exception:
                        logger.exception(f"Failed to post comment on {outcome.file}:{line}")
            else:
                file_findings = [f for _, f in anchored] + file_findings

        if file_findings:
            await provider.submit_summary_comment(format_file_comment(outcome.file, file_findings))

    async def notify_outcome(self, outcome: ReviewOutcome, provider: SourceProvider) -> None:
        if self._config.platform_comment:
            try:
                await self._post_outcome_comments(outcome, provider)
            except Exception:
                logger.exception(f"Failed to post review comments for {outcome.file}")

        if self._webhook is not None:
            title, body = outcome_notification(outcome)
            try:
                await self._webhook.send_markdown(title, body)
            except Exception:
                logger.exception(f"Failed to send webhook notification for {outcome.file}")

    async def notify_batch_summary(self, summary: str, provider: SourceProvider) -> None:
        if self._config.platform_comment:
            try:
                await provider.submit_summary_comment(format_summary_comment(summary))
            except Exception:
                logger.exception("Failed to post review summary comment")

        if self._webhook is not None:
            title, body = summary_notification(summary)
            try:
                await self._webhook.send_markdown(title, body)
            except Exception:
                logger.exception("Failed to send webhook summary notification")
