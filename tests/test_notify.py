from __future__ import annotations

import json

import httpx
import pytest
from pydantic import ValidationError

from ai_reviewer.config import NotificationConfig
from ai_reviewer.config import WecomConfig
from ai_reviewer.errors import TransportError
from ai_reviewer.notify.formatting import SUMMARY_HEADER
from ai_reviewer.notify.formatting import format_file_comment
from ai_reviewer.notify.formatting import format_finding_comment
from ai_reviewer.notify.router import NotificationRouter
from ai_reviewer.notify.wecom import TRUNCATION_MARKER
from ai_reviewer.notify.wecom import WecomWebhookClient
from ai_reviewer.notify.wecom import truncate_content
from ai_reviewer.review.models import ChangeSet
from ai_reviewer.review.models import Finding
from ai_reviewer.review.models import LineComment
from ai_reviewer.review.models import ReviewOutcome
from ai_reviewer.review.models import Severity


class SummaryOnlyProvider:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.summaries: list[str] = []

    async def fetch_change_set(self) -> ChangeSet:
        return ChangeSet(unit="test")

    async def submit_summary_comment(self, body: str) -> None:
        if self.fail:
            raise TransportError("comment rejected", status_code=403)
        self.summaries.append(body)


class LineProvider(SummaryOnlyProvider):
    def __init__(self, fail_lines: tuple[int, ...] = ()) -> None:
        super().__init__()
        self.fail_lines = fail_lines
        self.lines: list[tuple[str, int, str]] = []

    async def submit_line_comment(self, path: str, line: int, body: str) -> None:
        if line in self.fail_lines:
            raise TransportError("line outside diff", status_code=400)
        self.lines.append((path, line, body))


class BatchProvider(LineProvider):
    def __init__(self) -> None:
        super().__init__()
        self.batches: list[tuple[str, list[LineComment]]] = []

    async def submit_batch_comments(self, path: str, comments: list[LineComment]) -> None:
        self.batches.append((path, comments))


def _outcome() -> ReviewOutcome:
    return ReviewOutcome(
        file="src/app.py",
        findings=[
            Finding(line=10, severity=Severity.ERROR, message="null deref", suggestion="check None"),
            Finding(severity=Severity.INFO, message="add docs"),
            Finding(line=20, severity=Severity.WARNING, message="slow loop"),
        ],
        summary="two problems",
    )


def _recording_webhook(max_len: int = 4096, response: httpx.Response | None = None):
    sent: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        sent.append(json.loads(request.content))
        return response or httpx.Response(200, json={"errcode": 0, "errmsg": "ok"})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return WecomWebhookClient("https://qyapi.example.com/hook", client, max_content_length=max_len), sent


def test_truncate_content_boundary() -> None:
    assert truncate_content("a" * 100, max_chars=100) == "a" * 100
    truncated = truncate_content("a" * 101, max_chars=100)
    assert len(truncated) == 100
    assert truncated.endswith(TRUNCATION_MARKER)


def test_truncate_content_rejects_non_positive_limit() -> None:
    with pytest.raises(ValueError):
        truncate_content("x", max_chars=0)


def test_format_finding_comment() -> None:
    body = format_finding_comment(Finding(severity=Severity.ERROR, message="bad", suggestion="fix", code="x = 1"))
    assert body.startswith("❌ **bad**")
    assert "建议: fix" in body
    assert "```\nx = 1\n```" in body


@pytest.mark.asyncio
async def test_batch_provider_gets_one_batch_and_one_file_comment() -> None:
    provider = BatchProvider()
    router = NotificationRouter(NotificationConfig())

    await router.notify_outcome(_outcome(), provider)

    assert len(provider.batches) == 1
    path, comments = provider.batches[0]
    assert path == "src/app.py"
    assert [c.line for c in comments] == [10, 20]
    assert provider.lines == []
    assert provider.summaries == [format_file_comment("src/app.py", [_outcome().findings[1]])]


@pytest.mark.asyncio
async def test_line_provider_posts_each_line_and_continues_after_failure() -> None:
    provider = LineProvider(fail_lines=(10,))
    router = NotificationRouter(NotificationConfig())

    await router.notify_outcome(_outcome(), provider)

    assert [(p, line) for p, line, _ in provider.lines] == [("src/app.py", 20)]
    assert len(provider.summaries) == 1


@pytest.mark.asyncio
async def test_summary_only_provider_gets_everything_in_one_comment() -> None:
    provider = SummaryOnlyProvider()
    router = NotificationRouter(NotificationConfig())

    await router.notify_outcome(_outcome(), provider)

    assert len(provider.summaries) == 1
    assert "null deref" in provider.summaries[0]
    assert "slow loop" in provider.summaries[0]
    assert "add docs" in provider.summaries[0]


@pytest.mark.asyncio
async def test_platform_failure_does_not_block_webhook() -> None:
    webhook, sent = _recording_webhook()
    config = NotificationConfig.model_validate({"wecom": {"enabled": True, "webhook": "https://qyapi.example.com/hook"}})
    router = NotificationRouter(config, webhook=webhook)

    await router.notify_outcome(_outcome(), SummaryOnlyProvider(fail=True))

    assert len(sent) == 1
    content = sent[0]["markdown"]["content"]
    assert sent[0]["msgtype"] == "markdown"
    assert content.startswith("### 🔍 文件 src/app.py 代码审查结果")
    assert "发现 3 个问题" in content


@pytest.mark.asyncio
async def test_webhook_failure_is_swallowed() -> None:
    webhook, sent = _recording_webhook(response=httpx.Response(200, json={"errcode": 93000, "errmsg": "invalid"}))
    config = NotificationConfig.model_validate({"wecom": {"enabled": True, "webhook": "https://qyapi.example.com/hook"}})
    provider = SummaryOnlyProvider()

    await NotificationRouter(config, webhook=webhook).notify_batch_summary("all good", provider)

    assert len(sent) == 1
    assert provider.summaries == [f"{SUMMARY_HEADER}\n\nall good"]


@pytest.mark.asyncio
async def test_disabled_channels_send_nothing() -> None:
    webhook, sent = _recording_webhook()
    config = NotificationConfig.model_validate({"platform_comment": False, "wecom": {"enabled": False}})
    provider = SummaryOnlyProvider()

    router = NotificationRouter(config, webhook=webhook)
    await router.notify_outcome(_outcome(), provider)
    await router.notify_batch_summary("s", provider)

    assert provider.summaries == []
    assert sent == []


@pytest.mark.asyncio
async def test_wecom_truncates_long_content() -> None:
    webhook, sent = _recording_webhook(max_len=200)

    await webhook.send_markdown("title", "x" * 1000)

    content = sent[0]["markdown"]["content"]
    assert len(content) == 200
    assert content.endswith(TRUNCATION_MARKER)


@pytest.mark.asyncio
async def test_wecom_http_error_raises_transport_error() -> None:
    webhook, _ = _recording_webhook(response=httpx.Response(500, text="oops"))
    with pytest.raises(TransportError) as exc_info:
        await webhook.send_markdown("t", "c")
    assert exc_info.value.status_code == 500


class FailingBatchProvider(BatchProvider):
    async def submit_batch_comments(self, path: str, comments: list[LineComment]) -> None:
        raise TransportError("line outside diff", status_code=422)


@pytest.mark.asyncio
async def test_batch_failure_still_posts_file_level_comment() -> None:
    provider = FailingBatchProvider()
    router = NotificationRouter(NotificationConfig())

    await router.notify_outcome(_outcome(), provider)

    assert provider.summaries == [format_file_comment("src/app.py", [_outcome().findings[1]])]


def test_truncate_content_rejects_limit_shorter_than_marker() -> None:
    with pytest.raises(ValueError):
        truncate_content("x" * 100, max_chars=len(TRUNCATION_MARKER))


def test_wecom_config_rejects_limit_shorter_than_marker() -> None:
    with pytest.raises(ValidationError):
        WecomConfig(max_content_length=8)
