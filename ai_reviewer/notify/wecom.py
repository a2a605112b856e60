"""
企业微信（WeCom）机器人 webhook。

- payload: `{"msgtype": "markdown", "markdown": {"content": "..."}}`
- markdown content 有长度上限，超出部分截断并追加截断标记
"""

from __future__ import annotations

import logging

import httpx

from ai_reviewer.errors import TransportError

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "\n\n...(内容已截断)"


def truncate_content(text: str, max_chars: int, marker: str = TRUNCATION_MARKER) -> str:
    """不超过 max_chars 原样返回；超过则截断，结果以 marker 结尾且总长度为 max_chars。"""
    if max_chars <= len(marker):
        raise ValueError(f"max_chars must be > {len(marker)} (truncation marker length)")
    if len(text) <= max_chars:
        return text
    return text[: max_chars - len(marker)] + marker


class WecomWebhookClient:
    def __init__(self, webhook_url: str, http_client: httpx.AsyncClient, max_content_length: int = 4096) -> None:
        self._webhook_url = webhook_url
        self._http_client = http_client
        self._max_content_length = max_content_length

    def build_payload(self, title: str, content: str) -> dict[str, object]:
        markdown = truncate_content(f"### {title}\n\n{content}", max_chars=self._max_content_length)
        return {"msgtype": "markdown", "markdown": {"content": markdown}}

    async def send_markdown(self, title: str, content: str) -> None:
        payload = self.build_payload(title=title, content=content)
        try:
            response = await self._http_client.post(self._webhook_url, json=payload)
        except httpx.HTTPError as exc:
            raise TransportError(f"WeCom webhook request failed: {exc}") from exc
        if response.status_code >= 400:
            raise TransportError(f"WeCom webhook error {response.status_code}: {response.text}", response.status_code)
        # 企业微信出错时也返回 200，错误码在 body 里
        try:
            data = response.json()
        except ValueError:
            data = None
        if isinstance(data, dict) and data.get("errcode", 0) != 0:
            raise TransportError(f"WeCom webhook rejected message: {data}")
        logger.debug("Sent WeCom notification")
