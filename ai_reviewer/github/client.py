"""
GitHub API 客户端（外部系统连接器）。

约定：
- 这里只做 HTTP 调用 + 错误处理 + schema 校验
- 出错直接抛 `TransportError`（不要吞），便于上游决定是否降级
"""

from __future__ import annotations

from collections.abc import Sequence
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from ai_reviewer.errors import TransportError
from ai_reviewer.github.schemas import GitHubPullRequest
from ai_reviewer.github.schemas import GitHubPullRequestFile
from ai_reviewer.github.schemas import GitHubReview

DEFAULT_GITHUB_API_URL = "https://api.github.com"


class GitHubClient:
    """最小 GitHub REST API client（PR 详情 / files / contents / review / comments）。"""

    def __init__(self, api_base_url: str, token: str, http_client: httpx.AsyncClient) -> None:
        self._api_base_url = api_base_url.rstrip("/")
        self._token = token
        self._http_client = http_client

    def _headers(self, accept: str = "application/vnd.github+json") -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Accept": accept,
            "X-GitHub-Api-Version": "2022-11-28",
        }

    def _repo_url(self, owner: str, repo: str) -> str:
        return f"{self._api_base_url}/repos/{owner}/{repo}"

    async def _request(self, method: str, url: str, accept: str | None = None, **kwargs: object) -> httpx.Response:
        headers = self._headers(accept) if accept else self._headers()
        try:
            response = await self._http_client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            raise TransportError(f"GitHub request failed: {method} {url}: {exc}") from exc
        if response.status_code >= 400:
            raise TransportError(f"GitHub API error {response.status_code}: {response.text}", response.status_code)
        return response

    async def get_pull_request(self, owner: str, repo: str, pull_number: int) -> GitHubPullRequest:
        response = await self._request("GET", f"{self._repo_url(owner, repo)}/pulls/{pull_number}")
        try:
            return GitHubPullRequest.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise TransportError(f"Unexpected GitHub response for pull request: {exc}") from exc

    async def list_pull_request_files(self, owner: str, repo: str, pull_number: int) -> list[GitHubPullRequestFile]:
        """
        拉取 PR 的变更文件列表（包含每个文件的 patch diff）。

        注意：GitHub API 有分页；这里会拉取全部文件。
        """
        per_page = 100
        page = 1
        all_items: list[GitHubPullRequestFile] = []
        while True:
            url = f"{self._repo_url(owner, repo)}/pulls/{pull_number}/files"
            response = await self._request("GET", url, params={"per_page": per_page, "page": page})
            try:
                data = response.json()
            except ValueError as exc:
                raise TransportError(f"Unexpected GitHub response for PR files: {exc}") from exc
            if not isinstance(data, list):
                raise TransportError(f"Unexpected GitHub response shape for PR files: {data}")
            try:
                items = [GitHubPullRequestFile.model_validate(x) for x in data]
            except ValidationError as exc:
                raise TransportError(f"Unexpected GitHub PR file entry: {exc}") from exc
            all_items.extend(items)
            if len(items) < per_page:
                break
            page += 1
        return all_items

    async def get_file_content(self, owner: str, repo: str, path: str, ref: str) -> str:
        """GET /contents/{path}?ref=...，使用 raw media type 直接拿文件文本。"""
        url = f"{self._repo_url(owner, repo)}/contents/{quote(path)}"
        response = await self._request("GET", url, accept="application/vnd.github.raw+json", params={"ref": ref})
        return response.text

    async def create_review_comment(
        self,
        owner: str,
        repo: str,
        pull_number: int,
        commit_id: str,
        path: str,
        line: int,
        body: str,
    ) -> None:
        """单条行内评论（新文件一侧）。"""
        payload = {"body": body, "commit_id": commit_id, "path": path, "line": line, "side": "RIGHT"}
        await self._request("POST", f"{self._repo_url(owner, repo)}/pulls/{pull_number}/comments", json=payload)

    async def create_pull_request_review(
        self,
        owner: str,
        repo: str,
        pull_number: int,
        commit_id: str,
        body: str,
        comments: Sequence[dict[str, object]] = (),
    ) -> GitHubReview:
        """
        创建一条 PR review（会出现在 GitHub 的 “Reviews” 区域）。

        说明：event=COMMENT 表示“评论型 review”（不 approve / request changes）；
        comments 非空时一次请求提交多条行内评论。
        """
        payload: dict[str, object] = {"commit_id": commit_id, "body": body, "event": "COMMENT"}
        if comments:
            payload["comments"] = list(comments)
        response = await self._request("POST", f"{self._repo_url(owner, repo)}/pulls/{pull_number}/reviews", json=payload)
        try:
            return GitHubReview.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise TransportError(f"Unexpected GitHub response for review: {exc}") from exc

    async def create_issue_comment(self, owner: str, repo: str, pull_number: int, body: str) -> None:
        """PR 会话区的普通评论（总结用）。"""
        await self._request("POST", f"{self._repo_url(owner, repo)}/issues/{pull_number}/comments", json={"body": body})
