"""
GitLab API 客户端（外部系统连接器）。

约定：
- 这里只做“HTTP 调用 + 错误处理 + schema 校验”，不做业务决策。
- 发生错误时**直接抛 `TransportError`**，不要吞异常（由上游决定是否降级）。
"""

from __future__ import annotations

from typing import TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from ai_reviewer.errors import TransportError
from ai_reviewer.gitlab.schemas import GitLabMergeRequest
from ai_reviewer.gitlab.schemas import GitLabMergeRequestChanges
from ai_reviewer.gitlab.schemas import GitLabNote

DEFAULT_GITLAB_API_URL = "https://gitlab.com/api/v4"

SchemaT = TypeVar("SchemaT", bound=BaseModel)


def _validate(schema: type[SchemaT], response: httpx.Response) -> SchemaT:
    try:
        return schema.model_validate(response.json())
    except (ValueError, ValidationError) as exc:
        raise TransportError(f"Unexpected GitLab response for {schema.__name__}: {exc}") from exc


class GitLabClient:
    """最小 GitLab v4 API client。"""

    def __init__(self, api_url: str, token: str, http_client: httpx.AsyncClient) -> None:
        """
        - api_url: API 根地址（包含 /api/v4，不包含末尾 /）
        - token: personal/project access token，以 Bearer 方式鉴权
        - http_client: 复用的 httpx.AsyncClient
        """
        self._api_url = api_url.rstrip("/")
        self._token = token
        self._http_client = http_client

    def _headers(self) -> dict[str, str]:
        """GitLab API 鉴权头。"""
        return {"Authorization": f"Bearer {self._token}"}

    def _mr_url(self, project_id: str, mr_iid: int) -> str:
        return f"{self._api_url}/projects/{quote(project_id, safe='')}/merge_requests/{mr_iid}"

    async def _request(self, method: str, url: str, **kwargs: object) -> httpx.Response:
        try:
            response = await self._http_client.request(method, url, headers=self._headers(), **kwargs)
        except httpx.HTTPError as exc:
            raise TransportError(f"GitLab request failed: {method} {url}: {exc}") from exc
        if response.status_code >= 400:
            raise TransportError(f"GitLab API error {response.status_code}: {response.text}", response.status_code)
        return response

    async def get_merge_request(self, project_id: str, mr_iid: int) -> GitLabMergeRequest:
        """GET /projects/:id/merge_requests/:iid（分支名 + diff_refs）。"""
        response = await self._request("GET", self._mr_url(project_id, mr_iid))
        return _validate(GitLabMergeRequest, response)

    async def get_merge_request_changes(self, project_id: str, mr_iid: int) -> GitLabMergeRequestChanges:
        """GET /projects/:id/merge_requests/:iid/changes（包含每个文件的 diff）。"""
        response = await self._request("GET", f"{self._mr_url(project_id, mr_iid)}/changes")
        return _validate(GitLabMergeRequestChanges, response)

    async def get_raw_file(self, project_id: str, path: str, ref: str) -> str:
        """GET /projects/:id/repository/files/:path/raw?ref=..."""
        url = f"{self._api_url}/projects/{quote(project_id, safe='')}/repository/files/{quote(path, safe='')}/raw"
        response = await self._request("GET", url, params={"ref": ref})
        return response.text

    async def create_merge_request_discussion(
        self,
        project_id: str,
        mr_iid: int,
        body: str,
        position: dict[str, object],
    ) -> None:
        """行内评论：POST /discussions，position 需要 diff_refs + new_path/new_line。"""
        payload = {"body": body, "position": position}
        await self._request("POST", f"{self._mr_url(project_id, mr_iid)}/discussions", json=payload)

    async def create_merge_request_note(self, project_id: str, mr_iid: int, body: str) -> GitLabNote:
        """在 MR 下发布一条全局评论（note）。"""
        response = await self._request("POST", f"{self._mr_url(project_id, mr_iid)}/notes", json={"body": body})
        return _validate(GitLabNote, response)
