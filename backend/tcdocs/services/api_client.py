"""Training-center REST API client with optional bearer auth."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from tcdocs.config import settings

logger = logging.getLogger(__name__)


class TrainingCenterApiClient:
    """Thin async wrapper over the training-center API.

    HTTP errors propagate as ``httpx.HTTPStatusError`` / ``httpx.RequestError``;
    classification into file error kinds happens in the retrieval service.
    """

    def __init__(
        self,
        base_url: str | None = None,
        version_path: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        base = (base_url or settings.api_base_url).rstrip("/")
        version = settings.api_version_path if version_path is None else version_path
        self._base_url = base + version.rstrip("/")
        self._token = token if token is not None else (settings.api_token or None)
        self._timeout = timeout or settings.request_timeout_seconds
        self._transport = transport

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def token(self) -> str | None:
        return self._token

    def url(self, path: str) -> str:
        return f"{self._base_url}{path}"

    def _headers(self, accept: str | None = None) -> dict[str, str]:
        headers: dict[str, str] = {}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        if accept:
            headers["Accept"] = accept
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def _request(self, method: str, path: str, accept: str | None = None, **kwargs) -> httpx.Response:
        async with self._client() as client:
            resp = await client.request(
                method, self.url(path),
                headers=self._headers(accept), **kwargs,
            )
        if resp.status_code >= 400:
            logger.debug("%s %s -> HTTP %s", method, path, resp.status_code)
        resp.raise_for_status()
        return resp

    async def get_json(self, path: str) -> Any:
        resp = await self._request("GET", path, accept="application/json")
        return resp.json()

    async def get_bytes(self, path: str) -> tuple[bytes, httpx.Headers]:
        """Fetch a binary body. Returns the fully read bytes and headers."""
        resp = await self._request("GET", path, accept="*/*")
        return resp.content, resp.headers

    async def get_text(self, path: str) -> str:
        resp = await self._request("GET", path)
        return resp.text

    async def post_file(
        self,
        path: str,
        file_name: str,
        data: bytes,
        content_type: str,
    ) -> Any:
        """Multipart upload under the ``file`` form field."""
        files = {"file": (file_name, data, content_type)}
        resp = await self._request("POST", path, accept="application/json", files=files)
        if not resp.content:
            return None
        return resp.json()

    async def delete(self, path: str) -> None:
        await self._request("DELETE", path)
