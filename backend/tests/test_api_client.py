"""Tests for the training-center API client — URLs, auth header, errors."""

from unittest.mock import patch

import httpx
import pytest

from tcdocs.services.api_client import TrainingCenterApiClient

from conftest import BASE_URL, VERSION_PATH


class TestUrls:
    def test_joins_base_and_version(self):
        client = TrainingCenterApiClient(base_url="https://api.example/", version_path="/api/v1/")
        assert client.url("/x") == "https://api.example/api/v1/x"

    def test_empty_version_path(self):
        client = TrainingCenterApiClient(base_url="https://api.example", version_path="")
        assert client.base_url == "https://api.example"

    @patch("tcdocs.services.api_client.settings")
    def test_settings_fallback(self, mock_settings):
        mock_settings.api_base_url = "https://api.example"
        mock_settings.api_version_path = "/api/v1"
        mock_settings.api_token = "service-token"
        mock_settings.request_timeout_seconds = 5.0

        client = TrainingCenterApiClient()
        assert client.token == "service-token"
        assert client.url("/x") == "https://api.example/api/v1/x"


class TestAuthHeader:
    @pytest.mark.asyncio
    async def test_bearer_sent(self, upstream, make_api_client):
        upstream.json("GET", "/ping", {"ok": True})
        await make_api_client("abc").get_json("/ping")
        assert upstream.requests[0].headers["authorization"] == "Bearer abc"

    @pytest.mark.asyncio
    async def test_no_header_without_token(self, upstream):
        upstream.json("GET", "/ping", {"ok": True})
        client = TrainingCenterApiClient(
            base_url=BASE_URL, version_path=VERSION_PATH, token="",
            transport=httpx.MockTransport(upstream),
        )
        await client.get_json("/ping")
        assert "authorization" not in upstream.requests[0].headers


class TestRequests:
    @pytest.mark.asyncio
    async def test_get_bytes_uses_wildcard_accept(self, upstream, api_client):
        upstream.content("/blob", b"\x00\x01", "image/png")
        data, headers = await api_client.get_bytes("/blob")
        assert data == b"\x00\x01"
        assert headers["content-type"] == "image/png"
        assert upstream.requests[0].headers["accept"] == "*/*"

    @pytest.mark.asyncio
    async def test_http_error_propagates(self, upstream, api_client):
        upstream.status("GET", "/secret", 403)
        with pytest.raises(httpx.HTTPStatusError) as exc_info:
            await api_client.get_json("/secret")
        assert exc_info.value.response.status_code == 403

    @pytest.mark.asyncio
    async def test_post_file_is_multipart(self, upstream, api_client):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["content_type"] = request.headers["content-type"]
            captured["body"] = request.read()
            return httpx.Response(201, json={"id": "new.pdf"})

        upstream.handler("POST", "/files", handler)
        result = await api_client.post_file("/files", "new.pdf", b"%PDF", "application/pdf")
        assert result == {"id": "new.pdf"}
        assert captured["content_type"].startswith("multipart/form-data")
        assert b'name="file"; filename="new.pdf"' in captured["body"]

    @pytest.mark.asyncio
    async def test_post_file_empty_response(self, upstream, api_client):
        upstream.handler("POST", "/files", lambda r: httpx.Response(201))
        assert await api_client.post_file("/files", "a.txt", b"x", "text/plain") is None

    @pytest.mark.asyncio
    async def test_delete(self, upstream, api_client):
        await api_client.delete("/files/a")
        assert upstream.calls("DELETE", "/files/a") == 1
