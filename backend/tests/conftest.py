"""Test fixtures — fake upstream API, initialized services and FastAPI test client."""

import json
from typing import Any, Callable

import httpx
import pytest
import pytest_asyncio
from fastapi import Depends
from httpx import ASGITransport, AsyncClient

from tcdocs.api.deps import get_api_client, get_bearer_token
from tcdocs.main import create_app
from tcdocs.services import get_session_caches, init_services, shutdown_services
from tcdocs.services.api_client import TrainingCenterApiClient
from tcdocs.services.content_cache import FileContentCache
from tcdocs.services.file_service import FileRetrievalService

BASE_URL = "http://upstream.test"
VERSION_PATH = "/api/v1"
USER_TOKEN = "user-token"

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16
PDF_BYTES = b"%PDF-1.4\n%\xe2\xe3\xcf\xd3\n1 0 obj\n"


class FakeUpstream:
    """Routes ``(method, path)`` to canned responses and records every request.

    Metadata and content share a URL; they are told apart by the Accept
    header the client sends (JSON vs ``*/*``).
    """

    def __init__(self) -> None:
        self.json_routes: dict[tuple[str, str], Any] = {}
        self.bytes_routes: dict[str, tuple[bytes, str]] = {}
        self.status_routes: dict[tuple[str, str], int] = {}
        self.handlers: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    def json(self, method: str, path: str, payload: Any) -> None:
        self.json_routes[(method, VERSION_PATH + path)] = payload

    def content(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> None:
        self.bytes_routes[VERSION_PATH + path] = (data, content_type)

    def status(self, method: str, path: str, code: int) -> None:
        self.status_routes[(method, VERSION_PATH + path)] = code

    def handler(self, method: str, path: str, fn: Callable[[httpx.Request], httpx.Response]) -> None:
        self.handlers[(method, VERSION_PATH + path)] = fn

    def calls(self, method: str, path: str, accept: str | None = None) -> int:
        full = VERSION_PATH + path
        return sum(
            1 for r in self.requests
            if r.method == method and r.url.path == full
            and (accept is None or r.headers.get("accept") == accept)
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key in self.handlers:
            return self.handlers[key](request)
        if key in self.status_routes:
            return httpx.Response(self.status_routes[key])
        wants_bytes = request.headers.get("accept") == "*/*"
        if request.method == "GET" and wants_bytes and request.url.path in self.bytes_routes:
            data, content_type = self.bytes_routes[request.url.path]
            return httpx.Response(200, content=data, headers={"Content-Type": content_type})
        if key in self.json_routes:
            return httpx.Response(
                200,
                content=json.dumps(self.json_routes[key]).encode(),
                headers={"Content-Type": "application/json"},
            )
        if request.method == "DELETE":
            return httpx.Response(204)
        return httpx.Response(404)


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def make_api_client(upstream):
    def _make(token: str | None = "test-token") -> TrainingCenterApiClient:
        return TrainingCenterApiClient(
            base_url=BASE_URL,
            version_path=VERSION_PATH,
            token=token,
            transport=httpx.MockTransport(upstream),
        )
    return _make


@pytest.fixture
def api_client(make_api_client):
    return make_api_client()


@pytest.fixture
def cache():
    return FileContentCache(ttl_seconds=300)


@pytest.fixture
def service(api_client, cache):
    return FileRetrievalService(api_client, cache)


@pytest.fixture
def services():
    """App-lifetime services; ASGITransport does not run the lifespan."""
    init_services()
    yield
    shutdown_services()


@pytest_asyncio.fixture
async def client(services, upstream):
    """Async test client whose upstream API is the fake."""
    app = create_app()

    async def _override_client(token: str | None = Depends(get_bearer_token)):
        return TrainingCenterApiClient(
            base_url=BASE_URL,
            version_path=VERSION_PATH,
            token=token,
            transport=httpx.MockTransport(upstream),
        )

    app.dependency_overrides[get_api_client] = _override_client

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def app_cache(services) -> FileContentCache:
    """Session cache of the caller sending ``Bearer user-token``."""
    return get_session_caches().for_token(USER_TOKEN)
