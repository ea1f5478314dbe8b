"""File retrieval — list, fetch (cached), upload, delete document files."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Mapping

import httpx

from tcdocs.schemas.files import FileContent, FileItem
from tcdocs.services.api_client import TrainingCenterApiClient
from tcdocs.services.content_cache import FileContentCache, key_for
from tcdocs.services.content_type import resolve_content_type
from tcdocs.services.errors import (
    FileErrorKind,
    FileRetrievalError,
    IdentifierMissingError,
    from_http_error,
)
from tcdocs.services.identifier import header_value, resolve_file_id
from tcdocs.services.scope import FileScope
from tcdocs.utils.transcode import decode_base64_to_blob, encode_to_base64

logger = logging.getLogger(__name__)


def _parse_timestamp(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _parse_size(*candidates: Any) -> int:
    for value in candidates:
        if value is None or isinstance(value, bool):
            continue
        try:
            size = int(value)
        except (TypeError, ValueError):
            continue
        if size > 0:
            return size
    return 0


def normalize_descriptor(
    descriptor: Any,
    fallback_id: str | None = None,
    fallback_size: int = 0,
) -> FileItem | None:
    """Turn a raw API file descriptor into a FileItem.

    Returns None when no identifier can be resolved and no fallback is given.
    """
    if not isinstance(descriptor, Mapping):
        descriptor = {}
    file_id = resolve_file_id(descriptor) or fallback_id
    if not file_id:
        return None

    headers = descriptor.get("headers")
    name = descriptor.get("name")
    if not isinstance(name, str) or not name.strip():
        name = file_id

    explicit_type = descriptor.get("contentType") or header_value(headers, "Content-Type")
    now = datetime.now(timezone.utc)
    return FileItem(
        id=file_id,
        name=name,
        size=_parse_size(
            descriptor.get("size"),
            descriptor.get("contentLength"),
            header_value(headers, "Content-Length"),
            fallback_size,
        ),
        content_type=resolve_content_type(explicit_type, name),
        created_at=_parse_timestamp(descriptor.get("createdAt")) or now,
        updated_at=_parse_timestamp(descriptor.get("updatedAt")) or now,
    )


def _unwrap_envelope(data: bytes, headers: Mapping) -> tuple[bytes, str | None] | None:
    """Detect a JSON-serialized response entity ``{headers, body}``.

    Returns the decoded body and its Content-Type, or None if ``data`` is a
    plain binary payload.
    """
    if not str(headers.get("content-type", "")).startswith("application/json"):
        return None
    try:
        payload = json.loads(data)
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    body = payload.get("body")
    if not isinstance(body, str) or not isinstance(payload.get("headers"), Mapping):
        return None
    blob = decode_base64_to_blob(body, "application/octet-stream")
    return blob.data, header_value(payload["headers"], "Content-Type")


class FileRetrievalService:
    """Fetches document files through the API client and caches content."""

    def __init__(self, client: TrainingCenterApiClient, cache: FileContentCache):
        self._client = client
        self._cache = cache

    @property
    def cache(self) -> FileContentCache:
        return self._cache

    @staticmethod
    def cache_key(scope: FileScope, file_id: str) -> str:
        return key_for(*scope.cache_ids(), file_id)

    def invalidate(self, scope: FileScope, file_id: str) -> bool:
        return self._cache.invalidate(self.cache_key(scope, file_id))

    async def list_files(self, scope: FileScope) -> list[FileItem]:
        """List a document's files. Unresolvable descriptors are skipped."""
        try:
            data = await self._client.get_json(scope.files_path)
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Listing files for %s failed: %s", scope.files_path, e)
            raise from_http_error(e, "load files") from e

        if isinstance(data, Mapping):
            data = data.get("files", data.get("content"))
        if not isinstance(data, list):
            raise FileRetrievalError(
                "Failed to load files: unexpected response format",
                kind=FileErrorKind.UNKNOWN,
            )

        files: list[FileItem] = []
        for descriptor in data:
            item = normalize_descriptor(descriptor)
            if item is None:
                logger.warning("Skipping file without identifier: %r", descriptor)
                continue
            files.append(item)
        return files

    async def get_file(self, scope: FileScope, file_id: str) -> FileItem:
        """Fetch metadata of a single file."""
        try:
            data = await self._client.get_json(scope.file_path(file_id))
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Fetching metadata for %s failed: %s", file_id, e)
            raise from_http_error(e, "load file metadata") from e
        item = normalize_descriptor(data, fallback_id=file_id)
        if item is None:
            raise IdentifierMissingError()
        return item

    async def _metadata_hint(self, scope: FileScope, file_id: str) -> tuple[str | None, str | None]:
        """Best-effort (name, content type) for a file; never raises."""
        try:
            data = await self._client.get_json(scope.file_path(file_id))
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Could not retrieve metadata for %s: %s", file_id, e)
            return None, None
        if not isinstance(data, Mapping):
            return None, None
        name = data.get("name")
        explicit = data.get("contentType") or header_value(data.get("headers"), "Content-Type")
        return (name if isinstance(name, str) and name else None), explicit

    async def file_name(self, scope: FileScope, file_id: str) -> str:
        """Display name from metadata, falling back to the file id."""
        name, _ = await self._metadata_hint(scope, file_id)
        return name or file_id

    async def get_content(self, scope: FileScope, file_id: str) -> FileContent:
        """Return base64 content and MIME type, fetching at most once per TTL."""
        if not file_id:
            raise IdentifierMissingError()
        key = self.cache_key(scope, file_id)
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for %s", key)
            return FileContent(content=cached.content, content_type=cached.content_type)

        meta_name, meta_type = await self._metadata_hint(scope, file_id)

        try:
            data, headers = await self._client.get_bytes(scope.file_path(file_id))
        except httpx.HTTPError as e:
            logger.error("Fetching content for %s failed: %s", file_id, e)
            raise from_http_error(e) from e

        response_type = headers.get("content-type")
        envelope = _unwrap_envelope(data, headers)
        if envelope is not None:
            data, response_type = envelope

        content_type = resolve_content_type(meta_type, meta_name or file_id, response_type)
        if not data:
            logger.warning("Empty content received for %s", file_id)
        content = encode_to_base64(data)

        self._cache.set(key, content, content_type)
        return FileContent(content=content, content_type=content_type)

    async def get_download_url(self, scope: FileScope, file_id: str) -> str:
        """Signed download URL if the API offers one, else the direct file URL."""
        path = scope.file_path(file_id)
        try:
            text = (await self._client.get_text(f"{path}/download-url")).strip()
        except httpx.HTTPError as e:
            logger.warning("Download URL endpoint failed for %s, using direct URL: %s", file_id, e)
            return self._client.url(path)

        try:
            payload = json.loads(text)
        except ValueError:
            payload = text
        if isinstance(payload, Mapping):
            payload = payload.get("url")
        if isinstance(payload, str) and payload:
            return payload
        return self._client.url(path)

    async def upload_file(
        self,
        scope: FileScope,
        file_name: str,
        data: bytes,
        content_type: str | None = None,
    ) -> FileItem:
        """Upload one file. The content cache is not pre-populated."""
        resolved_type = resolve_content_type(content_type, file_name)
        try:
            payload = await self._client.post_file(scope.files_path, file_name, data, resolved_type)
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Uploading %s failed: %s", file_name, e)
            raise from_http_error(e, "upload file") from e

        item = normalize_descriptor(payload, fallback_id=file_name, fallback_size=len(data))
        logger.info("Uploaded %s to %s", item.id, scope.files_path)
        return item

    async def delete_file(self, scope: FileScope, file_id: str) -> None:
        """Delete one file. Cache invalidation is up to the caller."""
        try:
            await self._client.delete(scope.file_path(file_id))
        except httpx.HTTPError as e:
            logger.error("Deleting %s failed: %s", file_id, e)
            raise from_http_error(e, "delete file") from e
        logger.info("Deleted file %s from %s", file_id, scope.files_path)

    async def delete_all_files(self, scope: FileScope) -> int:
        """Delete every file of a document and drop their cache entries."""
        try:
            await self._client.delete(scope.files_path)
        except httpx.HTTPError as e:
            logger.error("Deleting all files of %s failed: %s", scope.files_path, e)
            raise from_http_error(e, "delete files") from e
        return self._cache.invalidate_prefix(*scope.cache_ids())
