"""Binary <-> base64 transcoding and scoped download URLs."""

from __future__ import annotations

import base64
import binascii
import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, TypeVar

from tcdocs.services.errors import ContentDecodingError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Blob:
    """Raw bytes plus the MIME type they should be served as."""

    data: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.data)


def encode_to_base64(data: bytes) -> str:
    """Encode arbitrary bytes as base64 text. Empty input yields ``""``."""
    if not data:
        return ""
    return base64.b64encode(bytes(data)).decode("ascii")


def decode_base64_to_blob(content: str, content_type: str) -> Blob:
    """Decode base64 text into a Blob.

    Raises:
        ContentDecodingError: if ``content`` is not valid base64.
    """
    if not isinstance(content, str):
        raise ContentDecodingError()
    compact = "".join(content.split())
    try:
        data = base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as e:
        logger.error("Invalid base64 payload (%d chars): %s", len(content), e)
        raise ContentDecodingError() from e
    return Blob(data=data, content_type=content_type)


class ObjectUrlRegistry:
    """Ephemeral ``blob:`` URLs mapping to in-memory blobs."""

    def __init__(self) -> None:
        self._blobs: dict[str, Blob] = {}

    def create(self, blob: Blob) -> str:
        url = f"blob:{uuid.uuid4()}"
        self._blobs[url] = blob
        return url

    def resolve(self, url: str) -> Blob:
        try:
            return self._blobs[url]
        except KeyError:
            raise KeyError(f"Object URL revoked or unknown: {url}") from None

    def revoke(self, url: str) -> None:
        self._blobs.pop(url, None)

    def __contains__(self, url: object) -> bool:
        return url in self._blobs

    def __len__(self) -> int:
        return len(self._blobs)


default_registry = ObjectUrlRegistry()


@contextmanager
def object_url(blob: Blob, registry: ObjectUrlRegistry | None = None) -> Iterator[str]:
    """Register ``blob`` for the duration of the block; always revoked."""
    if registry is None:
        registry = default_registry
    url = registry.create(blob)
    try:
        yield url
    finally:
        registry.revoke(url)


def trigger_download(
    blob: Blob,
    file_name: str,
    click: Callable[[str, str], T],
    registry: ObjectUrlRegistry | None = None,
) -> T:
    """Expose ``blob`` under an object URL and hand it to ``click``.

    ``click(url, file_name)`` performs the actual save. The URL is revoked
    once it returns or raises.
    """
    if registry is None:
        registry = default_registry
    with object_url(blob, registry) as url:
        logger.debug("Download %s via %s (%d bytes)", file_name, url, blob.size)
        return click(url, file_name)
