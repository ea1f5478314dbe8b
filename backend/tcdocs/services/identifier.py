"""File identifier resolution for heterogeneous API file descriptors.

Different endpoints describe the same file differently: some return a plain
``id``/``fileId``, others a ``fileName`` (string or list of fragments), others
only a serialized response entity whose ``headers`` carry a
``Content-Disposition``. Each shape is one extraction attempt; the first
attempt that yields a value wins.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Mapping

logger = logging.getLogger(__name__)

_FILENAME_RE = re.compile(r'filename="([^"]+)"', re.IGNORECASE)


def header_value(headers: Any, name: str) -> str | None:
    """Look up a header case-insensitively, unwrapping single-element lists."""
    if not isinstance(headers, Mapping):
        return None
    wanted = name.lower()
    for key, value in headers.items():
        if not isinstance(key, str) or key.lower() != wanted:
            continue
        if isinstance(value, (list, tuple)):
            value = value[0] if value else None
        if value is None:
            continue
        value = str(value).strip()
        if value:
            return value
    return None


def filename_from_disposition(value: Any) -> str | None:
    """Extract the quoted ``filename="..."`` parameter of a disposition value."""
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if not isinstance(value, str):
        return None
    match = _FILENAME_RE.search(value)
    return match.group(1) if match else None


def _from_direct_id(descriptor: Mapping) -> str | None:
    for field in ("id", "fileId"):
        value = descriptor.get(field)
        if isinstance(value, bool):
            continue
        if isinstance(value, int):
            return str(value)
        # Opaque ids are used verbatim in upstream paths
        if isinstance(value, str) and value.strip():
            return value
    return None


def _from_file_name(descriptor: Mapping) -> str | None:
    value = descriptor.get("fileName")
    if isinstance(value, (list, tuple)):
        if not value:
            return None
        first = value[0]
        if not isinstance(first, str):
            return None
        return filename_from_disposition(first) or first or None
    if isinstance(value, str):
        return value or None
    return None


def _from_disposition_header(descriptor: Mapping) -> str | None:
    disposition = header_value(descriptor.get("headers"), "Content-Disposition")
    return filename_from_disposition(disposition)


RESOLUTION_CHAIN: tuple[Callable[[Mapping], str | None], ...] = (
    _from_direct_id,
    _from_file_name,
    _from_disposition_header,
)


def resolve_file_id(descriptor: Any) -> str | None:
    """Return the canonical identifier of a file descriptor, or None.

    Pure: never raises, no I/O. Callers treat None as an identifier
    resolution failure.
    """
    if not isinstance(descriptor, Mapping):
        return None
    for attempt in RESOLUTION_CHAIN:
        try:
            file_id = attempt(descriptor)
        except (AttributeError, TypeError, ValueError) as e:
            logger.debug("Identifier attempt %s failed: %s", attempt.__name__, e)
            continue
        if file_id:
            return file_id
    return None
