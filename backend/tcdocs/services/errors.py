"""Typed file errors — one ``kind`` discriminator per failure class."""

from __future__ import annotations

from enum import Enum

import httpx


class FileErrorKind(str, Enum):
    NOT_FOUND = "NotFound"
    FORBIDDEN = "Forbidden"
    UNAUTHORIZED = "Unauthorized"
    UNKNOWN = "Unknown"
    IDENTIFIER_MISSING = "IdentifierMissing"
    DECODING_ERROR = "DecodingError"


USER_MESSAGES: dict[FileErrorKind, str] = {
    FileErrorKind.NOT_FOUND: "File not found on the server",
    FileErrorKind.FORBIDDEN: "You do not have permission to access this file",
    FileErrorKind.UNAUTHORIZED: "Authentication error. Please log in again",
    FileErrorKind.IDENTIFIER_MISSING: "Cannot preview file: Missing file identifier",
    FileErrorKind.DECODING_ERROR: "Failed to process file data",
}

_STATUS_KINDS: dict[int, FileErrorKind] = {
    401: FileErrorKind.UNAUTHORIZED,
    403: FileErrorKind.FORBIDDEN,
    404: FileErrorKind.NOT_FOUND,
}


class FileServiceError(Exception):
    """Base class for all file retrieval errors surfaced to the UI."""

    kind: FileErrorKind = FileErrorKind.UNKNOWN

    def __init__(
        self,
        message: str | None = None,
        *,
        kind: FileErrorKind | None = None,
        status_code: int | None = None,
    ):
        if kind is not None:
            self.kind = kind
        self.status_code = status_code
        self.message = message or USER_MESSAGES.get(self.kind, "Unknown error")
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "message": self.message}


class FileRetrievalError(FileServiceError):
    """Network failure classified by HTTP status."""


class IdentifierMissingError(FileServiceError):
    kind = FileErrorKind.IDENTIFIER_MISSING


class ContentDecodingError(FileServiceError):
    kind = FileErrorKind.DECODING_ERROR


def classify_status(status_code: int | None) -> FileErrorKind:
    """Map an HTTP status code to an error kind."""
    if status_code is None:
        return FileErrorKind.UNKNOWN
    return _STATUS_KINDS.get(status_code, FileErrorKind.UNKNOWN)


def from_http_error(exc: Exception, action: str = "load file content") -> FileRetrievalError:
    """Wrap a transport error as a classified ``FileRetrievalError``."""
    status_code = None
    if isinstance(exc, httpx.HTTPStatusError):
        status_code = exc.response.status_code
    kind = classify_status(status_code)
    if kind is FileErrorKind.UNKNOWN:
        if status_code is not None:
            detail = f"Server error ({status_code})"
        else:
            detail = str(exc) or exc.__class__.__name__
        message = f"Failed to {action}: {detail}"
    else:
        message = USER_MESSAGES[kind]
    return FileRetrievalError(message, kind=kind, status_code=status_code)
