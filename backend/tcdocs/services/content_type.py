"""Content type resolution — explicit type, extension table, response header."""

from __future__ import annotations

DEFAULT_CONTENT_TYPE = "application/octet-stream"

MIME_TYPES: dict[str, str] = {
    # Documents
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "xls": "application/vnd.ms-excel",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "ppt": "application/vnd.ms-powerpoint",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    # Images
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "bmp": "image/bmp",
    "webp": "image/webp",
    "svg": "image/svg+xml",
    # Text
    "txt": "text/plain",
    "csv": "text/csv",
    "html": "text/html",
    "htm": "text/html",
    "xml": "application/xml",
    "json": "application/json",
    # Archives
    "zip": "application/zip",
    "rar": "application/x-rar-compressed",
    "7z": "application/x-7z-compressed",
    "tar": "application/x-tar",
    "gz": "application/gzip",
}


def _clean(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def content_type_from_name(file_name: str | None) -> str | None:
    """Look up the MIME type for a filename's extension."""
    name = _clean(file_name)
    if not name or "." not in name:
        return None
    extension = name.rsplit(".", 1)[-1].lower()
    return MIME_TYPES.get(extension)


def resolve_content_type(
    explicit_type: str | None = None,
    file_name: str | None = None,
    response_type: str | None = None,
) -> str:
    """Pick a MIME type: explicit > extension > response header > default.

    Never returns an empty string.
    """
    return (
        _clean(explicit_type)
        or content_type_from_name(file_name)
        or _clean(response_type)
        or DEFAULT_CONTENT_TYPE
    )
