"""File schemas — normalized metadata and render-ready content."""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, computed_field

PREVIEW_UNAVAILABLE = (
    "This file type ({content_type}) cannot be previewed. "
    "Please download the file to view its contents."
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class FileItem(BaseModel):
    """Normalized file metadata for listing."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(min_length=1)
    name: str
    size: int = Field(default=0, ge=0)
    content_type: str = Field(default="application/octet-stream", min_length=1, alias="contentType")
    created_at: datetime = Field(default_factory=_now, alias="createdAt")
    updated_at: datetime = Field(default_factory=_now, alias="updatedAt")


class FileContent(BaseModel):
    """Base64 file body plus resolved MIME type."""
    model_config = ConfigDict(populate_by_name=True)

    content: str
    content_type: str = Field(min_length=1, alias="contentType")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def preview_kind(self) -> str:
        """image, pdf, unsupported or empty."""
        if not self.content:
            return "empty"
        if self.content_type.startswith("image/"):
            return "image"
        if self.content_type == "application/pdf":
            return "pdf"
        return "unsupported"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def data_uri(self) -> str | None:
        if self.preview_kind in ("image", "pdf"):
            return f"data:{self.content_type};base64,{self.content}"
        return None


class DownloadUrl(BaseModel):
    url: str


class FileError(BaseModel):
    """Typed error payload."""
    kind: str
    message: str
