"""Path scoping for file endpoints — attendee documents vs. centre documents."""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import quote


def _segment(value: str) -> str:
    return quote(str(value), safe="")


@dataclass(frozen=True)
class FileScope:
    """Identifies the document whose files are addressed.

    With ``attendee_id`` the scope is an attendee document, otherwise a
    training-center-level document.
    """

    training_center_id: str
    document_id: str
    attendee_id: str | None = None

    def __post_init__(self) -> None:
        for field in ("training_center_id", "document_id"):
            if not getattr(self, field):
                raise ValueError(f"{field} is required")
        if self.attendee_id == "":
            raise ValueError("attendee_id must be None or non-empty")

    @property
    def is_attendee_scope(self) -> bool:
        return self.attendee_id is not None

    @property
    def files_path(self) -> str:
        path = f"/training-centers/{_segment(self.training_center_id)}"
        if self.attendee_id is not None:
            path += f"/attendees/{_segment(self.attendee_id)}"
        return f"{path}/documents/{_segment(self.document_id)}/files"

    def file_path(self, file_id: str) -> str:
        if not file_id:
            raise ValueError("file_id is required")
        return f"{self.files_path}/{_segment(file_id)}"

    def cache_ids(self) -> tuple[str | None, ...]:
        return (self.training_center_id, self.attendee_id, self.document_id)
