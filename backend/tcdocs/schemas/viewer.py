"""Preview viewer schemas — render-ready state for the UI."""

from pydantic import BaseModel, Field

from tcdocs.schemas.files import FileError, FileItem


class Notice(BaseModel):
    """User-facing notification (toast)."""
    level: str  # success, info, warning, error
    message: str


class ViewerFileState(BaseModel):
    file: FileItem
    load_state: str
    download_state: str
    error: FileError | None = None


class ActivePreview(BaseModel):
    """What the active tab should render."""
    file_id: str
    kind: str  # idle, loading, error, image, pdf, unsupported, empty
    content_type: str | None = None
    data_uri: str | None = None
    message: str | None = None


class ViewerSnapshot(BaseModel):
    id: str | None = None
    closed: bool = False
    empty: bool
    message: str | None = None
    active_index: int
    active: ActivePreview | None = None
    files: list[ViewerFileState]
    pending_delete: FileItem | None = None
    deleting: bool = False
    notices: list[Notice] = []


class ViewerOpenRequest(BaseModel):
    training_center_id: str = Field(min_length=1)
    document_id: str = Field(min_length=1)
    attendee_id: str | None = None
    active_index: int = 0


class ViewerSelectRequest(BaseModel):
    index: int


class ViewerDeleteRequest(BaseModel):
    file_id: str
