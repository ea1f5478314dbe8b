"""Preview viewer — per-dialog file selection, loading, download and delete state."""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Iterable, Mapping, TypeVar

from tcdocs.schemas.files import PREVIEW_UNAVAILABLE, FileContent, FileError, FileItem
from tcdocs.schemas.viewer import ActivePreview, Notice, ViewerFileState, ViewerSnapshot
from tcdocs.services.errors import (
    FileErrorKind,
    FileServiceError,
    IdentifierMissingError,
)
from tcdocs.services.file_service import FileRetrievalService, normalize_descriptor
from tcdocs.utils.hashing import same_token, token_digest
from tcdocs.utils.transcode import ObjectUrlRegistry, decode_base64_to_blob, trigger_download

if TYPE_CHECKING:
    from tcdocs.services.scope import FileScope

logger = logging.getLogger(__name__)

T = TypeVar("T")

EMPTY_MESSAGE = "No files attached"
DEFAULT_IDLE_TIMEOUT_SECONDS = 30 * 60


class LoadState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


class DownloadState(str, Enum):
    IDLE = "idle"
    DOWNLOADING = "downloading"
    DOWNLOADED = "downloaded"
    FAILED = "failed"


def _as_service_error(exc: Exception, action: str) -> FileServiceError:
    if isinstance(exc, FileServiceError):
        return exc
    detail = str(exc) or exc.__class__.__name__
    return FileServiceError(f"Failed to {action}: {detail}", kind=FileErrorKind.UNKNOWN)


class PreviewController:
    """State of one open preview dialog.

    Per-file load/download state is keyed by file id so several files can be
    in flight at once. Every ``FileServiceError`` is caught here and turned
    into per-file error state plus a notice; nothing propagates to rendering.
    """

    def __init__(
        self,
        service: FileRetrievalService,
        scope: FileScope,
        files: Iterable[FileItem | Mapping[str, Any]],
        active_index: int = 0,
        registry: ObjectUrlRegistry | None = None,
    ):
        self._service = service
        self._scope = scope
        self._registry = registry
        self._files: list[FileItem] = []
        self._load_states: dict[str, LoadState] = {}
        self._download_states: dict[str, DownloadState] = {}
        self._contents: dict[str, FileContent] = {}
        self._errors: dict[str, FileServiceError] = {}
        self._pending_delete: FileItem | None = None
        self._deleting = False
        self._closed = False
        self.notices: list[Notice] = []

        for entry in files:
            item = entry if isinstance(entry, FileItem) else normalize_descriptor(entry)
            if item is None:
                logger.warning("Viewer: dropping file without identifier: %r", entry)
                self._notify("error", IdentifierMissingError().message)
                continue
            self._files.append(item)

        self._active_index = self._clamp(active_index)

    # --- read-only state ---

    @property
    def scope(self) -> FileScope:
        return self._scope

    @property
    def files(self) -> tuple[FileItem, ...]:
        return tuple(self._files)

    @property
    def active_index(self) -> int:
        return self._active_index

    @property
    def active_file(self) -> FileItem | None:
        return self._files[self._active_index] if self._files else None

    @property
    def is_empty(self) -> bool:
        return not self._files

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending_delete(self) -> FileItem | None:
        return self._pending_delete

    @property
    def deleting(self) -> bool:
        return self._deleting

    def load_state(self, file_id: str) -> LoadState:
        return self._load_states.get(file_id, LoadState.IDLE)

    def download_state(self, file_id: str) -> DownloadState:
        return self._download_states.get(file_id, DownloadState.IDLE)

    def content(self, file_id: str) -> FileContent | None:
        return self._contents.get(file_id)

    def error(self, file_id: str) -> FileServiceError | None:
        return self._errors.get(file_id)

    def find(self, file_id: str) -> FileItem:
        for item in self._files:
            if item.id == file_id:
                return item
        raise KeyError(file_id)

    # --- transitions ---

    async def open(self) -> None:
        """Load the initially active file."""
        await self._load_active_if_idle()

    async def select(self, index: int) -> None:
        """Switch tabs; enters Loading only if the file is still idle."""
        clamped = self._clamp(index)
        if clamped != index:
            logger.warning("Invalid tab index %s, defaulting to %s", index, clamped)
        self._active_index = clamped
        await self._load_active_if_idle()

    async def load(self, file_id: str) -> FileContent | None:
        """Fetch a file's content for preview. Also the manual retry action."""
        if not file_id:
            self._notify("error", IdentifierMissingError().message)
            return None
        if file_id in self._contents:
            return self._contents[file_id]
        if self.load_state(file_id) is LoadState.LOADING:
            return None

        self._load_states[file_id] = LoadState.LOADING
        self._errors.pop(file_id, None)
        try:
            result = await self._service.get_content(self._scope, file_id)
        except Exception as e:
            err = _as_service_error(e, "load file content")
            if not isinstance(e, FileServiceError):
                logger.exception("Unexpected error loading %s", file_id)
            else:
                logger.error("Error loading file content for %s: %s", file_id, err.message)
            if not self._has(file_id):
                self._load_states.pop(file_id, None)
                return None
            self._load_states[file_id] = LoadState.FAILED
            self._errors[file_id] = err
            self._notify("error", err.message)
            return None

        if not self._has(file_id):
            # Deleted while loading
            self._load_states.pop(file_id, None)
            return result
        self._contents[file_id] = result
        self._load_states[file_id] = LoadState.LOADED
        if not result.content:
            self._notify("warning", "File appears to be empty")
        return result

    async def download(self, file_id: str, click: Callable[[str, str], T]) -> T | None:
        """Decode content (cached if available) and hand it to ``click``."""
        item = self.find(file_id)
        self._download_states[file_id] = DownloadState.DOWNLOADING
        try:
            content = self._contents.get(file_id)
            if content is None:
                content = await self._service.get_content(self._scope, file_id)
            blob = decode_base64_to_blob(content.content, content.content_type)
            result = trigger_download(blob, item.name or f"file-{file_id}", click, self._registry)
        except Exception as e:
            err = _as_service_error(e, "download file")
            logger.error("Error downloading %s: %s", file_id, err.message)
            if self._has(file_id):
                self._download_states[file_id] = DownloadState.FAILED
            self._notify("error", f"Failed to download file: {err.message}")
            return None

        if self._has(file_id):
            self._download_states[file_id] = DownloadState.DOWNLOADED
            if file_id not in self._contents:
                self._contents[file_id] = content
                self._load_states[file_id] = LoadState.LOADED
        self._notify("success", "Download started")
        return result

    def request_delete(self, file_id: str) -> FileItem:
        """Enter ConfirmPending for ``file_id``."""
        self._pending_delete = self.find(file_id)
        return self._pending_delete

    def cancel_delete(self) -> None:
        self._pending_delete = None

    async def confirm_delete(self) -> bool:
        """Delete the pending file. Returns True if it was removed."""
        item = self._pending_delete
        if item is None or self._deleting:
            return False

        self._deleting = True
        try:
            await self._service.delete_file(self._scope, item.id)
        except Exception as e:
            err = _as_service_error(e, "delete file")
            logger.error("Error deleting %s: %s", item.id, err.message)
            self._notify("error", f"Failed to delete file: {err.message}")
            return False
        finally:
            self._deleting = False
            self._pending_delete = None

        self._service.invalidate(self._scope, item.id)
        self._remove(item.id)
        self._notify("success", "File deleted successfully")
        await self._load_active_if_idle()
        return True

    def close(self) -> None:
        """Mark closed; late async completions are still accepted silently."""
        self._closed = True
        self._pending_delete = None

    def drain_notices(self) -> list[Notice]:
        notices, self.notices = self.notices, []
        return notices

    # --- rendering ---

    def snapshot(self, viewer_id: str | None = None) -> ViewerSnapshot:
        files = [
            ViewerFileState(
                file=item,
                load_state=self.load_state(item.id).value,
                download_state=self.download_state(item.id).value,
                error=FileError(**err.to_dict()) if (err := self._errors.get(item.id)) else None,
            )
            for item in self._files
        ]
        active = self.active_file
        return ViewerSnapshot(
            id=viewer_id,
            closed=self._closed,
            empty=active is None,
            message=EMPTY_MESSAGE if active is None else None,
            active_index=self._active_index,
            active=self._preview(active) if active is not None else None,
            files=files,
            pending_delete=self._pending_delete,
            deleting=self._deleting,
            notices=list(self.notices),
        )

    def _preview(self, item: FileItem) -> ActivePreview:
        state = self.load_state(item.id)
        if state is LoadState.LOADING:
            return ActivePreview(file_id=item.id, kind="loading", content_type=item.content_type)
        if state is LoadState.FAILED:
            err = self._errors.get(item.id)
            return ActivePreview(
                file_id=item.id, kind="error", content_type=item.content_type,
                message=err.message if err else None,
            )
        content = self._contents.get(item.id)
        if content is None:
            return ActivePreview(file_id=item.id, kind="idle", content_type=item.content_type)

        kind = content.preview_kind
        message = None
        if kind == "unsupported":
            message = PREVIEW_UNAVAILABLE.format(content_type=content.content_type)
        elif kind == "empty":
            message = "No content available"
        return ActivePreview(
            file_id=item.id, kind=kind, content_type=content.content_type,
            data_uri=content.data_uri, message=message,
        )

    # --- internals ---

    def _clamp(self, index: int) -> int:
        if not self._files:
            return 0
        if not isinstance(index, int) or index < 0:
            return 0
        if index >= len(self._files):
            return len(self._files) - 1
        return index

    def _has(self, file_id: str) -> bool:
        return any(item.id == file_id for item in self._files)

    def _remove(self, file_id: str) -> None:
        index = next(i for i, item in enumerate(self._files) if item.id == file_id)
        del self._files[index]
        self._load_states.pop(file_id, None)
        self._download_states.pop(file_id, None)
        self._contents.pop(file_id, None)
        self._errors.pop(file_id, None)

        if not self._files:
            self._active_index = 0
        elif index < self._active_index:
            self._active_index -= 1
        elif self._active_index > len(self._files) - 1:
            self._active_index = len(self._files) - 1

    async def _load_active_if_idle(self) -> None:
        active = self.active_file
        if active is not None and self.load_state(active.id) is LoadState.IDLE:
            await self.load(active.id)

    def _notify(self, level: str, message: str) -> None:
        if self._closed:
            logger.debug("Viewer closed, dropping %s notice: %s", level, message)
            return
        self.notices.append(Notice(level=level, message=message))


@dataclass
class _OpenViewer:
    controller: PreviewController
    owner: str  # token digest
    last_access: float


class ViewerRegistry:
    """Open preview viewers, each bound to the bearer token that opened it.

    A viewer not accessed for ``idle_timeout_seconds`` is closed and evicted
    on the next registry call, so abandoned dialogs do not keep their loaded
    file contents alive.
    """

    def __init__(
        self,
        idle_timeout_seconds: float = DEFAULT_IDLE_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._idle_timeout = idle_timeout_seconds
        self._clock = clock
        self._viewers: dict[str, _OpenViewer] = {}

    def open(self, controller: PreviewController, token: str | None) -> str:
        self.evict_idle()
        viewer_id = uuid.uuid4().hex
        self._viewers[viewer_id] = _OpenViewer(controller, token_digest(token), self._clock())
        logger.debug("Viewer %s opened for %s", viewer_id, controller.scope.files_path)
        return viewer_id

    def get(self, viewer_id: str, token: str | None) -> PreviewController:
        """Raises KeyError if unknown or evicted, PermissionError on token mismatch."""
        self.evict_idle()
        entry = self._viewers[viewer_id]
        if not same_token(entry.owner, token):
            raise PermissionError("Viewer belongs to another session")
        entry.last_access = self._clock()
        return entry.controller

    def close(self, viewer_id: str, token: str | None) -> None:
        controller = self.get(viewer_id, token)
        controller.close()
        del self._viewers[viewer_id]
        logger.debug("Viewer %s closed", viewer_id)

    def evict_idle(self) -> int:
        """Close viewers idle past the timeout. Returns the count."""
        now = self._clock()
        idle = [vid for vid, e in self._viewers.items() if now - e.last_access > self._idle_timeout]
        for vid in idle:
            self._viewers.pop(vid).controller.close()
        if idle:
            logger.info("Evicted %d idle viewer(s)", len(idle))
        return len(idle)

    def close_all(self) -> None:
        for entry in self._viewers.values():
            entry.controller.close()
        self._viewers.clear()

    def __len__(self) -> int:
        return len(self._viewers)
