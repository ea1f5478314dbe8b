"""Preview viewer routes — server-side state for the multi-file preview dialog."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.responses import JSONResponse

from tcdocs.api.deps import get_bearer_token, get_file_service, get_viewer, get_viewers
from tcdocs.api.routes.files import attachment_response
from tcdocs.schemas.viewer import (
    ViewerDeleteRequest,
    ViewerOpenRequest,
    ViewerSelectRequest,
    ViewerSnapshot,
)
from tcdocs.services.file_service import FileRetrievalService
from tcdocs.services.scope import FileScope
from tcdocs.services.viewer import PreviewController, ViewerRegistry

logger = logging.getLogger(__name__)

router = APIRouter()


def _snapshot(viewer_id: str, viewer: PreviewController) -> ViewerSnapshot:
    """Render state and hand pending notices to the caller exactly once."""
    snapshot = viewer.snapshot(viewer_id)
    viewer.drain_notices()
    return snapshot


def _require_file(viewer: PreviewController, file_id: str) -> None:
    try:
        viewer.find(file_id)
    except KeyError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not in viewer")


@router.post("", response_model=ViewerSnapshot, status_code=status.HTTP_201_CREATED)
async def open_viewer(
    body: ViewerOpenRequest,
    token: Optional[str] = Depends(get_bearer_token),
    service: FileRetrievalService = Depends(get_file_service),
    registry: ViewerRegistry = Depends(get_viewers),
):
    """Open a preview dialog for a document and load its active file."""
    try:
        scope = FileScope(
            training_center_id=body.training_center_id,
            document_id=body.document_id,
            attendee_id=body.attendee_id or None,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    files = await service.list_files(scope)
    viewer = PreviewController(service, scope, files, active_index=body.active_index)
    await viewer.open()
    viewer_id = registry.open(viewer, token)
    logger.info("Viewer %s opened with %d file(s)", viewer_id, len(viewer.files))
    return _snapshot(viewer_id, viewer)


@router.get("/{viewer_id}", response_model=ViewerSnapshot)
async def get_viewer_state(viewer_id: str, viewer: PreviewController = Depends(get_viewer)):
    return _snapshot(viewer_id, viewer)


@router.post("/{viewer_id}/select", response_model=ViewerSnapshot)
async def select_file(
    viewer_id: str,
    body: ViewerSelectRequest,
    viewer: PreviewController = Depends(get_viewer),
):
    await viewer.select(body.index)
    return _snapshot(viewer_id, viewer)


@router.post("/{viewer_id}/files/{file_id}/load", response_model=ViewerSnapshot)
async def load_file(viewer_id: str, file_id: str, viewer: PreviewController = Depends(get_viewer)):
    """Manual (re)load of one file's preview content."""
    _require_file(viewer, file_id)
    await viewer.load(file_id)
    return _snapshot(viewer_id, viewer)


@router.get("/{viewer_id}/files/{file_id}/download")
async def download_file(viewer_id: str, file_id: str, viewer: PreviewController = Depends(get_viewer)):
    _require_file(viewer, file_id)
    response = await viewer.download(file_id, attachment_response)
    if response is None:
        snapshot = _snapshot(viewer_id, viewer)
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content=snapshot.model_dump(mode="json", by_alias=True),
        )
    viewer.drain_notices()
    return response


@router.post("/{viewer_id}/delete-request", response_model=ViewerSnapshot)
async def request_delete(
    viewer_id: str,
    body: ViewerDeleteRequest,
    viewer: PreviewController = Depends(get_viewer),
):
    _require_file(viewer, body.file_id)
    viewer.request_delete(body.file_id)
    return _snapshot(viewer_id, viewer)


@router.post("/{viewer_id}/delete-confirm", response_model=ViewerSnapshot)
async def confirm_delete(viewer_id: str, viewer: PreviewController = Depends(get_viewer)):
    if viewer.pending_delete is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="No delete pending")
    await viewer.confirm_delete()
    return _snapshot(viewer_id, viewer)


@router.post("/{viewer_id}/delete-cancel", response_model=ViewerSnapshot)
async def cancel_delete(viewer_id: str, viewer: PreviewController = Depends(get_viewer)):
    viewer.cancel_delete()
    return _snapshot(viewer_id, viewer)


@router.delete("/{viewer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_viewer(
    viewer_id: str,
    token: Optional[str] = Depends(get_bearer_token),
    viewer: PreviewController = Depends(get_viewer),
    registry: ViewerRegistry = Depends(get_viewers),
):
    registry.close(viewer_id, token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
