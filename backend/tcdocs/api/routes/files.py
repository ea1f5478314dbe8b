"""File API routes — list, preview content, download, upload, delete."""

from typing import Callable

from fastapi import APIRouter, Depends, File, Response, UploadFile, status

from tcdocs.api.deps import get_attendee_scope, get_center_scope, get_file_service
from tcdocs.schemas.files import DownloadUrl, FileContent, FileItem
from tcdocs.services.file_service import FileRetrievalService
from tcdocs.services.scope import FileScope
from tcdocs.utils.transcode import decode_base64_to_blob, default_registry, trigger_download


def attachment_response(url: str, file_name: str) -> Response:
    """Serve a registered object URL as a file attachment."""
    blob = default_registry.resolve(url)
    safe_name = file_name.replace('"', "").replace("\r", "").replace("\n", "")
    safe_name = safe_name.encode("latin-1", "replace").decode("latin-1")
    return Response(
        content=blob.data,
        media_type=blob.content_type,
        headers={"Content-Disposition": f'attachment; filename="{safe_name}"'},
    )


def build_router(get_scope: Callable[..., object]) -> APIRouter:
    """File routes bound to one scope flavour (centre or attendee document)."""
    router = APIRouter()

    @router.get("", response_model=list[FileItem])
    async def list_files(
        scope: FileScope = Depends(get_scope),
        service: FileRetrievalService = Depends(get_file_service),
    ):
        """List a document's files; descriptors without an identifier are skipped."""
        return await service.list_files(scope)

    @router.post("", response_model=FileItem, status_code=status.HTTP_201_CREATED)
    async def upload_file(
        file: UploadFile = File(...),
        scope: FileScope = Depends(get_scope),
        service: FileRetrievalService = Depends(get_file_service),
    ):
        data = await file.read()
        return await service.upload_file(
            scope, file.filename or "upload", data, content_type=file.content_type,
        )

    @router.delete("")
    async def delete_all_files(
        scope: FileScope = Depends(get_scope),
        service: FileRetrievalService = Depends(get_file_service),
    ):
        invalidated = await service.delete_all_files(scope)
        return {"deleted": True, "cache_entries_invalidated": invalidated}

    @router.get("/{file_id}", response_model=FileItem)
    async def get_file(
        file_id: str,
        scope: FileScope = Depends(get_scope),
        service: FileRetrievalService = Depends(get_file_service),
    ):
        return await service.get_file(scope, file_id)

    @router.get("/{file_id}/content", response_model=FileContent)
    async def get_file_content(
        file_id: str,
        scope: FileScope = Depends(get_scope),
        service: FileRetrievalService = Depends(get_file_service),
    ):
        """Base64 content for preview — cached for the configured TTL."""
        return await service.get_content(scope, file_id)

    @router.get("/{file_id}/download")
    async def download_file(
        file_id: str,
        scope: FileScope = Depends(get_scope),
        service: FileRetrievalService = Depends(get_file_service),
    ):
        content = await service.get_content(scope, file_id)
        blob = decode_base64_to_blob(content.content, content.content_type)
        file_name = await service.file_name(scope, file_id)
        return trigger_download(blob, file_name, attachment_response)

    @router.get("/{file_id}/download-url", response_model=DownloadUrl)
    async def get_download_url(
        file_id: str,
        scope: FileScope = Depends(get_scope),
        service: FileRetrievalService = Depends(get_file_service),
    ):
        return DownloadUrl(url=await service.get_download_url(scope, file_id))

    @router.delete("/{file_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_file(
        file_id: str,
        scope: FileScope = Depends(get_scope),
        service: FileRetrievalService = Depends(get_file_service),
    ):
        await service.delete_file(scope, file_id)
        service.invalidate(scope, file_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return router


center_router = build_router(get_center_scope)
attendee_router = build_router(get_attendee_scope)
