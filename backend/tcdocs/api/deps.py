"""FastAPI dependency injection — bearer token, API client, services."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from tcdocs.services import get_session_caches, get_viewer_registry
from tcdocs.services.api_client import TrainingCenterApiClient
from tcdocs.services.content_cache import FileContentCache
from tcdocs.services.file_service import FileRetrievalService
from tcdocs.services.scope import FileScope
from tcdocs.services.viewer import PreviewController, ViewerRegistry

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[str]:
    """Caller's bearer token, forwarded upstream. Absence is tolerated."""
    if credentials is None or not credentials.credentials:
        return None
    return credentials.credentials


async def get_api_client(
    token: Optional[str] = Depends(get_bearer_token),
) -> TrainingCenterApiClient:
    return TrainingCenterApiClient(token=token)


async def get_content_cache(
    client: TrainingCenterApiClient = Depends(get_api_client),
) -> FileContentCache:
    """Cache of the effective caller identity (token or configured fallback)."""
    return get_session_caches().for_token(client.token)


async def get_file_service(
    client: TrainingCenterApiClient = Depends(get_api_client),
    cache: FileContentCache = Depends(get_content_cache),
) -> FileRetrievalService:
    return FileRetrievalService(client, cache)


def _scope(training_center_id: str, document_id: str, attendee_id: str | None = None) -> FileScope:
    try:
        return FileScope(
            training_center_id=training_center_id,
            document_id=document_id,
            attendee_id=attendee_id,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))


async def get_center_scope(training_center_id: str, document_id: str) -> FileScope:
    """Scope for training-center-level documents."""
    return _scope(training_center_id, document_id)


async def get_attendee_scope(training_center_id: str, attendee_id: str, document_id: str) -> FileScope:
    """Scope for attendee documents."""
    return _scope(training_center_id, document_id, attendee_id)


def get_viewers() -> ViewerRegistry:
    return get_viewer_registry()


async def get_viewer(
    viewer_id: str,
    token: Optional[str] = Depends(get_bearer_token),
    registry: ViewerRegistry = Depends(get_viewers),
) -> PreviewController:
    try:
        return registry.get(viewer_id, token)
    except KeyError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Viewer not found")
    except PermissionError:
        logger.warning("Viewer %s accessed with a foreign token", viewer_id)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Viewer belongs to another session")
