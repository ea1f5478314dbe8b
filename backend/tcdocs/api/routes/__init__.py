"""API route registration."""

from fastapi import APIRouter

from tcdocs.api.routes import cache, files, health, viewers

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(
    files.center_router,
    prefix="/training-centers/{training_center_id}/documents/{document_id}/files",
    tags=["files"],
)
api_router.include_router(
    files.attendee_router,
    prefix="/training-centers/{training_center_id}/attendees/{attendee_id}/documents/{document_id}/files",
    tags=["files"],
)
api_router.include_router(viewers.router, prefix="/viewers", tags=["viewers"])
api_router.include_router(cache.router, prefix="/cache", tags=["cache"])
