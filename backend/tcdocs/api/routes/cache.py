"""Content cache routes — statistics and manual flush of the caller's session cache."""

import logging

from fastapi import APIRouter, Depends

from tcdocs.api.deps import get_content_cache
from tcdocs.schemas.cache import CacheStats
from tcdocs.services.content_cache import FileContentCache

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/stats", response_model=CacheStats)
async def cache_stats(cache: FileContentCache = Depends(get_content_cache)):
    """Cache usage statistics."""
    return cache.stats()


@router.delete("")
async def clear_cache(cache: FileContentCache = Depends(get_content_cache)):
    """Drop every file body cached for the caller."""
    cleared = len(cache)
    cache.clear()
    logger.info("Content cache cleared (%d entries)", cleared)
    return {"cleared": cleared}
