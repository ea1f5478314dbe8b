"""Business logic services — singleton registry."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from tcdocs.config import settings

if TYPE_CHECKING:
    from tcdocs.services.content_cache import SessionCaches
    from tcdocs.services.viewer import ViewerRegistry

logger = logging.getLogger(__name__)

_session_caches: SessionCaches | None = None
_viewer_registry: ViewerRegistry | None = None


def init_services() -> None:
    """Create the app-lifetime per-session caches and viewer registry."""
    global _session_caches, _viewer_registry

    from tcdocs.services.content_cache import SessionCaches
    from tcdocs.services.viewer import ViewerRegistry

    _session_caches = SessionCaches(ttl_seconds=settings.content_cache_ttl_seconds)
    _viewer_registry = ViewerRegistry(idle_timeout_seconds=settings.viewer_idle_timeout_seconds)
    logger.info(
        "File services initialized (cache TTL %ss, viewer idle timeout %ss, upstream %s)",
        settings.content_cache_ttl_seconds, settings.viewer_idle_timeout_seconds,
        settings.api_base_url,
    )


def shutdown_services() -> None:
    """Drop cached content and open viewers."""
    global _session_caches, _viewer_registry
    if _session_caches is not None:
        _session_caches.clear()
        _session_caches = None
    if _viewer_registry is not None:
        _viewer_registry.close_all()
        _viewer_registry = None


def get_session_caches() -> SessionCaches:
    if _session_caches is None:
        raise RuntimeError("Services not initialized — call init_services() first")
    return _session_caches


def get_viewer_registry() -> ViewerRegistry:
    if _viewer_registry is None:
        raise RuntimeError("Services not initialized — call init_services() first")
    return _viewer_registry
