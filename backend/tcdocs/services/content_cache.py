"""In-memory file content cache with read-time TTL expiry."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

from tcdocs.schemas.cache import CacheStats
from tcdocs.utils.hashing import token_digest

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 5 * 60
KEY_SEPARATOR = "_"
_ESCAPE = "\\"


@dataclass(frozen=True)
class CacheEntry:
    content: str  # base64
    content_type: str
    cached_at: float


def _escape(scope_id: str) -> str:
    return scope_id.replace(_ESCAPE, _ESCAPE * 2).replace(KEY_SEPARATOR, _ESCAPE + KEY_SEPARATOR)


def key_for(*scope_ids: str | None) -> str:
    """Build a composite cache key from path-scoping ids.

    ``None`` entries (e.g. no attendee) are skipped. Separator and escape
    characters inside an id are escaped, so two id tuples that differ in any
    component never share a key.
    """
    parts = [_escape(str(i)) for i in scope_ids if i is not None]
    if not parts:
        raise ValueError("At least one scope id is required for a cache key")
    return KEY_SEPARATOR.join(parts)


def split_key(key: str) -> tuple[str, ...]:
    """Inverse of ``key_for``: recover the scope ids of a cache key."""
    parts: list[str] = []
    current: list[str] = []
    escaped = False
    for ch in key:
        if escaped:
            current.append(ch)
            escaped = False
        elif ch == _ESCAPE:
            escaped = True
        elif ch == KEY_SEPARATOR:
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
    parts.append("".join(current))
    return tuple(parts)


class FileContentCache:
    """Maps composite keys to base64 content. Unbounded; entries go stale
    after ``ttl_seconds`` and are treated as misses on the next read."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    key_for = staticmethod(key_for)

    def get(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None
        if self._clock() - entry.cached_at > self._ttl:
            logger.debug("Cache entry %s expired", key)
            del self._entries[key]
            self._misses += 1
            return None
        self._hits += 1
        return entry

    def set(self, key: str, content: str, content_type: str) -> CacheEntry:
        entry = CacheEntry(content=content, content_type=content_type, cached_at=self._clock())
        self._entries[key] = entry
        return entry

    def invalidate(self, key: str) -> bool:
        """Drop one entry. Returns True if it existed."""
        return self._entries.pop(key, None) is not None

    def invalidate_prefix(self, *scope_ids: str | None) -> int:
        """Drop the file entries directly under ``scope_ids``. Returns the count.

        Matching is done on parsed key components, so a document scope never
        catches entries of a longer scope that merely shares a string prefix.
        """
        prefix = split_key(key_for(*scope_ids))
        stale = [k for k in self._entries if split_key(k)[:-1] == prefix]
        for k in stale:
            del self._entries[k]
        if stale:
            logger.info("Invalidated %d cache entries under %s", len(stale), "/".join(prefix))
        return len(stale)

    def purge_expired(self) -> int:
        """Drop every stale entry. Returns the count."""
        now = self._clock()
        stale = [k for k, e in self._entries.items() if now - e.cached_at > self._ttl]
        for k in stale:
            del self._entries[k]
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()
        self._hits = 0
        self._misses = 0

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> CacheStats:
        lookups = self._hits + self._misses
        size = sum(len(e.content) for e in self._entries.values())
        return CacheStats(
            total_entries=len(self._entries),
            total_size_kb=round(size / 1024, 1),
            ttl_seconds=self._ttl,
            hits=self._hits,
            misses=self._misses,
            hit_rate_percent=round(self._hits / lookups * 100, 1) if lookups else None,
        )


class SessionCaches:
    """One ``FileContentCache`` per caller, keyed by bearer token digest.

    Content fetched with one token is never served to a request carrying
    another (or none). A session is dropped once its entries have expired
    and it has not been looked up for a full TTL.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._ttl = ttl_seconds
        self._clock = clock
        self._caches: dict[str, FileContentCache] = {}
        self._last_seen: dict[str, float] = {}

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def for_token(self, token: str | None) -> FileContentCache:
        self.prune()
        digest = token_digest(token)
        cache = self._caches.get(digest)
        if cache is None:
            cache = FileContentCache(ttl_seconds=self._ttl, clock=self._clock)
            self._caches[digest] = cache
        self._last_seen[digest] = self._clock()
        return cache

    def prune(self) -> int:
        """Drop idle sessions with nothing fresh cached. Returns the count."""
        now = self._clock()
        idle = []
        for digest, cache in self._caches.items():
            cache.purge_expired()
            if not len(cache) and now - self._last_seen.get(digest, now) > self._ttl:
                idle.append(digest)
        for digest in idle:
            del self._caches[digest]
            self._last_seen.pop(digest, None)
        if idle:
            logger.debug("Dropped %d idle cache session(s)", len(idle))
        return len(idle)

    def clear(self) -> None:
        self._caches.clear()
        self._last_seen.clear()

    def __len__(self) -> int:
        return len(self._caches)
