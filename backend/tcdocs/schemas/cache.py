"""Cache statistics schemas."""

from pydantic import BaseModel


class CacheStats(BaseModel):
    """File content cache usage statistics."""
    total_entries: int
    total_size_kb: float  # base64 text size
    ttl_seconds: float
    hits: int = 0
    misses: int = 0
    hit_rate_percent: float | None = None
