"""Pydantic schemas for cache-fronted read endpoints."""

from typing import Any, Optional

from gateway.schemas.common import CamelModel
from gateway.services.cached_reads import ReadResult


class CachedReadResponse(CamelModel):
    """Response model for a cache-fronted resource."""
    resource: str
    source: str
    fallback: bool
    cached: bool
    stale: bool
    query_time_ms: int
    data: Any = None
    error: Optional[str] = None

    @classmethod
    def from_result(cls, result: ReadResult) -> 'CachedReadResponse':
        return cls(
            resource=result.resource,
            source=result.source,
            fallback=result.fallback,
            cached=result.cached,
            stale=result.stale,
            query_time_ms=result.query_time_ms,
            data=result.data,
            error=result.error,
        )
