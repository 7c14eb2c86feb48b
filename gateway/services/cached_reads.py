"""
Cache-fronted read path for slowly changing resources.

Reads never fail: a store timeout or error degrades to last-known-good data
and then to injected fallback data, both tagged so the client can tell.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from common.constants import COMPANIES_COLLECTION, TEAM_MEMBERS_COLLECTION, TEAM_ROSTER_QUERY_LIMIT
from common.expiring_cache import ExpiringCache
from gateway.config import Settings
from gateway.database import DocumentStore
from gateway.exceptions import UnknownResourceError
from gateway.services.fallbacks import COMPANY_INFO_RESOURCE, TEAM_MEMBERS_RESOURCE, FallbackProvider

logger = logging.getLogger(__name__)

SOURCE_LIVE = "live"
SOURCE_CACHED = "cached"
SOURCE_FALLBACK = "fallback"


@dataclass(frozen=True)
class ReadResult:
    resource: str
    data: Any
    source: str
    fallback: bool = False
    cached: bool = False
    stale: bool = False
    query_time_ms: int = 0
    error: Optional[str] = None


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, (list, dict)) and not value)


class CachedResource:
    """
    One named resource fronted by an ExpiringCache.

    Live values are cached under the resource name with the cache's TTL.
    Degraded answers are cached under a separate key for
    ``fallback_ttl_seconds``, so the live value stays available as
    last-known-good after it expires.
    """

    def __init__(
        self,
        name: str,
        cache: ExpiringCache,
        loader: Callable[[], Any],
        fallback_provider: FallbackProvider,
        timeout_seconds: float,
        fallback_ttl_seconds: float,
    ):
        self.name = name
        self.cache = cache
        self.loader = loader
        self.fallback_provider = fallback_provider
        self.timeout_seconds = timeout_seconds
        self.fallback_ttl_seconds = fallback_ttl_seconds

    @property
    def fallback_key(self) -> str:
        return f"{self.name}:fallback"

    async def read(self) -> ReadResult:
        start_time = time.perf_counter()

        def elapsed_ms() -> int:
            return int((time.perf_counter() - start_time) * 1000)

        live = self.cache.get_entry(self.name)
        if live is not None:
            return ReadResult(
                resource=self.name,
                data=live.value,
                source=SOURCE_CACHED,
                cached=True,
                query_time_ms=elapsed_ms(),
            )

        degraded = self.cache.get_entry(self.fallback_key)
        if degraded is not None:
            stale = degraded.value["stale"]
            return ReadResult(
                resource=self.name,
                data=degraded.value["data"],
                source=SOURCE_CACHED if stale else SOURCE_FALLBACK,
                fallback=True,
                cached=True,
                stale=stale,
                query_time_ms=elapsed_ms(),
                error=degraded.value["error"],
            )

        try:
            data = await asyncio.wait_for(asyncio.to_thread(self.loader), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            error = f"Store query timed out after {self.timeout_seconds}s"
        except Exception as e:
            error = f"Store query failed: {e}"
        else:
            if not _is_empty(data):
                self.cache.set(self.name, data)
                self.cache.delete(self.fallback_key)
                logger.info(f"Resource '{self.name}' loaded from store in {elapsed_ms()}ms")
                return ReadResult(
                    resource=self.name,
                    data=data,
                    source=SOURCE_LIVE,
                    query_time_ms=elapsed_ms(),
                )
            error = "No data in store"

        logger.warning(f"Resource '{self.name}' degraded: {error}")
        return self._degrade(error, elapsed_ms)

    def _degrade(self, error: str, elapsed_ms: Callable[[], int]) -> ReadResult:
        last_known_good = self.cache.get_entry(self.name, allow_stale=True)
        if last_known_good is not None:
            data = last_known_good.value
            stale = True
            source = SOURCE_CACHED
        else:
            data = self.fallback_provider.get(self.name)
            stale = False
            source = SOURCE_FALLBACK

        self.cache.set(
            self.fallback_key,
            {"data": data, "stale": stale, "error": error},
            ttl_seconds=self.fallback_ttl_seconds,
        )

        return ReadResult(
            resource=self.name,
            data=data,
            source=source,
            fallback=True,
            cached=False,
            stale=stale,
            query_time_ms=elapsed_ms(),
            error=error,
        )


class CachedReadService:
    """
    Registry of the cache-fronted resources served by ``GET /cache/{resource}``.
    """

    def __init__(self, resources: Optional[Dict[str, CachedResource]] = None):
        self.resources: Dict[str, CachedResource] = dict(resources or {})

    def register(self, resource: CachedResource) -> None:
        self.resources[resource.name] = resource

    def get_resource(self, name: str) -> CachedResource:
        resource = self.resources.get(name)
        if resource is None:
            raise UnknownResourceError(f"Unknown resource: {name}")
        return resource

    async def read(self, name: str) -> ReadResult:
        return await self.get_resource(name).read()


def load_company_info(store: DocumentStore) -> Optional[Dict[str, Any]]:
    documents = store.query(COMPANIES_COLLECTION, order_by="updated_at", descending=True, limit=1)
    return documents[0] if documents else None


def load_team_members(store: DocumentStore) -> list:
    return store.query(TEAM_MEMBERS_COLLECTION, limit=TEAM_ROSTER_QUERY_LIMIT)


def build_cached_read_service(
    settings: Settings,
    store: DocumentStore,
    fallback_provider: FallbackProvider,
) -> CachedReadService:
    """
    Create the read service with the company-info and team-members resources.
    """
    company_cache = ExpiringCache(
        ttl_seconds=settings.company_info_ttl_seconds,
        max_entries=settings.cache_max_entries,
        name=COMPANY_INFO_RESOURCE,
    )
    team_cache = ExpiringCache(
        ttl_seconds=settings.team_roster_ttl_seconds,
        max_entries=settings.cache_max_entries,
        name=TEAM_MEMBERS_RESOURCE,
    )

    service = CachedReadService()
    service.register(CachedResource(
        name=COMPANY_INFO_RESOURCE,
        cache=company_cache,
        loader=lambda: load_company_info(store),
        fallback_provider=fallback_provider,
        timeout_seconds=settings.store_read_timeout_seconds,
        fallback_ttl_seconds=settings.fallback_ttl_seconds,
    ))
    service.register(CachedResource(
        name=TEAM_MEMBERS_RESOURCE,
        cache=team_cache,
        loader=lambda: load_team_members(store),
        fallback_provider=fallback_provider,
        timeout_seconds=settings.store_read_timeout_seconds,
        fallback_ttl_seconds=settings.fallback_ttl_seconds,
    ))
    return service
