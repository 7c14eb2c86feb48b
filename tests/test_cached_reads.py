"""Tests for the cache-fronted read path."""

import json
import time

import pytest

from common.expiring_cache import ExpiringCache
from gateway.exceptions import UnknownResourceError
from gateway.services.cached_reads import (
    CachedReadService,
    CachedResource,
    build_cached_read_service
)
from gateway.services.fallbacks import FallbackProvider

FALLBACK_COMPANY = {"name": "Fallback Co"}


class FlakyLoader:
    """Loader whose behaviour can be switched between calls."""

    def __init__(self, value=None, error=None):
        self.value = value
        self.error = error
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.value


def make_resource(clock, loader, ttl=600.0, fallback_ttl=5.0, timeout=1.0):
    cache = ExpiringCache(ttl_seconds=ttl, clock=clock, name="company-info")
    return CachedResource(
        name="company-info",
        cache=cache,
        loader=loader,
        fallback_provider=FallbackProvider({"company-info": FALLBACK_COMPANY}),
        timeout_seconds=timeout,
        fallback_ttl_seconds=fallback_ttl,
    )


@pytest.mark.asyncio
async def test_live_then_cached(clock):
    loader = FlakyLoader(value={"name": "Acme"})
    resource = make_resource(clock, loader)

    first = await resource.read()
    second = await resource.read()

    assert first.source == "live"
    assert first.cached is False
    assert first.fallback is False
    assert second.source == "cached"
    assert second.cached is True
    assert second.data == {"name": "Acme"}
    assert loader.calls == 1


@pytest.mark.asyncio
async def test_reloads_after_ttl(clock):
    loader = FlakyLoader(value={"name": "Acme"})
    resource = make_resource(clock, loader, ttl=600.0)

    await resource.read()
    clock.advance(600)
    loader.value = {"name": "Acme Pty"}
    result = await resource.read()

    assert result.source == "live"
    assert result.data == {"name": "Acme Pty"}
    assert loader.calls == 2


@pytest.mark.asyncio
async def test_store_failure_serves_fallback_then_cached_fallback(clock):
    loader = FlakyLoader(error=RuntimeError("store unavailable"))
    resource = make_resource(clock, loader, fallback_ttl=5.0)

    first = await resource.read()
    assert first.source == "fallback"
    assert first.fallback is True
    assert first.cached is False
    assert first.data == FALLBACK_COMPANY
    assert "store unavailable" in first.error

    clock.advance(4)
    second = await resource.read()
    assert second.source == "fallback"
    assert second.fallback is True
    assert second.cached is True
    assert loader.calls == 1

    loader.error = None
    loader.value = {"name": "Acme"}
    clock.advance(2)
    third = await resource.read()
    assert third.source == "live"
    assert third.fallback is False
    assert third.data == {"name": "Acme"}


@pytest.mark.asyncio
async def test_store_timeout_serves_fallback(clock):
    def slow_loader():
        time.sleep(0.5)
        return {"name": "Too late"}

    resource = make_resource(clock, slow_loader, timeout=0.05)

    result = await resource.read()

    assert result.source == "fallback"
    assert result.fallback is True
    assert "timed out" in result.error


@pytest.mark.asyncio
async def test_empty_store_serves_fallback(clock):
    resource = make_resource(clock, FlakyLoader(value=None))

    result = await resource.read()

    assert result.source == "fallback"
    assert result.data == FALLBACK_COMPANY


@pytest.mark.asyncio
async def test_failure_after_expiry_serves_stale_last_known_good(clock):
    loader = FlakyLoader(value={"name": "Acme"})
    resource = make_resource(clock, loader, ttl=600.0)
    await resource.read()

    clock.advance(700)
    loader.error = RuntimeError("store unavailable")
    result = await resource.read()

    assert result.source == "cached"
    assert result.fallback is True
    assert result.stale is True
    assert result.data == {"name": "Acme"}


@pytest.mark.asyncio
async def test_unknown_resource_raises():
    service = CachedReadService()

    with pytest.raises(UnknownResourceError):
        await service.read("payroll")


@pytest.mark.asyncio
async def test_built_service_reads_latest_company(settings, store):
    store.put("companies", "c1", {"name": "Old", "updated_at": "2024-01-01T00:00:00"})
    store.put("companies", "c2", {"name": "Current", "updated_at": "2026-01-01T00:00:00"})
    service = build_cached_read_service(settings, store, FallbackProvider())

    result = await service.read("company-info")

    assert result.source == "live"
    assert result.data["name"] == "Current"


@pytest.mark.asyncio
async def test_built_service_reads_team_members(settings, store):
    for i in range(3):
        store.put("team_members", f"m{i}", {"name": f"Member {i}", "role": "inspector"})
    service = build_cached_read_service(settings, store, FallbackProvider())

    result = await service.read("team-members")

    assert result.source == "live"
    assert [member["id"] for member in result.data] == ["m0", "m1", "m2"]


@pytest.mark.asyncio
async def test_built_service_falls_back_on_empty_roster(settings, store):
    service = build_cached_read_service(settings, store, FallbackProvider())

    result = await service.read("team-members")

    assert result.source == "fallback"
    assert result.data == []


class TestFallbackProvider:
    """Test fallback data loading."""

    def test_defaults_without_file(self):
        provider = FallbackProvider.from_file(None)

        assert provider.get("team-members") == []
        assert provider.get("company-info")["name"]

    def test_loads_json_file(self, tmp_path):
        path = tmp_path / "fallback.json"
        path.write_text(json.dumps({"company-info": {"name": "Bright Spark"}}))

        provider = FallbackProvider.from_file(str(path))

        assert provider.get("company-info") == {"name": "Bright Spark"}
        assert provider.get("team-members") == []

    def test_missing_or_invalid_file_uses_defaults(self, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text("{not json")

        assert FallbackProvider.from_file(str(tmp_path / "missing.json")).get("team-members") == []
        assert FallbackProvider.from_file(str(bad)).get("team-members") == []

    def test_values_are_copied(self):
        provider = FallbackProvider({"company-info": {"name": "A"}})

        provider.get("company-info")["name"] = "mutated"

        assert provider.get("company-info") == {"name": "A"}
