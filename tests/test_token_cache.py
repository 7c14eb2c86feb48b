"""Unit tests for the client-credentials token cache."""

import asyncio
from urllib.parse import parse_qs

import httpx
import pytest

from common.constants import TOKEN_FIXED_WINDOW_SECONDS
from gateway.exceptions import AuthError
from gateway.token_cache import TokenCache


def make_cache(settings, clock, handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return TokenCache(settings, http_client=client, clock=clock)


@pytest.mark.asyncio
async def test_exchange_posts_client_credentials(settings, clock):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"access_token": "tok-1", "expires_in": 3600})

    cache = make_cache(settings, clock, handler)
    token = await cache.get_token()

    assert token.value == "tok-1"
    request = seen[0]
    assert request.method == "POST"
    assert str(request.url) == "https://login.test/tenant-1/oauth2/v2.0/token"
    form = parse_qs(request.content.decode())
    assert form["grant_type"] == ["client_credentials"]
    assert form["client_id"] == ["client-1"]
    assert form["client_secret"] == ["s3cret"]
    assert form["scope"] == [settings.token_scope]


@pytest.mark.asyncio
async def test_one_exchange_within_validity_window(settings, clock):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={"access_token": "tok-1", "expires_in": 3600})

    cache = make_cache(settings, clock, handler)

    first = await cache.get_token()
    clock.advance(3600 - settings.token_safety_margin_seconds - 1)
    second = await cache.get_token()

    assert first == second
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_refreshes_inside_safety_margin(settings, clock):
    tokens = iter(["tok-1", "tok-2"])

    def handler(request):
        return httpx.Response(200, json={"access_token": next(tokens), "expires_in": 3600})

    cache = make_cache(settings, clock, handler)

    assert (await cache.get_token()).value == "tok-1"
    clock.advance(3600 - settings.token_safety_margin_seconds)
    assert (await cache.get_token()).value == "tok-2"


@pytest.mark.asyncio
async def test_fixed_window_when_expires_in_missing(settings, clock):
    def handler(request):
        return httpx.Response(200, json={"access_token": "tok-1"})

    cache = make_cache(settings, clock, handler)
    token = await cache.get_token()

    assert token.expires_at == clock.now + TOKEN_FIXED_WINDOW_SECONDS


@pytest.mark.asyncio
async def test_rejected_exchange_raises_auth_error(settings, clock):
    def handler(request):
        return httpx.Response(401, json={"error": "invalid_client"})

    cache = make_cache(settings, clock, handler)

    with pytest.raises(AuthError) as exc_info:
        await cache.get_token()

    assert exc_info.value.status == 401
    assert "invalid_client" in exc_info.value.body
    assert cache.cached_token is None


@pytest.mark.asyncio
async def test_missing_access_token_raises_auth_error(settings, clock):
    def handler(request):
        return httpx.Response(200, json={"token_type": "Bearer"})

    cache = make_cache(settings, clock, handler)

    with pytest.raises(AuthError) as exc_info:
        await cache.get_token()
    assert exc_info.value.status == 200


@pytest.mark.asyncio
async def test_transport_failure_has_status_zero(settings, clock):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    cache = make_cache(settings, clock, handler)

    with pytest.raises(AuthError) as exc_info:
        await cache.get_token()
    assert exc_info.value.status == 0


@pytest.mark.asyncio
async def test_unconfigured_credentials_raise_auth_error(settings, clock):
    def handler(request):
        raise AssertionError("no request expected")

    cache = make_cache(settings.with_overrides(client_secret=None), clock, handler)

    with pytest.raises(AuthError):
        await cache.get_token()


@pytest.mark.asyncio
async def test_concurrent_cold_callers_share_one_exchange(settings, clock):
    calls = []

    async def handler(request):
        calls.append(request)
        await asyncio.sleep(0.05)
        return httpx.Response(200, json={"access_token": "tok-1", "expires_in": 3600})

    cache = make_cache(settings, clock, handler)

    tokens = await asyncio.gather(*(cache.get_token() for _ in range(10)))

    assert len(calls) == 1
    assert {token.value for token in tokens} == {"tok-1"}


@pytest.mark.asyncio
async def test_invalidate_forces_new_exchange(settings, clock):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={"access_token": f"tok-{len(calls)}", "expires_in": 3600})

    cache = make_cache(settings, clock, handler)

    await cache.get_token()
    cache.invalidate()
    token = await cache.get_token()

    assert token.value == "tok-2"
    assert len(calls) == 2
