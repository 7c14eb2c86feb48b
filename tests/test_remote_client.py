"""Unit tests for the authenticated remote API client."""

import json

import httpx
import pytest

from gateway.exceptions import ApiError, AuthError
from gateway.remote_client import RemoteApiClient
from gateway.token_cache import TokenCache


def make_client(settings, clock, api_handler, token_status=200):
    def handler(request):
        if request.url.host == "login.test":
            if token_status != 200:
                return httpx.Response(token_status, text="denied")
            return httpx.Response(200, json={"access_token": "tok-1", "expires_in": 3600})
        return api_handler(request)

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    token_cache = TokenCache(settings, http_client=http_client, clock=clock)
    return RemoteApiClient(settings, token_cache, http_client=http_client)


@pytest.mark.asyncio
async def test_call_attaches_bearer_token(settings, clock):
    seen = []

    def api(request):
        seen.append(request)
        return httpx.Response(200, json={"id": "drive-1"})

    client = make_client(settings, clock, api)
    result = await client.call("/drives/drive-1")

    assert result == {"id": "drive-1"}
    request = seen[0]
    assert request.method == "GET"
    assert str(request.url) == "https://graph.test/v1.0/drives/drive-1"
    assert request.headers["Authorization"] == "Bearer tok-1"
    assert request.headers["Content-Type"] == "application/json"


@pytest.mark.asyncio
async def test_call_sends_json_body(settings, clock):
    seen = []

    def api(request):
        seen.append(request)
        return httpx.Response(201, json={"ok": True})

    client = make_client(settings, clock, api)
    await client.call("/items", method="POST", body={"name": "x"})

    assert seen[0].method == "POST"
    assert json.loads(seen[0].content) == {"name": "x"}


@pytest.mark.asyncio
async def test_non_success_raises_api_error(settings, clock):
    def api(request):
        return httpx.Response(404, json={"error": {"code": "itemNotFound"}})

    client = make_client(settings, clock, api)

    with pytest.raises(ApiError) as exc_info:
        await client.call("/drives/missing")

    assert exc_info.value.status == 404
    assert "itemNotFound" in exc_info.value.body


@pytest.mark.asyncio
async def test_transport_failure_raises_api_error_with_status_zero(settings, clock):
    def api(request):
        raise httpx.ReadTimeout("timed out", request=request)

    client = make_client(settings, clock, api)

    with pytest.raises(ApiError) as exc_info:
        await client.call("/drives/drive-1")
    assert exc_info.value.status == 0


@pytest.mark.asyncio
async def test_empty_success_body_returns_empty_dict(settings, clock):
    def api(request):
        return httpx.Response(204)

    client = make_client(settings, clock, api)

    assert await client.call("/items/1", method="DELETE") == {}


@pytest.mark.asyncio
async def test_token_failure_propagates_auth_error(settings, clock):
    def api(request):
        raise AssertionError("API must not be called without a token")

    client = make_client(settings, clock, api, token_status=400)

    with pytest.raises(AuthError):
        await client.call("/drives/drive-1")


@pytest.mark.asyncio
async def test_token_reused_across_calls(settings, clock):
    token_requests = []

    def handler(request):
        if request.url.host == "login.test":
            token_requests.append(request)
            return httpx.Response(200, json={"access_token": "tok-1", "expires_in": 3600})
        return httpx.Response(200, json={})

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    client = RemoteApiClient(settings, TokenCache(settings, http_client=http_client, clock=clock), http_client=http_client)

    for _ in range(5):
        await client.call("/me")

    assert len(token_requests) == 1
