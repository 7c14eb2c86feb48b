"""Client-credentials token exchange with a single cached bearer token."""

import asyncio
import logging
import time
from typing import Callable, Optional

import httpx

from common.constants import TOKEN_FIXED_WINDOW_SECONDS
from common.types import AccessToken
from gateway.config import Settings
from gateway.exceptions import AuthError

logger = logging.getLogger(__name__)


class TokenCache:
    """
    Holds at most one AccessToken and refreshes it on demand.

    Concurrent callers on a cold or expired cache share a single exchange:
    the slot is re-checked after acquiring the lock, so only the first
    caller talks to the token endpoint.
    """

    def __init__(
        self,
        settings: Settings,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings
        self._client = http_client
        self._owns_client = http_client is None
        self._clock = clock
        self._token: Optional[AccessToken] = None
        self._lock = asyncio.Lock()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.settings.remote_timeout_seconds)
        return self._client

    async def close(self):
        """Close the HTTP client if this cache created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def invalidate(self) -> None:
        """Drop the cached token; the next call performs a fresh exchange."""
        self._token = None

    @property
    def cached_token(self) -> Optional[AccessToken]:
        return self._token

    async def get_token(self) -> AccessToken:
        """
        Return a valid bearer token, exchanging credentials when needed.

        Returns:
            AccessToken that is not within the safety margin of expiry

        Raises:
            AuthError: If the exchange fails or the response has no token
        """
        token = self._token
        if token is not None and token.is_valid(self._clock()):
            return token

        async with self._lock:
            token = self._token
            if token is not None and token.is_valid(self._clock()):
                return token

            self._token = await self._exchange()
            return self._token

    async def _exchange(self) -> AccessToken:
        settings = self.settings
        if not (settings.tenant_id and settings.client_id and settings.client_secret):
            raise AuthError("Token exchange is not configured (tenant, client id and secret are required)")

        form = {
            "grant_type": "client_credentials",
            "client_id": settings.client_id,
            "client_secret": settings.client_secret,
            "scope": settings.token_scope,
        }

        logger.debug(f"Requesting access token [tenant={settings.tenant_id}]")

        try:
            response = await self._get_client().post(
                settings.token_url,
                data=form,
                timeout=settings.remote_timeout_seconds,
            )
        except httpx.HTTPError as e:
            logger.error(f"Token endpoint unreachable: {e}")
            raise AuthError(f"Token endpoint unreachable: {e}") from e

        if not response.is_success:
            logger.error(f"Token exchange rejected [status={response.status_code}]")
            raise AuthError("Token exchange rejected", status=response.status_code, body=response.text)

        try:
            payload = response.json()
        except ValueError:
            raise AuthError("Token endpoint returned invalid JSON", status=response.status_code, body=response.text)

        value = payload.get("access_token") if isinstance(payload, dict) else None
        if not value:
            raise AuthError("Token response has no access_token", status=response.status_code, body=response.text)

        now = self._clock()
        expires_in = payload.get("expires_in")
        if expires_in is not None:
            expires_at = now + float(expires_in) - settings.token_safety_margin_seconds
        else:
            expires_at = now + TOKEN_FIXED_WINDOW_SECONDS

        logger.info(f"Access token acquired, valid for {max(expires_at - now, 0):.0f}s")
        return AccessToken(value=value, expires_at=expires_at)
