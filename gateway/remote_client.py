"""HTTP client for the remote file-hosting API."""

import logging
from typing import Any, Dict, Optional

import httpx

from gateway.config import Settings
from gateway.exceptions import ApiError
from gateway.token_cache import TokenCache

logger = logging.getLogger(__name__)


class RemoteApiClient:
    """
    Issues authenticated JSON calls against the Graph-style API.

    Every call obtains a token from the TokenCache; there is no retry at this
    layer.
    """

    def __init__(
        self,
        settings: Settings,
        token_cache: TokenCache,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings
        self.token_cache = token_cache
        self.base_url = settings.graph_base_url.rstrip("/")
        self._client = http_client
        self._owns_client = http_client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.settings.remote_timeout_seconds)
        return self._client

    async def close(self):
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _url(self, endpoint: str) -> str:
        if endpoint.startswith("http://") or endpoint.startswith("https://"):
            return endpoint
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    async def call(
        self,
        endpoint: str,
        method: str = "GET",
        body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Perform one authenticated call.

        Args:
            endpoint: Path relative to the API base URL (or an absolute URL)
            method: HTTP method
            body: JSON body

        Returns:
            Parsed JSON response (empty dict for empty bodies)

        Raises:
            AuthError: If no token can be obtained
            ApiError: If the API answers non-2xx or cannot be reached
        """
        token = await self.token_cache.get_token()
        headers = {
            "Authorization": f"Bearer {token.value}",
            "Content-Type": "application/json",
        }
        url = self._url(endpoint)

        logger.debug(f"Remote call: {method} {url}")

        try:
            response = await self._get_client().request(
                method,
                url,
                json=body,
                headers=headers,
                timeout=self.settings.remote_timeout_seconds,
            )
        except httpx.HTTPError as e:
            logger.error(f"Remote API unreachable: {method} {url}: {e}")
            raise ApiError(f"Remote API unreachable: {e}") from e

        if not response.is_success:
            logger.warning(f"Remote API error: {method} {url} status={response.status_code}")
            raise ApiError(
                f"Remote API call failed: {method} {endpoint}",
                status=response.status_code,
                body=response.text,
            )

        if not response.content:
            return {}

        try:
            return response.json()
        except ValueError as e:
            raise ApiError(
                "Remote API returned invalid JSON",
                status=response.status_code,
                body=response.text,
            ) from e
