"""Service-to-service Graph authentication (OAuth2 client credentials).

The bearer token is cached with its expiry and refreshed only when it is
within ``refresh_buffer_seconds`` of expiring. Concurrent callers share a
single refresh.

Usage:
    from caseflow.utils.graph_auth import get_token_provider
    token = await get_token_provider().get_token()
"""

import asyncio
import logging
import time

import httpx

from ..errors import RemoteStoreError

log = logging.getLogger("caseflow.graph.auth")

TOKEN_URL = "https://login.microsoftonline.com/{tenant}/oauth2/v2.0/token"
GRAPH_SCOPE = "https://graph.microsoft.com/.default"


class GraphTokenProvider:
    def __init__(
        self,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        refresh_buffer_seconds: int = 300,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.tenant_id = tenant_id
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_buffer_seconds = refresh_buffer_seconds
        self._http = http_client
        self._token: str | None = None
        self._expires_at = 0.0  # time.monotonic() deadline
        self._lock = asyncio.Lock()

    def _is_fresh(self) -> bool:
        return bool(self._token) and time.monotonic() < self._expires_at - self.refresh_buffer_seconds

    async def get_token(self) -> str:
        if self._is_fresh():
            return self._token
        async with self._lock:
            # Another waiter may have refreshed while we queued on the lock
            if self._is_fresh():
                return self._token
            await self._refresh()
            return self._token

    def invalidate(self) -> None:
        """Drop the cached token (e.g. after Graph answers 401)."""
        self._token = None
        self._expires_at = 0.0

    async def _refresh(self) -> None:
        if not (self.tenant_id and self.client_id and self.client_secret):
            raise RemoteStoreError("Microsoft Graph credentials are not configured")

        client = self._http
        if client is None:
            from ..http_client import http as client

        url = TOKEN_URL.format(tenant=self.tenant_id)
        try:
            resp = await client.post(url, data={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "scope": GRAPH_SCOPE,
                "grant_type": "client_credentials",
            }, timeout=15)
        except (httpx.TimeoutException, httpx.ConnectError) as e:
            raise RemoteStoreError(f"Token endpoint unreachable: {e}") from e

        if resp.status_code != 200:
            raise RemoteStoreError(
                f"Failed to get access token: {resp.status_code} {resp.text[:300]}"
            )

        data = resp.json()
        token = data.get("access_token")
        if not token:
            raise RemoteStoreError(
                f"Token response missing access_token: {data.get('error_description', data.get('error'))}"
            )
        self._token = token
        self._expires_at = time.monotonic() + int(data.get("expires_in", 3599))
        log.info("Graph token acquired, expires in %ss", data.get("expires_in", 3599))


_provider: GraphTokenProvider | None = None


def get_token_provider() -> GraphTokenProvider:
    """Process-wide provider built from settings (shared token cache)."""
    global _provider
    if _provider is None:
        from ..config import settings

        _provider = GraphTokenProvider(
            settings.azure_tenant_id,
            settings.azure_client_id,
            settings.azure_client_secret,
            refresh_buffer_seconds=settings.graph_token_refresh_buffer_seconds,
        )
    return _provider
