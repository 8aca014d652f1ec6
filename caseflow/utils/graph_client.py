"""Graph API client — retry wrapper around Microsoft Graph v1.0.

Retries 429 (honouring Retry-After) and 5xx / connection errors with
exponential backoff. A 401 drops the cached token and retries once with a
fresh one. Any other error status raises GraphError so callers can branch on
404 (not found) and 409 (conflict).

Usage:
    from caseflow.utils.graph_client import GraphClient
    gc = GraphClient(get_token_provider())
    item = await gc.get_json("/users/{id}/drive/root:/Leads")
    await gc.put_bytes("/users/{id}/drive/items/{folder}:/a.pdf:/content", data)
"""

import asyncio
import logging

import httpx

from ..errors import GraphError, RemoteStoreError
from . import safe_int

log = logging.getLogger("caseflow.graph")

GRAPH_BASE = "https://graph.microsoft.com/v1.0"

MAX_RETRIES = 3
BACKOFF_BASE = 2  # seconds — exponential: 2, 4, 8


def _error_from_response(resp: httpx.Response) -> GraphError:
    code = None
    message = resp.text[:300]
    try:
        err = resp.json().get("error", {})
        if isinstance(err, dict):
            code = err.get("code")
            message = err.get("message") or message
    except ValueError:
        pass
    return GraphError(resp.status_code, message, code=code)


class GraphClient:
    """Thin wrapper around Microsoft Graph with retry and token refresh."""

    def __init__(self, token_provider, transport: httpx.AsyncBaseTransport | None = None,
                 timeout: int = 30):
        self.tokens = token_provider
        self._transport = transport
        self.timeout = timeout

    def _client(self, timeout: int | None = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout or self.timeout, transport=self._transport)

    @staticmethod
    def _url(path: str) -> str:
        return path if path.startswith("http") else f"{GRAPH_BASE}{path}"

    async def get_json(self, path: str, params: dict | None = None) -> dict:
        """GET → parsed JSON. Raises GraphError on non-retryable errors."""
        async with self._client() as client:
            return await self._request_with_retry(client, "GET", self._url(path), params=params)

    async def post_json(self, path: str, json_data: dict) -> dict:
        """POST → parsed JSON (empty dict on 202/204)."""
        async with self._client() as client:
            return await self._request_with_retry(client, "POST", self._url(path), json_data=json_data)

    async def put_bytes(self, path: str, content: bytes, headers: dict | None = None,
                        authenticated: bool = True, timeout: int | None = None) -> dict:
        """PUT raw bytes. Upload-session URLs are pre-authorized (authenticated=False)."""
        async with self._client(timeout) as client:
            return await self._request_with_retry(
                client, "PUT", self._url(path), content=content,
                extra_headers=headers, authenticated=authenticated,
            )

    async def get_all_pages(self, path: str, params: dict | None = None,
                            max_items: int = 1000) -> list[dict]:
        """GET with auto-pagination. Returns flat list of items."""
        url = self._url(path)
        items: list[dict] = []
        async with self._client() as client:
            while url and len(items) < max_items:
                data = await self._request_with_retry(client, "GET", url, params=params)
                items.extend(data.get("value", []))
                url = data.get("@odata.nextLink")
                params = None  # nextLink has params baked in
        return items[:max_items]

    # ── Internal retry logic ────────────────────────────────────────

    async def _headers(self, authenticated: bool, extra: dict | None, is_json: bool) -> dict:
        headers = {}
        if authenticated:
            headers["Authorization"] = f"Bearer {await self.tokens.get_token()}"
        if is_json:
            headers["Content-Type"] = "application/json"
        if extra:
            headers.update(extra)
        return headers

    async def _request_with_retry(
        self, client: httpx.AsyncClient,
        method: str, url: str,
        params: dict | None = None,
        json_data: dict | None = None,
        content: bytes | None = None,
        extra_headers: dict | None = None,
        authenticated: bool = True,
    ) -> dict:
        """Execute HTTP request with exponential backoff on 429 / 5xx."""
        last_error: Exception | None = None
        refreshed = False

        for attempt in range(MAX_RETRIES + 1):
            headers = await self._headers(authenticated, extra_headers, json_data is not None)
            try:
                resp = await client.request(
                    method, url, params=params, json=json_data,
                    content=content, headers=headers,
                )
            except (httpx.TimeoutException, httpx.ConnectError) as e:
                last_error = e
                wait = BACKOFF_BASE ** (attempt + 1)
                log.warning("Graph connection error — retry in %ss: %s", wait, e)
                await asyncio.sleep(wait)
                continue

            if resp.status_code in (200, 201):
                return resp.json() if resp.content else {}
            if resp.status_code in (202, 204):
                return {}

            # Expired or revoked token — refresh once
            if resp.status_code == 401 and authenticated and not refreshed:
                log.warning("Graph 401 — refreshing token")
                self.tokens.invalidate()
                refreshed = True
                continue

            if resp.status_code == 429:
                # Retry-After may be an HTTP-date; fall back to backoff then
                wait = safe_int(resp.headers.get("Retry-After"))
                if wait is None or wait < 0:
                    wait = BACKOFF_BASE ** (attempt + 1)
                log.warning("Graph 429 — retry in %ss (attempt %d)", wait, attempt + 1)
                await asyncio.sleep(wait)
                last_error = _error_from_response(resp)
                continue

            if resp.status_code >= 500:
                wait = BACKOFF_BASE ** (attempt + 1)
                log.warning("Graph %d — retry in %ss (attempt %d)", resp.status_code, wait, attempt + 1)
                await asyncio.sleep(wait)
                last_error = _error_from_response(resp)
                continue

            error = _error_from_response(resp)
            if resp.status_code != 404:
                log.error("Graph %d on %s %s: %s", resp.status_code, method, url, error.provider_message)
            raise error

        log.error("Graph request failed after %d retries: %s %s", MAX_RETRIES, method, url)
        if isinstance(last_error, GraphError):
            raise last_error
        raise RemoteStoreError(f"Graph request failed after {MAX_RETRIES} retries: {last_error}")
