"""Shared HTTP client — connection pooling for outbound requests.

A module-level httpx.AsyncClient used for token acquisition against Azure AD.
Graph data calls open their own client per operation (see utils/graph_client.py)
so tests can swap the transport.

Usage:
    from caseflow.http_client import http
    resp = await http.post(url, data=form, timeout=15)
"""

import httpx

_LIMITS = httpx.Limits(
    max_connections=20,
    max_keepalive_connections=10,
    keepalive_expiry=30,
)

http = httpx.AsyncClient(
    timeout=30,
    limits=_LIMITS,
    follow_redirects=False,
)


async def close_clients():
    """Shut down the shared client. Call from app lifespan shutdown."""
    try:
        await http.aclose()
    except RuntimeError:
        pass
