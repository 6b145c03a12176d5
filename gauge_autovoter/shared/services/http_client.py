"""
Shared HTTP client for the JSON feeds and the GitHub checkpoint.

Centralizes httpx client creation with connection pooling, timeouts and a
consistent User-Agent. Feeds and stores take an optional client so tests
can pass an httpx.AsyncClient backed by httpx.MockTransport.
"""

from __future__ import annotations

import os
from typing import Optional

import httpx

DEFAULT_TIMEOUT = float(os.getenv("GAV_HTTP_TIMEOUT", "15"))
DEFAULT_CONNECT_TIMEOUT = float(os.getenv("GAV_HTTP_CONNECT_TIMEOUT", "5"))
USER_AGENT = os.getenv("GAV_HTTP_UA", "gauge-autovoter/1.x")

_async_client: Optional[httpx.AsyncClient] = None


def _build_limits() -> httpx.Limits:
    return httpx.Limits(max_keepalive_connections=10, max_connections=20)


def _build_timeout() -> httpx.Timeout:
    return httpx.Timeout(DEFAULT_TIMEOUT, connect=DEFAULT_CONNECT_TIMEOUT)


def _default_headers() -> dict:
    return {"User-Agent": USER_AGENT}


def get_async_client() -> httpx.AsyncClient:
    """Get the shared asynchronous httpx client."""
    global _async_client
    if _async_client is None or _async_client.is_closed:
        _async_client = httpx.AsyncClient(
            timeout=_build_timeout(),
            limits=_build_limits(),
            headers=_default_headers(),
            follow_redirects=True,
        )
    return _async_client


async def aclose_async_client() -> None:
    global _async_client
    if _async_client is not None:
        await _async_client.aclose()
        _async_client = None
