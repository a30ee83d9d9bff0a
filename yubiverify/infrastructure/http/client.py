from __future__ import annotations

from typing import Optional
import httpx

USER_AGENT = "yubiverify/0.1.0"

_client: Optional[httpx.AsyncClient] = None


def build_http_client(timeout: float = 10.0) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=timeout,
        headers={"User-Agent": USER_AGENT},
    )


async def open_http_client(timeout: float = 10.0) -> httpx.AsyncClient:
    """Create a single shared AsyncClient (if not already created)."""
    global _client
    if _client is None:
        _client = build_http_client(timeout)
    return _client


def get_http_client() -> httpx.AsyncClient:
    """Return the shared client. Must have been opened first."""
    if _client is None:
        raise RuntimeError("HTTP client not opened yet. Call open_http_client() first.")
    return _client


async def close_http_client() -> None:
    """Close and drop the shared client."""
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
