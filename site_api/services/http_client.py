"""Shared HTTP client utilities."""

import logging

import httpx

logger = logging.getLogger(__name__)

# Module-level shared client (created lazily, lives for the process lifetime)
_client: httpx.AsyncClient | None = None


def get_shared_client() -> httpx.AsyncClient:
    """Return a shared httpx.AsyncClient, creating it on first call."""
    global _client
    if _client is None or _client.is_closed:
        _client = httpx.AsyncClient(timeout=15.0, follow_redirects=True)
    return _client


async def close_shared_client() -> None:
    """Close the shared client (called from the app lifespan on shutdown)."""
    global _client
    if _client is not None and not _client.is_closed:
        await _client.aclose()
    _client = None


async def fetch_bytes(url: str, *, context: str = "") -> tuple[bytes, str] | None:
    """Download *url* and return ``(body, content_type)``.

    Returns None on any error so callers can decide how to degrade.
    """
    client = get_shared_client()
    try:
        resp = await client.get(url)
        if resp.status_code != 200:
            logger.warning(
                "GET %s returned %d%s",
                url,
                resp.status_code,
                f" ({context})" if context else "",
            )
            return None
        return resp.content, resp.headers.get("content-type", "")
    except Exception:
        logger.exception("Error fetching %s%s", url, f" ({context})" if context else "")
        return None
