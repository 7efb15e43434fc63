"""Tests for http_client module: shared client lifecycle and byte downloads."""

import httpx
import pytest

from site_api.services.http_client import (
    close_shared_client,
    fetch_bytes,
    get_shared_client,
)


class TestSharedClient:
    """Tests for get_shared_client() / close_shared_client()."""

    def test_returns_same_instance(self):
        assert get_shared_client() is get_shared_client()

    @pytest.mark.asyncio
    async def test_recreated_after_close(self):
        first = get_shared_client()
        await close_shared_client()
        assert first.is_closed
        assert get_shared_client() is not first


class TestFetchBytes:
    """Tests for fetch_bytes()."""

    @pytest.mark.asyncio
    async def test_returns_body_and_content_type(self, monkeypatch):
        async def mock_get(self, url, **kwargs):
            return httpx.Response(
                200, content=b"%PDF", headers={"Content-Type": "application/pdf"}
            )

        monkeypatch.setattr(httpx.AsyncClient, "get", mock_get)
        result = await fetch_bytes("https://cdn.example.com/a.pdf")
        assert result == (b"%PDF", "application/pdf")

    @pytest.mark.asyncio
    async def test_returns_none_on_non_200(self, monkeypatch):
        """Non-200 status codes return None."""

        async def mock_get(self, url, **kwargs):
            return httpx.Response(404)

        monkeypatch.setattr(httpx.AsyncClient, "get", mock_get)
        assert await fetch_bytes("https://cdn.example.com/gone.pdf") is None

    @pytest.mark.asyncio
    async def test_returns_none_on_exception(self, monkeypatch):
        """Network errors return None."""

        async def mock_get(self, url, **kwargs):
            raise httpx.HTTPError("connection failed")

        monkeypatch.setattr(httpx.AsyncClient, "get", mock_get)
        assert await fetch_bytes("https://cdn.example.com/a.pdf", context="attachment") is None

    @pytest.mark.asyncio
    async def test_returns_none_on_invalid_url(self, monkeypatch):
        """URL errors outside the HTTPError hierarchy also return None."""

        async def mock_get(self, url, **kwargs):
            raise httpx.InvalidURL("Invalid port")

        monkeypatch.setattr(httpx.AsyncClient, "get", mock_get)
        assert await fetch_bytes("https://cdn.example.com:99999/a.pdf") is None
