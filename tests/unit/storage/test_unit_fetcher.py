# tests/unit/storage/test_unit_fetcher.py - v1
"""Tests for storage/fetcher.py - http(s) via respx, file:// from disk."""

from __future__ import annotations

import httpx
import pytest
import respx

from doccache.core.errors import FetchError
from doccache.storage.fetcher import UrlFetcher

URL = "https://blobs.test/processed/report(d)docx.html"


class TestHttpFetch:
    @pytest.mark.asyncio
    @respx.mock
    async def test_ok(self):
        respx.get(URL).mock(return_value=httpx.Response(200, content="<p>é</p>".encode("utf-8")))
        fetcher = UrlFetcher()
        try:
            assert await fetcher.fetch(URL) == "<p>é</p>"
        finally:
            await fetcher.aclose()

    @pytest.mark.asyncio
    @respx.mock
    async def test_not_found_permanent(self):
        respx.get(URL).mock(return_value=httpx.Response(404))
        fetcher = UrlFetcher()
        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch(URL)
        await fetcher.aclose()
        assert exc_info.value.status_code == 404
        assert exc_info.value.transient is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [429, 500, 503])
    async def test_retryable_statuses(self, status):
        fetcher = UrlFetcher()
        with respx.mock:
            respx.get(URL).mock(return_value=httpx.Response(status))
            with pytest.raises(FetchError) as exc_info:
                await fetcher.fetch(URL)
        await fetcher.aclose()
        assert exc_info.value.transient is True

    @pytest.mark.asyncio
    @respx.mock
    async def test_connection_error_transient(self):
        respx.get(URL).mock(side_effect=httpx.ConnectError("refused"))
        fetcher = UrlFetcher()
        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch(URL)
        await fetcher.aclose()
        assert exc_info.value.transient is True
        assert isinstance(exc_info.value.original, httpx.ConnectError)

    @pytest.mark.asyncio
    @respx.mock
    async def test_non_utf8_body(self):
        respx.get(URL).mock(return_value=httpx.Response(200, content=b"\xff\xfe"))
        fetcher = UrlFetcher()
        with pytest.raises(FetchError, match="not UTF-8"):
            await fetcher.fetch(URL)
        await fetcher.aclose()

    @pytest.mark.asyncio
    async def test_injected_client_not_closed(self):
        client = httpx.AsyncClient()
        fetcher = UrlFetcher(client=client)
        await fetcher.aclose()
        assert client.is_closed is False
        await client.aclose()


class TestFileFetch:
    @pytest.mark.asyncio
    async def test_file_url(self, tmp_path):
        blob = tmp_path / "doc.html"
        blob.write_bytes("<p>ok</p>".encode("utf-8"))
        fetcher = UrlFetcher()
        assert await fetcher.fetch(blob.as_uri()) == "<p>ok</p>"
        await fetcher.aclose()

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        fetcher = UrlFetcher()
        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch((tmp_path / "gone.html").as_uri())
        await fetcher.aclose()
        assert exc_info.value.transient is False


class TestUnsupportedScheme:
    @pytest.mark.asyncio
    async def test_ftp_rejected(self):
        fetcher = UrlFetcher()
        with pytest.raises(FetchError, match="Unsupported URL scheme"):
            await fetcher.fetch("ftp://host/file.html")
        await fetcher.aclose()
