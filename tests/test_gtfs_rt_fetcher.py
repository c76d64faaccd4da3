"""Tests for GTFS-RT feed fetcher."""

from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from transit_pulse.services.gtfs_rt.fetcher import FeedFetchError, GtfsRtFetcher

from .fixtures.gtfs_rt_fixture import build_trip_update_feed

FEED_URL = "https://example.com/tripupdates.pb"


def _ok_response(content: bytes) -> MagicMock:
    response = MagicMock()
    response.content = content
    response.raise_for_status = MagicMock(return_value=None)
    return response


def _mock_client(mock_client_cls: MagicMock, **get_kwargs: Any) -> AsyncMock:
    instance = AsyncMock()
    instance.get = AsyncMock(**get_kwargs)
    instance.__aenter__ = AsyncMock(return_value=instance)
    instance.__aexit__ = AsyncMock(return_value=False)
    mock_client_cls.return_value = instance
    return instance


class TestGtfsRtFetcher:
    """Unit tests for GtfsRtFetcher."""

    @pytest.mark.asyncio
    async def test_fetch_success(self) -> None:
        expected_data = build_trip_update_feed()
        fetcher = GtfsRtFetcher(timeout_sec=5)

        with patch("transit_pulse.services.gtfs_rt.fetcher.httpx.AsyncClient") as mock_client:
            _mock_client(mock_client, return_value=_ok_response(expected_data))
            data, feed_hash = await fetcher.fetch(FEED_URL, "trip_updates")

        assert data == expected_data
        assert len(feed_hash) == 64  # sha256 hex

    @pytest.mark.asyncio
    async def test_client_uses_configured_timeout(self) -> None:
        fetcher = GtfsRtFetcher(timeout_sec=12.0)

        with patch("transit_pulse.services.gtfs_rt.fetcher.httpx.AsyncClient") as mock_client:
            _mock_client(mock_client, return_value=_ok_response(b"\x0a\x00"))
            await fetcher.fetch(FEED_URL, "trip_updates")

        assert mock_client.call_args.kwargs["timeout"] == httpx.Timeout(12.0)

    @pytest.mark.asyncio
    async def test_fetch_empty_response_raises(self) -> None:
        fetcher = GtfsRtFetcher(timeout_sec=5)

        with patch("transit_pulse.services.gtfs_rt.fetcher.httpx.AsyncClient") as mock_client:
            _mock_client(mock_client, return_value=_ok_response(b""))
            with pytest.raises(FeedFetchError, match="Empty response"):
                await fetcher.fetch(FEED_URL, "trip_updates")

    @pytest.mark.asyncio
    async def test_fetch_http_error_raises_without_retry(self) -> None:
        fetcher = GtfsRtFetcher(timeout_sec=5)

        response = MagicMock()
        response.raise_for_status = MagicMock(
            side_effect=httpx.HTTPStatusError(
                "Service Unavailable",
                request=httpx.Request("GET", FEED_URL),
                response=httpx.Response(503),
            )
        )

        with patch("transit_pulse.services.gtfs_rt.fetcher.httpx.AsyncClient") as mock_client:
            instance = _mock_client(mock_client, return_value=response)
            with pytest.raises(FeedFetchError, match="HTTP 503"):
                await fetcher.fetch(FEED_URL, "trip_updates")

        assert instance.get.await_count == 1

    @pytest.mark.asyncio
    async def test_fetch_timeout_raises(self) -> None:
        fetcher = GtfsRtFetcher(timeout_sec=0.5)

        with patch("transit_pulse.services.gtfs_rt.fetcher.httpx.AsyncClient") as mock_client:
            _mock_client(
                mock_client,
                side_effect=httpx.ReadTimeout(
                    "timed out", request=httpx.Request("GET", FEED_URL)
                ),
            )
            with pytest.raises(FeedFetchError, match="Timed out"):
                await fetcher.fetch(FEED_URL, "trip_updates")

    @pytest.mark.asyncio
    async def test_fetch_network_error_raises(self) -> None:
        fetcher = GtfsRtFetcher(timeout_sec=5)

        with patch("transit_pulse.services.gtfs_rt.fetcher.httpx.AsyncClient") as mock_client:
            _mock_client(
                mock_client,
                side_effect=httpx.ConnectError(
                    "Connection refused", request=httpx.Request("GET", FEED_URL)
                ),
            )
            with pytest.raises(FeedFetchError, match="Fetch failed"):
                await fetcher.fetch(FEED_URL, "trip_updates")

    @pytest.mark.asyncio
    async def test_invalid_url_raises(self) -> None:
        fetcher = GtfsRtFetcher(timeout_sec=5)
        with pytest.raises(FeedFetchError, match="Fetch failed"):
            await fetcher.fetch("http://[::1/x", "service_alerts")


@asynccontextmanager
async def trickling_server(interval: float = 0.6) -> AsyncIterator[str]:
    """Local HTTP server that sends an 8-byte body one byte per ``interval``."""
    handlers: set[asyncio.Task] = set()

    async def handle(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        task = asyncio.current_task()
        if task is not None:
            handlers.add(task)
        try:
            await reader.readuntil(b"\r\n\r\n")
            writer.write(
                b"HTTP/1.1 200 OK\r\n"
                b"Content-Type: application/octet-stream\r\n"
                b"Content-Length: 8\r\n\r\n"
            )
            for _ in range(8):
                await writer.drain()
                await asyncio.sleep(interval)
                writer.write(b"\x00")
            await writer.drain()
        except (ConnectionError, asyncio.IncompleteReadError):
            pass
        finally:
            writer.close()

    server = await asyncio.start_server(handle, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    try:
        yield f"http://127.0.0.1:{port}/tripupdates.pb"
    finally:
        for task in handlers:
            task.cancel()
        server.close()
        await server.wait_closed()


class TestFetchDeadline:
    @pytest.mark.asyncio
    async def test_slow_body_cut_off_at_timeout(self) -> None:
        # every read completes within 1s, only the total exceeds it
        fetcher = GtfsRtFetcher(timeout_sec=1.0)

        async with trickling_server() as url:
            started = time.monotonic()
            with pytest.raises(FeedFetchError, match="Timed out"):
                await fetcher.fetch(url, "trip_updates")
            elapsed = time.monotonic() - started

        assert elapsed < 1.5

    @pytest.mark.asyncio
    async def test_slow_body_in_time_is_returned(self) -> None:
        fetcher = GtfsRtFetcher(timeout_sec=10.0)

        async with trickling_server(interval=0.05) as url:
            data, _ = await fetcher.fetch(url, "trip_updates")

        assert data == b"\x00" * 8

class TestReadLocal:
    def test_read_local_file(self, tmp_path: Path) -> None:
        data = build_trip_update_feed(feed_timestamp=1700000000)
        path = tmp_path / "tripupdates.pb"
        path.write_bytes(data)

        read, feed_hash = GtfsRtFetcher.read_local(path, "trip_updates")

        assert read == data
        assert len(feed_hash) == 64

    def test_read_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FeedFetchError, match="Cannot read"):
            GtfsRtFetcher.read_local(tmp_path / "missing.pb", "trip_updates")
