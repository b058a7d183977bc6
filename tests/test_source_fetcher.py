"""Tests for concurrent source fetching with per-source failure isolation."""

from __future__ import annotations

import asyncio
import time
from pathlib import Path
import sys

import httpx
import pytest

# Ensure the repository's src/ directory is importable without installation.
REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from drama_watch.core.http_client import build_headers  # noqa: E402
from drama_watch.core.models import SourceDescriptor  # noqa: E402
from drama_watch.processors.source_fetcher import fetch_all, fetch_all_sync  # noqa: E402


def _source(name, path="result.*.title", headers=None):
    return SourceDescriptor(
        url=f"https://{name}.example.com/api",
        extraction_path=path,
        name=name,
        headers=headers or {},
    )


def _transport(routes, seen=None):
    """MockTransport answering by host; values are responses or exceptions."""

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        outcome = routes[request.url.host]
        if isinstance(outcome, Exception):
            raise outcome
        if callable(outcome):
            return outcome(request)
        return outcome

    return httpx.MockTransport(handler)


def test_titles_extracted_per_source():
    routes = {
        "good.example.com": httpx.Response(200, json={"result": [{"title": "Drama A"}, {"title": "Drama B"}]}),
    }
    results = fetch_all_sync([_source("good")], transport=_transport(routes))
    assert len(results) == 1
    assert results[0].titles == ["Drama A", "Drama B"]
    assert results[0].ok


def test_http_error_isolated_from_other_sources():
    routes = {
        "broken.example.com": httpx.Response(500),
        "good.example.com": httpx.Response(200, json={"result": [{"title": "Drama A"}]}),
    }
    results = fetch_all_sync([_source("broken"), _source("good")], transport=_transport(routes))

    broken, good = results
    assert broken.titles == []
    assert "500" in broken.error
    assert good.titles == ["Drama A"]
    assert good.ok


@pytest.mark.parametrize(
    "outcome,fragment",
    [
        (httpx.Response(404), "404"),
        (httpx.Response(200, text="<html>not json</html>"), "JSON"),
        (httpx.ConnectError("connection refused"), "ConnectError"),
        (httpx.ReadTimeout("read timed out"), "timed out"),
    ],
)
def test_failures_degrade_to_empty_titles(outcome, fragment):
    routes = {"flaky.example.com": outcome}
    (result,) = fetch_all_sync([_source("flaky")], transport=_transport(routes))
    assert result.titles == []
    assert fragment in result.error


def test_failures_are_logged_with_source_identity(caplog):
    routes = {"broken.example.com": httpx.Response(503)}
    with caplog.at_level("ERROR"):
        fetch_all_sync([_source("broken")], transport=_transport(routes))
    assert "broken" in caplog.text
    assert "https://broken.example.com/api" in caplog.text


def test_malformed_extraction_path_degrades():
    routes = {"good.example.com": httpx.Response(200, json={"result": []})}
    (result,) = fetch_all_sync([_source("good", path="$[")], transport=_transport(routes))
    assert result.titles == []
    assert result.error


def test_zero_matches_is_not_an_error():
    routes = {"good.example.com": httpx.Response(200, json={"unexpected": "shape"})}
    (result,) = fetch_all_sync([_source("good")], transport=_transport(routes))
    assert result.titles == []
    assert result.ok


def test_titles_are_trimmed_and_single_line():
    payload = {"result": [{"title": "  Drama A  "}, {"title": "Two\nLines"}, {"title": "   "}]}
    routes = {"good.example.com": httpx.Response(200, json=payload)}
    (result,) = fetch_all_sync([_source("good")], transport=_transport(routes))
    assert result.titles == ["Drama A", "Two Lines"]


def test_user_agent_and_source_headers_are_merged():
    seen = []
    routes = {
        "plain.example.com": httpx.Response(200, json={"result": []}),
        "custom.example.com": httpx.Response(200, json={"result": []}),
    }
    sources = [
        _source("plain"),
        _source("custom", headers={"user-agent": "custom-agent", "X-Token": "abc"}),
    ]
    fetch_all_sync(sources, user_agent="drama-watch/1.0", transport=_transport(routes, seen))

    by_host = {r.url.host: r for r in seen}
    assert by_host["plain.example.com"].headers["User-Agent"] == "drama-watch/1.0"
    assert by_host["custom.example.com"].headers["User-Agent"] == "custom-agent"
    assert by_host["custom.example.com"].headers["X-Token"] == "abc"


def test_build_headers_source_wins_case_insensitively():
    assert build_headers("ua", {"USER-AGENT": "mine"}) == {"USER-AGENT": "mine"}
    assert build_headers(None, None) == {}
    assert build_headers("ua", {"Accept": "application/json"}) == {"User-Agent": "ua", "Accept": "application/json"}


def test_fetches_run_concurrently():
    """Every request is in flight before any of them completes."""
    in_flight = 0
    peak = 0

    class SlowTransport(httpx.AsyncBaseTransport):
        async def handle_async_request(self, request):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.05)
            in_flight -= 1
            return httpx.Response(200, json={"result": [{"title": request.url.host}]})

    sources = [_source(f"s{i}") for i in range(4)]
    results = asyncio.run(fetch_all(sources, transport=SlowTransport()))

    assert peak == 4
    assert [r.titles for r in results] == [[f"s{i}.example.com"] for i in range(4)]


def test_no_sources_returns_empty_list():
    assert fetch_all_sync([]) == []


async def _serve_slowly(reader, writer):
    """Answer 200 and then send the JSON body one byte every 0.1s."""
    body = b'{"result": [{"title": "Slow"}]}'
    try:
        await reader.readuntil(b"\r\n\r\n")
        writer.write(
            b"HTTP/1.1 200 OK\r\nContent-Type: application/json\r\n"
            b"Content-Length: " + str(len(body)).encode() + b"\r\n\r\n"
        )
        await writer.drain()
        for i in range(len(body)):
            if reader.at_eof():
                break
            writer.write(body[i:i + 1])
            await writer.drain()
            await asyncio.sleep(0.1)
    except (ConnectionError, asyncio.IncompleteReadError):
        pass
    finally:
        writer.close()


def test_timeout_bounds_a_source_that_trickles_its_body():
    """A body arriving byte by byte never trips httpx's read timeout."""

    async def scenario():
        server = await asyncio.start_server(_serve_slowly, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        slow = SourceDescriptor(url=f"http://127.0.0.1:{port}/api", extraction_path="result.*.title", name="slow")
        started = time.monotonic()
        try:
            results = await fetch_all([slow], timeout=0.5, transport=httpx.AsyncHTTPTransport())
        finally:
            server.close()
        return results, time.monotonic() - started

    (result,), elapsed = asyncio.run(scenario())

    assert elapsed < 2.0
    assert result.titles == []
    assert "timed out" in result.error
