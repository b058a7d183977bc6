"""
Source fetching.

Every configured source is requested exactly once per run, concurrently, and
reduced to a :class:`FetchResult`. A failing source never raises past
:func:`fetch_source`; it degrades to an empty title list with the cause logged.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Optional, Sequence

import httpx

from ..core.errors import ExtractionError, SourceFetchError
from ..core.extractor import extract
from ..core.http_client import build_headers, create_async_client
from ..core.models import DEFAULT_TIMEOUT_SECONDS, FetchResult, SourceDescriptor
from ..core.text_utils import clean_title

logger = logging.getLogger(__name__)


async def _download_json(client: httpx.AsyncClient, source: SourceDescriptor, user_agent: Optional[str]) -> Any:
    """GET the source URL and decode the body as JSON.

    Raises:
        SourceFetchError: On transport failure, non-2xx status or invalid JSON.
    """
    headers = build_headers(user_agent, source.headers)
    try:
        response = await client.get(source.url, headers=headers)
    except httpx.TimeoutException as e:
        raise SourceFetchError(f"Request timed out ({type(e).__name__})", url=source.url) from e
    except httpx.HTTPError as e:
        raise SourceFetchError(f"Request failed: {type(e).__name__}: {e}", url=source.url) from e

    if not response.is_success:
        raise SourceFetchError(
            f"HTTP {response.status_code} {response.reason_phrase}",
            url=source.url,
            status_code=response.status_code,
        )

    try:
        return response.json()
    except ValueError as e:
        raise SourceFetchError(f"Response is not valid JSON: {e}", url=source.url) from e


async def _download_within(
    client: httpx.AsyncClient,
    source: SourceDescriptor,
    user_agent: Optional[str],
    timeout: float,
) -> Any:
    """Run :func:`_download_json` under a deadline covering the whole request.

    httpx timeouts apply to each connect/read/write separately, so a server
    trickling its body would otherwise never time out.
    """
    try:
        return await asyncio.wait_for(_download_json(client, source, user_agent), timeout)
    except asyncio.TimeoutError as e:
        raise SourceFetchError(f"Request timed out after {timeout:g}s", url=source.url) from e


async def fetch_source(
    client: httpx.AsyncClient,
    source: SourceDescriptor,
    user_agent: Optional[str] = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> FetchResult:
    """Fetch one source and extract its titles. Never raises.

    *timeout* bounds the whole request, body included.
    """
    label = source.display_name
    try:
        document = await _download_within(client, source, user_agent, timeout)
        raw_titles = extract(source.extraction_path, document)
    except SourceFetchError as e:
        logger.error("Failed to fetch source '%s' (%s): %s", label, source.url, e.message)
        return FetchResult(source=source, titles=[], error=e.message)
    except ExtractionError as e:
        logger.error("Failed to extract titles for source '%s' (%s): %s", label, source.url, e.message)
        return FetchResult(source=source, titles=[], error=e.message)
    except Exception as e:
        logger.error("Unexpected error processing source '%s' (%s): %s", label, source.url, e)
        return FetchResult(source=source, titles=[], error=str(e) or type(e).__name__)

    titles = [t for t in (clean_title(raw) for raw in raw_titles) if t]
    if not titles:
        logger.info("Source '%s' matched no titles with path '%s'", label, source.extraction_path)
    else:
        logger.info("Source '%s' returned %d titles", label, len(titles))
    return FetchResult(source=source, titles=titles)


async def fetch_all(
    sources: Sequence[SourceDescriptor],
    *,
    user_agent: Optional[str] = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> List[FetchResult]:
    """Fetch all *sources* concurrently and wait for every one to settle.

    Results are returned in the order of *sources*.
    """
    if not sources:
        return []
    async with create_async_client(timeout=timeout, transport=transport) as client:
        results = await asyncio.gather(*(fetch_source(client, s, user_agent, timeout) for s in sources))
    failed = sum(1 for r in results if not r.ok)
    logger.info("Fetched %d sources (%d failed)", len(results), failed)
    return list(results)


def fetch_all_sync(
    sources: Sequence[SourceDescriptor],
    *,
    user_agent: Optional[str] = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> List[FetchResult]:
    """Run :func:`fetch_all` on a fresh event loop."""
    return asyncio.run(fetch_all(sources, user_agent=user_agent, timeout=timeout, transport=transport))


__all__ = ["fetch_source", "fetch_all", "fetch_all_sync"]
