"""Shared async HTTP client construction for source fetches."""

from __future__ import annotations

from typing import Dict, Mapping, Optional

import httpx

from .models import DEFAULT_TIMEOUT_SECONDS


def build_headers(user_agent: Optional[str], source_headers: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Merge the global User-Agent with per-source headers.

    Per-source headers win on conflict, compared case-insensitively.
    """
    merged: Dict[str, str] = {}
    if user_agent:
        merged["User-Agent"] = user_agent
    for key, value in (source_headers or {}).items():
        for existing in [k for k in merged if k.lower() == key.lower()]:
            del merged[existing]
        merged[key] = value
    return merged


def create_async_client(
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Return an AsyncClient whose network operations are each bounded by *timeout*.

    The deadline for a whole request is applied by the source fetcher.

    Args:
        timeout: Seconds allowed for connect/read/write/pool on each request
        transport: Optional transport override (tests use ``httpx.MockTransport``)
    """
    kwargs = {
        "timeout": httpx.Timeout(timeout),
        "follow_redirects": True,
        "headers": {"Accept": "application/json"},
    }
    if transport is not None:
        kwargs["transport"] = transport
    return httpx.AsyncClient(**kwargs)


__all__ = ["build_headers", "create_async_client"]
