"""Per-source diff of freshly fetched titles against the known-items set."""

from __future__ import annotations

import logging
from typing import AbstractSet, Iterable

from ..core.models import FetchResult, NewItemsBySource

logger = logging.getLogger(__name__)


def diff(known_items: AbstractSet[str], fetch_results: Iterable[FetchResult]) -> NewItemsBySource:
    """Return, per source display key, the titles not present in *known_items*.

    Matching is exact and case-sensitive. Each source is filtered against the
    global known set independently, so a title new to two sources in the same
    run is listed under both. Sources without new titles are omitted.
    """
    new_items: NewItemsBySource = {}
    for result in fetch_results:
        key = result.source.display_name
        fresh = [title for title in result.titles if title not in known_items]
        if not fresh:
            continue

        bucket = new_items.setdefault(key, [])
        if bucket:
            logger.debug("Merging duplicate source key '%s'", key)
        for title in fresh:
            if title not in bucket:
                bucket.append(title)
        logger.debug("Source '%s': %d new of %d fetched", key, len(fresh), len(result.titles))
    return new_items


def count_new(new_items: NewItemsBySource) -> int:
    return sum(len(titles) for titles in new_items.values())


__all__ = ["diff", "count_new"]
