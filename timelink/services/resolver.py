"""Batched remote lookups"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10

Fetch = Callable[[str], Awaitable[Optional[Any]]]


def chunked(items: List[str], size: int) -> List[List[str]]:
    return [items[i:i + size] for i in range(0, len(items), size)]


async def _fetch_or_none(fetch: Fetch, key: str) -> Optional[Any]:
    try:
        record = await fetch(key)
    except Exception as e:
        logger.warning(f"Failed to resolve {key}: {e}")
        return None
    if record is None:
        logger.warning(f"No remote record found for {key}")
    return record


async def resolve_in_batches(
    keys: Iterable[str],
    fetch: Fetch,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> List[Optional[Any]]:
    """Fetch one record per key, ``batch_size`` keys at a time.

    Batches run strictly one after another (the remote rate limit); keys within
    a batch are fetched concurrently. A key whose fetch fails or returns nothing
    maps to None without affecting its siblings. The result has one slot per
    input key, in input order; callers pass distinct keys.
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")

    ordered = list(keys)
    results: List[Optional[Any]] = []
    batches = chunked(ordered, batch_size)
    for n, batch in enumerate(batches, start=1):
        logger.debug(f"Resolving batch {n}/{len(batches)} ({len(batch)} keys)")
        results.extend(await asyncio.gather(*(_fetch_or_none(fetch, key) for key in batch)))
    return results
