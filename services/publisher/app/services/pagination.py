"""Cursor pagination over connection-shaped GraphQL results.

A connection is `{"nodes": [...], "pageInfo": {"hasNextPage": bool, "endCursor": str}}`.
Page size is fixed by each query; pages are requested strictly one after another.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

logger = logging.getLogger("uvicorn.error")

Connection = dict[str, Any]
PageFetcher = Callable[[str | None], Awaitable[Connection]]


def _next_cursor(page: Connection) -> str | None:
    info = page.get("pageInfo") or {}
    if not info.get("hasNextPage"):
        return None
    cursor = info.get("endCursor")
    if not cursor:
        logger.warning("Connection reports hasNextPage without endCursor; stopping pagination")
        return None
    return cursor


async def iter_pages(fetch_page: PageFetcher, initial: Connection | None = None) -> AsyncIterator[list[Any]]:
    """Yield each page's nodes in arrival order.

    Args:
        fetch_page: Called with the previous page's endCursor (None for the first page).
        initial: First page if it was already fetched as part of a larger query.
    """
    page = initial if initial is not None else await fetch_page(None)
    while True:
        yield list(page.get("nodes") or [])
        cursor = _next_cursor(page)
        if cursor is None:
            return
        page = await fetch_page(cursor)


async def fetch_all(fetch_page: PageFetcher, initial: Connection | None = None) -> list[Any]:
    """Follow cursors until exhausted and concatenate all nodes."""
    nodes: list[Any] = []
    async for page_nodes in iter_pages(fetch_page, initial):
        nodes.extend(page_nodes)
    return nodes
