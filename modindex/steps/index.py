"""
Poll the module index.

The index serves newline-delimited JSON records in timestamp order:
GET /index?limit=L&since=T. A page shorter than L means we reached the head.
"""

import asyncio
import json
from dataclasses import dataclass
from datetime import datetime

import httpx
from loguru import logger

from modindex.config import PAGE_LIMIT
from modindex.errors import DecodeError, ProtocolError, TransportError
from modindex.models import VersionEvent, format_since
from modindex.steps.queues import close_queue

# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class PollStats:
    """Outcome of a poll loop."""

    pages: int
    events: int
    cursor: datetime


# =============================================================================
# API FUNCTIONS
# =============================================================================


def decode_page(body: str) -> list[VersionEvent]:
    """Decode a newline-delimited JSON page into events."""
    events = []
    for line_number, line in enumerate(body.splitlines(), start=1):
        if not line.strip():
            continue
        try:
            events.append(VersionEvent.from_index_record(json.loads(line)))
        except ValueError as e:
            # json.JSONDecodeError is a ValueError too
            raise DecodeError(
                f"Malformed index record on line {line_number}: {e}",
                line_number=line_number,
            ) from e
    return events


async def fetch_index_page(
    client: httpx.AsyncClient,
    since: datetime,
    limit: int = PAGE_LIMIT,
    precise: bool = False,
) -> list[VersionEvent]:
    """
    Fetch one page of index events published at or after `since`.

    Raises:
        TransportError: If the request does not complete.
        ProtocolError: If the index answers with a non-200 status.
        DecodeError: If any line is not a valid index record.
    """
    params = {"limit": limit, "since": format_since(since, precise=precise)}
    try:
        resp = await client.get("/index", params=params)
    except httpx.RequestError as e:
        raise TransportError(f"Index request failed: {e!r}") from e

    if resp.status_code != httpx.codes.OK:
        raise ProtocolError(
            f"Unexpected index status {resp.status_code}",
            status_code=resp.status_code,
            url=str(resp.request.url),
        )
    # Strict decoding: replacement characters would corrupt module paths
    try:
        body = resp.content.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(f"Index page is not valid UTF-8: {e}") from e
    return decode_page(body)


# =============================================================================
# POLL LOOP
# =============================================================================


async def poll_index(
    client: httpx.AsyncClient,
    cursor: datetime,
    queue: asyncio.Queue,
    consumers: int = 1,
    limit: int = PAGE_LIMIT,
    delay: float = 0.0,
) -> PollStats:
    """
    Page through the index from `cursor` and push every event to `queue`.

    The cursor only ever advances to the last record of a page as returned
    by the index. On a short page the queue is closed for `consumers` readers.
    Errors propagate without closing the queue.
    """
    logger.info(f"Begin polling index since {cursor.isoformat()}")
    pages = 0
    total = 0
    precise = False

    while True:
        page = await fetch_index_page(client, cursor, limit=limit, precise=precise)
        pages += 1
        for event in page:
            await queue.put(event)
        total += len(page)
        logger.debug(f"Page {pages}: {len(page)} events (total: {total})")

        if len(page) < limit:
            # Found latest modules
            break

        next_cursor = page[-1].timestamp
        # A full page inside one second would repeat forever at second precision
        precise = format_since(next_cursor) == format_since(cursor)
        cursor = next_cursor

        if delay:
            await asyncio.sleep(delay)

    await close_queue(queue, consumers)
    logger.info(f"Finished polling index: {pages} pages, {total} events")
    return PollStats(pages=pages, events=total, cursor=cursor)
