"""
Enrich index events with classification and go.mod contents.

A fixed pool of workers drains the event queue. Release versions get
their go.mod fetched from the module proxy:
GET {proxy}/{case_encode(path)}/@v/{case_encode(version)}.mod
"""

import asyncio

import httpx
from loguru import logger

from modindex.config import POOL_SIZE
from modindex.errors import ProtocolError, TransportError
from modindex.models import GONE_MANIFEST, VersionEvent
from modindex.steps.queues import END, close_queue
from modindex.steps.versions import case_encode, is_prerelease

# =============================================================================
# API FUNCTIONS
# =============================================================================


def manifest_path(path: str, version: str) -> str:
    """Proxy path of the go.mod file for a module version."""
    return f"/{case_encode(path)}/@v/{case_encode(version)}.mod"


async def fetch_manifest(client: httpx.AsyncClient, path: str, version: str) -> str:
    """
    Fetch the go.mod file for a module version.

    Returns:
        The file contents, or GONE_MANIFEST if the proxy answers 410.

    Raises:
        TransportError: If the request does not complete.
        ProtocolError: For any status other than 200 and 410.
    """
    # Non-standard header supported by the Google module proxy
    headers = {"Disable-Module-Fetch": "true"}
    try:
        resp = await client.get(manifest_path(path, version), headers=headers)
    except httpx.RequestError as e:
        raise TransportError(f"Proxy request for {path}@{version} failed: {e!r}") from e

    if resp.status_code == httpx.codes.GONE:
        logger.debug(f"Proxy reports {path}@{version} as gone")
        return GONE_MANIFEST
    if resp.status_code != httpx.codes.OK:
        raise ProtocolError(
            f"Unexpected proxy status {resp.status_code} for {path}@{version}",
            status_code=resp.status_code,
            url=str(resp.request.url),
        )
    return resp.text


async def enrich_event(
    client: httpx.AsyncClient | None, event: VersionEvent
) -> VersionEvent:
    """Classify an event and fill in its manifest when it is a release.

    Passing no client skips the proxy entirely.
    """
    event.is_prerelease = is_prerelease(event.version)
    if not event.is_prerelease and client is not None:
        event.manifest = await fetch_manifest(client, event.path, event.version)
    return event


# =============================================================================
# WORKER POOL
# =============================================================================


async def _worker(
    client: httpx.AsyncClient | None,
    inbox: asyncio.Queue,
    outbox: asyncio.Queue,
) -> int:
    handled = 0
    while True:
        event = await inbox.get()
        if event is END:
            return handled
        await outbox.put(await enrich_event(client, event))
        handled += 1


async def run_enrichment_pool(
    client: httpx.AsyncClient | None,
    inbox: asyncio.Queue,
    outbox: asyncio.Queue,
    size: int = POOL_SIZE,
) -> int:
    """
    Run `size` workers until each has received an end-of-stream marker.

    The inbox producer must close it for `size` consumers. Output order is
    completion order. The outbox is closed for a single consumer once every
    worker is done.

    The first worker failure cancels the others, so no new events are taken
    after it; the outbox is left open.

    Returns:
        Number of events enriched.
    """
    logger.info(f"Starting {size} enrichment workers")
    workers = [
        asyncio.create_task(_worker(client, inbox, outbox), name=f"enrich-{i}")
        for i in range(size)
    ]
    try:
        done, _ = await asyncio.wait(workers, return_when=asyncio.FIRST_EXCEPTION)
        for task in done:
            exc = task.exception()
            if exc is not None:
                raise exc
    finally:
        for task in workers:
            if not task.done():
                task.cancel()
        await asyncio.gather(*workers, return_exceptions=True)

    await close_queue(outbox, 1)
    total = sum(task.result() for task in workers)
    logger.info(f"Enrichment finished: {total} events")
    return total
