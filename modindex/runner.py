"""
Scrape pipeline runner.

Wires the stages together on one event loop:

    resolve_cursor -> poll_index -> queue -> enrichment pool -> queue -> store_events

The first stage to fail ends the run; committed batches stay durable and
the next run resumes from the stored watermark.

Usage:
    from modindex.runner import run
    run()
"""

import asyncio
from dataclasses import asdict, dataclass
from datetime import datetime, timezone

import httpx
from loguru import logger

from modindex.config import ScrapeConfig
from modindex.errors import ScrapeError
from modindex.state import ModuleIndexState, load_state
from modindex.steps.cursor import resolve_cursor
from modindex.steps.enrich import run_enrichment_pool
from modindex.steps.index import poll_index
from modindex.steps.queues import make_queue
from modindex.steps.store import SinkProgress, store_events

# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class ScrapeResult:
    """Statistics for one completed scrape."""

    start_cursor: datetime
    end_cursor: datetime
    pages: int
    fetched: int
    enriched: int
    stored: int
    inserted: int
    commits: int
    elapsed_seconds: float

    def to_dict(self) -> dict:
        data = asdict(self)
        data["start_cursor"] = self.start_cursor.isoformat()
        data["end_cursor"] = self.end_cursor.isoformat()
        return data


# =============================================================================
# COORDINATOR
# =============================================================================


async def _supervise(stages: list[asyncio.Task]) -> None:
    """Wait for every stage; re-raise the first failure as soon as it happens."""
    pending = set(stages)
    while pending:
        done, pending = await asyncio.wait(
            pending, return_when=asyncio.FIRST_COMPLETED
        )
        for task in done:
            exc = task.exception()
            if exc is not None:
                logger.debug(f"Stage {task.get_name()} failed: {exc!r}")
                raise exc


async def run_pipeline(
    state: ModuleIndexState,
    config: ScrapeConfig,
    transport: httpx.AsyncBaseTransport | None = None,
    progress: SinkProgress | None = None,
) -> ScrapeResult:
    """
    Scrape the index from the stored watermark into `state`.

    Args:
        state: Storage handle; only the sink writes to it during the run.
        config: Runtime settings.
        transport: Optional httpx transport shared by both clients.
        progress: Optional sink counters, readable after a failure.

    Returns:
        Run statistics.

    Raises:
        ScrapeError: The first fatal error raised by any stage.
    """
    start_time = datetime.now(timezone.utc)
    start_cursor = resolve_cursor(state)

    events = make_queue(config.event_queue_size)
    enriched = make_queue(config.enriched_queue_size)
    progress = progress or SinkProgress()
    headers = {"User-Agent": config.user_agent}

    async with (
        httpx.AsyncClient(
            base_url=config.index_base_url,
            timeout=config.index_timeout,
            headers=headers,
            transport=transport,
        ) as index_client,
        httpx.AsyncClient(
            base_url=config.proxy_base_url,
            timeout=config.proxy_timeout,
            headers=headers,
            limits=httpx.Limits(max_connections=config.pool_size),
            transport=transport,
        ) as proxy_client,
    ):
        poller = asyncio.create_task(
            poll_index(
                index_client,
                start_cursor,
                events,
                consumers=config.pool_size,
                limit=config.page_limit,
                delay=config.scrape_delay,
            ),
            name="poller",
        )
        pool = asyncio.create_task(
            run_enrichment_pool(
                proxy_client if config.fetch_manifests else None,
                events,
                enriched,
                size=config.pool_size,
            ),
            name="enrichment",
        )
        sink = asyncio.create_task(
            store_events(
                state,
                enriched,
                batch_size=config.commit_batch_size,
                progress=progress,
                progress_every=config.progress_every,
            ),
            name="sink",
        )
        stages = [poller, pool, sink]

        try:
            await _supervise(stages)
        finally:
            for task in stages:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*stages, return_exceptions=True)

    poll_stats = poller.result()
    elapsed = (datetime.now(timezone.utc) - start_time).total_seconds()
    logger.info(
        f"Scrape complete in {elapsed:.1f}s: {poll_stats.events} fetched, "
        f"{progress.inserted} new versions"
    )

    return ScrapeResult(
        start_cursor=start_cursor,
        end_cursor=poll_stats.cursor,
        pages=poll_stats.pages,
        fetched=poll_stats.events,
        enriched=pool.result(),
        stored=progress.committed,
        inserted=progress.inserted,
        commits=progress.commits,
        elapsed_seconds=elapsed,
    )


# =============================================================================
# SYNC ENTRY POINT
# =============================================================================


def run(
    config: ScrapeConfig | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ScrapeResult:
    """
    Run one scrape synchronously, recording it in the runs table.

    Raises:
        ScrapeError: On any fatal failure, after the run is marked failed.
    """
    config = config or ScrapeConfig.from_env()
    logger.info(f"Opening database {config.db_path}")

    with load_state(config.db_path) as state:
        run_id = state.start_run()
        progress = SinkProgress()
        try:
            result = asyncio.run(
                run_pipeline(state, config, transport=transport, progress=progress)
            )
        except ScrapeError as e:
            logger.error(f"Scrape failed after {progress.committed} stored: {e}")
            state.complete_run(run_id, progress.committed, "failed")
            raise
        state.complete_run(run_id, result.stored)
    return result
