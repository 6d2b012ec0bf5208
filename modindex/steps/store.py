"""
Persist enriched events in batched transactions.

Single writer: the sink is the only code touching the connection while
the pipeline runs. Each transaction holds at most `batch_size` inserts, so
a crash loses at most one batch; the next run resumes from the last commit.
"""

import asyncio
from dataclasses import dataclass

from loguru import logger

from modindex.config import COMMIT_BATCH_SIZE, PROGRESS_EVERY
from modindex.state import ModuleIndexState
from modindex.steps.queues import END


@dataclass
class SinkProgress:
    """Monotonic counters for the sink."""

    received: int = 0
    inserted: int = 0
    committed: int = 0
    commits: int = 0


async def store_events(
    state: ModuleIndexState,
    inbox: asyncio.Queue,
    batch_size: int = COMMIT_BATCH_SIZE,
    progress: SinkProgress | None = None,
    progress_every: int = PROGRESS_EVERY,
) -> SinkProgress:
    """
    Drain `inbox` into storage until the end-of-stream marker arrives.

    Duplicates are ignored by key. A partially filled batch is committed on
    end of stream. Any StorageError propagates with the open batch left
    uncommitted. A non-positive `progress_every` turns off progress logging.
    """
    progress = progress or SinkProgress()
    pending = 0

    while True:
        event = await inbox.get()
        if event is END:
            break

        if pending == 0:
            state.begin()
        if state.insert_version(event):
            progress.inserted += 1
        progress.received += 1
        pending += 1

        if pending >= batch_size:
            _commit(state, progress, pending)
            pending = 0
            # Let the workers refill the queue between batches
            await asyncio.sleep(0)

        if progress_every > 0 and progress.received % progress_every == 0:
            logger.info(f"Stored {progress.received} items")

    if pending:
        _commit(state, progress, pending)

    logger.info(
        f"Sink drained: {progress.received} received, "
        f"{progress.inserted} new, {progress.commits} commits"
    )
    return progress


def _commit(state: ModuleIndexState, progress: SinkProgress, pending: int) -> None:
    state.commit()
    progress.committed += pending
    progress.commits += 1
    logger.debug(f"Committed batch of {pending} (total: {progress.committed})")
