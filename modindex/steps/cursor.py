"""Resolve the scrape starting point from stored state."""

from datetime import datetime

from loguru import logger

from modindex.config import INDEX_EPOCH
from modindex.models import parse_timestamp
from modindex.state import ModuleIndexState

EPOCH = parse_timestamp(INDEX_EPOCH)


def resolve_cursor(state: ModuleIndexState, epoch: datetime = EPOCH) -> datetime:
    """
    Return the newest stored timestamp, or the index epoch when empty.

    Raises:
        StorageError: If the watermark cannot be read.
    """
    latest = state.latest_timestamp()
    if latest is None:
        logger.info(f"No stored versions, starting from epoch {epoch.isoformat()}")
        return epoch
    logger.info(f"Resuming from watermark {latest.isoformat()}")
    return latest
