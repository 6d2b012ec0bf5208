"""Pipeline steps as reusable functions."""

from modindex.steps.cursor import resolve_cursor
from modindex.steps.enrich import (
    enrich_event,
    fetch_manifest,
    manifest_path,
    run_enrichment_pool,
)
from modindex.steps.index import decode_page, fetch_index_page, poll_index
from modindex.steps.store import SinkProgress, store_events
from modindex.steps.versions import case_encode, is_prerelease

__all__ = [
    # Cursor
    "resolve_cursor",
    # Index
    "decode_page",
    "fetch_index_page",
    "poll_index",
    # Enrichment
    "enrich_event",
    "fetch_manifest",
    "manifest_path",
    "run_enrichment_pool",
    # Store
    "SinkProgress",
    "store_events",
    # Versions
    "case_encode",
    "is_prerelease",
]
