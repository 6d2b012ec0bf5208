"""Pytest configuration for repository test runs."""

from __future__ import annotations

from pathlib import Path

import pytest

from modindex.config import ScrapeConfig
from modindex.state import ModuleIndexState
from tests.fakes import INDEX_URL, PROXY_URL


@pytest.fixture
def db_path(tmp_path) -> Path:
    return tmp_path / "index.sqlite"


@pytest.fixture
def state(db_path):
    with ModuleIndexState(db_path) as opened:
        yield opened


@pytest.fixture
def scrape_config(db_path) -> ScrapeConfig:
    return ScrapeConfig(
        db_path=db_path,
        index_base_url=INDEX_URL,
        proxy_base_url=PROXY_URL,
        pool_size=8,
        commit_batch_size=500,
        event_queue_size=64,
        enriched_queue_size=64,
    )
