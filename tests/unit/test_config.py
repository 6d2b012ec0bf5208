"""Unit tests for scrape configuration."""

from __future__ import annotations

from pathlib import Path

import pytest

from modindex.config import COMMIT_BATCH_SIZE, PAGE_LIMIT, POOL_SIZE, ScrapeConfig


def test_defaults_match_constants() -> None:
    config = ScrapeConfig()

    assert config.page_limit == PAGE_LIMIT == 2000
    assert config.pool_size == POOL_SIZE == 100
    assert config.commit_batch_size == COMMIT_BATCH_SIZE == 10_000
    assert config.fetch_manifests is True


def test_from_env_overrides(monkeypatch, tmp_path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("MODINDEX_DB_PATH", str(tmp_path / "x.sqlite"))
    monkeypatch.setenv("MODINDEX_POOL_SIZE", "7")
    monkeypatch.setenv("MODINDEX_FETCH_MANIFESTS", "false")
    monkeypatch.setenv("MODINDEX_SCRAPE_DELAY", "0.5")

    config = ScrapeConfig.from_env()

    assert config.db_path == Path(tmp_path / "x.sqlite")
    assert config.pool_size == 7
    assert config.fetch_manifests is False
    assert config.scrape_delay == 0.5


@pytest.mark.parametrize(
    "kwargs",
    [
        {"pool_size": 0},
        {"page_limit": 0},
        {"commit_batch_size": 0},
        {"scrape_delay": -1},
        {"progress_every": 0},
    ],
)
def test_rejects_invalid_values(kwargs) -> None:
    with pytest.raises(ValueError):
        ScrapeConfig(**kwargs)
