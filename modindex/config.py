"""
Scraper configuration.

Fixed constants describe the index and proxy services. Anything worth
tuning per deployment can be overridden through MODINDEX_* environment
variables (a .env file in the working directory is honoured).
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# =============================================================================
# PATHS
# =============================================================================

PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = PROJECT_ROOT / "data"
DB_PATH = DATA_DIR / "gomodindex.sqlite"

# =============================================================================
# SERVICES
# =============================================================================

INDEX_BASE_URL = "https://index.golang.org"
PROXY_BASE_URL = "https://proxy.golang.org"
USER_AGENT = "modindex/0.1 (+https://github.com/modindex/modindex)"

INDEX_TIMEOUT = 3.0
PROXY_TIMEOUT = 10.0

# Max number of items returned by the index API per request
PAGE_LIMIT = 2000
# Oldest timestamp served by the index API
INDEX_EPOCH = "2019-04-10T19:08:52.997264Z"

# =============================================================================
# PIPELINE
# =============================================================================

POOL_SIZE = 100
COMMIT_BATCH_SIZE = 10_000
EVENT_QUEUE_SIZE = PAGE_LIMIT
ENRICHED_QUEUE_SIZE = PAGE_LIMIT
SCRAPE_DELAY = 0.0
PROGRESS_EVERY = 50_000


@dataclass
class ScrapeConfig:
    """Runtime settings for one scrape run."""

    db_path: Path = DB_PATH
    index_base_url: str = INDEX_BASE_URL
    proxy_base_url: str = PROXY_BASE_URL
    user_agent: str = USER_AGENT
    index_timeout: float = INDEX_TIMEOUT
    proxy_timeout: float = PROXY_TIMEOUT
    page_limit: int = PAGE_LIMIT
    pool_size: int = POOL_SIZE
    commit_batch_size: int = COMMIT_BATCH_SIZE
    event_queue_size: int = EVENT_QUEUE_SIZE
    enriched_queue_size: int = ENRICHED_QUEUE_SIZE
    scrape_delay: float = SCRAPE_DELAY
    fetch_manifests: bool = True
    progress_every: int = PROGRESS_EVERY

    def __post_init__(self) -> None:
        if self.page_limit < 1:
            raise ValueError("page_limit must be positive")
        if self.pool_size < 1:
            raise ValueError("pool_size must be positive")
        if self.commit_batch_size < 1:
            raise ValueError("commit_batch_size must be positive")
        if self.scrape_delay < 0:
            raise ValueError("scrape_delay cannot be negative")
        if self.progress_every < 1:
            raise ValueError("progress_every must be positive")

    @classmethod
    def from_env(cls) -> "ScrapeConfig":
        """Build config from constants overridden by MODINDEX_* variables."""
        load_dotenv()
        return cls(
            db_path=Path(os.getenv("MODINDEX_DB_PATH", str(DB_PATH))),
            index_base_url=os.getenv("MODINDEX_INDEX_URL", INDEX_BASE_URL),
            proxy_base_url=os.getenv("MODINDEX_PROXY_URL", PROXY_BASE_URL),
            user_agent=os.getenv("MODINDEX_USER_AGENT", USER_AGENT),
            pool_size=int(os.getenv("MODINDEX_POOL_SIZE", POOL_SIZE)),
            commit_batch_size=int(
                os.getenv("MODINDEX_COMMIT_BATCH_SIZE", COMMIT_BATCH_SIZE)
            ),
            scrape_delay=float(os.getenv("MODINDEX_SCRAPE_DELAY", SCRAPE_DELAY)),
            fetch_manifests=_env_flag("MODINDEX_FETCH_MANIFESTS", True),
        )


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")
