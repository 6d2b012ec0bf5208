"""
SQLite-backed scraper state.

Manages:
- Module versions keyed by (path, version)
- The timestamp watermark used to resume scraping
- Run bookkeeping for the CLI

The connection runs in autocommit mode; the persistence sink opens and
commits its own explicit transactions.
"""

import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from loguru import logger

from modindex.config import DB_PATH
from modindex.errors import StorageError
from modindex.models import VersionEvent, parse_timestamp

# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class StateStats:
    """Statistics about current state."""

    total_versions: int
    prerelease_versions: int
    gone_versions: int
    watermark: str | None
    last_run: dict | None


# =============================================================================
# STATE MANAGER
# =============================================================================


class ModuleIndexState:
    """
    SQLite-backed storage for scraped module versions.

    Owned by a single writer at a time. The cursor resolver reads the
    watermark before the pipeline starts; the persistence sink is the only
    writer while it runs.
    """

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or DB_PATH
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self.conn = sqlite3.connect(self.db_path, isolation_level=None)
            self.conn.row_factory = sqlite3.Row
            self._init_tables()
        except (OSError, sqlite3.Error) as e:
            raise StorageError(f"Failed to open database {self.db_path}: {e}") from e

    def _init_tables(self) -> None:
        """Initialize database schema."""
        logger.debug(f"Ensuring schema in {self.db_path}")
        self.conn.executescript("""
            -- One row per published module version
            CREATE TABLE IF NOT EXISTS module_versions (
                path TEXT NOT NULL,
                version TEXT NOT NULL,
                timestamp TEXT NOT NULL,
                is_prerelease BOOLEAN NOT NULL,
                manifest TEXT,
                PRIMARY KEY (path, version)
            );

            -- Scrape run metadata
            CREATE TABLE IF NOT EXISTS runs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                started_at TEXT,
                completed_at TEXT,
                stored INTEGER,
                status TEXT  -- 'running', 'completed', 'failed'
            );

            -- Watermark lookup
            CREATE INDEX IF NOT EXISTS idx_module_versions_timestamp
                ON module_versions(timestamp);
        """)

    # =========================================================================
    # WATERMARK
    # =========================================================================

    def latest_timestamp(self) -> datetime | None:
        """Newest committed event timestamp, or None for an empty table."""
        try:
            row = self.conn.execute(
                "SELECT MAX(timestamp) FROM module_versions"
            ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to read watermark: {e}") from e
        if row is None or row[0] is None:
            return None
        try:
            return parse_timestamp(row[0])
        except ValueError as e:
            raise StorageError(f"Corrupt timestamp in storage: {row[0]!r}") from e

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    @property
    def in_transaction(self) -> bool:
        return self.conn.in_transaction

    def begin(self) -> None:
        """Open an explicit write transaction."""
        try:
            self.conn.execute("BEGIN")
        except sqlite3.Error as e:
            raise StorageError(f"Failed to begin transaction: {e}") from e

    def insert_version(self, event: VersionEvent) -> bool:
        """Insert one version unless its (path, version) already exists.

        Returns:
            True if a new row was written.
        """
        try:
            cursor = self.conn.execute(
                """
                INSERT OR IGNORE INTO module_versions
                (path, version, timestamp, is_prerelease, manifest)
                VALUES (?, ?, ?, ?, ?)
                """,
                event.to_row(),
            )
        except sqlite3.Error as e:
            raise StorageError(
                f"Failed to insert {event.path}@{event.version}: {e}"
            ) from e
        return cursor.rowcount > 0

    def commit(self) -> None:
        try:
            self.conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to commit transaction: {e}") from e

    def rollback(self) -> None:
        try:
            self.conn.rollback()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to roll back transaction: {e}") from e

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_version(self, path: str, version: str) -> dict | None:
        """Get a single stored version."""
        cursor = self.conn.execute(
            "SELECT * FROM module_versions WHERE path = ? AND version = ?",
            (path, version),
        )
        row = cursor.fetchone()
        return dict(row) if row else None

    def count_versions(self) -> int:
        return self.conn.execute("SELECT COUNT(*) FROM module_versions").fetchone()[0]

    # =========================================================================
    # RUN MANAGEMENT
    # =========================================================================

    def start_run(self) -> int:
        """Start a new scrape run, return run ID."""
        now = datetime.now(timezone.utc).isoformat()
        try:
            cursor = self.conn.execute(
                "INSERT INTO runs (started_at, status) VALUES (?, 'running')",
                (now,),
            )
        except sqlite3.Error as e:
            raise StorageError(f"Failed to record run start: {e}") from e
        return cursor.lastrowid

    def complete_run(self, run_id: int, stored: int, status: str = "completed") -> None:
        """Mark a run as finished."""
        now = datetime.now(timezone.utc).isoformat()
        if self.conn.in_transaction:
            # A failed sink may leave its batch open
            self.conn.rollback()
        try:
            self.conn.execute(
                """
                UPDATE runs
                SET completed_at = ?, stored = ?, status = ?
                WHERE id = ?
                """,
                (now, stored, status, run_id),
            )
        except sqlite3.Error as e:
            raise StorageError(f"Failed to record run completion: {e}") from e

    def get_last_run(self) -> dict | None:
        """Get info about the last run."""
        cursor = self.conn.execute("SELECT * FROM runs ORDER BY id DESC LIMIT 1")
        row = cursor.fetchone()
        return dict(row) if row else None

    # =========================================================================
    # STATE OPERATIONS
    # =========================================================================

    def get_stats(self) -> StateStats:
        """Get current state statistics."""
        row = self.conn.execute(
            """
            SELECT
                COUNT(*),
                COALESCE(SUM(is_prerelease), 0),
                COALESCE(SUM(manifest = 'gone'), 0),
                MAX(timestamp)
            FROM module_versions
            """
        ).fetchone()

        return StateStats(
            total_versions=row[0],
            prerelease_versions=row[1],
            gone_versions=row[2],
            watermark=row[3],
            last_run=self.get_last_run(),
        )

    def close(self) -> None:
        """Close database connection."""
        self.conn.close()

    def __enter__(self) -> "ModuleIndexState":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def load_state(db_path: Path | None = None) -> ModuleIndexState:
    """Open or create scraper state."""
    return ModuleIndexState(db_path)
