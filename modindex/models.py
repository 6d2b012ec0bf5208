"""
Data model for module version events.

Timestamps are kept as timezone-aware UTC datetimes in memory and as
fixed-width ISO strings in SQLite, so string order equals time order.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

# =============================================================================
# CONFIGURATION
# =============================================================================

GONE_MANIFEST = "gone"

STORAGE_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

# Fractional seconds are normalised to exactly six digits before parsing
_FRACTION_PATTERN = re.compile(r"\.(\d+)")


# =============================================================================
# TIMESTAMPS
# =============================================================================


def parse_timestamp(value: str) -> datetime:
    """Parse an RFC 3339 timestamp into an aware UTC datetime."""
    text = _FRACTION_PATTERN.sub(_six_digit_fraction, value.strip(), count=1)
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        raise ValueError(f"Timestamp without timezone: {value!r}")
    return parsed.astimezone(timezone.utc)


def _six_digit_fraction(match: re.Match) -> str:
    return "." + match.group(1).ljust(6, "0")[:6]


def format_storage_timestamp(value: datetime) -> str:
    """Fixed-width UTC form used in the timestamp column."""
    return value.astimezone(timezone.utc).strftime(STORAGE_TIMESTAMP_FORMAT)


def format_since(value: datetime, precise: bool = False) -> str:
    """Format a cursor for the index `since` parameter.

    Whole seconds unless `precise`, in which case microseconds are kept.
    """
    value = value.astimezone(timezone.utc)
    if precise:
        return value.strftime(STORAGE_TIMESTAMP_FORMAT)
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class VersionEvent:
    """A module version published to the index."""

    path: str
    version: str
    timestamp: datetime
    is_prerelease: bool | None = None
    manifest: str | None = None

    @classmethod
    def from_index_record(cls, data: Any) -> "VersionEvent":
        """Build an event from one decoded index line.

        Raises:
            ValueError: If the record is not a well-formed index entry.
        """
        if not isinstance(data, dict):
            raise ValueError("index record is not a JSON object")
        path = data.get("Path")
        version = data.get("Version")
        timestamp = data.get("Timestamp")
        if not isinstance(path, str) or not path:
            raise ValueError("missing Path")
        if not isinstance(version, str) or not version:
            raise ValueError("missing Version")
        if not isinstance(timestamp, str):
            raise ValueError("missing Timestamp")
        return cls(path=path, version=version, timestamp=parse_timestamp(timestamp))

    def to_row(self) -> tuple:
        """Row tuple for the module_versions table."""
        return (
            self.path,
            self.version,
            format_storage_timestamp(self.timestamp),
            bool(self.is_prerelease),
            self.manifest,
        )
