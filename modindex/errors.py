"""Scraper exception hierarchy.

Every failure in the pipeline is fatal. Each stage raises a specific
subclass so callers can tell transport trouble from bad data.
"""


class ScrapeError(Exception):
    """Base exception for all fatal scrape failures."""


class TransportError(ScrapeError):
    """Raised when a request fails to complete (connection, timeout)."""


class ProtocolError(ScrapeError):
    """Raised when a service answers with an unexpected HTTP status."""

    def __init__(self, message: str, status_code: int, url: str):
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class DecodeError(ScrapeError):
    """Raised for malformed index payloads."""

    def __init__(self, message: str, line_number: int | None = None):
        super().__init__(message)
        self.line_number = line_number


class StorageError(ScrapeError):
    """Raised for SQLite open, query, insert or commit failures."""
