"""
Go module index scraper.

Single-process incremental pipeline that:
- Resumes from the newest timestamp already stored in SQLite
- Pages through the module index in timestamp order
- Fetches go.mod files for release versions from the module proxy
- Commits deduplicated rows in large batched transactions
"""

__version__ = "0.1.0"
