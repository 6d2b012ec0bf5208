"""
Version classification and proxy path encoding.

See https://go.dev/ref/mod#glos-pre-release-version and
https://go.dev/ref/mod#goproxy-protocol.
"""

import re

# =============================================================================
# REGEX PATTERNS
# =============================================================================

PRERELEASE_PATTERN = re.compile(r"^v\d+\.\d+\.\d+-", re.ASCII)


# =============================================================================
# FUNCTIONS
# =============================================================================


def is_prerelease(version: str) -> bool:
    """Check if a version carries a pre-release suffix (e.g. v1.2.3-rc.1)."""
    return PRERELEASE_PATTERN.match(version) is not None


def case_encode(value: str) -> str:
    """Escape uppercase letters as '!' plus the lowercase letter.

    The proxy serves case-insensitive file systems, so "Foo/Bar" becomes
    "!foo/!bar".
    """
    return "".join(f"!{ch.lower()}" if ch.isupper() else ch for ch in value)
