"""Unit tests for version classification and proxy case encoding."""

from __future__ import annotations

import pytest

from modindex.steps.versions import case_encode, is_prerelease


@pytest.mark.parametrize(
    "version",
    ["v10.10.10-test", "v0.0.0-test", "v3.3.3-test", "v3.3.3-test+asd"],
)
def test_is_prerelease_true_for_prerelease(version) -> None:
    """Hyphen right after the patch number marks a pre-release."""
    assert is_prerelease(version) is True


@pytest.mark.parametrize(
    "version",
    ["v10.10.10", "v10.10.10+asd-test", "v0.0.0", "v0.0.0+asd-test"],
)
def test_is_prerelease_false_for_release(version) -> None:
    """Build metadata containing a hyphen is not a pre-release."""
    assert is_prerelease(version) is False


def test_is_prerelease_rejects_non_ascii_digits() -> None:
    """Only ASCII digits count as version numbers."""
    assert is_prerelease("v١.0.0-test") is False


def test_case_encode_escapes_uppercase() -> None:
    assert case_encode("Foo/Bar") == "!foo/!bar"
    assert case_encode("github.com/Azure/azure-sdk-for-go") == (
        "github.com/!azure/azure-sdk-for-go"
    )


def test_case_encode_is_noop_on_lowercase() -> None:
    """Encoding a string without uppercase letters leaves it unchanged."""
    encoded = case_encode("Foo/Bar")

    assert case_encode("golang.org/x/text") == "golang.org/x/text"
    assert case_encode(encoded) == encoded
