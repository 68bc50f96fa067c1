"""Input validation helpers."""

from __future__ import annotations


def require_identifier(value: str, name: str = "identifier") -> str:
    """Return ``value`` stripped, rejecting blanks and path separators.

    Document ids are interpolated into collection paths, so a slash would
    silently address a different collection.
    """

    if not isinstance(value, str):
        raise TypeError(f"{name} must be a string")
    stripped = value.strip()
    if not stripped:
        raise ValueError(f"{name} must be a non-empty string")
    if "/" in stripped:
        raise ValueError(f"{name} must not contain '/'")
    return stripped


def require_non_empty(value: str) -> str:
    if not value or not value.strip():
        raise ValueError("Value must not be empty")
    return value.strip()
