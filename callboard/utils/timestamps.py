"""Timestamps at the precision the document backends keep."""

from __future__ import annotations

from datetime import datetime, timezone


def to_storage_precision(value: datetime) -> datetime:
    """Drop sub-millisecond digits, which BSON dates cannot hold.

    A value stamped this way compares equal to the one read back from MongoDB.
    """

    return value.replace(microsecond=value.microsecond // 1000 * 1000)


def utcnow() -> datetime:
    return to_storage_precision(datetime.now(timezone.utc))


__all__ = ["to_storage_precision", "utcnow"]
