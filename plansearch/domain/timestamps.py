"""
Timestamp helpers shared by ingestion, the write path and the REST layer.

Provider feeds and query parameters carry naive `YYYY-MM-DDTHH:MM:SS`
timestamps; all of them are interpreted as UTC.
"""
from __future__ import annotations

from datetime import datetime, timezone

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"


def parse_timestamp(text: str) -> datetime:
    """
    Parse a naive `YYYY-MM-DDTHH:MM:SS` string.

    Raises
    ------
    ValueError
        If the text does not match the format exactly.
    """
    return datetime.strptime(text.strip(), TIMESTAMP_FORMAT)


def to_epoch(value: datetime) -> int:
    """Seconds since epoch; naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp())


def from_epoch(seconds: int) -> datetime:
    """Naive UTC datetime for an epoch second."""
    return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(tzinfo=None)


__all__ = ["TIMESTAMP_FORMAT", "parse_timestamp", "to_epoch", "from_epoch"]
