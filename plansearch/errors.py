"""
Exception hierarchy for Plan Search.

Every error raised by the index, query, storage and ingestion layers derives
from PlanSearchError so the transport and the worker can handle them at one
seam. The REST layer maps StoreUnavailable to 503 and ValidationError to 400.
"""

from __future__ import annotations

from typing import Optional


class PlanSearchError(Exception):
    """Base class for all Plan Search errors."""


class StoreUnavailable(PlanSearchError):
    """The Redis store could not be reached or timed out."""


class ValidationError(PlanSearchError):
    """A query window or request parameter is malformed or inverted."""


class SerializationError(PlanSearchError):
    """A detail record could not be decoded."""

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(f"Cannot decode detail record at '{key}': {reason}")
        self.key = key
        self.reason = reason


class NotFound(PlanSearchError):
    """A single key lookup found nothing."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Key not found: {key}")
        self.key = key


class InvalidCompositeId(PlanSearchError):
    """An identifier does not fit the `{tenant}:{base_id}:{leaf_id}` layout."""


class IndexWriteError(PlanSearchError):
    """The write path failed to record an entity in the interval index or detail cache."""

    def __init__(self, composite_id: str, reason: str) -> None:
        super().__init__(f"Failed to index '{composite_id}': {reason}")
        self.composite_id = composite_id
        self.reason = reason


class PersistError(PlanSearchError):
    """The relational store rejected or failed an upsert."""

    def __init__(self, message: str, base_plan_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.base_plan_id = base_plan_id


class FetchError(PlanSearchError):
    """A provider feed could not be downloaded."""


class ParseError(PlanSearchError):
    """A provider feed could not be parsed."""


__all__ = [
    "PlanSearchError",
    "StoreUnavailable",
    "ValidationError",
    "SerializationError",
    "NotFound",
    "InvalidCompositeId",
    "IndexWriteError",
    "PersistError",
    "FetchError",
    "ParseError",
]
