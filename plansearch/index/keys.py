"""
Cache key layout for the interval index and the detail cache.

Layout (version 1):

- ``start_date``: sorted set, member = composite id, score = plan start (epoch s)
- ``end_date``: sorted set, member = composite id, score = plan end (epoch s)
- ``detail:{tenant}:{base_id}:{leaf_id}``: JSON detail record with a TTL

Sorted-set keys are global; tenant scope is carried inside the member string.
A composite id maps to its detail key without any key scanning. Changing any
of these layouts requires bumping KEY_SCHEMA_VERSION.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from plansearch.errors import InvalidCompositeId

KEY_SCHEMA_VERSION = 1

START_SET_KEY = "start_date"
END_SET_KEY = "end_date"
DETAIL_PREFIX = "detail"
SEPARATOR = ":"


def _check_part(name: str, value: str) -> str:
    if not value:
        raise InvalidCompositeId(f"{name} must not be empty")
    if SEPARATOR in value:
        raise InvalidCompositeId(f"{name} must not contain '{SEPARATOR}': {value!r}")
    return value


@dataclass(frozen=True)
class CompositeId:
    """Identity of one plan: provider scope, base plan id, plan id."""

    tenant: str
    base_id: str
    leaf_id: str

    def __post_init__(self) -> None:
        _check_part("tenant", self.tenant)
        _check_part("base_id", self.base_id)
        _check_part("leaf_id", self.leaf_id)

    def __str__(self) -> str:
        return SEPARATOR.join((self.tenant, self.base_id, self.leaf_id))

    @property
    def detail_key(self) -> str:
        return f"{DETAIL_PREFIX}{SEPARATOR}{self}"

    @classmethod
    def parse(cls, text: Union[str, bytes]) -> "CompositeId":
        """
        Parse a sorted-set member back into its parts.

        Raises
        ------
        InvalidCompositeId
            If the member does not have exactly three non-empty parts.
        """
        if isinstance(text, bytes):
            text = text.decode("utf-8", errors="replace")
        parts = text.split(SEPARATOR)
        if len(parts) != 3:
            raise InvalidCompositeId(f"Expected tenant:base:leaf, got {text!r}")
        return cls(*parts)

    @classmethod
    def from_detail_key(cls, key: Union[str, bytes]) -> "CompositeId":
        if isinstance(key, bytes):
            key = key.decode("utf-8", errors="replace")
        prefix = f"{DETAIL_PREFIX}{SEPARATOR}"
        if not key.startswith(prefix):
            raise InvalidCompositeId(f"Not a detail key: {key!r}")
        return cls.parse(key[len(prefix):])


def detail_key(composite_id: Union[str, CompositeId]) -> str:
    """Detail cache key for a composite id or its string form."""
    if not isinstance(composite_id, CompositeId):
        composite_id = CompositeId.parse(composite_id)
    return composite_id.detail_key


def detail_pattern(tenant: str = "*", base_id: str = "*", leaf_id: str = "*") -> str:
    """SCAN pattern over detail keys. Maintenance and debugging only."""
    return SEPARATOR.join((DETAIL_PREFIX, tenant, base_id, leaf_id))


__all__ = [
    "KEY_SCHEMA_VERSION",
    "START_SET_KEY",
    "END_SET_KEY",
    "DETAIL_PREFIX",
    "CompositeId",
    "detail_key",
    "detail_pattern",
]
