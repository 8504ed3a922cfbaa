"""
Detail cache: one JSON document per plan, addressed by its composite id.

Documents are `DetailRecord` instances serialized with pydantic; the writer
and every reader share that single schema.
"""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional, Union

import redis
from pydantic import ValidationError as SchemaValidationError

from plansearch.domain.models import DetailRecord
from plansearch.errors import NotFound, SerializationError
from plansearch.index.keys import CompositeId, detail_key
from plansearch.infrastructure.cache_factory import store_errors

DEFAULT_TTL_SECONDS = 3600

MemberId = Union[str, CompositeId]
RawValue = Union[str, bytes]


def encode(record: DetailRecord) -> str:
    return record.model_dump_json()


def decode(key: str, raw: RawValue) -> DetailRecord:
    """
    Decode a cached document.

    Raises
    ------
    SerializationError
        If the document is empty or does not match the DetailRecord schema.
    """
    if not raw or not raw.strip():
        raise SerializationError(key, "empty document")
    try:
        return DetailRecord.model_validate_json(raw)
    except SchemaValidationError as exc:
        raise SerializationError(key, str(exc)) from exc


def _chunks(items: List[str], size: int) -> Iterator[List[str]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


class DetailCache:
    """
    TTL-bound store of plan details.

    Parameters
    ----------
    client : redis.Redis
        Shared store handle.
    default_ttl : int
        Expiry applied by `put` when no explicit TTL is given.
    """

    def __init__(self, client: redis.Redis, default_ttl: int = DEFAULT_TTL_SECONDS) -> None:
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        self._client = client
        self.default_ttl = default_ttl

    def put(self, composite_id: MemberId, record: DetailRecord, ttl: Optional[int] = None) -> None:
        """Serialize and SET with expiry; overwrites any previous document."""
        expiry = ttl if ttl is not None else self.default_ttl
        if expiry <= 0:
            raise ValueError("ttl must be positive")
        with store_errors("detail cache write"):
            self._client.set(detail_key(composite_id), encode(record), ex=expiry)

    def get(self, composite_id: MemberId) -> Optional[DetailRecord]:
        """
        Fetch and decode one document.

        Returns None on a miss (expired or never written).

        Raises
        ------
        SerializationError
            If the stored document cannot be decoded.
        """
        key = detail_key(composite_id)
        with store_errors("detail cache read"):
            raw = self._client.get(key)
        if raw is None:
            return None
        return decode(key, raw)

    def require(self, composite_id: MemberId) -> DetailRecord:
        """Like `get`, but a miss raises NotFound."""
        record = self.get(composite_id)
        if record is None:
            raise NotFound(detail_key(composite_id))
        return record

    def get_many(
        self, composite_ids: Iterable[MemberId], batch_size: int = 100
    ) -> Dict[str, Optional[RawValue]]:
        """
        Raw documents for many ids using chunked MGET.

        Keys of the result are the composite id strings; misses map to None.
        Decoding is left to the caller so one bad document does not hide the
        others.
        """
        ids = [str(cid) for cid in composite_ids]
        found: Dict[str, Optional[RawValue]] = {}
        for chunk in _chunks(ids, max(1, batch_size)):
            keys = [detail_key(cid) for cid in chunk]
            with store_errors("detail cache read"):
                values = self._client.mget(keys)
            found.update(zip(chunk, values))
        return found

    def exists_many(
        self, composite_ids: Iterable[MemberId], batch_size: int = 500
    ) -> Dict[str, bool]:
        """Pipelined EXISTS for many ids."""
        ids = [str(cid) for cid in composite_ids]
        present: Dict[str, bool] = {}
        for chunk in _chunks(ids, max(1, batch_size)):
            with store_errors("detail cache exists"):
                pipe = self._client.pipeline(transaction=False)
                for cid in chunk:
                    pipe.exists(detail_key(cid))
                counts = pipe.execute()
            present.update((cid, bool(count)) for cid, count in zip(chunk, counts))
        return present

    def ttl(self, composite_id: MemberId) -> Optional[int]:
        """Remaining TTL in seconds, or None when the key is missing or never expires."""
        with store_errors("detail cache ttl"):
            remaining = self._client.ttl(detail_key(composite_id))
        return None if remaining is None or remaining < 0 else int(remaining)

    def scan_keys(self, pattern: str, count: int = 500) -> Iterator[str]:
        """
        Enumerate keys matching `pattern` with SCAN.

        O(keyspace); for maintenance and debugging, never the request path.
        """
        with store_errors("detail cache scan"):
            for key in self._client.scan_iter(match=pattern, count=count):
                yield key.decode("utf-8") if isinstance(key, bytes) else key


__all__ = ["DEFAULT_TTL_SECONDS", "DetailCache", "decode", "encode"]
