"""
Interval index over two Redis sorted sets.

Each plan is a member of ``start_date`` (scored by its start epoch) and of
``end_date`` (scored by its end epoch). Window queries run one range scan per
set and intersect the member lists client side, which keeps each scan
independent and avoids a store-side ZINTERSTORE over the whole keyspace.
"""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Set, Tuple, Union

import redis

from plansearch.index.keys import END_SET_KEY, START_SET_KEY, CompositeId
from plansearch.infrastructure.cache_factory import store_errors
from plansearch.utils.logging import get_logger

log = get_logger(__name__)

MemberId = Union[str, CompositeId]
RawMember = Union[str, bytes]


def _as_str(value: RawMember) -> str:
    # Undecodable bytes become U+FFFD; such members never resolve a detail.
    return value.decode("utf-8", errors="replace") if isinstance(value, bytes) else value


def _as_member(value: Union[RawMember, CompositeId]) -> RawMember:
    return value if isinstance(value, bytes) else str(value)


class IntervalIndex:
    """
    Start/end sorted sets keyed by composite plan id.

    Parameters
    ----------
    client : redis.Redis
        Shared store handle.
    start_key, end_key : str
        Sorted-set keys; overridable so tests can isolate their data.
    """

    def __init__(
        self,
        client: redis.Redis,
        start_key: str = START_SET_KEY,
        end_key: str = END_SET_KEY,
    ) -> None:
        self._client = client
        self.start_key = start_key
        self.end_key = end_key

    def record(self, composite_id: MemberId, start_epoch: int, end_epoch: int) -> None:
        """
        Add or re-score a member in both sets in one MULTI/EXEC.

        Readers see either both halves or neither. Re-recording an existing
        member updates its scores in place.

        Raises
        ------
        StoreUnavailable
            If the store cannot be reached.
        """
        member = str(composite_id)
        with store_errors("interval index write"):
            pipe = self._client.pipeline(transaction=True)
            pipe.zadd(self.start_key, {member: int(start_epoch)})
            pipe.zadd(self.end_key, {member: int(end_epoch)})
            pipe.execute()
        log.debug(
            "Interval recorded",
            extra={"composite_id": member, "start": start_epoch, "end": end_epoch},
        )

    def query_window(self, from_epoch: int, to_epoch: int) -> List[str]:
        """
        Members starting at or after `from_epoch` and ending at or before `to_epoch`.

        Both bounds are inclusive. This is a containment test: a plan that
        straddles either edge of the window is not returned. Members come
        back ordered by start, ties broken by member. Missing sets yield an
        empty result.

        Raises
        ------
        StoreUnavailable
            If either range scan fails to reach the store; the query is aborted.
        """
        with store_errors("interval index range scan"):
            pipe = self._client.pipeline(transaction=True)
            pipe.zrangebyscore(self.start_key, int(from_epoch), "+inf")
            pipe.zrangebyscore(self.end_key, "-inf", int(to_epoch))
            started_after, ended_before = pipe.execute()

        ended = {_as_str(m) for m in ended_before}
        return [member for member in map(_as_str, started_after) if member in ended]

    def query_overlap(self, from_epoch: int, to_epoch: int) -> Set[str]:
        """`query_window` as an unordered set."""
        return set(self.query_window(from_epoch, to_epoch))

    def remove(self, composite_ids: Iterable[Union[RawMember, CompositeId]]) -> int:
        """
        Remove members from both sets in one MULTI/EXEC.

        Returns the number of members removed from the start set.
        """
        members = [_as_member(cid) for cid in composite_ids]
        if not members:
            return 0
        with store_errors("interval index removal"):
            pipe = self._client.pipeline(transaction=True)
            pipe.zrem(self.start_key, *members)
            pipe.zrem(self.end_key, *members)
            removed_start, _ = pipe.execute()
        return int(removed_start)

    def remove_if_absent(self, guards: Dict[str, str]) -> int:
        """
        Remove each member whose guard key does not exist.

        `guards` maps member to the key that keeps it alive. The guard keys
        are WATCHed, re-checked and the removal runs in MULTI/EXEC, so a
        guard written concurrently aborts the removal instead of dropping a
        live member. Returns the number of members removed; 0 when aborted.
        """
        if not guards:
            return 0
        with store_errors("interval index conditional removal"):
            with self._client.pipeline(transaction=True) as pipe:
                try:
                    pipe.watch(*guards.values())
                    ghosts = [member for member, key in guards.items() if not pipe.exists(key)]
                    if not ghosts:
                        pipe.unwatch()
                        return 0
                    pipe.multi()
                    pipe.zrem(self.start_key, *ghosts)
                    pipe.zrem(self.end_key, *ghosts)
                    removed_start, _ = pipe.execute()
                except redis.WatchError:
                    log.info(
                        "Conditional removal aborted by a concurrent write",
                        extra={"members": len(guards)},
                    )
                    return 0
        return int(removed_start)

    def raw_members(self, batch_size: int = 500) -> Iterator[Tuple[RawMember, int]]:
        """Iterate (member, start_epoch) over the start set with ZSCAN, members undecoded."""
        with store_errors("interval index scan"):
            for member, score in self._client.zscan_iter(self.start_key, count=batch_size):
                yield member, int(score)

    def members(self, batch_size: int = 500) -> Iterator[Tuple[str, int]]:
        """Iterate (member, start_epoch) over the start set with ZSCAN."""
        for member, score in self.raw_members(batch_size):
            yield _as_str(member), score

    def size(self) -> Tuple[int, int]:
        """Cardinality of the (start, end) sets."""
        with store_errors("interval index size"):
            pipe = self._client.pipeline(transaction=False)
            pipe.zcard(self.start_key)
            pipe.zcard(self.end_key)
            starts, ends = pipe.execute()
        return int(starts), int(ends)


__all__ = ["IntervalIndex"]
