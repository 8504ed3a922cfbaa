"""
Query engine: which plans fall inside a time window?

Read-only over the interval index and the detail cache. A search runs two
range scans, intersects the members, resolves details in MGET chunks and
aggregates one ResultView per resolved plan.

Failure policy:
- an inverted or empty window is rejected before any store call;
- a failed range scan or an unreachable store aborts the search;
- an unparsable member, an expired detail or an undecodable detail is logged
  and skipped, never failing the search.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List

from plansearch.domain.models import DetailRecord, ResultView
from plansearch.domain.timestamps import to_epoch
from plansearch.errors import InvalidCompositeId, SerializationError, ValidationError
from plansearch.index.detail_cache import DetailCache, decode
from plansearch.index.interval_index import IntervalIndex
from plansearch.index.keys import CompositeId
from plansearch.query.aggregation import group_by_base, to_result_view
from plansearch.utils.logging import get_logger

log = get_logger(__name__)

DEFAULT_MAX_MATCHES = 500


@dataclass
class SearchResult:
    """
    Outcome of one search.

    `truncated` is set when more plans matched than the engine resolves per
    query; the response is still successful, only shorter.
    """

    events: List[ResultView] = field(default_factory=list)
    truncated: bool = False
    matched: int = 0
    missing: int = 0


def validate_window(from_epoch: int, to_epoch: int) -> None:
    for name, value in (("from_epoch", from_epoch), ("to_epoch", to_epoch)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"{name} must be an integer epoch, got {value!r}")
    if from_epoch >= to_epoch:
        raise ValidationError(
            f"Window start must be before its end (from={from_epoch}, to={to_epoch})"
        )


class QueryEngine:
    """
    Window search over the interval index.

    Parameters
    ----------
    index : IntervalIndex
    details : DetailCache
    max_matches : int
        Ceiling on ids resolved per search; extra matches are dropped and the
        result is flagged as truncated.
    resolve_batch_size : int
        Ids per MGET round trip.
    """

    def __init__(
        self,
        index: IntervalIndex,
        details: DetailCache,
        max_matches: int = DEFAULT_MAX_MATCHES,
        resolve_batch_size: int = 100,
    ) -> None:
        if max_matches <= 0:
            raise ValueError("max_matches must be positive")
        self._index = index
        self._details = details
        self.max_matches = max_matches
        self.resolve_batch_size = resolve_batch_size

    def search(self, from_epoch: int, to_epoch: int) -> SearchResult:
        """
        Plans starting at or after `from_epoch` and ending at or before `to_epoch`.

        Raises
        ------
        ValidationError
            If `from_epoch >= to_epoch`.
        StoreUnavailable
            If the store cannot be reached.
        """
        validate_window(from_epoch, to_epoch)

        # Ordered by start, so truncation keeps the earliest plans.
        matches = self._index.query_window(from_epoch, to_epoch)
        result = SearchResult(matched=len(matches))
        if not matches:
            return result

        if len(matches) > self.max_matches:
            log.warning(
                "Search truncated",
                extra={
                    "matched": len(matches),
                    "max_matches": self.max_matches,
                    "from_epoch": from_epoch,
                    "to_epoch": to_epoch,
                },
            )
            matches = matches[: self.max_matches]
            result.truncated = True

        records = self._resolve(matches, result)
        for plans in group_by_base(records).values():
            result.events.extend(to_result_view(record) for record in plans)
        return result

    def search_datetimes(self, starts_at: datetime, ends_at: datetime) -> SearchResult:
        """`search` for naive UTC datetimes."""
        return self.search(to_epoch(starts_at), to_epoch(ends_at))

    def _resolve(self, members: List[str], result: SearchResult) -> List[DetailRecord]:
        ids: List[str] = []
        for member in members:
            try:
                ids.append(str(CompositeId.parse(member)))
            except InvalidCompositeId as exc:
                log.error(
                    "Skipping malformed index member",
                    extra={"member": member, "error": str(exc)},
                )
                result.missing += 1

        raw_by_id = self._details.get_many(ids, batch_size=self.resolve_batch_size)
        records: List[DetailRecord] = []
        for composite_id in ids:
            raw = raw_by_id.get(composite_id)
            if raw is None:
                log.warning("Detail missing for indexed plan", extra={"composite_id": composite_id})
                result.missing += 1
                continue
            try:
                records.append(decode(composite_id, raw))
            except SerializationError as exc:
                log.error(
                    "Skipping undecodable detail",
                    extra={"composite_id": composite_id, "error": exc.reason},
                )
                result.missing += 1
        return records


__all__ = ["DEFAULT_MAX_MATCHES", "QueryEngine", "SearchResult", "validate_window"]
