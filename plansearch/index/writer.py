"""
Write path: index plans that were just persisted to PostgreSQL.

Only plans whose base plan is sold online are indexed. The interval index
and the detail cache are written together; the index is an accelerator, not
a source of truth, so a failure here is reported as IndexWriteError and
never rolls back the relational write.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

import redis

from plansearch.domain.models import PersistedPlan
from plansearch.domain.timestamps import to_epoch
from plansearch.errors import IndexWriteError, InvalidCompositeId, StoreUnavailable
from plansearch.index.detail_cache import DetailCache
from plansearch.index.interval_index import IntervalIndex
from plansearch.index.keys import CompositeId
from plansearch.utils.logging import get_logger

log = get_logger(__name__)


@dataclass
class IndexReport:
    """Outcome of indexing a batch of persisted plans."""

    indexed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[IndexWriteError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


def composite_id_for(entity: PersistedPlan) -> CompositeId:
    return CompositeId(entity.provider_id, entity.base_plan_id, entity.plan.plan_id)


class IndexWriter:
    """
    Writes one plan into the interval index and the detail cache.

    Parameters
    ----------
    index : IntervalIndex
    details : DetailCache
    ttl : int | None
        Detail TTL; defaults to the cache's configured TTL.
    """

    def __init__(
        self, index: IntervalIndex, details: DetailCache, ttl: Optional[int] = None
    ) -> None:
        self._index = index
        self._details = details
        self._ttl = ttl

    def index_entity(self, entity: PersistedPlan) -> bool:
        """
        Index a persisted plan.

        Returns
        -------
        bool
            True if written, False if skipped because the base plan is not
            publicly listed.

        Raises
        ------
        IndexWriteError
            If the id is unusable or the store rejects either write. The
            error carries the composite id so callers can retry indexing
            without re-persisting.
        """
        label = f"{entity.provider_id}:{entity.base_plan_id}:{entity.plan.plan_id}"
        if not entity.is_publicly_listed:
            log.debug(
                "Plan skipped (not publicly listed)",
                extra={"composite_id": label, "sell_mode": entity.sell_mode},
            )
            return False

        try:
            composite_id = composite_id_for(entity)
            # Detail before member: an indexed member always has a detail to resolve.
            self._details.put(composite_id, entity.to_detail(), ttl=self._ttl)
            self._index.record(
                composite_id,
                to_epoch(entity.plan.plan_start_date),
                to_epoch(entity.plan.plan_end_date),
            )
        except (InvalidCompositeId, StoreUnavailable, redis.RedisError, ValueError) as exc:
            log.error(
                "Plan indexing failed",
                extra={"composite_id": label, "error": str(exc)},
            )
            raise IndexWriteError(label, str(exc)) from exc

        log.debug("Plan indexed", extra={"composite_id": label})
        return True

    def index_many(self, entities: Iterable[PersistedPlan]) -> IndexReport:
        """
        Index each entity independently; one failure never blocks its siblings.
        """
        report = IndexReport()
        for entity in entities:
            label = f"{entity.provider_id}:{entity.base_plan_id}:{entity.plan.plan_id}"
            try:
                if self.index_entity(entity):
                    report.indexed.append(label)
                else:
                    report.skipped.append(label)
            except IndexWriteError as exc:
                report.failed.append(exc)
        return report


__all__ = ["IndexReport", "IndexWriter", "composite_id_for"]
