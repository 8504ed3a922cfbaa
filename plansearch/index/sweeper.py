"""
Reconciliation sweep for the interval index.

Detail records expire by TTL; sorted-set members do not. The sweep removes
index members whose detail document is gone (or whose id no longer parses),
so the sets only grow with live data. Queries tolerate ghost members in the
meantime by skipping them.

The write path stores the detail before recording the member, and removal
is conditional on the detail still being absent at commit time, so a plan
indexed while the sweep runs is never dropped.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Union

from plansearch.errors import InvalidCompositeId
from plansearch.index.detail_cache import DetailCache
from plansearch.index.interval_index import IntervalIndex
from plansearch.index.keys import CompositeId
from plansearch.utils.logging import get_logger

log = get_logger(__name__)


@dataclass
class SweepReport:
    scanned: int = 0
    removed: int = 0
    malformed: int = 0


class IndexSweeper:
    """Removes interval index members with no live detail record."""

    def __init__(self, index: IntervalIndex, details: DetailCache, batch_size: int = 500) -> None:
        self._index = index
        self._details = details
        self._batch_size = max(1, batch_size)

    def sweep(self) -> SweepReport:
        report = SweepReport()
        batch: List[CompositeId] = []
        malformed: List[Union[str, bytes]] = []

        # Collect first; removing members while ZSCAN iterates is allowed but
        # may skip elements on rehash.
        members = [member for member, _ in self._index.raw_members(self._batch_size)]
        for raw in members:
            report.scanned += 1
            try:
                member = raw.decode("utf-8") if isinstance(raw, bytes) else raw
            except UnicodeDecodeError:
                # Removed by its raw bytes; no string form matches it.
                malformed.append(raw)
                continue
            try:
                batch.append(CompositeId.parse(member))
            except InvalidCompositeId:
                malformed.append(member)
                continue
            if len(batch) >= self._batch_size:
                report.removed += self._sweep_batch(batch)
                batch = []
        if batch:
            report.removed += self._sweep_batch(batch)

        if malformed:
            log.warning("Removing malformed index members", extra={"count": len(malformed)})
            report.malformed = self._index.remove(malformed)

        log.info(
            "Index sweep complete",
            extra={
                "scanned": report.scanned,
                "removed": report.removed,
                "malformed": report.malformed,
            },
        )
        return report

    def _sweep_batch(self, ids: List[CompositeId]) -> int:
        present = self._details.exists_many(ids, batch_size=self._batch_size)
        candidates: Dict[str, str] = {
            str(cid): cid.detail_key for cid in ids if not present.get(str(cid), False)
        }
        if not candidates:
            return 0
        return self._index.remove_if_absent(candidates)


__all__ = ["IndexSweeper", "SweepReport"]
