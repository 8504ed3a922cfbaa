"""
Index package for Plan Search.

The interval index (two Redis sorted sets), the detail cache, the write path
that fills both, and the sweep that keeps them consistent.
"""

from plansearch.index.detail_cache import DetailCache
from plansearch.index.interval_index import IntervalIndex
from plansearch.index.keys import KEY_SCHEMA_VERSION, CompositeId, detail_key
from plansearch.index.sweeper import IndexSweeper, SweepReport
from plansearch.index.writer import IndexReport, IndexWriter

__all__ = [
    "KEY_SCHEMA_VERSION",
    "CompositeId",
    "DetailCache",
    "IndexReport",
    "IndexSweeper",
    "IndexWriter",
    "IntervalIndex",
    "SweepReport",
    "detail_key",
]
