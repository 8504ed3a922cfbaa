"""
Plan Search - time-window search over provider plan feeds.

Provider feeds (planList XML) are fetched, upserted into PostgreSQL and
indexed in Redis: two sorted sets keyed by plan start and end, plus a TTL'd
JSON detail record per plan. Window queries intersect two range scans and
resolve the details in batches.

- `plansearch.index`: key layout, interval index, detail cache, write path, sweep
- `plansearch.query`: query engine and response aggregation
- `plansearch.storage`: relational repository
- `plansearch.ingestion`: feed fetcher, XML parser, worker
- `plansearch.api`: FastAPI transport
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from plansearch.config import Settings, get_settings
from plansearch.errors import PlanSearchError, StoreUnavailable, ValidationError
from plansearch.index import CompositeId, DetailCache, IndexSweeper, IndexWriter, IntervalIndex
from plansearch.query import QueryEngine, SearchResult
from plansearch.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Errors
    "PlanSearchError",
    "StoreUnavailable",
    "ValidationError",
    # Index
    "CompositeId",
    "DetailCache",
    "IndexSweeper",
    "IndexWriter",
    "IntervalIndex",
    # Query
    "QueryEngine",
    "SearchResult",
    # Logging
    "configure_logging",
    "get_logger",
]
