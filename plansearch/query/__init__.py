"""
Query package for Plan Search.

Window search over the interval index and response aggregation.
"""

from plansearch.query.aggregation import group_by_base, price_range, split_datetime, to_result_view
from plansearch.query.engine import QueryEngine, SearchResult, validate_window

__all__ = [
    "QueryEngine",
    "SearchResult",
    "group_by_base",
    "price_range",
    "split_datetime",
    "to_result_view",
    "validate_window",
]
