"""
Domain package for Plan Search.

Exports the core domain models used across ingestion, indexing and querying.
Keep this package focused on data definitions and validation concerns.
"""

from plansearch.domain.models import (
    BasePlanRecord,
    DetailRecord,
    PersistedPlan,
    PlanRecord,
    Provider,
    ResultView,
    SellMode,
    ZoneRecord,
)
from plansearch.domain.timestamps import TIMESTAMP_FORMAT, parse_timestamp, to_epoch

__all__ = [
    "BasePlanRecord",
    "DetailRecord",
    "PersistedPlan",
    "PlanRecord",
    "Provider",
    "ResultView",
    "SellMode",
    "ZoneRecord",
    "TIMESTAMP_FORMAT",
    "parse_timestamp",
    "to_epoch",
]
