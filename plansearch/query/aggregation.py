"""
Response aggregation for resolved plans.

Turns DetailRecords into ResultViews: date/time split and min/max zone price.
"""

from __future__ import annotations

import math
from collections import OrderedDict
from datetime import datetime
from typing import Dict, Iterable, List, Sequence, Tuple

from plansearch.domain.models import DetailRecord, ResultView, ZoneRecord

GroupKey = Tuple[str, str]


def split_datetime(value: datetime) -> Tuple[str, str]:
    """(`YYYY-MM-DD`, `HH:MM:SS`) for a naive UTC datetime."""
    return value.strftime("%Y-%m-%d"), value.strftime("%H:%M:%S")


def price_range(zones: Sequence[ZoneRecord]) -> Tuple[float, float]:
    """
    Minimum and maximum price across priced zones.

    Zones without a price, and non-finite prices, are ignored. With nothing
    left the range is (0.0, 0.0) so no infinity reaches a response.
    """
    prices = [z.price for z in zones if z.price is not None and math.isfinite(z.price)]
    if not prices:
        return 0.0, 0.0
    return float(min(prices)), float(max(prices))


def to_result_view(record: DetailRecord) -> ResultView:
    start_date, start_time = split_datetime(record.plan_start_date)
    end_date, end_time = split_datetime(record.plan_end_date)
    min_price, max_price = price_range(record.zones)
    return ResultView(
        id=record.base_plan_id,
        plan_id=record.plan_id,
        title=record.title,
        start_date=start_date,
        start_time=start_time,
        end_date=end_date,
        end_time=end_time,
        min_price=min_price,
        max_price=max_price,
    )


def group_by_base(records: Iterable[DetailRecord]) -> "OrderedDict[GroupKey, List[DetailRecord]]":
    """
    Group plans by (tenant, base plan id).

    Groups are ordered by their earliest plan start, then by key; plans in a
    group are ordered by start, then by plan id.
    """
    groups: Dict[GroupKey, List[DetailRecord]] = {}
    for record in records:
        groups.setdefault((record.tenant, record.base_plan_id), []).append(record)

    for plans in groups.values():
        plans.sort(key=lambda r: (r.plan_start_date, r.plan_id))

    ordered = sorted(groups.items(), key=lambda item: (item[1][0].plan_start_date, item[0]))
    return OrderedDict(ordered)


__all__ = ["group_by_base", "price_range", "split_datetime", "to_result_view"]
