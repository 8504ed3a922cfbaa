"""
Domain models for Plan Search.

Provider feeds describe base plans (the parent: title, sell mode) that own
plans (the leaf: a time interval and a sale window) which own zones (each
with a price). The same pydantic models are used by the XML parser, the
relational repository, the write path and the query engine, so the detail
cache has exactly one serialization schema.
"""
from __future__ import annotations

import enum
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class SellMode(str, enum.Enum):
    """Distribution mode of a base plan. Only ONLINE plans are publicly listed."""

    ONLINE = "online"
    OFFLINE = "offline"


class ZoneRecord(BaseModel):
    """
    A priced sub-resource of a plan.
    """

    zone_id: Optional[str] = Field(None, description="Provider zone identifier.")
    name: Optional[str] = Field(None, description="Human-readable zone name.")
    capacity: Optional[int] = Field(None, description="Seats available in the zone.")
    price: Optional[float] = Field(None, description="Price; None when the feed omits it.")
    numbered: bool = Field(False, description="Whether seats are numbered.")

    model_config = {"frozen": True}


class PlanRecord(BaseModel):
    """
    A leaf plan: one time interval of a base plan.

    Datetimes are naive and interpreted as UTC.
    """

    plan_id: str = Field(..., description="Provider plan identifier.")
    plan_start_date: datetime = Field(..., description="Start of the plan.")
    plan_end_date: datetime = Field(..., description="End of the plan.")
    sell_from: Optional[datetime] = Field(None, description="Sale window opening.")
    sell_to: Optional[datetime] = Field(None, description="Sale window closing.")
    sold_out: bool = Field(False, description="Whether the plan is sold out.")
    zones: List[ZoneRecord] = Field(default_factory=list)

    model_config = {"frozen": True}


class BasePlanRecord(BaseModel):
    """
    A base plan as published by a provider feed, with its plans.
    """

    base_plan_id: str = Field(..., description="Provider base plan identifier.")
    title: str = Field(..., description="Display title.")
    sell_mode: Optional[SellMode] = Field(None, description="Distribution mode.")
    organizer_company_id: Optional[str] = Field(None)
    plans: List[PlanRecord] = Field(default_factory=list)

    model_config = {"frozen": True}


class Provider(BaseModel):
    """
    Representation of a row in the `providers` table.
    """

    provider_id: UUID
    name: str
    url: str
    is_active: bool = True

    model_config = {"frozen": True}


class DetailRecord(BaseModel):
    """
    Canonical projection of one plan stored in the detail cache.

    Written by the write path and read by the query engine with the same
    schema; there is no other serialization of cached plans.
    """

    tenant: str = Field(..., description="Provider id scoping the plan.")
    base_plan_id: str
    plan_id: str
    title: str
    sell_mode: SellMode
    organizer_company_id: Optional[str] = None
    plan_start_date: datetime
    plan_end_date: datetime
    sell_from: Optional[datetime] = None
    sell_to: Optional[datetime] = None
    sold_out: bool = False
    zones: List[ZoneRecord] = Field(default_factory=list)

    model_config = {"frozen": True}


class PersistedPlan(BaseModel):
    """
    Canonical entity returned by the repository after a successful upsert.

    Carries the stable provider / base / plan ids the write path turns into a
    composite id, plus the parent fields needed for the detail projection.
    """

    provider_id: str
    base_plan_id: str
    title: str
    sell_mode: Optional[SellMode] = None
    organizer_company_id: Optional[str] = None
    plan: PlanRecord

    model_config = {"frozen": True}

    @property
    def is_publicly_listed(self) -> bool:
        return self.sell_mode is SellMode.ONLINE

    def to_detail(self) -> DetailRecord:
        if self.sell_mode is None:
            raise ValueError(f"Base plan {self.base_plan_id} has no sell mode")
        return DetailRecord(
            tenant=self.provider_id,
            base_plan_id=self.base_plan_id,
            plan_id=self.plan.plan_id,
            title=self.title,
            sell_mode=self.sell_mode,
            organizer_company_id=self.organizer_company_id,
            plan_start_date=self.plan.plan_start_date,
            plan_end_date=self.plan.plan_end_date,
            sell_from=self.plan.sell_from,
            sell_to=self.plan.sell_to,
            sold_out=self.plan.sold_out,
            zones=list(self.plan.zones),
        )


class ResultView(BaseModel):
    """
    One resolved plan in a search response.
    """

    id: str = Field(..., description="Base plan identifier.")
    plan_id: str = Field(..., description="Plan identifier within the base plan.")
    title: str
    start_date: str = Field(..., description="YYYY-MM-DD")
    start_time: str = Field(..., description="HH:MM:SS")
    end_date: str
    end_time: str
    min_price: float
    max_price: float


__all__ = [
    "SellMode",
    "ZoneRecord",
    "PlanRecord",
    "BasePlanRecord",
    "Provider",
    "DetailRecord",
    "PersistedPlan",
    "ResultView",
]
