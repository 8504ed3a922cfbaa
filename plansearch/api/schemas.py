"""
Response contracts for the Plan Search REST API.
"""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from plansearch.domain.models import ResultView


class EventsData(BaseModel):
    events: List[ResultView] = Field(default_factory=list)
    truncated: bool = Field(False, description="More plans matched than were resolved.")


class ApiResponse(BaseModel):
    data: EventsData
    error: Optional[str] = None


class ErrorBody(BaseModel):
    code: str
    message: str


class ErrorResponse(BaseModel):
    """Envelope for every non-2xx response; `data` is always null."""

    error: ErrorBody
    data: None = None


class HealthResponse(BaseModel):
    status: str
    store: Optional[str] = None


__all__ = ["ApiResponse", "ErrorBody", "ErrorResponse", "EventsData", "HealthResponse"]
