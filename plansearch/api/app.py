"""
FastAPI transport for window search.

Endpoints:
- ``GET /search?starts_at=YYYY-MM-DDTHH:MM:SS&ends_at=YYYY-MM-DDTHH:MM:SS``
- ``GET /health``: process liveness
- ``GET /health/full``: store reachability (PING)

Every failure is returned as ``{"error": {"code", "message"}, "data": null}``:
400 for bad parameters or windows, 503 when Redis is unreachable, 500
otherwise.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Optional

import redis
from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from plansearch.api.schemas import ApiResponse, ErrorBody, ErrorResponse, EventsData, HealthResponse
from plansearch.config import Settings, get_settings
from plansearch.domain.timestamps import TIMESTAMP_FORMAT, parse_timestamp
from plansearch.errors import PlanSearchError, StoreUnavailable, ValidationError
from plansearch.index.detail_cache import DetailCache
from plansearch.index.interval_index import IntervalIndex
from plansearch.infrastructure.cache_factory import create_redis_client, is_healthy
from plansearch.query.engine import QueryEngine
from plansearch.utils.logging import get_logger

log = get_logger(__name__)


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    body = ErrorResponse(error=ErrorBody(code=code, message=message))
    return JSONResponse(status_code=status_code, content=body.model_dump())


def build_engine(client: redis.Redis, settings: Settings) -> QueryEngine:
    return QueryEngine(
        IntervalIndex(client),
        DetailCache(client, default_ttl=settings.detail_ttl_seconds),
        max_matches=settings.max_matches,
        resolve_batch_size=settings.resolve_batch_size,
    )


def _install_state(app: FastAPI, client: redis.Redis, settings: Settings) -> None:
    app.state.store = client
    app.state.engine = build_engine(client, settings)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    owned = False
    if getattr(app.state, "store", None) is None:
        settings = app.state.settings
        _install_state(app, create_redis_client(settings), settings)
        owned = True
    log.info("Plan Search API started")
    try:
        yield
    finally:
        if owned:
            app.state.store.close()
        log.info("Plan Search API stopped")


def get_store(request: Request) -> redis.Redis:
    return request.app.state.store


def get_query_engine(request: Request) -> QueryEngine:
    return request.app.state.engine


def _parse_param(name: str, value: str) -> datetime:
    try:
        return parse_timestamp(value)
    except ValueError as exc:
        raise ValidationError(
            f"Invalid {name} format. Use {TIMESTAMP_FORMAT}"
        ) from exc


def create_app(
    client: Optional[redis.Redis] = None, settings: Optional[Settings] = None
) -> FastAPI:
    """
    Build the API.

    With `client` given the app uses it and never opens (or closes) its own
    connection; otherwise the lifespan connects using settings.
    """
    settings = settings or get_settings()
    app = FastAPI(title="Plan Search API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = None
    if client is not None:
        _install_state(app, client, settings)

    @app.exception_handler(ValidationError)
    async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        return error_response(400, "bad_request", str(exc))

    @app.exception_handler(RequestValidationError)
    async def _request_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        missing = [".".join(str(p) for p in err.get("loc", ())[1:]) for err in exc.errors()]
        return error_response(400, "bad_request", f"Invalid or missing parameters: {', '.join(missing)}")

    @app.exception_handler(StoreUnavailable)
    async def _store_unavailable(request: Request, exc: StoreUnavailable) -> JSONResponse:
        log.error("Store unavailable", extra={"path": request.url.path, "error": str(exc)})
        return error_response(503, "service_unavailable", "Cache store unavailable")

    @app.exception_handler(PlanSearchError)
    async def _plan_search_error(request: Request, exc: PlanSearchError) -> JSONResponse:
        log.error("Request failed", extra={"path": request.url.path, "error": str(exc)})
        return error_response(500, "internal_error", "Failed to fetch events")

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        log.exception("Unhandled exception", extra={"path": request.url.path})
        return error_response(500, "internal_error", "Internal server error")

    @app.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.get("/health/full", response_model=HealthResponse)
    def full_health(store: redis.Redis = Depends(get_store)):
        if not is_healthy(store):
            return error_response(503, "service_unavailable", "Cache store unavailable")
        return HealthResponse(status="ok", store="reachable")

    @app.get("/search", response_model=ApiResponse)
    def search(
        starts_at: str = Query(..., description=f"Window start, {TIMESTAMP_FORMAT}"),
        ends_at: str = Query(..., description=f"Window end, {TIMESTAMP_FORMAT}"),
        engine: QueryEngine = Depends(get_query_engine),
    ) -> ApiResponse:
        result = engine.search_datetimes(
            _parse_param("starts_at", starts_at), _parse_param("ends_at", ends_at)
        )
        return ApiResponse(data=EventsData(events=result.events, truncated=result.truncated))

    return app


__all__ = ["create_app", "build_engine", "get_query_engine", "get_store"]
