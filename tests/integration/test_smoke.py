"""
Integration tests for Plan Search against real stores.

These tests verify that:
1. The interval index and detail cache behave the same on a real Redis
2. The repository upserts provider feeds idempotently in PostgreSQL
3. A full ingestion cycle makes plans searchable over the REST API

Run with: RUN_INTEGRATION_TESTS=1 pytest tests/integration/
"""

from __future__ import annotations

import os
from datetime import datetime

import pytest
import redis
from fastapi.testclient import TestClient

from plansearch.api.app import create_app
from plansearch.config import Settings
from plansearch.domain.models import SellMode
from plansearch.domain.timestamps import to_epoch
from plansearch.index.detail_cache import DetailCache
from plansearch.index.interval_index import IntervalIndex
from plansearch.index.sweeper import IndexSweeper
from plansearch.index.writer import IndexWriter
from plansearch.ingestion.worker import IngestionWorker
from plansearch.ingestion.xml_parser import parse_plan_list
from plansearch.query.engine import QueryEngine
from plansearch.storage.repository import PlanRepository
from tests.fakes import make_persisted, make_plan

FEED_URL = "https://provider.example/feed"
SHORT_TTL = 30

FEED = b"""<planList version="1.0"><output>
  <base_plan base_plan_id="291" sell_mode="online" title="Camela en concierto" organizer_company_id="1">
    <plan plan_id="291" plan_start_date="2021-06-30T21:00:00" plan_end_date="2021-06-30T22:00:00"
          sell_from="2020-07-01T00:00:00" sell_to="2021-06-30T20:00:00" sold_out="false">
      <zone zone_id="40" capacity="243" price="20.00" name="Platea" numbered="true"/>
      <zone zone_id="38" capacity="100" price="15.00" name="Grada 2" numbered="false"/>
    </plan>
  </base_plan>
  <base_plan base_plan_id="322" sell_mode="offline" title="Pantomima Full">
    <plan plan_id="1642" plan_start_date="2021-06-10T20:00:00" plan_end_date="2021-06-10T21:30:00"/>
  </base_plan>
</output></planList>"""

pytestmark = pytest.mark.skipif(
    os.getenv("RUN_INTEGRATION_TESTS", "0") != "1",
    reason="Integration tests require RUN_INTEGRATION_TESTS=1 and reachable Redis/Postgres",
)


class _StaticFetcher:
    def fetch(self, url: str) -> bytes:
        return FEED


class TestIndexOnRedis:
    """Interval index and detail cache against a real server."""

    def test_boundaries_and_idempotence(self, redis_client: redis.Redis):
        """Verify inclusive containment and re-record idempotence."""
        index = IntervalIndex(redis_client)
        index.record("p1:1:a", 10, 20)
        index.record("p1:1:a", 10, 20)
        index.record("p1:1:b", 5, 9)
        index.record("p1:2:c", 21, 30)

        assert index.size() == (3, 3)
        assert index.query_overlap(10, 20) == {"p1:1:a"}
        assert index.query_overlap(9, 21) == {"p1:1:a"}
        assert index.query_overlap(0, 100) == {"p1:1:a", "p1:1:b", "p1:2:c"}

    def test_detail_ttl_is_applied(self, redis_client: redis.Redis):
        """Verify detail records are written with a positive TTL."""
        details = DetailCache(redis_client, default_ttl=SHORT_TTL)
        IndexWriter(IntervalIndex(redis_client), details).index_entity(make_persisted())

        remaining = details.ttl("p1:100:7")
        assert remaining is not None and 0 < remaining <= SHORT_TTL
        assert details.require("p1:100:7").title == "Camela en concierto"

    def test_ghosts_are_skipped_then_swept(self, redis_client: redis.Redis):
        """Verify expired details never fail a search and are reclaimed by the sweep."""
        index = IntervalIndex(redis_client)
        details = DetailCache(redis_client)
        writer = IndexWriter(index, details)
        writer.index_entity(make_persisted(plan=make_plan(plan_id="1")))
        writer.index_entity(make_persisted(plan=make_plan(plan_id="2")))
        redis_client.delete("detail:p1:100:2")

        result = QueryEngine(index, details).search_datetimes(
            datetime(2021, 6, 1), datetime(2021, 7, 1)
        )
        assert [view.plan_id for view in result.events] == ["1"]
        assert result.missing == 1

        assert IndexSweeper(index, details).sweep().removed == 1
        assert index.size() == (1, 1)


class TestRepositoryOnPostgres:
    """Relational upserts."""

    def test_persist_is_idempotent(self, repository: PlanRepository):
        """Verify replaying a feed updates rows in place."""
        provider = repository.register_provider("provider", FEED_URL)
        (concert, comedy) = parse_plan_list(FEED)

        first = repository.persist(provider.provider_id, concert)
        second = repository.persist(provider.provider_id, concert)
        repository.persist(provider.provider_id, comedy)

        assert first == second
        assert first[0].provider_id == str(provider.provider_id)
        assert first[0].sell_mode is SellMode.ONLINE
        with repository._pool.connection() as conn:
            plans = conn.execute("SELECT count(*) FROM public.plans").fetchone()[0]
            zones = conn.execute("SELECT count(*) FROM public.zones").fetchone()[0]
        assert (plans, zones) == (2, 2)

    def test_active_providers(self, repository: PlanRepository):
        """Verify registered providers are listed as active."""
        repository.register_provider("b", "https://b.example/feed")
        repository.register_provider("a", "https://a.example/feed")

        assert [p.name for p in repository.active_providers()] == ["a", "b"]


class TestEndToEnd:
    """Ingestion cycle followed by a REST search."""

    def test_ingested_online_plans_are_searchable(
        self, repository: PlanRepository, redis_client: redis.Redis
    ):
        """Verify the online plan is indexed and the offline one is not."""
        repository.register_provider("provider", FEED_URL)
        index = IntervalIndex(redis_client)
        details = DetailCache(redis_client)
        worker = IngestionWorker(
            repository,
            IndexWriter(index, details),
            _StaticFetcher(),
            sweeper=IndexSweeper(index, details),
        )

        (report,) = worker.run_cycle()
        assert (report.indexed, report.skipped, report.ok) == (1, 1, True)

        client = TestClient(create_app(client=redis_client, settings=Settings()))
        body = client.get(
            "/search",
            params={"starts_at": "2021-06-01T00:00:00", "ends_at": "2021-07-01T00:00:00"},
        ).json()

        assert body["error"] is None
        (event,) = body["data"]["events"]
        assert event["id"] == "291"
        assert (event["min_price"], event["max_price"]) == (15.0, 20.0)
        assert to_epoch(datetime(2021, 6, 30, 21)) in {
            int(score) for _, score in redis_client.zscan_iter("start_date")
        }
