from __future__ import annotations

import threading
import uuid
from typing import Dict, List

import pytest
import redis

from plansearch.domain.models import BasePlanRecord, PersistedPlan, Provider
from plansearch.errors import FetchError, PersistError, StoreUnavailable
from plansearch.index.detail_cache import DetailCache
from plansearch.index.interval_index import IntervalIndex
from plansearch.index.sweeper import IndexSweeper
from plansearch.index.writer import IndexWriter
from plansearch.ingestion.worker import IngestionWorker
from tests.fakes import FakeRedis

GOOD_URL = "https://good.example/feed"
BROKEN_URL = "https://broken.example/feed"

FEED = b"""<planList version="1.0"><output>
  <base_plan base_plan_id="291" sell_mode="online" title="Camela">
    <plan plan_id="291" plan_start_date="2021-06-30T21:00:00" plan_end_date="2021-06-30T22:00:00">
      <zone zone_id="40" price="20.00"/>
    </plan>
    <plan plan_id="292" plan_start_date="2021-07-01T21:00:00" plan_end_date="2021-07-01T22:00:00"/>
  </base_plan>
  <base_plan base_plan_id="322" sell_mode="offline" title="Pantomima">
    <plan plan_id="1642" plan_start_date="2021-02-10T20:00:00" plan_end_date="2021-02-10T21:30:00"/>
  </base_plan>
  <base_plan base_plan_id="999" sell_mode="online" title="Rejected by the database">
    <plan plan_id="1" plan_start_date="2021-03-10T20:00:00" plan_end_date="2021-03-10T21:30:00"/>
  </base_plan>
</output></planList>"""


def _provider(name: str, url: str) -> Provider:
    return Provider(provider_id=uuid.uuid5(uuid.NAMESPACE_URL, url), name=name, url=url)


class _FakeRepository:
    def __init__(self, providers: List[Provider], reject: tuple = ()) -> None:
        self.providers = providers
        self.reject = reject
        self.persisted: List[str] = []

    def active_providers(self) -> List[Provider]:
        return self.providers

    def persist(self, provider_id, base_plan: BasePlanRecord) -> List[PersistedPlan]:
        if base_plan.base_plan_id in self.reject:
            raise PersistError("constraint violated", base_plan_id=base_plan.base_plan_id)
        self.persisted.append(base_plan.base_plan_id)
        return [
            PersistedPlan(
                provider_id=str(provider_id),
                base_plan_id=base_plan.base_plan_id,
                title=base_plan.title,
                sell_mode=base_plan.sell_mode,
                plan=plan,
            )
            for plan in base_plan.plans
        ]


class _FailingRepository(_FakeRepository):
    def active_providers(self) -> List[Provider]:
        raise PersistError("database down")


class _FakeFetcher:
    def __init__(self, feeds: Dict[str, bytes]) -> None:
        self.feeds = feeds

    def fetch(self, url: str) -> bytes:
        if url not in self.feeds:
            raise FetchError(f"Failed to fetch {url}: HTTP 500")
        return self.feeds[url]


def _worker(repository, fake_redis: FakeRedis, feeds: Dict[str, bytes], sweep: bool = False):
    index = IntervalIndex(fake_redis)
    details = DetailCache(fake_redis)
    return IngestionWorker(
        repository,
        IndexWriter(index, details),
        _FakeFetcher(feeds),
        sweeper=IndexSweeper(index, details) if sweep else None,
        concurrency=2,
    )


def test_process_provider_persists_everything_and_indexes_online_plans(fake_redis: FakeRedis) -> None:
    provider = _provider("good", GOOD_URL)
    repository = _FakeRepository([provider])

    report = _worker(repository, fake_redis, {GOOD_URL: FEED}).process_provider(provider)

    assert report.base_plans == 3
    assert report.persisted_plans == 4
    assert report.indexed == 3
    assert report.skipped == 1
    assert report.ok is True
    assert IntervalIndex(fake_redis).size() == (3, 3)


def test_persist_failure_is_isolated_to_its_base_plan(fake_redis: FakeRedis) -> None:
    provider = _provider("good", GOOD_URL)
    repository = _FakeRepository([provider], reject=("999",))

    report = _worker(repository, fake_redis, {GOOD_URL: FEED}).process_provider(provider)

    assert repository.persisted == ["291", "322"]
    assert report.persist_failures == ["999"]
    assert report.indexed == 2
    assert report.ok is False


def test_failing_provider_does_not_stop_the_cycle(fake_redis: FakeRedis) -> None:
    providers = [_provider("broken", BROKEN_URL), _provider("good", GOOD_URL)]

    reports = _worker(_FakeRepository(providers), fake_redis, {GOOD_URL: FEED}).run_cycle()

    by_name = {r.provider: r for r in reports}
    assert "HTTP 500" in by_name["broken"].error
    assert by_name["good"].indexed == 3


def test_unexpected_provider_error_is_reported_not_raised(fake_redis: FakeRedis) -> None:
    providers = [_provider("good", GOOD_URL)]

    reports = _worker(_FakeRepository(providers), fake_redis, {GOOD_URL: b"<planList><output>"}).run_cycle()
    assert reports[0].error is not None

    class _Exploding(_FakeFetcher):
        def fetch(self, url: str) -> bytes:
            raise RuntimeError("boom")

    worker = _worker(_FakeRepository(providers), fake_redis, {})
    worker._fetcher = _Exploding({})
    (report,) = worker.run_cycle()
    assert report.error == "boom"


def test_index_store_outage_is_reported_per_plan(fake_redis: FakeRedis) -> None:
    provider = _provider("good", GOOD_URL)
    worker = _worker(_FakeRepository([provider]), fake_redis, {GOOD_URL: FEED})
    fake_redis.down = True

    report = worker.process_provider(provider)

    assert report.persisted_plans == 4
    assert report.indexed == 0
    assert len(report.index_failures) == 3


def test_cycle_sweeps_after_indexing(fake_redis: FakeRedis) -> None:
    fake_redis.zsets = {"start_date": {"p9:1:1": 10.0}, "end_date": {"p9:1:1": 20.0}}
    providers = [_provider("good", GOOD_URL)]

    _worker(_FakeRepository(providers), fake_redis, {GOOD_URL: FEED}, sweep=True).run_cycle()

    assert "p9:1:1" not in fake_redis.zsets["start_date"]
    assert len(fake_redis.zsets["start_date"]) == 3


def test_provider_listing_failure_skips_cycle(fake_redis: FakeRedis) -> None:
    assert _worker(_FailingRepository([]), fake_redis, {}).run_cycle() == []


def test_run_forever_stops_when_event_is_set(fake_redis: FakeRedis) -> None:
    stop = threading.Event()
    worker = _worker(_FakeRepository([]), fake_redis, {})
    cycles = []

    def run_cycle():
        cycles.append(1)
        stop.set()
        return []

    worker.run_cycle = run_cycle
    worker.run_forever(interval_seconds=3600, stop=stop)

    assert cycles == [1]


@pytest.mark.parametrize(
    "failure",
    [StoreUnavailable("interval index scan failed"), redis.ResponseError("WRONGTYPE")],
)
def test_failed_sweep_still_returns_the_cycle_reports(fake_redis: FakeRedis, failure) -> None:
    worker = _worker(_FakeRepository([_provider("good", GOOD_URL)]), fake_redis, {GOOD_URL: FEED}, sweep=True)

    def broken_sweep():
        raise failure

    worker._sweeper.sweep = broken_sweep

    (report,) = worker.run_cycle()

    assert report.indexed == 3
    assert report.ok is True


def test_run_forever_keeps_cycling_after_sweep_failures(fake_redis: FakeRedis) -> None:
    stop = threading.Event()
    worker = _worker(_FakeRepository([_provider("good", GOOD_URL)]), fake_redis, {GOOD_URL: FEED}, sweep=True)
    sweeps = []

    def broken_sweep():
        sweeps.append(1)
        if len(sweeps) == 3:
            stop.set()
        raise StoreUnavailable("Connection refused")

    worker._sweeper.sweep = broken_sweep
    worker.run_forever(interval_seconds=0, stop=stop)

    assert len(sweeps) == 3
    assert IntervalIndex(fake_redis).size() == (3, 3)
