"""
Ingestion worker: fetch provider feeds, persist them, index online plans.

One cycle loads the active providers, processes them concurrently, and then
sweeps ghost members out of the interval index. Failures are isolated at
every level: a provider that cannot be fetched does not stop the others, a
base plan that cannot be persisted does not stop its siblings, and a plan
that cannot be indexed does not stop the rest of its base plan.

Usage (example from CLI):
    worker = IngestionWorker(repository, writer, fetcher, sweeper=sweeper)
    reports = worker.run_cycle()
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List, Optional, Protocol

import redis

from plansearch.domain.models import BasePlanRecord, PersistedPlan, Provider
from plansearch.errors import FetchError, ParseError, PersistError, PlanSearchError
from plansearch.index.sweeper import IndexSweeper
from plansearch.index.writer import IndexWriter
from plansearch.ingestion.xml_parser import parse_plan_list
from plansearch.utils.logging import get_logger

log = get_logger(__name__)


class Repository(Protocol):
    def active_providers(self) -> List[Provider]: ...

    def persist(self, provider_id, base_plan: BasePlanRecord) -> List[PersistedPlan]: ...


class Fetcher(Protocol):
    def fetch(self, url: str) -> bytes: ...


@dataclass
class ProviderReport:
    """Per-provider outcome of one ingestion cycle."""

    provider: str
    base_plans: int = 0
    persisted_plans: int = 0
    indexed: int = 0
    skipped: int = 0
    persist_failures: List[str] = field(default_factory=list)
    index_failures: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and not self.persist_failures and not self.index_failures


class IngestionWorker:
    """
    Drives fetch → parse → persist → index for every active provider.

    Parameters
    ----------
    repository : Repository
    writer : IndexWriter
    fetcher : Fetcher
    sweeper : IndexSweeper | None
        Run after each cycle when given.
    concurrency : int
        Providers processed in parallel.
    """

    def __init__(
        self,
        repository: Repository,
        writer: IndexWriter,
        fetcher: Fetcher,
        sweeper: Optional[IndexSweeper] = None,
        concurrency: int = 4,
    ) -> None:
        self._repository = repository
        self._writer = writer
        self._fetcher = fetcher
        self._sweeper = sweeper
        self._concurrency = max(1, concurrency)

    def process_provider(self, provider: Provider) -> ProviderReport:
        report = ProviderReport(provider=provider.name)
        log.info(
            f"[PROVIDER START] {provider.name}",
            extra={"provider_id": str(provider.provider_id), "url": provider.url},
        )
        try:
            base_plans = parse_plan_list(self._fetcher.fetch(provider.url))
        except (FetchError, ParseError) as exc:
            log.error(
                f"[PROVIDER FAILED] {provider.name}",
                extra={"provider_id": str(provider.provider_id), "error": str(exc)},
            )
            report.error = str(exc)
            return report

        report.base_plans = len(base_plans)
        if not base_plans:
            log.warning(f"[PROVIDER EMPTY] {provider.name}", extra={"url": provider.url})

        for base_plan in base_plans:
            try:
                persisted = self._repository.persist(provider.provider_id, base_plan)
            except PersistError as exc:
                report.persist_failures.append(base_plan.base_plan_id)
                log.error(
                    "Skipping base plan after persistence failure",
                    extra={"base_plan_id": base_plan.base_plan_id, "error": str(exc)},
                )
                continue

            report.persisted_plans += len(persisted)
            index_report = self._writer.index_many(persisted)
            report.indexed += len(index_report.indexed)
            report.skipped += len(index_report.skipped)
            report.index_failures.extend(err.composite_id for err in index_report.failed)

        log.info(
            f"[PROVIDER COMPLETE] {provider.name}",
            extra={
                "base_plans": report.base_plans,
                "persisted_plans": report.persisted_plans,
                "indexed": report.indexed,
                "skipped": report.skipped,
                "persist_failures": len(report.persist_failures),
                "index_failures": len(report.index_failures),
            },
        )
        return report

    def _process_isolated(self, provider: Provider) -> ProviderReport:
        try:
            return self.process_provider(provider)
        except Exception as exc:  # noqa: BLE001 - intentional broad catch to isolate providers
            log.exception(f"[PROVIDER FAILED] {provider.name}")
            return ProviderReport(provider=provider.name, error=str(exc))

    def run_cycle(self) -> List[ProviderReport]:
        """Process all active providers once, then sweep the index."""
        try:
            providers = self._repository.active_providers()
        except PersistError as exc:
            log.error("Cannot load providers; cycle skipped", extra={"error": str(exc)})
            return []

        log.info(f"[CYCLE START] {len(providers)} provider(s)")
        with ThreadPoolExecutor(max_workers=self._concurrency) as pool:
            reports = list(pool.map(self._process_isolated, providers))

        if self._sweeper is not None:
            try:
                self._sweeper.sweep()
            except (PlanSearchError, redis.RedisError) as exc:
                log.error("Index sweep failed", extra={"error": str(exc)})

        log.info(
            "[CYCLE COMPLETE]",
            extra={
                "providers": len(reports),
                "failed_providers": sum(1 for r in reports if r.error),
                "indexed": sum(r.indexed for r in reports),
            },
        )
        return reports

    def run_forever(self, interval_seconds: int, stop: Optional[threading.Event] = None) -> None:
        """Run cycles every `interval_seconds` until `stop` is set."""
        stop = stop or threading.Event()
        while not stop.is_set():
            self.run_cycle()
            log.info(f"Sleeping for {interval_seconds} seconds before next cycle")
            stop.wait(timeout=interval_seconds)


__all__ = ["IngestionWorker", "ProviderReport"]
