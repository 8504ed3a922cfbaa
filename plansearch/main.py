from __future__ import annotations

import signal
import sys
import threading
from datetime import datetime
from itertools import islice
from typing import Optional

import typer

from plansearch.config import get_settings
from plansearch.domain.timestamps import TIMESTAMP_FORMAT, parse_timestamp
from plansearch.errors import PlanSearchError
from plansearch.index.detail_cache import DetailCache
from plansearch.index.interval_index import IntervalIndex
from plansearch.index.keys import KEY_SCHEMA_VERSION, detail_pattern
from plansearch.index.sweeper import IndexSweeper
from plansearch.index.writer import IndexWriter
from plansearch.infrastructure.cache_factory import create_redis_client
from plansearch.infrastructure.db_factory import get_sync_connection
from plansearch.ingestion.fetcher import FeedFetcher
from plansearch.ingestion.worker import IngestionWorker
from plansearch.query.engine import QueryEngine
from plansearch.reporter import print_ingest_reports, print_results, print_sweep_report
from plansearch.storage.repository import apply_schema, connect_repository
from plansearch.utils.logging import configure_logging

app = typer.Typer(help="Plan Search CLI.")


def _setup_logging() -> None:
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)


def _parse_option(name: str, value: str) -> datetime:
    try:
        return parse_timestamp(value)
    except ValueError:
        raise typer.BadParameter(f"expected {TIMESTAMP_FORMAT}", param_hint=name)


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"redis={settings.redis_url} | key_schema=v{KEY_SCHEMA_VERSION} | "
        f"ttl={settings.detail_ttl_seconds}s max_matches={settings.max_matches} | "
        f"ingest every {settings.ingest_interval_seconds}s "
        f"(concurrency={settings.ingest_concurrency})"
    )


@app.command("init-db")
def init_db() -> None:
    """
    Create the relational schema if it does not exist.
    """
    _setup_logging()
    with get_sync_connection() as conn:
        apply_schema(conn)
    typer.echo("Schema applied.")


@app.command("add-provider")
def add_provider(
    name: str = typer.Argument(..., help="Provider display name."),
    url: str = typer.Argument(..., help="planList feed URL."),
    description: str = typer.Option("", "--description", "-d"),
) -> None:
    """
    Register (or reactivate) a provider feed.
    """
    _setup_logging()
    provider = connect_repository().register_provider(name, url, description)
    typer.echo(f"Provider {provider.name} registered as {provider.provider_id}.")


@app.command()
def ingest(
    once: bool = typer.Option(
        False,
        "--once",
        help="Run a single cycle and exit instead of looping.",
    ),
    interval: Optional[int] = typer.Option(
        None,
        "--interval",
        "-i",
        help="Seconds between cycles (default from settings).",
    ),
) -> None:
    """
    Fetch, persist and index every active provider feed.
    """
    _setup_logging()
    settings = get_settings()
    client = create_redis_client(settings)
    index = IntervalIndex(client)
    details = DetailCache(client, default_ttl=settings.detail_ttl_seconds)
    fetcher = FeedFetcher(timeout=settings.fetch_timeout_seconds)
    worker = IngestionWorker(
        connect_repository(),
        IndexWriter(index, details),
        fetcher,
        sweeper=IndexSweeper(index, details, batch_size=settings.sweep_batch_size),
        concurrency=settings.ingest_concurrency,
    )
    try:
        if once:
            print_ingest_reports(worker.run_cycle())
            return

        stop = threading.Event()
        signal.signal(signal.SIGTERM, lambda *_: stop.set())
        try:
            worker.run_forever(interval or settings.ingest_interval_seconds, stop)
        except KeyboardInterrupt:
            stop.set()
    finally:
        fetcher.close()
        client.close()


@app.command()
def search(
    starts_at: str = typer.Option(..., "--from", "-f", help=f"Window start, {TIMESTAMP_FORMAT}."),
    ends_at: str = typer.Option(..., "--to", "-t", help=f"Window end, {TIMESTAMP_FORMAT}."),
) -> None:
    """
    Query the interval index directly and print the matching plans.
    """
    _setup_logging()
    settings = get_settings()
    window = (_parse_option("--from", starts_at), _parse_option("--to", ends_at))
    client = create_redis_client(settings)
    try:
        engine = QueryEngine(
            IntervalIndex(client),
            DetailCache(client, default_ttl=settings.detail_ttl_seconds),
            max_matches=settings.max_matches,
            resolve_batch_size=settings.resolve_batch_size,
        )
        result = engine.search_datetimes(*window)
    finally:
        client.close()
    print_results(result.events, truncated=result.truncated)


@app.command()
def sweep() -> None:
    """
    Remove index members whose detail record has expired.
    """
    _setup_logging()
    settings = get_settings()
    client = create_redis_client(settings)
    try:
        sweeper = IndexSweeper(
            IntervalIndex(client),
            DetailCache(client, default_ttl=settings.detail_ttl_seconds),
            batch_size=settings.sweep_batch_size,
        )
        report = sweeper.sweep()
    finally:
        client.close()
    print_sweep_report(report)


@app.command()
def keys(
    tenant: str = typer.Option("*", "--tenant", help="Provider id, or * for all."),
    limit: int = typer.Option(50, "--limit", "-n", help="Maximum keys to print."),
) -> None:
    """
    List detail keys and index sizes. Scans the keyspace; not for production hot paths.
    """
    _setup_logging()
    settings = get_settings()
    client = create_redis_client(settings)
    try:
        index = IntervalIndex(client)
        details = DetailCache(client, default_ttl=settings.detail_ttl_seconds)
        starts, ends = index.size()
        typer.echo(f"{index.start_key}={starts} {index.end_key}={ends}")
        for key in islice(details.scan_keys(detail_pattern(tenant=tenant)), limit):
            typer.echo(key)
    finally:
        client.close()


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default from settings)."),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port (default from settings)."),
) -> None:
    """
    Run the REST API with uvicorn.
    """
    import uvicorn

    from plansearch.api.app import create_app

    _setup_logging()
    settings = get_settings()
    uvicorn.run(
        create_app(settings=settings),
        host=host or settings.api_host,
        port=port or settings.api_port,
        log_config=None,
    )


def main() -> None:
    try:
        app()
    except PlanSearchError as exc:
        typer.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
