"""
PostgreSQL connectivity for the plan repository.

One process-wide psycopg pool is shared by the ingestion threads; each
repository call borrows a connection for the length of one transaction.
Opening a dedicated connection (schema setup) is retried with tenacity.
"""

from __future__ import annotations

import atexit
import threading
from typing import Optional

import psycopg
from psycopg_pool import ConnectionPool
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from plansearch.config import Settings, get_settings
from plansearch.utils.logging import get_logger

log = get_logger(__name__)

TRANSIENT_DB_ERRORS = (psycopg.OperationalError, psycopg.InterfaceError)


def build_dsn(settings: Optional[Settings] = None) -> str:
    """postgresql:// URL for the configured database."""
    settings = settings or get_settings()
    return (
        f"postgresql://{settings.db_user}:{settings.db_password}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    )


class PoolManager:
    """
    Process-wide owner of the repository's connection pool.

    The pool is opened lazily on first use, sized from settings, and closed
    at interpreter exit.
    """

    _instance: Optional["PoolManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "PoolManager":
        with cls._lock:
            if cls._instance is None:
                instance = super().__new__(cls)
                instance._pool = None
                atexit.register(instance.close)
                cls._instance = instance
            return cls._instance

    def pool(self, settings: Optional[Settings] = None) -> ConnectionPool:
        """
        The shared pool, opened on first call.

        Parameters
        ----------
        settings : Settings | None
            Used only when the pool is opened; later calls return the
            existing pool unchanged.
        """
        with self._lock:
            if self._pool is None:
                settings = settings or get_settings()
                self._pool = ConnectionPool(
                    conninfo=build_dsn(settings),
                    min_size=settings.db_pool_min_size,
                    max_size=settings.db_pool_max_size,
                    open=True,
                )
                log.info(
                    "Database pool opened",
                    extra={
                        "db_host": settings.db_host,
                        "db_name": settings.db_name,
                        "max_size": settings.db_pool_max_size,
                    },
                )
            return self._pool

    def close(self) -> None:
        with self._lock:
            pool, self._pool = self._pool, None
        if pool is None:
            return
        try:
            pool.close()
        except psycopg.Error:
            log.warning("Database pool did not close cleanly", exc_info=True)


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type(TRANSIENT_DB_ERRORS),
    reraise=True,
)
def get_sync_connection(dsn: Optional[str] = None) -> psycopg.Connection:
    """
    Open a dedicated connection, retrying transient failures.

    Raises
    ------
    psycopg.OperationalError
        If the database is still unreachable after three attempts.
    """
    return psycopg.connect(dsn or build_dsn())


def get_sync_pool(settings: Optional[Settings] = None) -> ConnectionPool:
    return PoolManager().pool(settings)


__all__ = ["PoolManager", "TRANSIENT_DB_ERRORS", "build_dsn", "get_sync_connection", "get_sync_pool"]
