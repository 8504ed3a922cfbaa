"""
Fixtures for store-backed integration tests.

Redis tests run against database 15 of REDIS_URL (flushed around each test);
PostgreSQL tests apply db/init.sql and truncate the tables around each test.
"""

from __future__ import annotations

from typing import Generator

import psycopg
import pytest
import redis
from psycopg_pool import ConnectionPool

from plansearch.config import Settings
from plansearch.infrastructure.db_factory import build_dsn
from plansearch.storage.repository import PlanRepository, apply_schema

_TRUNCATE = "TRUNCATE TABLE public.zones, public.plans, public.base_plans, public.providers CASCADE;"


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    return build_dsn(test_settings)


@pytest.fixture(scope="session")
def redis_available(test_settings: Settings) -> bool:
    try:
        return bool(redis.Redis.from_url(test_settings.redis_url, socket_connect_timeout=2).ping())
    except redis.RedisError:
        return False


@pytest.fixture
def redis_client(test_settings: Settings, redis_available: bool) -> Generator[redis.Redis, None, None]:
    if not redis_available:
        pytest.skip("Redis not available for integration tests")
    client = redis.Redis.from_url(test_settings.redis_url)
    client.flushdb()
    try:
        yield client
    finally:
        client.flushdb()
        client.close()


@pytest.fixture(scope="session")
def db_pool(test_dsn: str) -> Generator[ConnectionPool, None, None]:
    """
    Session-scoped pool with the schema applied.

    Skips tests if the database is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            apply_schema(conn)
    except psycopg.OperationalError:
        pytest.skip("Database not available for integration tests")

    pool = ConnectionPool(conninfo=test_dsn, min_size=1, max_size=4, open=True)
    try:
        yield pool
    finally:
        pool.close()


@pytest.fixture
def repository(db_pool: ConnectionPool) -> Generator[PlanRepository, None, None]:
    """
    Repository over clean tables.
    """
    with db_pool.connection() as conn:
        conn.execute(_TRUNCATE)
    yield PlanRepository(db_pool)
    with db_pool.connection() as conn:
        conn.execute(_TRUNCATE)
