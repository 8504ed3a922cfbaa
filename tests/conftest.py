"""
Pytest configuration for Plan Search.

Provides fixtures for:
- An in-memory Redis stand-in (see tests/fakes.py)
- Index, cache, writer and engine instances wired to it
- Settings override for integration tests
"""

from __future__ import annotations

import os

import pytest

from plansearch.config import Settings
from plansearch.index.detail_cache import DetailCache
from plansearch.index.interval_index import IntervalIndex
from plansearch.index.writer import IndexWriter
from plansearch.query.engine import QueryEngine
from tests.fakes import FakeRedis


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def index(fake_redis: FakeRedis) -> IntervalIndex:
    return IntervalIndex(fake_redis)


@pytest.fixture
def details(fake_redis: FakeRedis) -> DetailCache:
    return DetailCache(fake_redis, default_ttl=3600)


@pytest.fixture
def writer(index: IntervalIndex, details: DetailCache) -> IndexWriter:
    return IndexWriter(index, details)


@pytest.fixture
def engine(index: IntervalIndex, details: DetailCache) -> QueryEngine:
    return QueryEngine(index, details, max_matches=500, resolve_batch_size=2)


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "plansearch"),
        redis_url=os.getenv("REDIS_URL", "redis://localhost:6379/15"),
        log_level="DEBUG",
    )
