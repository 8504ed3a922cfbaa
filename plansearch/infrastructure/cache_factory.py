"""
Redis client factory for Plan Search.

Builds the single `redis.Redis` handle a process shares between the interval
index, the detail cache and the health check. The handle wraps a connection
pool and is safe to share across threads; components receive it through
their constructors rather than reading a module-level global.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Generator, Optional

import redis
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from plansearch.config import Settings, get_settings
from plansearch.errors import StoreUnavailable
from plansearch.utils.logging import get_logger

log = get_logger(__name__)

# Failures that mean the store is unreachable rather than that a command was wrong.
STORE_UNAVAILABLE_ERRORS = (redis.ConnectionError, redis.TimeoutError)


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type(STORE_UNAVAILABLE_ERRORS),
    reraise=True,
)
def _connect(settings: Settings) -> redis.Redis:
    client = redis.Redis.from_url(
        settings.redis_url,
        socket_timeout=settings.redis_socket_timeout,
        socket_connect_timeout=settings.redis_connect_timeout,
        health_check_interval=30,
    )
    client.ping()
    return client


def create_redis_client(settings: Optional[Settings] = None) -> redis.Redis:
    """
    Create a Redis client and verify it with PING.

    Retries up to 3 times with exponential backoff for transient failures.

    Raises
    ------
    StoreUnavailable
        If the store is still unreachable after all retry attempts.
    """
    settings = settings or get_settings()
    try:
        client = _connect(settings)
    except STORE_UNAVAILABLE_ERRORS as exc:
        raise StoreUnavailable(f"Redis unreachable at {settings.redis_url}: {exc}") from exc
    log.info("Redis client connected", extra={"redis_url": settings.redis_url})
    return client


@contextmanager
def store_errors(operation: str) -> Generator[None, None, None]:
    """Translate connectivity failures raised inside the block into StoreUnavailable."""
    try:
        yield
    except STORE_UNAVAILABLE_ERRORS as exc:
        raise StoreUnavailable(f"{operation} failed: {exc}") from exc


def is_healthy(client: redis.Redis) -> bool:
    """Whether the store answers PING."""
    try:
        return bool(client.ping())
    except redis.RedisError as exc:
        log.warning("Redis health check failed", extra={"error": str(exc)})
        return False


__all__ = [
    "STORE_UNAVAILABLE_ERRORS",
    "create_redis_client",
    "is_healthy",
    "store_errors",
]
