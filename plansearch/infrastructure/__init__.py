"""
Infrastructure package for Plan Search.

Centralizes connectivity concerns: the PostgreSQL pool and the Redis client.
Keep this layer focused on I/O and resource management, decoupled from
index, query and ingestion logic.
"""

from plansearch.infrastructure.cache_factory import (
    create_redis_client,
    is_healthy,
    store_errors,
)
from plansearch.infrastructure.db_factory import (
    PoolManager,
    build_dsn,
    get_sync_connection,
    get_sync_pool,
)

__all__ = [
    "PoolManager",
    "build_dsn",
    "create_redis_client",
    "get_sync_connection",
    "get_sync_pool",
    "is_healthy",
    "store_errors",
]
