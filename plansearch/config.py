"""
Configuration settings for Plan Search.

Uses Pydantic Settings to load environment variables for the PostgreSQL
store, the Redis interval index, the ingestion worker and the REST API.
"""
from __future__ import annotations

from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("plansearch", alias="DB_NAME")
    db_pool_min_size: int = Field(1, alias="DB_POOL_MIN_SIZE")
    db_pool_max_size: int = Field(10, alias="DB_POOL_MAX_SIZE")

    # Redis
    redis_url: str = Field("redis://localhost:6379/0", alias="REDIS_URL")
    redis_socket_timeout: float = Field(5.0, alias="REDIS_SOCKET_TIMEOUT")
    redis_connect_timeout: float = Field(5.0, alias="REDIS_CONNECT_TIMEOUT")

    # Interval index / detail cache
    detail_ttl_seconds: int = Field(3600, alias="DETAIL_TTL_SECONDS")
    max_matches: int = Field(500, alias="MAX_MATCHES")
    resolve_batch_size: int = Field(100, alias="RESOLVE_BATCH_SIZE")
    sweep_batch_size: int = Field(500, alias="SWEEP_BATCH_SIZE")

    # Ingestion
    ingest_interval_seconds: int = Field(300, alias="INGEST_INTERVAL_SECONDS")
    ingest_concurrency: int = Field(4, alias="INGEST_CONCURRENCY")
    fetch_timeout_seconds: float = Field(15.0, alias="FETCH_TIMEOUT_SECONDS")

    # API
    api_host: str = Field("127.0.0.1", alias="API_HOST")
    api_port: int = Field(8080, alias="API_PORT")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
