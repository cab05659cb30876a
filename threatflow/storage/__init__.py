"""Storage backends for threatflow records."""

from __future__ import annotations

import os
from typing import Optional
from urllib.parse import urlparse

from ..config import ThreatflowConfig, load_config
from ..exceptions import StorageError
from .base import KeyValueStore, Record
from .inmemory import InMemoryKeyValueStore
from .sqlite import SQLiteKeyValueStore

try:  # pragma: no cover - optional dependency
    from .postgres import PostgresKeyValueStore
except Exception:  # pragma: no cover - optional dependency
    PostgresKeyValueStore = None  # type: ignore

_store_instance: KeyValueStore | None = None


def _redis_store(database_url: str, config: ThreatflowConfig) -> KeyValueStore:
    from .redis import RedisKeyValueStore

    parsed = urlparse(database_url)
    redis_conf = config.storage.redis
    db = parsed.path.lstrip("/")
    return RedisKeyValueStore(
        host=parsed.hostname or redis_conf.host,
        port=parsed.port or redis_conf.port,
        db=int(db) if db else redis_conf.db,
        password=parsed.password or redis_conf.password,
        namespace=redis_conf.namespace,
    )


def get_store(
    database_url: Optional[str] = None, config: Optional[ThreatflowConfig] = None
) -> KeyValueStore:
    """Factory function to obtain a key-value store.

    The backend is selected based on ``database_url`` which can be provided
    explicitly, via environment variable ``THREATFLOW_DATABASE_URL`` or
    ``DATABASE_URL``, or from loaded configuration. When no database is
    configured, an in-memory store is returned.
    """

    global _store_instance
    if _store_instance is not None and database_url is None and config is None:
        return _store_instance

    config = config or load_config()
    database_url = (
        database_url
        or os.getenv("THREATFLOW_DATABASE_URL")
        or os.getenv("DATABASE_URL")
        or getattr(config, "database_url", None)
    )

    if not database_url:
        _store_instance = InMemoryKeyValueStore()
        return _store_instance

    if database_url.startswith("sqlite://"):
        path = database_url.replace("sqlite://", "", 1)
        _store_instance = SQLiteKeyValueStore(path)
    elif database_url.startswith("postgres://") or database_url.startswith(
        "postgresql://"
    ):
        if PostgresKeyValueStore is None:
            raise StorageError("Postgres support not available (install asyncpg)")
        _store_instance = PostgresKeyValueStore(database_url)
    elif database_url.startswith("redis://"):
        _store_instance = _redis_store(database_url, config)
    else:
        raise ValueError(f"Unsupported database backend: {database_url}")

    return _store_instance


__all__ = [
    "KeyValueStore",
    "Record",
    "InMemoryKeyValueStore",
    "SQLiteKeyValueStore",
    "PostgresKeyValueStore",
    "get_store",
]
