"""PostgreSQL implementation of the key-value store."""

from __future__ import annotations

import json
from typing import List, Optional, Tuple

import asyncpg

from .base import KeyValueStore, Record


class PostgresKeyValueStore(KeyValueStore):
    """Persist records as JSONB rows using PostgreSQL."""

    def __init__(self, dsn: str):
        self._dsn = dsn
        self._initialized = False

    async def _connect(self) -> asyncpg.Connection:
        conn = await asyncpg.connect(self._dsn)
        if not self._initialized:
            await self._ensure_schema(conn)
            self._initialized = True
        return conn

    async def _ensure_schema(self, conn: asyncpg.Connection) -> None:
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value JSONB NOT NULL
            )
            """
        )

    @staticmethod
    def _decode(value: str | dict) -> Record:
        return json.loads(value) if isinstance(value, str) else value

    # ------------------------------------------------------------------
    async def get(self, key: str) -> Optional[Record]:
        conn = await self._connect()
        try:
            row = await conn.fetchrow("SELECT value FROM kv_store WHERE key = $1", key)
        finally:
            await conn.close()
        return self._decode(row["value"]) if row else None

    async def put(self, key: str, value: Record) -> None:
        conn = await self._connect()
        try:
            await conn.execute(
                """
                INSERT INTO kv_store (key, value) VALUES ($1, $2::jsonb)
                ON CONFLICT (key) DO UPDATE SET value = EXCLUDED.value
                """,
                key,
                json.dumps(value),
            )
        finally:
            await conn.close()

    async def delete(self, key: str) -> bool:
        conn = await self._connect()
        try:
            status = await conn.execute("DELETE FROM kv_store WHERE key = $1", key)
        finally:
            await conn.close()
        return status != "DELETE 0"

    async def list(self, prefix: Optional[str] = None) -> List[Tuple[str, Record]]:
        conn = await self._connect()
        try:
            if prefix is None:
                rows = await conn.fetch("SELECT key, value FROM kv_store ORDER BY key")
            else:
                rows = await conn.fetch(
                    "SELECT key, value FROM kv_store WHERE left(key, length($1)) = $1 ORDER BY key",
                    prefix,
                )
        finally:
            await conn.close()
        return [(r["key"], self._decode(r["value"])) for r in rows]
