"""SQLite implementation of the key-value store."""

from __future__ import annotations

import asyncio
import json
import sqlite3
from pathlib import Path
from typing import Any, List, Optional, Tuple

from .base import KeyValueStore, Record


class SQLiteKeyValueStore(KeyValueStore):
    """Persist records as JSON text in a single SQLite table."""

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._ensure_schema()

    # ------------------------------------------------------------------
    # Schema management
    def _ensure_schema(self) -> None:
        cur = self._conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
            """
        )
        self._conn.commit()

    # ------------------------------------------------------------------
    # Helper methods
    def _execute(self, query: str, *params: Any) -> int:
        cur = self._conn.cursor()
        cur.execute(query, params)
        self._conn.commit()
        return cur.rowcount

    def _fetchone(self, query: str, *params: Any) -> sqlite3.Row | None:
        cur = self._conn.cursor()
        cur.execute(query, params)
        return cur.fetchone()

    def _fetchall(self, query: str, *params: Any) -> list[sqlite3.Row]:
        cur = self._conn.cursor()
        cur.execute(query, params)
        return cur.fetchall()

    # ------------------------------------------------------------------
    # Store API
    async def close(self) -> None:
        await asyncio.to_thread(self._conn.close)

    async def get(self, key: str) -> Optional[Record]:
        row = await asyncio.to_thread(
            self._fetchone, "SELECT value FROM kv_store WHERE key = ?", key
        )
        return json.loads(row["value"]) if row else None

    async def put(self, key: str, value: Record) -> None:
        await asyncio.to_thread(
            self._execute,
            """
            INSERT INTO kv_store (key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value
            """,
            key,
            json.dumps(value),
        )

    async def delete(self, key: str) -> bool:
        deleted = await asyncio.to_thread(
            self._execute, "DELETE FROM kv_store WHERE key = ?", key
        )
        return deleted > 0

    async def list(self, prefix: Optional[str] = None) -> List[Tuple[str, Record]]:
        if prefix is None:
            rows = await asyncio.to_thread(
                self._fetchall, "SELECT key, value FROM kv_store ORDER BY key"
            )
        else:
            # substr keeps '_' and '%' in prefixes literal, unlike LIKE
            rows = await asyncio.to_thread(
                self._fetchall,
                "SELECT key, value FROM kv_store WHERE substr(key, 1, length(?)) = ? ORDER BY key",
                prefix,
                prefix,
            )
        return [(row["key"], json.loads(row["value"])) for row in rows]
