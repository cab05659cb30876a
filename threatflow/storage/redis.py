"""Redis implementation of the key-value store."""

from __future__ import annotations

import json
from typing import Any, List, Optional, Tuple

try:
    import redis.asyncio as redis
except ImportError:
    redis = None

from .base import KeyValueStore, Record


class RedisKeyValueStore(KeyValueStore):
    """Redis-backed store; every key is prefixed with ``namespace``."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        password: Optional[str] = None,
        namespace: str = "threatflow:",
    ) -> None:
        if redis is None:
            raise ImportError("redis package is required for RedisKeyValueStore")

        self.host = host
        self.port = port
        self.db = db
        self.password = password
        self.namespace = namespace
        self._redis: Optional[Any] = None

    async def connect(self) -> None:
        """Connect to Redis."""
        self._redis = redis.Redis(
            host=self.host,
            port=self.port,
            db=self.db,
            password=self.password,
            decode_responses=True,
        )
        await self._redis.ping()

    async def close(self) -> None:
        """Disconnect from Redis."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    async def _client(self) -> Any:
        if self._redis is None:
            await self.connect()
        return self._redis

    # ------------------------------------------------------------------
    async def get(self, key: str) -> Optional[Record]:
        client = await self._client()
        raw = await client.get(self.namespace + key)
        return json.loads(raw) if raw is not None else None

    async def put(self, key: str, value: Record) -> None:
        client = await self._client()
        await client.set(self.namespace + key, json.dumps(value))

    async def delete(self, key: str) -> bool:
        client = await self._client()
        return bool(await client.delete(self.namespace + key))

    async def list(self, prefix: Optional[str] = None) -> List[Tuple[str, Record]]:
        client = await self._client()
        pattern = f"{self.namespace}{prefix or ''}*"
        keys = sorted([k async for k in client.scan_iter(match=pattern)])
        if not keys:
            return []
        values = await client.mget(keys)
        offset = len(self.namespace)
        return [
            (key[offset:], json.loads(raw))
            for key, raw in zip(keys, values)
            if raw is not None
        ]
