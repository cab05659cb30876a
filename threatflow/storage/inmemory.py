"""In-memory implementation of the key-value store."""

from __future__ import annotations

import copy
from typing import Dict, List, Optional, Tuple

from .base import KeyValueStore, Record


class InMemoryKeyValueStore(KeyValueStore):
    """Store records in local memory.

    Useful for tests or when no database is configured. Data is not
    persisted across process restarts.
    """

    def __init__(self) -> None:
        self._records: Dict[str, Record] = {}

    async def get(self, key: str) -> Optional[Record]:
        record = self._records.get(key)
        return copy.deepcopy(record) if record is not None else None

    async def put(self, key: str, value: Record) -> None:
        self._records[key] = copy.deepcopy(value)

    async def delete(self, key: str) -> bool:
        return self._records.pop(key, None) is not None

    async def list(self, prefix: Optional[str] = None) -> List[Tuple[str, Record]]:
        return [
            (key, copy.deepcopy(value))
            for key, value in sorted(self._records.items())
            if prefix is None or key.startswith(prefix)
        ]
