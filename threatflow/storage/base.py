"""Key-value storage abstraction."""

from __future__ import annotations

import abc
from typing import Any, Dict, List, Optional, Tuple

Record = Dict[str, Any]


class KeyValueStore(metaclass=abc.ABCMeta):
    """Abstract async key-value store holding JSON-compatible records.

    Backends hand out copies, so mutating a returned record never changes
    what is stored until it is written back with :meth:`put`.
    """

    async def connect(self) -> None:
        """Open connection to the backend (no-op by default)."""
        pass

    async def close(self) -> None:
        """Release backend resources (no-op by default)."""
        pass

    @abc.abstractmethod
    async def get(self, key: str) -> Optional[Record]:
        """Return the record stored under ``key`` or ``None``."""
        raise NotImplementedError

    @abc.abstractmethod
    async def put(self, key: str, value: Record) -> None:
        """Store ``value`` under ``key``, replacing any previous record."""
        raise NotImplementedError

    @abc.abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove ``key``. Returns ``True`` when something was deleted."""
        raise NotImplementedError

    @abc.abstractmethod
    async def list(self, prefix: Optional[str] = None) -> List[Tuple[str, Record]]:
        """Return ``(key, record)`` pairs whose key starts with ``prefix``, ordered by key."""
        raise NotImplementedError
