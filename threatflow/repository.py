"""Workflow instance persistence on top of a key-value store."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from .constants import WORKFLOW_KEY_PREFIX
from .contracts import WorkflowInstance, WorkflowStatus
from .exceptions import WorkflowConflictError, WorkflowNotFoundError
from .storage import KeyValueStore

logger = logging.getLogger(__name__)


class WorkflowRepository:
    """Store one record per workflow instance, keyed by the instance id.

    Writes that must not overwrite a terminal record go through
    :meth:`save_if_active`, which serializes the read-check-write with an
    in-process lock.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store
        self._lock = asyncio.Lock()

    @property
    def store(self) -> KeyValueStore:
        return self._store

    async def save(self, instance: WorkflowInstance) -> None:
        """Persist ``instance`` unconditionally."""
        await self._store.put(instance.id, instance.to_record())

    async def save_if_active(self, instance: WorkflowInstance) -> bool:
        """Persist ``instance`` unless the stored record is already terminal.

        Returns ``False`` when the write was refused.
        """
        async with self._lock:
            stored = await self.get(instance.id)
            if stored is not None and stored.is_terminal:
                logger.info(
                    f"Refusing to overwrite {stored.status.value} workflow {instance.id}"
                )
                return False
            await self.save(instance)
            return True

    async def get(self, workflow_id: str) -> WorkflowInstance | None:
        record = await self._store.get(workflow_id)
        if record is None:
            return None
        return WorkflowInstance.model_validate(record)

    async def list(
        self,
        status: Optional[WorkflowStatus] = None,
        workflow_type: Optional[str] = None,
    ) -> List[WorkflowInstance]:
        """Return instances matching the filters, newest ``created_at`` first."""
        instances = [
            WorkflowInstance.model_validate(record)
            for _, record in await self._store.list(prefix=WORKFLOW_KEY_PREFIX)
        ]
        if status is not None:
            instances = [i for i in instances if i.status == status]
        if workflow_type is not None:
            instances = [i for i in instances if i.type == workflow_type]
        return sorted(instances, key=lambda i: i.created_at, reverse=True)

    async def finish_if_running(
        self, workflow_id: str, status: WorkflowStatus, reason: Optional[str] = None
    ) -> WorkflowInstance:
        """Move a running instance to terminal ``status`` under the write lock.

        Raises:
            WorkflowNotFoundError: No instance is stored under ``workflow_id``.
            WorkflowConflictError: The instance is already terminal.
        """
        async with self._lock:
            instance = await self.get(workflow_id)
            if instance is None:
                raise WorkflowNotFoundError(workflow_id)
            if instance.is_terminal:
                raise WorkflowConflictError(workflow_id, instance.status.value)
            instance.finish(status)
            instance.cancel_reason = reason
            await self.save(instance)
            return instance
