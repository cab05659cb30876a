"""Request handlers translating engine calls into response payloads.

The HTTP layer is out of scope; these handlers define the boundary contract
it consumes: a mapping in, ``HandlerResponse(status_code, body)`` out.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, ValidationError

from .constants import DEFAULT_HISTORY_LIMIT, DEFAULT_LIST_LIMIT
from .contracts import TriggerRequest, TriggerResponse
from .engine import WorkflowEngine
from .exceptions import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


class HandlerResponse(BaseModel):
    status_code: int = 200
    body: Dict[str, Any] = Field(default_factory=dict)


def _error(status_code: int, message: str) -> HandlerResponse:
    return HandlerResponse(status_code=status_code, body={"success": False, "error": message})


class WorkflowHandlers:
    """Entry points for triggering and inspecting workflows."""

    def __init__(self, engine: WorkflowEngine) -> None:
        self._engine = engine

    async def trigger(self, payload: Dict[str, Any]) -> HandlerResponse:
        """Accept ``{workflowType, parameters, priority?}`` and start the workflow."""
        try:
            request = TriggerRequest.model_validate(payload or {})
        except ValidationError:
            return _error(400, "Workflow type is required")
        try:
            instance = await self._engine.trigger(
                request.workflow_type,
                request.parameters,
                priority=request.priority,
                metadata=request.metadata,
            )
        except NotFoundError as e:
            return _error(404, str(e))
        body = TriggerResponse(workflow_id=instance.id, status=instance.status)
        return HandlerResponse(body=body.to_record())

    async def status(self, workflow_id: Optional[str]) -> HandlerResponse:
        if not workflow_id:
            return _error(400, "Workflow ID is required")
        try:
            instance = await self._engine.get_workflow(workflow_id)
        except NotFoundError as e:
            return _error(404, str(e))
        return HandlerResponse(body={"success": True, "workflow": instance.to_record()})

    async def list(
        self,
        status: Optional[str] = None,
        workflow_type: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> HandlerResponse:
        try:
            listing = await self._engine.list_workflows(
                status=status or None,
                workflow_type=workflow_type or None,
                limit=limit or DEFAULT_LIST_LIMIT,
            )
        except ValueError:
            return _error(400, f"Invalid status: {status}")
        return HandlerResponse(body={"success": True, **listing.to_record()})

    async def history(
        self, workflow_type: Optional[str] = None, limit: Optional[int] = None
    ) -> HandlerResponse:
        listing = await self._engine.workflow_history(
            workflow_type=workflow_type or None, limit=limit or DEFAULT_HISTORY_LIMIT
        )
        return HandlerResponse(body={"success": True, **listing.to_record()})

    async def cancel(self, workflow_id: Optional[str]) -> HandlerResponse:
        if not workflow_id:
            return _error(400, "Workflow ID is required")
        try:
            instance = await self._engine.cancel_workflow(workflow_id)
        except NotFoundError as e:
            return _error(404, str(e))
        except ConflictError as e:
            return _error(409, str(e))
        return HandlerResponse(
            body={
                "success": True,
                "message": "Workflow cancelled successfully",
                "workflow": instance.to_record(),
            }
        )
