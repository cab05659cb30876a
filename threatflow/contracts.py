"""Core data contracts for threatflow workflows."""

from __future__ import annotations

import random
import string
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .constants import DEFAULT_PRIORITY, WORKFLOW_KEY_PREFIX

_ID_ALPHABET = string.ascii_lowercase + string.digits


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_id(prefix: str) -> str:
    """Return ``<prefix><epoch-millis>_<9 random base36 chars>``.

    Uniqueness is best-effort: ids sort roughly by creation time and the
    random suffix separates ids created within the same millisecond.
    """
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"{prefix}{int(time.time() * 1000)}_{suffix}"


def generate_workflow_id() -> str:
    return generate_id(WORKFLOW_KEY_PREFIX)


class WireModel(BaseModel):
    """Base model exchanged with storage and callers using camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_record(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible mapping."""
        return self.model_dump(mode="json", by_alias=True)


class StepType(str, Enum):
    """Kinds of step an executor can be registered for."""

    AI_ANALYSIS = "ai_analysis"
    THREAT_CORRELATION = "threat_correlation"
    NOTIFICATION = "notification"
    DATA_COLLECTION = "data_collection"
    RESPONSE_GENERATION = "response_generation"
    INTEGRATION = "integration"


class WorkflowStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not WorkflowStatus.RUNNING


class StepDefinition(WireModel):
    """One step of a workflow definition."""

    name: str
    type: StepType
    config: Dict[str, Any] = Field(default_factory=dict)


class WorkflowDefinition(WireModel):
    """Ordered list of steps registered under a workflow type."""

    name: str
    description: Optional[str] = None
    steps: List[StepDefinition] = Field(default_factory=list)


class StepResultEntry(WireModel):
    """Outcome of one attempted step."""

    step_index: int
    step_name: str
    result: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utcnow)


class StepErrorEntry(WireModel):
    """Failure recorded against a step, or against the run itself."""

    step: str
    error: str
    timestamp: datetime = Field(default_factory=utcnow)


class WorkflowInstance(WireModel):
    """Persisted runtime record of one triggered workflow."""

    id: str = Field(default_factory=generate_workflow_id)
    type: str
    status: WorkflowStatus = WorkflowStatus.RUNNING
    priority: str = DEFAULT_PRIORITY
    created_at: datetime = Field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    parameters: Dict[str, Any] = Field(default_factory=dict)
    steps: List[StepDefinition] = Field(default_factory=list)
    current_step: int = 0
    results: List[StepResultEntry] = Field(default_factory=list)
    errors: List[StepErrorEntry] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    cancel_reason: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def record_result(self, index: int, result: Dict[str, Any]) -> StepResultEntry:
        """Append the result of the step at ``index``."""
        entry = StepResultEntry(
            step_index=index, step_name=self.steps[index].name, result=result
        )
        self.results.append(entry)
        return entry

    def finish(self, status: WorkflowStatus) -> None:
        """Move to a terminal ``status`` and stamp ``completed_at``."""
        if self.is_terminal:
            raise ValueError(f"Workflow {self.id} is already {self.status.value}")
        if not status.is_terminal:
            raise ValueError(f"{status.value} is not a terminal status")
        self.status = status
        self.completed_at = utcnow()

    def fail(self, step: str, error: str) -> None:
        """Record ``error`` against ``step`` and mark the workflow failed."""
        self.errors.append(StepErrorEntry(step=step, error=error))
        self.finish(WorkflowStatus.FAILED)


class WorkflowListing(WireModel):
    """Page of workflow instances plus the count before truncation."""

    workflows: List[WorkflowInstance] = Field(default_factory=list)
    total: int = 0


class TriggerRequest(WireModel):
    """Payload accepted by the trigger entry point."""

    workflow_type: str = Field(min_length=1)
    parameters: Dict[str, Any] = Field(default_factory=dict)
    priority: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("parameters", "metadata", mode="before")
    @classmethod
    def _none_as_empty(cls, v: Any) -> Any:
        return {} if v is None else v


class TriggerResponse(WireModel):
    success: bool = True
    workflow_id: str
    status: WorkflowStatus = WorkflowStatus.RUNNING
