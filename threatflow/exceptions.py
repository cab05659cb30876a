"""Exception hierarchy for threatflow."""

from __future__ import annotations

__all__ = [
    "ThreatflowError",
    "NotFoundError",
    "UnknownWorkflowTypeError",
    "WorkflowNotFoundError",
    "ThreatNotFoundError",
    "ConflictError",
    "WorkflowConflictError",
    "StorageError",
]


class ThreatflowError(RuntimeError):
    """Base error for all threatflow components."""


class NotFoundError(ThreatflowError):
    """Raised when a requested entity does not exist."""


class UnknownWorkflowTypeError(NotFoundError):
    """Raised when a workflow type has no registered definition."""

    def __init__(self, workflow_type: str) -> None:
        super().__init__(f"Unknown workflow type: {workflow_type}")
        self.workflow_type = workflow_type


class WorkflowNotFoundError(NotFoundError):
    """Raised when no workflow instance is stored under an id."""

    def __init__(self, workflow_id: str) -> None:
        super().__init__(f"Workflow not found: {workflow_id}")
        self.workflow_id = workflow_id


class ThreatNotFoundError(NotFoundError):
    """Raised when no threat record is stored under an id."""

    def __init__(self, threat_id: str) -> None:
        super().__init__(f"Threat not found: {threat_id}")
        self.threat_id = threat_id


class ConflictError(ThreatflowError):
    """Raised when an operation is not allowed in the current state."""


class WorkflowConflictError(ConflictError):
    """Raised when a workflow in a terminal state is asked to change."""

    def __init__(self, workflow_id: str, status: str) -> None:
        super().__init__(f"Cannot cancel {status} workflow: {workflow_id}")
        self.workflow_id = workflow_id
        self.status = status


class StorageError(ThreatflowError):
    """Raised when a storage backend cannot complete an operation."""
