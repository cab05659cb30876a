"""Step executors keyed by step type."""

from __future__ import annotations

from typing import Dict, Type

from ..contracts import StepType
from .ai import AIAnalysisExecutor, ResponseGenerationExecutor, extract_actions
from .base import ExecutionContext, StepExecutor, StepOutcome
from .collection import DataCollectionExecutor
from .correlation import ThreatCorrelationExecutor
from .integration import IntegrationExecutor
from .notification import NotificationExecutor

EXECUTOR_TYPES: Dict[StepType, Type[StepExecutor]] = {
    executor.step_type: executor
    for executor in (
        AIAnalysisExecutor,
        ThreatCorrelationExecutor,
        NotificationExecutor,
        DataCollectionExecutor,
        ResponseGenerationExecutor,
        IntegrationExecutor,
    )
}


def build_executors(context: ExecutionContext) -> Dict[StepType, StepExecutor]:
    """Instantiate one executor per step type sharing ``context``."""
    return {step_type: cls(context) for step_type, cls in EXECUTOR_TYPES.items()}


__all__ = [
    "AIAnalysisExecutor",
    "DataCollectionExecutor",
    "EXECUTOR_TYPES",
    "ExecutionContext",
    "IntegrationExecutor",
    "NotificationExecutor",
    "ResponseGenerationExecutor",
    "StepExecutor",
    "StepOutcome",
    "ThreatCorrelationExecutor",
    "build_executors",
    "extract_actions",
]
