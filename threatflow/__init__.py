"""Threatflow: automated threat-response workflows."""

from .contracts import (
    StepDefinition,
    StepType,
    WorkflowDefinition,
    WorkflowInstance,
    WorkflowStatus,
)
from .engine import WorkflowEngine, create_engine
from .executors import ExecutionContext, StepExecutor
from .handlers import WorkflowHandlers
from .llm import LanguageModel, PydanticAILanguageModel
from .registry import DefinitionRegistry, default_registry
from .storage import get_store
from .threats import ThreatStore

__version__ = "0.1.0"
__all__ = [
    "DefinitionRegistry",
    "ExecutionContext",
    "LanguageModel",
    "PydanticAILanguageModel",
    "StepDefinition",
    "StepExecutor",
    "StepType",
    "ThreatStore",
    "WorkflowDefinition",
    "WorkflowEngine",
    "WorkflowHandlers",
    "WorkflowInstance",
    "WorkflowStatus",
    "create_engine",
    "default_registry",
    "get_store",
]
