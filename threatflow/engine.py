"""Workflow engine: triggers instances and runs their steps in order."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional

from .config import ThreatflowConfig, load_config
from .constants import (
    DEFAULT_CANCEL_REASON,
    DEFAULT_HISTORY_LIMIT,
    DEFAULT_LIST_LIMIT,
    DEFAULT_PRIORITY,
    WORKFLOW_EXECUTION_STEP,
)
from .contracts import (
    StepDefinition,
    StepErrorEntry,
    StepType,
    WorkflowInstance,
    WorkflowListing,
    WorkflowStatus,
    utcnow,
)
from .exceptions import UnknownWorkflowTypeError, WorkflowNotFoundError
from .executors import ExecutionContext, StepExecutor, StepOutcome, build_executors
from .llm import LanguageModel, PydanticAILanguageModel
from .registry import DefinitionRegistry, default_registry
from .repository import WorkflowRepository
from .storage import KeyValueStore, get_store

logger = logging.getLogger(__name__)


class WorkflowEngine:
    """Creates workflow instances and executes their steps.

    Each triggered instance gets exactly one ``asyncio`` task that owns the
    instance while it runs. The task persists the instance after every
    mutation; persisting is refused once the stored record is terminal, which
    is how a cancel issued between steps stops the loop.
    """

    def __init__(
        self,
        store: KeyValueStore,
        registry: Optional[DefinitionRegistry] = None,
        executors: Optional[Mapping[StepType, StepExecutor]] = None,
        context: Optional[ExecutionContext] = None,
    ) -> None:
        self._repository = WorkflowRepository(store)
        self._registry = registry or default_registry()
        if executors is None:
            executors = build_executors(context or ExecutionContext(store=store))
        self._executors: Dict[StepType, StepExecutor] = dict(executors)
        self._tasks: Dict[str, asyncio.Task] = {}

    @property
    def registry(self) -> DefinitionRegistry:
        return self._registry

    @property
    def repository(self) -> WorkflowRepository:
        return self._repository

    @property
    def running(self) -> List[str]:
        """Ids of instances whose step loop has not finished yet."""
        return list(self._tasks)

    # ------------------------------------------------------------------
    # Trigger
    async def trigger(
        self,
        workflow_type: str,
        parameters: Optional[Dict[str, Any]] = None,
        priority: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> WorkflowInstance:
        """Create and persist a new instance, then start its steps in the background.

        Returns the freshly stored ``running`` instance without waiting for
        any step to run.

        Raises:
            UnknownWorkflowTypeError: ``workflow_type`` has no definition.
        """
        definition = self._registry.resolve(workflow_type)
        if definition is None:
            raise UnknownWorkflowTypeError(workflow_type)

        parameters = dict(parameters or {})
        now = utcnow()
        instance = WorkflowInstance(
            type=workflow_type,
            priority=priority or DEFAULT_PRIORITY,
            created_at=now,
            started_at=now,
            parameters=parameters,
            steps=[step.model_copy(deep=True) for step in definition.steps],
            metadata={
                "triggeredBy": parameters.get("userId", "system"),
                **(metadata or {}),
            },
        )
        await self._repository.save(instance)
        self._schedule(instance)
        logger.info(
            f"Triggered workflow {instance.id} (type={workflow_type}, steps={len(instance.steps)})"
        )
        return instance

    def _schedule(self, instance: WorkflowInstance) -> None:
        workflow_id = instance.id
        task = asyncio.create_task(
            self._run(instance.model_copy(deep=True)), name=f"workflow:{workflow_id}"
        )
        self._tasks[workflow_id] = task
        task.add_done_callback(lambda _: self._tasks.pop(workflow_id, None))

    # ------------------------------------------------------------------
    # Step loop
    async def _run(self, instance: WorkflowInstance) -> None:
        try:
            await self._execute_steps(instance)
        except asyncio.CancelledError:
            logger.warning(f"Workflow {instance.id} interrupted by shutdown")
            await self._record_fault(instance, "Workflow execution interrupted")
            raise
        except Exception as e:
            # Nobody awaits this task, so the fault is recorded on the instance.
            logger.exception(f"Workflow {instance.id} execution failed")
            await self._record_fault(instance, str(e) or type(e).__name__)

    async def _execute_steps(self, instance: WorkflowInstance) -> None:
        for index, step in enumerate(instance.steps):
            instance.current_step = index
            if not await self._repository.save_if_active(instance):
                logger.info(f"Workflow {instance.id} stopped before step {step.name}")
                return

            outcome = await self.execute_step(step, instance.parameters)
            instance.record_result(index, outcome)
            if outcome.get("error") is not None:
                instance.fail(step.name, str(outcome["error"]))
            elif outcome.get("stop"):
                instance.finish(WorkflowStatus.COMPLETED)

            if not await self._repository.save_if_active(instance):
                logger.info(
                    f"Workflow {instance.id} was cancelled during step {step.name}; result discarded"
                )
                return
            if instance.is_terminal:
                logger.info(
                    f"Workflow {instance.id} {instance.status.value} at step {index} ({step.name})"
                )
                return

        instance.current_step = len(instance.steps)
        instance.finish(WorkflowStatus.COMPLETED)
        await self._repository.save_if_active(instance)
        logger.info(f"Workflow {instance.id} completed")

    async def execute_step(
        self, step: StepDefinition, parameters: Dict[str, Any]
    ) -> StepOutcome:
        """Run ``step`` with its executor. Never raises; failures come back as ``{"error": ...}``."""
        executor = self._executors.get(step.type)
        if executor is None:
            return {"error": f"Unknown step type: {step.type.value}"}
        try:
            outcome = await executor.execute(step, parameters)
        except Exception as e:
            logger.exception(f"Executor for step {step.name} raised")
            return {"error": str(e) or type(e).__name__}
        if not isinstance(outcome, dict):
            return {"error": f"Step {step.name} returned {type(outcome).__name__}"}
        return outcome

    async def _record_fault(self, instance: WorkflowInstance, message: str) -> None:
        instance.errors.append(
            StepErrorEntry(step=WORKFLOW_EXECUTION_STEP, error=message)
        )
        instance.status = WorkflowStatus.FAILED
        instance.completed_at = instance.completed_at or utcnow()
        try:
            await self._repository.save_if_active(instance)
        except Exception:
            logger.exception(f"Could not record failure of workflow {instance.id}")

    # ------------------------------------------------------------------
    # Status / query
    async def get_workflow(self, workflow_id: str) -> WorkflowInstance:
        instance = await self._repository.get(workflow_id)
        if instance is None:
            raise WorkflowNotFoundError(workflow_id)
        return instance

    async def list_workflows(
        self,
        status: Optional[WorkflowStatus | str] = None,
        workflow_type: Optional[str] = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> WorkflowListing:
        """Instances filtered by status and type, newest first, truncated to ``limit``."""
        matching = await self._repository.list(
            status=WorkflowStatus(status) if status is not None else None,
            workflow_type=workflow_type,
        )
        return WorkflowListing(workflows=matching[: max(limit, 0)], total=len(matching))

    async def workflow_history(
        self, workflow_type: Optional[str] = None, limit: int = DEFAULT_HISTORY_LIMIT
    ) -> WorkflowListing:
        return await self.list_workflows(workflow_type=workflow_type, limit=limit)

    async def cancel_workflow(
        self, workflow_id: str, reason: str = DEFAULT_CANCEL_REASON
    ) -> WorkflowInstance:
        """Mark a running instance cancelled.

        A step already executing runs to completion, but its result is not
        written and no further step is started.

        Raises:
            WorkflowNotFoundError: Unknown id.
            WorkflowConflictError: The instance is completed, failed or cancelled.
        """
        instance = await self._repository.finish_if_running(
            workflow_id, WorkflowStatus.CANCELLED, reason=reason
        )
        logger.info(f"Cancelled workflow {workflow_id}: {reason}")
        return instance

    # ------------------------------------------------------------------
    # Lifecycle
    async def wait(self, workflow_id: str) -> WorkflowInstance:
        """Wait for the step loop of ``workflow_id`` (if any) and return the stored instance."""
        task = self._tasks.get(workflow_id)
        if task is not None:
            await task
        return await self.get_workflow(workflow_id)

    async def drain(self) -> None:
        """Wait until every running step loop has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()))

    async def shutdown(self) -> None:
        """Cancel outstanding step loops.

        A loop interrupted while running records its instance as ``failed``
        with a ``workflow_execution`` error.
        """
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


def create_engine(
    config: Optional[ThreatflowConfig] = None,
    store: Optional[KeyValueStore] = None,
    language_model: Optional[LanguageModel] = None,
) -> WorkflowEngine:
    """Wire an engine, its store and its collaborators from configuration."""
    config = config or load_config()
    store = store or get_store(config=config)
    context = ExecutionContext(
        store=store,
        language_model=language_model or PydanticAILanguageModel(),
        llm=config.llm,
        http=config.http,
    )
    return WorkflowEngine(store, context=context)
