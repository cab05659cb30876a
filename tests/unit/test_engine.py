"""Workflow engine step-loop and query tests."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from threatflow.contracts import (
    StepDefinition,
    StepType,
    WorkflowDefinition,
    WorkflowInstance,
    WorkflowStatus,
)
from threatflow.engine import WorkflowEngine
from threatflow.exceptions import (
    UnknownWorkflowTypeError,
    WorkflowConflictError,
    WorkflowNotFoundError,
)
from threatflow.registry import DefinitionRegistry
from threatflow.storage import InMemoryKeyValueStore


class ScriptedExecutor:
    """Return a canned outcome per step name and remember the calls."""

    def __init__(self, outcomes=None, default=None):
        self.outcomes = outcomes or {}
        self.default = default if default is not None else {"success": True}
        self.calls = []

    async def execute(self, step, parameters):
        self.calls.append((step.name, dict(parameters)))
        outcome = self.outcomes.get(step.name, self.default)
        if isinstance(outcome, Exception):
            raise outcome
        return dict(outcome)


class BlockingExecutor:
    def __init__(self):
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def execute(self, step, parameters):
        self.started.set()
        await self.release.wait()
        return {"success": True, "late": True}


class FlakyStore(InMemoryKeyValueStore):
    """Fail the n-th ``put`` call."""

    def __init__(self, fail_on):
        super().__init__()
        self.fail_on = fail_on
        self.puts = 0

    async def put(self, key, value):
        self.puts += 1
        if self.puts == self.fail_on:
            raise ConnectionError("store unavailable")
        await super().put(key, value)


def _definition(*names, step_type=StepType.INTEGRATION):
    return WorkflowDefinition(
        name="Test",
        steps=[StepDefinition(name=name, type=step_type) for name in names],
    )


def _engine(executor, *names, store=None):
    registry = DefinitionRegistry({"test": _definition(*names)})
    return WorkflowEngine(
        store or InMemoryKeyValueStore(),
        registry=registry,
        executors={StepType.INTEGRATION: executor},
    )


@pytest.mark.asyncio
async def test_trigger_returns_running_instance():
    engine = _engine(ScriptedExecutor(), "a", "b")
    instance = await engine.trigger("test", {"userId": "analyst-7"}, metadata={"source": "api"})

    assert instance.status == WorkflowStatus.RUNNING
    assert instance.id.startswith("workflow_")
    assert instance.current_step == 0
    assert instance.results == [] and instance.errors == []
    assert instance.priority == "normal"
    assert instance.metadata == {"triggeredBy": "analyst-7", "source": "api"}

    stored = await engine.get_workflow(instance.id)
    assert stored.status == WorkflowStatus.RUNNING
    await engine.drain()


@pytest.mark.asyncio
async def test_all_steps_complete():
    executor = ScriptedExecutor()
    engine = _engine(executor, "a", "b", "c")
    instance = await engine.trigger("test", {"threatId": "t1"})

    final = await engine.wait(instance.id)
    assert final.status == WorkflowStatus.COMPLETED
    assert [r.step_index for r in final.results] == [0, 1, 2]
    assert [r.step_name for r in final.results] == ["a", "b", "c"]
    assert final.current_step == 3
    assert final.completed_at is not None
    assert final.errors == []
    assert [c[1] for c in executor.calls] == [{"threatId": "t1"}] * 3
    assert engine.running == []


@pytest.mark.asyncio
async def test_stop_completes_early():
    executor = ScriptedExecutor({"b": {"success": True, "stop": True}})
    engine = _engine(executor, "a", "b", "c")
    instance = await engine.trigger("test")

    final = await engine.wait(instance.id)
    assert final.status == WorkflowStatus.COMPLETED
    assert len(final.results) == 2
    assert final.current_step == 1
    assert [c[0] for c in executor.calls] == ["a", "b"]


@pytest.mark.asyncio
async def test_error_fails_workflow():
    executor = ScriptedExecutor({"b": {"error": "feed unreachable"}})
    engine = _engine(executor, "a", "b", "c")
    instance = await engine.trigger("test")

    final = await engine.wait(instance.id)
    assert final.status == WorkflowStatus.FAILED
    assert len(final.results) == 2
    assert final.results[1].result == {"error": "feed unreachable"}
    assert [(e.step, e.error) for e in final.errors] == [("b", "feed unreachable")]
    assert final.completed_at is not None
    assert [c[0] for c in executor.calls] == ["a", "b"]


@pytest.mark.asyncio
async def test_raising_executor_is_recorded_as_error():
    executor = ScriptedExecutor({"a": RuntimeError("kaput")})
    engine = _engine(executor, "a", "b")
    instance = await engine.trigger("test")

    final = await engine.wait(instance.id)
    assert final.status == WorkflowStatus.FAILED
    assert final.results[0].result == {"error": "kaput"}
    assert final.errors[0].error == "kaput"


@pytest.mark.asyncio
async def test_missing_executor_fails_with_unknown_step_type():
    registry = DefinitionRegistry(
        {"test": _definition("collect", step_type=StepType.DATA_COLLECTION)}
    )
    engine = WorkflowEngine(
        InMemoryKeyValueStore(),
        registry=registry,
        executors={StepType.INTEGRATION: ScriptedExecutor()},
    )
    instance = await engine.trigger("test")

    final = await engine.wait(instance.id)
    assert final.status == WorkflowStatus.FAILED
    assert final.errors[0].error == "Unknown step type: data_collection"


@pytest.mark.asyncio
async def test_orchestration_fault_marks_failed():
    # put 1: trigger, put 2: before step a, put 3: after step a
    store = FlakyStore(fail_on=3)
    engine = _engine(ScriptedExecutor(), "a", "b", store=store)
    instance = await engine.trigger("test")

    final = await engine.wait(instance.id)
    assert final.status == WorkflowStatus.FAILED
    assert final.completed_at is not None
    assert [e.step for e in final.errors] == ["workflow_execution"]
    assert final.errors[0].error == "store unavailable"


@pytest.mark.asyncio
async def test_running_instance_is_isolated_from_definition_changes():
    executor = ScriptedExecutor()
    definition = _definition("a", "b")
    registry = DefinitionRegistry({"test": definition})
    engine = WorkflowEngine(
        InMemoryKeyValueStore(), registry=registry, executors={StepType.INTEGRATION: executor}
    )
    instance = await engine.trigger("test")
    definition.steps.append(StepDefinition(name="late", type=StepType.INTEGRATION))
    instance.steps.clear()

    final = await engine.wait(instance.id)
    assert [s.name for s in final.steps] == ["a", "b"]
    assert [c[0] for c in executor.calls] == ["a", "b"]


@pytest.mark.asyncio
async def test_cancel_during_step_discards_result():
    blocking = BlockingExecutor()
    follow_up = ScriptedExecutor()
    registry = DefinitionRegistry(
        {
            "test": WorkflowDefinition(
                name="Test",
                steps=[
                    StepDefinition(name="slow", type=StepType.AI_ANALYSIS),
                    StepDefinition(name="notify", type=StepType.NOTIFICATION),
                ],
            )
        }
    )
    engine = WorkflowEngine(
        InMemoryKeyValueStore(),
        registry=registry,
        executors={StepType.AI_ANALYSIS: blocking, StepType.NOTIFICATION: follow_up},
    )
    instance = await engine.trigger("test")
    await blocking.started.wait()

    cancelled = await engine.cancel_workflow(instance.id)
    assert cancelled.status == WorkflowStatus.CANCELLED
    assert cancelled.cancel_reason == "Workflow cancelled by user"

    blocking.release.set()
    final = await engine.wait(instance.id)
    assert final.status == WorkflowStatus.CANCELLED
    assert final.results == []
    assert final.completed_at == cancelled.completed_at
    assert follow_up.calls == []

    with pytest.raises(WorkflowConflictError):
        await engine.cancel_workflow(instance.id, reason="again")
    assert await engine.get_workflow(instance.id) == final


@pytest.mark.asyncio
async def test_cancel_completed_and_unknown():
    engine = _engine(ScriptedExecutor(), "a")
    instance = await engine.trigger("test")
    await engine.wait(instance.id)

    with pytest.raises(WorkflowConflictError):
        await engine.cancel_workflow(instance.id)
    with pytest.raises(WorkflowNotFoundError):
        await engine.cancel_workflow("workflow_missing")
    with pytest.raises(WorkflowNotFoundError):
        await engine.get_workflow("workflow_missing")


@pytest.mark.asyncio
async def test_unknown_type_creates_nothing():
    store = InMemoryKeyValueStore()
    engine = _engine(ScriptedExecutor(), "a", store=store)
    with pytest.raises(UnknownWorkflowTypeError):
        await engine.trigger("nope")
    assert await store.list() == []
    assert engine.running == []


@pytest.mark.asyncio
async def test_list_filters_sorts_and_limits():
    engine = _engine(ScriptedExecutor(), "a")
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    for i, (wf_type, status) in enumerate(
        [
            ("threat-analysis", WorkflowStatus.COMPLETED),
            ("threat-analysis", WorkflowStatus.FAILED),
            ("security-report", WorkflowStatus.COMPLETED),
            ("threat-analysis", WorkflowStatus.COMPLETED),
        ]
    ):
        await engine.repository.save(
            WorkflowInstance(
                id=f"workflow_{i}",
                type=wf_type,
                status=status,
                created_at=base + timedelta(hours=i),
            )
        )

    listing = await engine.list_workflows(limit=2)
    assert [w.id for w in listing.workflows] == ["workflow_3", "workflow_2"]
    assert listing.total == 4

    completed = await engine.list_workflows(status="completed", workflow_type="threat-analysis")
    assert [w.id for w in completed.workflows] == ["workflow_3", "workflow_0"]
    assert completed.total == 2

    history = await engine.workflow_history(workflow_type="security-report")
    assert [w.id for w in history.workflows] == ["workflow_2"]

    with pytest.raises(ValueError):
        await engine.list_workflows(status="paused")


@pytest.mark.asyncio
async def test_instances_run_independently():
    executor = ScriptedExecutor()
    engine = _engine(executor, "a", "b")
    first = await engine.trigger("test", {"n": 1})
    second = await engine.trigger("test", {"n": 2})
    assert first.id != second.id

    await engine.drain()
    for instance in (first, second):
        final = await engine.get_workflow(instance.id)
        assert final.status == WorkflowStatus.COMPLETED
        assert len(final.results) == 2
    assert len(executor.calls) == 4


@pytest.mark.asyncio
async def test_shutdown_records_interrupted_loops_as_failed():
    blocking = BlockingExecutor()
    engine = _engine(blocking, "slow")
    instance = await engine.trigger("test")
    await blocking.started.wait()

    await engine.shutdown()
    assert engine.running == []

    stored = await engine.get_workflow(instance.id)
    assert stored.status == WorkflowStatus.FAILED
    assert stored.completed_at is not None
    assert [(e.step, e.error) for e in stored.errors] == [
        ("workflow_execution", "Workflow execution interrupted")
    ]
