"""Boundary handler tests."""

import asyncio

import pytest

from threatflow.contracts import StepDefinition, StepType, WorkflowDefinition
from threatflow.engine import WorkflowEngine
from threatflow.handlers import WorkflowHandlers
from threatflow.registry import DefinitionRegistry
from threatflow.storage import InMemoryKeyValueStore


class GateExecutor:
    def __init__(self):
        self.release = asyncio.Event()

    async def execute(self, step, parameters):
        await self.release.wait()
        return {"success": True}


def _handlers():
    gate = GateExecutor()
    registry = DefinitionRegistry(
        {
            "threat-analysis": WorkflowDefinition(
                name="Threat Analysis",
                steps=[StepDefinition(name="analyze", type=StepType.AI_ANALYSIS)],
            )
        }
    )
    engine = WorkflowEngine(
        InMemoryKeyValueStore(), registry=registry, executors={StepType.AI_ANALYSIS: gate}
    )
    return WorkflowHandlers(engine), engine, gate


@pytest.mark.asyncio
async def test_trigger_and_status():
    handlers, engine, gate = _handlers()

    response = await handlers.trigger(
        {"workflowType": "threat-analysis", "parameters": {"threatId": "t1"}}
    )
    assert response.status_code == 200
    assert response.body["success"] is True
    assert response.body["status"] == "running"
    workflow_id = response.body["workflowId"]

    status = await handlers.status(workflow_id)
    assert status.status_code == 200
    assert status.body["workflow"]["id"] == workflow_id
    assert status.body["workflow"]["parameters"] == {"threatId": "t1"}

    gate.release.set()
    await engine.drain()
    done = await handlers.status(workflow_id)
    assert done.body["workflow"]["status"] == "completed"
    assert done.body["workflow"]["completedAt"] is not None


@pytest.mark.asyncio
async def test_trigger_errors():
    handlers, _, _ = _handlers()

    missing = await handlers.trigger({"parameters": {}})
    assert missing.status_code == 400
    assert missing.body == {"success": False, "error": "Workflow type is required"}

    unknown = await handlers.trigger({"workflowType": "nope"})
    assert unknown.status_code == 404
    assert unknown.body["error"] == "Unknown workflow type: nope"


@pytest.mark.asyncio
async def test_status_errors():
    handlers, _, _ = _handlers()
    assert (await handlers.status("")).status_code == 400
    assert (await handlers.status("workflow_missing")).status_code == 404


@pytest.mark.asyncio
async def test_cancel_then_conflict():
    handlers, engine, gate = _handlers()
    workflow_id = (await handlers.trigger({"workflowType": "threat-analysis"})).body[
        "workflowId"
    ]

    cancelled = await handlers.cancel(workflow_id)
    assert cancelled.status_code == 200
    assert cancelled.body["message"] == "Workflow cancelled successfully"
    assert cancelled.body["workflow"]["status"] == "cancelled"

    again = await handlers.cancel(workflow_id)
    assert again.status_code == 409
    assert (await handlers.cancel("workflow_missing")).status_code == 404

    gate.release.set()
    await engine.drain()


@pytest.mark.asyncio
async def test_list_and_history():
    handlers, engine, gate = _handlers()
    gate.release.set()
    for _ in range(3):
        await handlers.trigger({"workflowType": "threat-analysis"})
    await engine.drain()

    listing = await handlers.list(status="completed", limit=2)
    assert listing.status_code == 200
    assert len(listing.body["workflows"]) == 2
    assert listing.body["total"] == 3

    bad = await handlers.list(status="paused")
    assert bad.status_code == 400
    assert bad.body["error"] == "Invalid status: paused"

    history = await handlers.history(workflow_type="threat-analysis")
    assert history.body["total"] == 3
