"""Command line interface for triggering and inspecting threatflow workflows."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import List, Optional

import typer

from threatflow import get_store
from threatflow.config import load_config
from threatflow.constants import (
    DEFAULT_CANCEL_REASON,
    DEFAULT_HISTORY_LIMIT,
    DEFAULT_LIST_LIMIT,
)
from threatflow.contracts import WorkflowInstance
from threatflow.engine import create_engine
from threatflow.exceptions import ConflictError, NotFoundError
from threatflow.registry import default_registry
from threatflow.threats import ThreatStore

app = typer.Typer(help="CLI for threatflow workflows")

# Command groups
workflow_app = typer.Typer(help="Commands for managing workflows")
threat_app = typer.Typer(help="Commands for managing threats")

app.add_typer(workflow_app, name="workflow")
app.add_typer(threat_app, name="threat")


@app.callback()
def main() -> None:
    """Threatflow CLI entry point."""
    logging.basicConfig(level=load_config().log_level.upper())


def _parse_params(params: Optional[List[str]]) -> dict:
    parsed = {}
    for item in params or []:
        key, sep, value = item.partition("=")
        if not sep:
            typer.secho(f"Invalid parameter {item!r}, expected key=value", fg=typer.colors.RED)
            raise typer.Exit(code=1)
        parsed[key] = value
    return parsed


def _echo_instance(wf: WorkflowInstance) -> None:
    typer.echo(f"Workflow {wf.id} ({wf.type}): {wf.status.value}")
    if wf.parameters:
        typer.echo(f"Parameters: {json.dumps(wf.parameters)}")
    for entry in wf.results:
        state = "error" if "error" in entry.result else "ok"
        typer.echo(f"- [{entry.step_index}] {entry.step_name}: {state} ({entry.timestamp})")
    for err in wf.errors:
        typer.secho(f"! {err.step}: {err.error}", fg=typer.colors.RED)
    if wf.cancel_reason:
        typer.echo(f"Cancelled: {wf.cancel_reason}")


@workflow_app.command("definitions")
def workflow_definitions() -> None:
    """List the workflow types that can be triggered and their steps."""
    registry = default_registry()
    for workflow_type in registry.types():
        definition = registry.resolve(workflow_type)
        typer.echo(f"{workflow_type} - {definition.name}")
        for step in definition.steps:
            typer.echo(f"  {step.name} ({step.type.value})")


@workflow_app.command("trigger")
def workflow_trigger(
    workflow_type: str,
    param: Optional[List[str]] = typer.Option(
        None, "--param", "-p", help="Workflow parameter as key=value (repeatable)"
    ),
    priority: Optional[str] = None,
) -> None:
    """
    Trigger a workflow and run it to completion in this process.

    Example:
        threatflow workflow trigger threat-analysis -p threatId=threat_123
    """
    parameters = _parse_params(param)

    async def _run() -> WorkflowInstance:
        engine = create_engine(store=get_store())
        instance = await engine.trigger(workflow_type, parameters, priority=priority)
        typer.echo(f"Workflow ID: {instance.id}")
        return await engine.wait(instance.id)

    try:
        wf = asyncio.run(_run())
    except NotFoundError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)
    _echo_instance(wf)


@workflow_app.command("status")
def workflow_status(workflow_id: str) -> None:
    """Show a workflow instance with its step results and errors."""
    engine = create_engine(store=get_store())
    try:
        wf = asyncio.run(engine.get_workflow(workflow_id))
    except NotFoundError:
        typer.echo("Workflow not found")
        raise typer.Exit(code=1)
    _echo_instance(wf)


@workflow_app.command("list")
def workflow_list(
    status: Optional[str] = None,
    workflow_type: Optional[str] = typer.Option(None, "--type"),
    limit: int = DEFAULT_LIST_LIMIT,
) -> None:
    """List workflows, newest first."""
    engine = create_engine(store=get_store())
    try:
        listing = asyncio.run(
            engine.list_workflows(status=status, workflow_type=workflow_type, limit=limit)
        )
    except ValueError:
        typer.secho(f"Invalid status: {status}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    if not listing.workflows:
        typer.echo("No workflows found")
        return
    for wf in listing.workflows:
        typer.echo(f"{wf.id}\t{wf.type}\t{wf.status.value}\t{wf.created_at.isoformat()}")
    typer.echo(f"Showing {len(listing.workflows)} of {listing.total}")


@workflow_app.command("history")
def workflow_history(
    workflow_type: Optional[str] = typer.Option(None, "--type"),
    limit: int = DEFAULT_HISTORY_LIMIT,
) -> None:
    """Show past workflows, optionally of a single type."""
    engine = create_engine(store=get_store())
    listing = asyncio.run(engine.workflow_history(workflow_type=workflow_type, limit=limit))
    if not listing.workflows:
        typer.echo("No workflows found")
        return
    for wf in listing.workflows:
        completed = wf.completed_at.isoformat() if wf.completed_at else "-"
        typer.echo(f"{wf.id}\t{wf.type}\t{wf.status.value}\t{completed}")


@workflow_app.command("cancel")
def workflow_cancel(
    workflow_id: str, reason: str = DEFAULT_CANCEL_REASON
) -> None:
    """Cancel a running workflow."""
    engine = create_engine(store=get_store())
    try:
        asyncio.run(engine.cancel_workflow(workflow_id, reason=reason))
    except NotFoundError:
        typer.echo("Workflow not found")
        raise typer.Exit(code=1)
    except ConflictError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)
    typer.echo(f"Workflow {workflow_id} cancelled")


@threat_app.command("add")
def threat_add(
    threat_type: Optional[str] = typer.Option(None, "--type"),
    ip: Optional[str] = None,
    domain: Optional[str] = None,
    hash: Optional[str] = typer.Option(None, "--hash"),
    description: Optional[str] = None,
    severity: Optional[str] = None,
) -> None:
    """Store a threat report."""
    threats = ThreatStore(get_store())
    threat = asyncio.run(
        threats.store_threat(
            {
                "type": threat_type,
                "ip": ip,
                "domain": domain,
                "hash": hash,
                "description": description,
                "severity": severity,
            }
        )
    )
    typer.echo(f"Threat ID: {threat.id}")


@threat_app.command("correlate")
def threat_correlate(threat_id: str, correlation_type: str = "similar") -> None:
    """List threats correlated with a stored threat."""
    threats = ThreatStore(get_store())
    try:
        correlated = asyncio.run(threats.correlate(threat_id, correlation_type))
    except NotFoundError:
        typer.echo("Threat not found")
        raise typer.Exit(code=1)
    if not correlated:
        typer.echo("No correlated threats")
        return
    for threat in correlated:
        typer.echo(f"{threat.id}\t{threat.correlation_score:.2f}\t{threat.type or '-'}")


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
