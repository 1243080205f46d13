"""Command line interface for registering and running workflows."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import typer

from .config import load_config
from .errors import WorkflowDefinitionError, WorkflowNotFoundError
from .executor import WorkflowExecutor
from .loader import load_workflow_file
from .persistence import get_repository

app = typer.Typer(help="CLI for flowrunner workflows")

workflow_app = typer.Typer(help="Commands for managing workflows")
execution_app = typer.Typer(help="Commands for inspecting executions")

app.add_typer(workflow_app, name="workflow")
app.add_typer(execution_app, name="execution")


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", help="Logging level, e.g. INFO or DEBUG"),
) -> None:
    """flowrunner CLI entry point."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@workflow_app.command("validate")
def workflow_validate(file: Path) -> None:
    """
    Check a workflow file without saving it.

    Reports parse errors, duplicate step ids and links to unknown steps.

    Example:
        flowrunner workflow validate onboarding.yaml
    """
    try:
        definition = load_workflow_file(file)
        definition.validate_graph()
    except WorkflowDefinitionError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)
    typer.echo(f"Workflow {definition.id} is valid ({len(definition.steps)} steps)")


@workflow_app.command("register")
def workflow_register(file: Path) -> None:
    """
    Validate a workflow file and save it to the configured repository.

    Example:
        flowrunner workflow register onboarding.yaml
    """
    try:
        definition = load_workflow_file(file)
        repo = get_repository()
        asyncio.run(repo.save_workflow(definition))
    except WorkflowDefinitionError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)
    typer.echo(f"Registered workflow {definition.id}")


@workflow_app.command("list")
def workflow_list() -> None:
    """List registered workflows."""
    repo = get_repository()
    workflows = asyncio.run(repo.list_workflows())
    if not workflows:
        typer.echo("No workflows found")
        return
    for wf in workflows:
        typer.echo(f"{wf.id}\t{wf.name}\t{len(wf.steps)} steps")


@workflow_app.command("run")
def workflow_run(
    workflow_id: str,
    trigger: Optional[str] = typer.Option(None, help="Trigger data as a JSON object"),
) -> None:
    """
    Run a registered workflow and print its result.

    Exits with code 1 when the workflow is unknown or the run failed.

    Example:
        flowrunner workflow run onboarding --trigger '{"userId": 42}'
    """
    try:
        trigger_data = json.loads(trigger) if trigger else {}
    except ValueError as exc:
        typer.secho(f"--trigger is not valid JSON: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    if not isinstance(trigger_data, dict):
        typer.secho("--trigger must be a JSON object", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    executor = WorkflowExecutor.from_config(
        load_config(), repository=get_repository()
    )
    try:
        result = asyncio.run(executor.execute_workflow(workflow_id, trigger_data))
    except WorkflowNotFoundError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)
    typer.echo(result.model_dump_json(by_alias=True, indent=2))
    if result.error is not None:
        raise typer.Exit(code=1)


@execution_app.command("list")
def execution_list(
    workflow_id: Optional[str] = typer.Option(None, help="Only show runs of this workflow"),
) -> None:
    """List executions with their status."""
    repo = get_repository()
    executions = asyncio.run(repo.list_executions(workflow_id))
    if not executions:
        typer.echo("No executions found")
        return
    for record in executions:
        typer.echo(
            f"{record.execution_id}\t{record.workflow_id}\t{record.status.value}"
        )


@execution_app.command("show")
def execution_show(execution_id: str) -> None:
    """
    Show one execution and its step log.

    Example:
        flowrunner execution show 3f1c...
        # Output: Execution 3f1c... of onboarding: failed
        #         Error (step_failed): no sms sender configured
        #         - fetch: completed (2024-01-01T10:00:00+00:00)
        #         - notify: failed (2024-01-01T10:00:01+00:00) no sms sender configured
    """
    repo = get_repository()
    record = asyncio.run(repo.get_execution(execution_id))
    if record is None:
        typer.echo("Execution not found")
        raise typer.Exit(code=1)
    typer.echo(
        f"Execution {record.execution_id} of {record.workflow_id}: {record.status.value}"
    )
    if record.error:
        kind = record.error_kind.value if record.error_kind else "unknown"
        typer.echo(f"Error ({kind}): {record.error}")
    if record.trigger_data:
        typer.echo(f"Trigger: {json.dumps(record.trigger_data)}")
    for step in record.steps:
        typer.echo(
            f"- {step.step_id}: {step.status.value} ({step.timestamp.isoformat()})"
            + (f" {step.error}" if step.error else "")
        )


if __name__ == "__main__":  # pragma: no cover
    app()
