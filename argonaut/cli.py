"""Command line interface for inspecting and driving Argo workflows."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

import typer

from argonaut import ArgonautError, NotFoundError, WorkflowService, build_service

T = TypeVar("T")

app = typer.Typer(help="CLI for Argo workflows")

# Command groups
workflow_app = typer.Typer(help="Commands for managing workflows")
template_app = typer.Typer(help="Commands for workflow templates")

app.add_typer(workflow_app, name="workflow")
app.add_typer(template_app, name="template")

NamespaceOption = typer.Option(None, "--namespace", "-n", help="Target namespace")


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", help="Logging level for argonaut"),
) -> None:
    """Argonaut CLI entry point."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def get_service() -> WorkflowService:
    return build_service()


def _run(operation: Callable[[WorkflowService], Awaitable[T]]) -> T:
    async def runner() -> T:
        async with get_service() as service:
            return await operation(service)

    try:
        return asyncio.run(runner())
    except NotFoundError as exc:
        typer.echo(f"Not found: {exc.message}")
        raise typer.Exit(code=1)
    except ArgonautError as exc:
        typer.secho(f"Error: {exc.message}", fg=typer.colors.RED)
        raise typer.Exit(code=1)


def _parse_parameters(values: Optional[List[str]]) -> Dict[str, str]:
    parameters: Dict[str, str] = {}
    for item in values or []:
        name, sep, value = item.partition("=")
        if not sep or not name:
            raise typer.BadParameter(f"Expected NAME=VALUE, got '{item}'")
        parameters[name] = value
    return parameters


def _echo_json(data: Any) -> None:
    typer.echo(json.dumps(data, indent=2, default=str))


@workflow_app.command("list")
def workflow_list(
    namespace: Optional[str] = NamespaceOption,
    selector: Optional[str] = typer.Option(
        None, "--selector", "-l", help="Label selector, e.g. app=build"
    ),
) -> None:
    """
    List workflows with their phase and duration.

    Example:
        argonaut workflow list -n ci
        # Output: build-template-x7k2p    Succeeded    2m 3s
    """
    workflows = _run(lambda service: service.list_workflows(namespace, selector))
    if not workflows:
        typer.echo("No workflows found")
        return
    for wf in workflows:
        summary = wf.status.describe()
        typer.echo(f"{wf.name}\t{summary['phase']}\t{summary['duration'] or '-'}")


@workflow_app.command("show")
def workflow_show(name: str, namespace: Optional[str] = NamespaceOption) -> None:
    """
    Show status and steps of a workflow.

    Example:
        argonaut workflow show build-template-x7k2p
        # Output: Workflow build-template-x7k2p: Running (1/3)
        #         - build: Succeeded
        #         - test: Running
    """
    wf = _run(lambda service: service.get_workflow(name, namespace))
    progress = f" ({wf.status.progress})" if wf.status.progress else ""
    typer.echo(f"Workflow {wf.name}: {wf.status.phase.value}{progress}")
    if wf.status.message:
        typer.echo(f"Message: {wf.status.message}")
    if wf.spec.arguments:
        typer.echo(
            "Arguments: "
            + ", ".join(f"{p.name}={p.value}" for p in wf.spec.arguments)
        )
    for step in wf.steps:
        typer.echo(f"- {step.display_name or step.id}: {step.phase.value}")


@workflow_app.command("logs")
def workflow_logs(
    name: str,
    namespace: Optional[str] = NamespaceOption,
    step: Optional[str] = typer.Option(None, help="Limit logs to one step or pod"),
) -> None:
    """Print the logs of a workflow or one of its steps."""
    typer.echo(_run(lambda service: service.get_workflow_logs(name, namespace, step)))


@workflow_app.command("submit")
def workflow_submit(
    template_name: str,
    parameter: Optional[List[str]] = typer.Option(
        None, "--parameter", "-p", help="Argument as NAME=VALUE; repeatable"
    ),
    namespace: Optional[str] = NamespaceOption,
    cluster: bool = typer.Option(False, help="Use a ClusterWorkflowTemplate"),
) -> None:
    """
    Submit a workflow from a template.

    Example:
        argonaut workflow submit build-template -p branch=main
        # Output: Submitted workflow build-template-x7k2p
    """
    parameters = _parse_parameters(parameter)
    wf = _run(
        lambda service: service.submit_workflow(
            template_name, parameters, namespace, cluster_scope=cluster
        )
    )
    typer.echo(f"Submitted workflow {wf.name}")


@workflow_app.command("retry")
def workflow_retry(name: str, namespace: Optional[str] = NamespaceOption) -> None:
    """Retry a failed workflow."""
    wf = _run(lambda service: service.retry_workflow(name, namespace))
    typer.echo(f"Workflow {wf.name}: {wf.status.phase.value}")


@workflow_app.command("stop")
def workflow_stop(name: str, namespace: Optional[str] = NamespaceOption) -> None:
    """Stop a running workflow."""
    wf = _run(lambda service: service.stop_workflow(name, namespace))
    typer.echo(f"Stop requested for workflow {wf.name}")


@workflow_app.command("delete")
def workflow_delete(name: str, namespace: Optional[str] = NamespaceOption) -> None:
    """Delete a workflow."""
    _run(lambda service: service.delete_workflow(name, namespace))
    typer.echo(f"Deleted workflow {name}")


@template_app.command("list")
def template_list(namespace: Optional[str] = NamespaceOption) -> None:
    """List namespaced and cluster-scoped workflow templates."""
    catalog = _run(lambda service: service.list_all_templates(namespace))
    if not catalog.templates and not catalog.cluster_templates:
        typer.echo("No templates found")
        return
    for template in catalog.templates:
        typer.echo(f"{template.name}\tnamespaced\t{template.spec.entrypoint}")
    for template in catalog.cluster_templates:
        typer.echo(f"{template.name}\tcluster\t{template.spec.entrypoint}")


@app.command("stats")
def stats(
    namespace: Optional[str] = NamespaceOption,
    as_json: bool = typer.Option(False, "--json", help="Print as JSON"),
) -> None:
    """Show workflow counts by phase."""
    result = _run(lambda service: service.get_statistics(namespace))
    if as_json:
        _echo_json(result.model_dump())
        return
    for key, value in result.model_dump().items():
        typer.echo(f"{key}: {value}")


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
