"""tether step — Run a step defined in steps.yaml."""

import asyncio
from pathlib import Path
from typing import Optional

import typer

from tether.cli.commands._common import build_options, console, parse_json_option, print_outcome
from tether.config import load_steps_yaml
from tether.types import ExecutionStep


async def _execute(step: ExecutionStep, payload, credentials, options):
    from tether.logging_setup import configure_logging
    from tether.runtime import build_runtime
    from tether.store import MemoryStore

    configure_logging()
    runtime = build_runtime(store=MemoryStore())
    with console.status(f"[blue]Running step[/blue] {step.id} ({step.execution_mode.value})"):
        return await runtime.steps.run(step, payload, credentials, options)


def run_step(
    step_id: str = typer.Argument(..., help="Id of the step to run"),
    file: Optional[Path] = typer.Option(None, "--file", "-f", help="steps.yaml path (default: ./steps.yaml)"),
    payload: Optional[str] = typer.Option(None, "--payload", "-p", help="Payload JSON or @file.json"),
    credentials: Optional[str] = typer.Option(None, "--credentials", "-c", help="Credentials JSON or @file.json"),
    heal: bool = typer.Option(True, "--heal/--no-heal", help="Regenerate the config on failure"),
    retries: Optional[int] = typer.Option(None, "--retries", "-r", min=1, help="Attempt budget per call"),
):
    """Run one step from steps.yaml with the strategy its execution_mode selects.

    Example:
        tether step fetch-repos -p '{"users": [{"login": "octo"}]}'
    """
    try:
        steps = load_steps_yaml(file)
    except FileNotFoundError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)

    step = next((s for s in steps if s.id == step_id), None)
    if step is None:
        known = ", ".join(s.id for s in steps) or "(none)"
        console.print(f"[red]Error:[/red] no step '{step_id}'. Known steps: {known}")
        raise typer.Exit(1)

    try:
        result = asyncio.run(_execute(
            step,
            parse_json_option(payload, "payload"),
            parse_json_option(credentials, "credentials"),
            build_options(heal, retries),
        ))
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted.[/yellow]")
        raise typer.Exit(1)

    print_outcome(f"Step {result.step_id}", result.success, result.transformed_data, result.error)
    if not result.success:
        raise typer.Exit(1)
