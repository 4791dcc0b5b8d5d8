"""tether call — Run one API config through the orchestrator."""

import asyncio
from pathlib import Path
from typing import Optional

import typer

from tether.cli.commands._common import (
    build_options, console, load_document, parse_json_option, print_outcome,
)
from tether.types import ApiConfig


async def _execute(config: ApiConfig, payload, credentials, options):
    from tether.logging_setup import configure_logging
    from tether.runtime import build_runtime
    from tether.store import MemoryStore

    configure_logging()
    runtime = build_runtime(store=MemoryStore())
    with console.status(f"[blue]Calling[/blue] {config.url_host}{config.url_path}"):
        return await runtime.orchestrator.call(
            endpoint=config,
            payload=payload,
            credentials=credentials,
            options=options,
        )


def call_api(
    config_file: Path = typer.Argument(..., help="YAML or JSON file with the API config"),
    payload: Optional[str] = typer.Option(None, "--payload", "-p", help="Payload JSON or @file.json"),
    credentials: Optional[str] = typer.Option(None, "--credentials", "-c", help="Credentials JSON or @file.json"),
    heal: bool = typer.Option(True, "--heal/--no-heal", help="Regenerate the config on failure"),
    retries: Optional[int] = typer.Option(None, "--retries", "-r", min=1, help="Attempt budget"),
    webhook: Optional[str] = typer.Option(None, "--webhook", help="Webhook URL notified on completion"),
):
    """Run an API config through the self-healing orchestrator and print the result.

    Runs with an in-memory store; nothing is cached between invocations.

    Example:
        tether call github.yaml -p '{"owner": "octo"}' -c '{"token": "..."}'
    """
    api_config = ApiConfig.model_validate(load_document(config_file))
    options = build_options(heal, retries, webhook)
    try:
        result = asyncio.run(_execute(
            api_config,
            parse_json_option(payload, "payload"),
            parse_json_option(credentials, "credentials"),
            options,
        ))
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted.[/yellow]")
        raise typer.Exit(1)

    print_outcome(f"Call {result.id}", result.success, result.data, result.error)
    if not result.success:
        raise typer.Exit(1)
