"""Helpers shared by the CLI commands."""

import json
from pathlib import Path
from typing import Any, Optional

import typer
import yaml
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax

from tether.types import RequestOptions, SelfHealingMode

console = Console()


def parse_json_option(raw: Optional[str], name: str) -> Any:
    """Parse a JSON CLI option; ``@file.json`` reads the value from a file."""
    if not raw:
        return {}
    if raw.startswith("@"):
        raw = Path(raw[1:]).read_text()
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        console.print(f"[red]Error:[/red] --{name} is not valid JSON: {exc}")
        raise typer.Exit(1)


def load_document(path: Path) -> dict:
    """Read a YAML or JSON file into a dict."""
    if not path.exists():
        console.print(f"[red]Error:[/red] file not found: {path}")
        raise typer.Exit(1)
    data = yaml.safe_load(path.read_text())
    if not isinstance(data, dict):
        console.print(f"[red]Error:[/red] {path} must contain a mapping")
        raise typer.Exit(1)
    return data


def build_options(heal: bool, retries: Optional[int], webhook: Optional[str] = None) -> RequestOptions:
    return RequestOptions(
        self_healing=SelfHealingMode.ENABLED if heal else SelfHealingMode.DISABLED,
        retries=retries,
        webhook_url=webhook,
    )


def print_outcome(title: str, success: bool, data: Any, error: Optional[str]) -> None:
    color = "green" if success else "red"
    status = "SUCCESS" if success else "FAILED"
    console.print()
    console.print(Panel(
        f"[bold]Status:[/bold] [{color}]{status}[/{color}]" + (f"\n[bold]Error:[/bold] {error}" if error else ""),
        title=f"[bold blue]{title}[/bold blue]",
        border_style=color,
    ))
    if success:
        console.print(Syntax(json.dumps(data, indent=2, default=str), "json", word_wrap=True))
