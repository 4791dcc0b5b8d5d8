"""tether serve — Start the HTTP API server."""

import typer
from rich.console import Console

console = Console()


def serve(
    host: str = typer.Option("0.0.0.0", help="Host to bind to"),
    port: int = typer.Option(8000, help="Port to listen on"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """Start the tether API server."""
    import uvicorn
    console.print(f"[green]Starting tether API on {host}:{port}[/green]")
    uvicorn.run("tether.api.main:app", host=host, port=port, reload=reload)
