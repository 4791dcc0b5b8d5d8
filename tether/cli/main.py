"""tether CLI — Typer application."""

import typer
from rich.console import Console

from tether.version import __version__

app = typer.Typer(
    name="tether",
    help="tether — self-healing API calls and workflow steps.",
    no_args_is_help=True,
    invoke_without_command=True,
)
console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", "-v", is_eager=True, help="Show version"),
):
    """tether CLI."""
    if version:
        console.print(f"tether v{__version__}")
        raise typer.Exit()
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


from tether.cli.commands import call, step, config, serve  # noqa: E402

app.command(name="call", help="Run one API config through the self-healing orchestrator")(call.call_api)
app.command(name="step", help="Run a step from steps.yaml (DIRECT or LOOP)")(step.run_step)
app.command(name="config", help="Show resolved configuration")(config.config_show)
app.command(name="serve", help="Start the HTTP API server")(serve.serve)


if __name__ == "__main__":
    app()
