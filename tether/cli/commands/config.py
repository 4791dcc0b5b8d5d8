"""tether config — Show resolved tether configuration."""

from rich.console import Console
from rich.table import Table
from rich import box

console = Console()

SENSITIVE = {"llm_api_key", "redis_url"}


def mask(val: str) -> str:
    s = str(val)
    if len(s) <= 8:
        return "***"
    return s[:4] + "…" + "***"


def config_show():
    """Show the resolved tether configuration.

    Reads from environment variables and .env file.
    Sensitive values (API keys, connection strings) are masked.

    Example:
        tether config
    """
    from tether.config import TetherConfig
    cfg = TetherConfig()

    table = Table(
        box=box.ROUNDED,
        header_style="bold dim",
        show_lines=False,
        title="[bold]tether Configuration[/bold]",
    )
    table.add_column("Key", style="cyan", width=30)
    table.add_column("Value", width=55)
    table.add_column("Env Var", style="dim", width=35)

    sections = [
        ("App", ["debug", "log_level"]),
        ("Store", ["store_backend", "redis_url", "store_ttl_seconds"]),
        ("LLM", ["default_llm_model", "llm_api_key", "llm_max_tokens", "llm_temperature", "llm_timeout_seconds"]),
        ("Self-healing", ["default_retries", "default_loop_max_iters", "max_error_length", "documentation_max_chars"]),
        ("Transport", ["http_timeout_seconds", "transport_max_retries", "response_size_limit_kb", "webhook_timeout_seconds"]),
        ("Server", ["host", "port"]),
    ]

    first = True
    for section_name, fields in sections:
        if not first:
            table.add_row("", "", "")
        first = False
        table.add_row(f"[bold dim]── {section_name} ──[/bold dim]", "", "")
        for attr in fields:
            val = getattr(cfg, attr, None)
            if val is None:
                display = "[dim](not set)[/dim]"
            elif attr in SENSITIVE:
                display = mask(str(val))
            else:
                display = str(val)
            table.add_row(f"  {attr}", display, f"TETHER_{attr.upper()}")

    console.print()
    console.print(table)
    console.print()
    console.print("[dim]Source: environment variables + .env file (prefix: TETHER_)[/dim]")
