"""Run the HTTP API under uvicorn."""

import typer
import uvicorn
from rich.console import Console

from src.cli.output import format_error
from src.cli.utils import ConfigError, load_cli_config

console = Console()


def serve_command(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", "-p", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
) -> None:
    """Start the escrow API server."""
    try:
        load_cli_config()
    except ConfigError as e:
        format_error(console, str(e), hint="Check the CHAIN_* environment variables")
        raise typer.Exit(code=1)

    uvicorn.run(
        "src.server.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )
