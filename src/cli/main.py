"""Main CLI entry point for bidinbox."""

from pathlib import Path

import typer
from rich.console import Console

from src.cli.commands.init_db import init_db_command
from src.cli.commands.price_guide import price_guide_command
from src.cli.commands.reputation import reputation_command
from src.cli.commands.serve import serve_command
from src.cli.commands.sweep import sweep_command
from src.cli.commands.tokens import tokens_command

app = typer.Typer(
    name="bidinbox",
    help="bidinbox - operator tools for the bid-to-deliver escrow service",
    no_args_is_help=True,
    add_completion=False,
)
console = Console()


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "-p", "--port", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
) -> None:
    """Run the escrow API server."""
    serve_command(host, port, reload)


@app.command("init-db")
def init_db(
    db_path: Path = typer.Option(None, "--db", help="Database path"),
    json_flag: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Create the database schema."""
    init_db_command(db_path, json_flag)


@app.command("sweep")
def sweep(
    db_path: Path = typer.Option(None, "--db", help="Database path"),
    json_flag: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Run one refund sweep pass."""
    sweep_command(db_path, json_flag)


@app.command("reputation")
def reputation(
    wallet: str = typer.Argument(..., help="Wallet address"),
    db_path: Path = typer.Option(None, "--db", help="Database path"),
    json_flag: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Recompute and print a wallet's reputation snapshot."""
    reputation_command(wallet, db_path, json_flag)


@app.command("price-guide")
def price_guide(
    recipient: str = typer.Argument(..., help="Username or wallet address"),
    server: str = typer.Option("http://127.0.0.1:8000", "-s", "--server", help="Server base URL"),
    timeout: float = typer.Option(10.0, "--timeout", help="Request timeout (seconds)"),
    json_flag: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Query a running server for bid guidance."""
    price_guide_command(recipient, server, timeout, json_flag)


@app.command("tokens")
def tokens(
    registry_path: Path = typer.Option(None, "-r", "--registry", help="Token registry YAML"),
    json_flag: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List accepted payment tokens."""
    tokens_command(registry_path, json_flag)


def main() -> None:
    """Entry point."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Cancelled[/yellow]")
        raise typer.Exit(130)


if __name__ == "__main__":
    main()
