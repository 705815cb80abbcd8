"""Create or upgrade the escrow database schema."""

import asyncio
from pathlib import Path

import typer
from rich.console import Console

from src.cli.output import format_error, format_success, json_output
from src.cli.utils import ConfigError, load_cli_config
from src.state import DatabaseManager

console = Console()


async def _initialize(db_path: Path) -> None:
    db = DatabaseManager(db_path)
    await db.initialize()
    await db.close()


def init_db_command(
    db_path: Path = typer.Option(None, "--db", help="Database path (default: DB_PATH)"),
    json_flag: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Initialize the SQLite database."""
    try:
        config = load_cli_config(db_path=db_path, dry_run=True)
        asyncio.run(_initialize(config.db_path))
    except ConfigError as e:
        format_error(console, str(e))
        raise typer.Exit(code=1)
    except Exception as e:
        format_error(console, f"Failed to initialize database: {e}")
        raise typer.Exit(code=1)

    if json_flag:
        json_output(console, {"status": "initialized", "db_path": str(config.db_path)})
    else:
        format_success(console, f"Database ready at {config.db_path}")
