"""Run one refund sweep pass."""

import asyncio
from pathlib import Path
from typing import Any

import typer
from rich.console import Console

from src.cli.output import (
    format_error,
    format_key_value,
    format_success,
    format_table,
    json_output,
)
from src.cli.utils import ConfigError, load_cli_config
from src.server.services import build_services
from src.state.repositories.payments import PaymentRepository

console = Console()


async def _sweep(db_path: Path | None) -> dict[str, Any]:
    # Expiry is a status change only, so no chain adapter is contacted.
    config = load_cli_config(db_path=db_path, dry_run=True)
    services = build_services(config)
    await services.db.initialize()
    try:
        results: dict[str, Any] = await services.sweeper.sweep_once()
        async with services.db.connection() as conn:
            orphaned = await PaymentRepository(conn).list_orphaned_settlements()
    finally:
        await services.chain.aclose()
        await services.db.close()
    results["orphaned_settlements"] = [
        {"message_id": p.message_id, "tx_hash": p.settlement_tx_hash} for p in orphaned
    ]
    return results


def sweep_command(
    db_path: Path = typer.Option(None, "--db", help="Database path (default: DB_PATH)"),
    json_flag: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Expire pending messages whose deadline has passed."""
    try:
        results = asyncio.run(_sweep(db_path))
    except ConfigError as e:
        format_error(console, str(e))
        raise typer.Exit(code=1)
    except Exception as e:
        format_error(console, f"Sweep failed: {e}")
        raise typer.Exit(code=1)

    if json_flag:
        json_output(console, results)
        if results["failed"]:
            raise typer.Exit(code=1)
        return

    orphaned = results.pop("orphaned_settlements")
    format_key_value(console, {k.capitalize(): v for k, v in results.items()})
    if orphaned:
        format_table(
            console, "Settlements awaiting reconciliation", ["Message", "Tx hash"],
            [[o["message_id"], o["tx_hash"]] for o in orphaned],
        )
    if results["failed"]:
        format_error(console, f"{results['failed']} message(s) could not be expired")
        raise typer.Exit(code=1)
    format_success(console, f"Expired {results['expired']} message(s)")
