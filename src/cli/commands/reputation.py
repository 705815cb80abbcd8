"""Recompute and show a wallet's reputation snapshot."""

import asyncio
from dataclasses import asdict
from pathlib import Path

import typer
from rich.console import Console

from src.cli.output import format_error, format_key_value, json_output
from src.cli.utils import ConfigError, load_cli_config, validate_wallet
from src.reputation.engine import ReputationEngine, describe
from src.state import DatabaseManager, ReputationSnapshot

console = Console()


async def _recompute(wallet: str, db_path: Path | None) -> ReputationSnapshot:
    config = load_cli_config(db_path=db_path, dry_run=True)
    db = DatabaseManager(config.db_path)
    await db.initialize()
    try:
        async with db.transaction() as conn:
            return await ReputationEngine().refresh(conn, wallet)
    finally:
        await db.close()


def reputation_command(
    wallet: str = typer.Argument(..., help="Wallet address"),
    db_path: Path = typer.Option(None, "--db", help="Database path (default: DB_PATH)"),
    json_flag: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Recompute the reputation snapshot for a wallet."""
    try:
        wallet = validate_wallet(wallet)
    except ValueError as e:
        format_error(console, str(e))
        raise typer.Exit(code=1)

    try:
        snapshot = asyncio.run(_recompute(wallet, db_path))
    except ConfigError as e:
        format_error(console, str(e))
        raise typer.Exit(code=1)
    except Exception as e:
        format_error(console, f"Failed to compute reputation: {e}")
        raise typer.Exit(code=1)

    facts = describe(snapshot)
    if json_flag:
        json_output(console, {**asdict(snapshot), "facts": facts})
        return

    format_key_value(
        console,
        {
            "Sender score": f"{snapshot.sender_score:.1f}",
            "Recipient score": f"{snapshot.recipient_score:.1f}",
            "Open rate": f"{snapshot.open_rate:.0%}",
            "Reply rate": f"{snapshot.reply_rate:.0%}",
            "Refund rate": f"{snapshot.refund_rate:.0%}",
            "Block rate": f"{snapshot.block_rate:.0%}",
            "Vouches": snapshot.vouch_count,
            "Sent": snapshot.total_sent,
            "Received": snapshot.total_received,
        },
        title=f"Reputation for {snapshot.wallet}",
    )
    for fact in facts:
        console.print(f"  - {fact}")
