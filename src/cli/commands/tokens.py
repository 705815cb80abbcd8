"""List the payment tokens accepted for bids."""

import os
from pathlib import Path

import typer
from rich.console import Console

from src.cli.output import format_error, format_table, json_output
from src.escrow.tokens import TokenRegistryError, load_token_registry

console = Console()


def tokens_command(
    registry_path: Path = typer.Option(
        None, "--registry", "-r", help="Token registry YAML (default: TOKEN_REGISTRY_PATH or built-in)"
    ),
    json_flag: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show the token registry."""
    if registry_path is None and os.environ.get("TOKEN_REGISTRY_PATH"):
        registry_path = Path(os.environ["TOKEN_REGISTRY_PATH"])
    try:
        registry = load_token_registry(registry_path)
    except TokenRegistryError as e:
        format_error(console, str(e))
        raise typer.Exit(code=1)

    if json_flag:
        json_output(
            console,
            {
                "default": registry.default.symbol,
                "tokens": [
                    {
                        "symbol": t.symbol,
                        "name": t.name,
                        "address": t.address,
                        "decimals": t.decimals,
                        "chain_id": t.chain_id,
                        "network": t.network_name,
                        "active": t.active,
                    }
                    for t in registry.tokens
                ],
            },
        )
        return

    rows = [
        (
            t.symbol + (" *" if t.symbol == registry.default.symbol else ""),
            t.network_name,
            str(t.chain_id),
            t.address,
            str(t.decimals),
            "yes" if t.active else "no",
        )
        for t in registry.tokens
    ]
    format_table(
        console,
        "Accepted Tokens",
        ["Symbol", "Network", "Chain", "Address", "Decimals", "Active"],
        rows,
    )
