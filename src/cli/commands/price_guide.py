"""Query a running server for a recipient's bid guidance."""

import httpx
import typer
from rich.console import Console

from src.cli.output import format_error, format_table, format_usd, json_output
from src.cli.utils import validate_recipient, validate_server_url

console = Console()


def _fetch_guidance(server: str, recipient: str, timeout: float) -> dict:
    with httpx.Client(base_url=server, timeout=timeout) as client:
        response = client.get(f"/api/price-guide/{recipient}")
    if response.status_code != 200:
        try:
            message = response.json()["error"]["message"]
        except (ValueError, KeyError, TypeError):
            message = response.text or f"HTTP {response.status_code}"
        raise RuntimeError(message)
    return response.json()


def price_guide_command(
    recipient: str = typer.Argument(..., help="Username or wallet address"),
    server: str = typer.Option(
        "http://127.0.0.1:8000", "--server", "-s", help="Server base URL"
    ),
    timeout: float = typer.Option(10.0, "--timeout", help="Request timeout (seconds)"),
    json_flag: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show bid percentiles for a recipient."""
    try:
        recipient = validate_recipient(recipient)
        server = validate_server_url(server)
    except ValueError as e:
        format_error(console, str(e))
        raise typer.Exit(code=1)

    try:
        guidance = _fetch_guidance(server, recipient, timeout)
    except httpx.HTTPError as e:
        format_error(console, f"Could not reach {server}: {e}", hint="Is 'bidinbox serve' running?")
        raise typer.Exit(code=1)
    except RuntimeError as e:
        format_error(console, str(e))
        raise typer.Exit(code=1)

    if json_flag:
        json_output(console, guidance)
        return

    title = f"Price guide for {guidance.get('username') or recipient}"
    rows = [
        ("Minimum", format_usd(guidance["minBaseUsd"])),
        ("p25", format_usd(guidance["p25"])),
        ("Median", format_usd(guidance["median"])),
        ("p75", format_usd(guidance["p75"])),
        ("Sample size", str(guidance["sampleSize"])),
    ]
    format_table(console, title, ["Statistic", "Value"], rows, numeric=["Value"])
