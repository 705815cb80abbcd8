"""Rich terminal output for operator commands."""

from decimal import Decimal
from typing import Any, Mapping, Optional, Sequence

from rich.console import Console
from rich.table import Table


def _labelled(console: Console, style: str, label: str, text: str) -> None:
    console.print(f"[{style}]{label}:[/{style}] {text}")


def format_success(console: Console, message: str) -> None:
    console.print(f"[bold green]{message}[/bold green]")


def format_error(console: Console, message: str, hint: Optional[str] = None) -> None:
    """Print an error, then an optional hint on how to fix it."""
    _labelled(console, "red", "Error", message)
    if hint:
        _labelled(console, "yellow", "Hint", hint)


def format_usd(amount: Any) -> str:
    """Render a USD amount with at least two decimal places."""
    value = Decimal(str(amount))
    if value == value.quantize(Decimal("0.01")):
        return f"${value:,.2f}"
    return f"${value.normalize():,f}"


def format_table(
    console: Console,
    title: str,
    columns: Sequence[str],
    rows: Sequence[Sequence[str]],
    numeric: Sequence[str] = (),
) -> None:
    """Print rows as a table. Columns named in ``numeric`` are right-aligned."""
    table = Table(title=title, title_justify="left")
    for name in columns:
        table.add_column(name, justify="right" if name in numeric else "left", overflow="fold")
    for row in rows:
        table.add_row(*row)
    console.print(table)


def format_key_value(
    console: Console, data: Mapping[str, Any], title: Optional[str] = None,
) -> None:
    """Print ``key: value`` lines with keys padded to a common width."""
    if title:
        console.print(f"[bold]{title}[/bold]")
    width = max(map(len, data), default=0)
    for key, value in data.items():
        console.print(f"  [cyan]{key:<{width}}[/cyan]  {value}")
