"""CLI commands."""

from . import init_db, price_guide, reputation, serve, sweep, tokens

__all__ = [
    "init_db",
    "price_guide",
    "reputation",
    "serve",
    "sweep",
    "tokens",
]
