"""CLI utilities."""

from .config import ConfigError, load_cli_config
from .validation import validate_recipient, validate_server_url, validate_wallet

__all__ = [
    "ConfigError",
    "load_cli_config",
    "validate_recipient",
    "validate_server_url",
    "validate_wallet",
]
