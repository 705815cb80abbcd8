"""Configuration loading for CLI commands."""

from dataclasses import replace
from pathlib import Path
from typing import Optional

from src.server.config import ServerConfig, load_config_from_env


class ConfigError(Exception):
    """Environment configuration is missing or invalid."""

    pass


def load_cli_config(
    db_path: Optional[Path] = None,
    dry_run: bool = False,
) -> ServerConfig:
    """Load server configuration from the environment for an operator command.

    ``db_path`` overrides ``DB_PATH``. ``dry_run`` swaps in the dry-run chain
    adapter, which commands that never touch the chain can use safely.
    """
    try:
        config = load_config_from_env("dry-run" if dry_run else None)
    except ValueError as e:
        raise ConfigError(str(e)) from e
    if db_path is not None:
        config = replace(config, db_path=db_path)
    return config
