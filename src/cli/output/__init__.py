"""Terminal and JSON output for operator commands."""

from .formatters import (
    format_error,
    format_key_value,
    format_success,
    format_table,
    format_usd,
)
from .json_output import CLIJSONEncoder, json_output

__all__ = [
    "CLIJSONEncoder",
    "format_error",
    "format_key_value",
    "format_success",
    "format_table",
    "format_usd",
    "json_output",
]
