"""Machine-readable ``--json`` output."""

import dataclasses
import json
from datetime import datetime
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any

from rich.console import Console


class CLIJSONEncoder(json.JSONEncoder):
    """Keeps amounts exact by emitting Decimals as strings."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, Decimal):
            return str(obj)
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, Path):
            return str(obj)
        if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
            return dataclasses.asdict(obj)
        return super().default(obj)


def json_output(console: Console, data: Any) -> None:
    console.print_json(json.dumps(data, cls=CLIJSONEncoder, sort_keys=True))
