"""Server configuration."""
import logging
import os
import secrets
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

_RECOGNISED_BOOL_VALUES = frozenset(
    ("1", "true", "yes", "0", "false", "no")
)
CHAIN_ADAPTER_KINDS = ("facilitator", "dry-run")


@dataclass(frozen=True)
class RateLimitConfig:
    requests_per_minute: int = 120


@dataclass(frozen=True)
class EscrowConfig:
    """Commit and verification settings.

    ``nonce_secret`` keys challenge nonces. ``platform_min_bid_usd`` applies
    to recipients without a registered profile.
    """

    nonce_secret: str
    platform_min_bid_usd: Decimal = Decimal("0.10")
    challenge_ttl_minutes: int = 15
    amount_tolerance_units: int = 2
    token_registry_path: Optional[Path] = None


@dataclass(frozen=True)
class SweeperConfig:
    """Refund sweeper schedule. Disable with ``SWEEP_ENABLED=false``.

    ``concurrency`` caps how many expiries hold a write transaction at once.
    """

    enabled: bool = True
    interval_seconds: float = 300.0
    concurrency: int = 4


@dataclass(frozen=True)
class ChainConfig:
    """How the service reaches the chain.

    ``adapter``: 'facilitator' (HTTP facilitator at ``facilitator_url``) or
        'dry-run' (accepts every signature; development only).
    """

    adapter: str = "facilitator"
    facilitator_url: str = ""
    api_key: Optional[str] = None
    timeout: float = 30.0


@dataclass(frozen=True)
class ServerConfig:
    escrow: EscrowConfig
    chain: ChainConfig = field(default_factory=ChainConfig)
    sweeper: SweeperConfig = field(default_factory=SweeperConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    db_path: Path = field(default_factory=lambda: Path("data/bidinbox.db"))
    version: str = "0.1.0"


def _parse_bool(value: str, default: bool) -> bool:
    """Parse a boolean environment variable with explicit default.

    Recognises ``true/1/yes`` and ``false/0/no`` (case-insensitive).
    Returns *default* when the value is empty or unset.
    Logs a warning and returns *default* for unrecognised values
    (e.g. typos like ``ture``).
    """
    if not value:
        return default
    normalised = value.lower()
    if normalised not in _RECOGNISED_BOOL_VALUES:
        logger.warning(
            "Unrecognised boolean value %r, using default %s. "
            "Expected one of: true/1/yes or false/0/no.",
            value,
            default,
        )
        return default
    return normalised in ("1", "true", "yes")


def _parse_decimal(name: str, default: str) -> Decimal:
    raw = os.environ.get(name, default)
    try:
        value = Decimal(raw)
    except InvalidOperation as e:
        raise ValueError(f"{name} must be a decimal amount, got {raw!r}") from e
    if value <= 0:
        raise ValueError(f"{name} must be positive")
    return value


def load_config_from_env(chain_adapter: Optional[str] = None) -> ServerConfig:
    """Build the server configuration from environment variables.

    ``chain_adapter`` takes precedence over ``CHAIN_ADAPTER``.
    """
    nonce_secret = os.environ.get("NONCE_SECRET", "")
    if not nonce_secret:
        logger.warning(
            "NONCE_SECRET not set -- using a random per-process key. "
            "Challenges will not survive a restart."
        )
        nonce_secret = secrets.token_hex(32)

    adapter = chain_adapter or os.environ.get("CHAIN_ADAPTER", "facilitator")
    if adapter not in CHAIN_ADAPTER_KINDS:
        raise ValueError(
            f"CHAIN_ADAPTER must be one of {', '.join(CHAIN_ADAPTER_KINDS)}, got '{adapter}'"
        )
    facilitator_url = os.environ.get("CHAIN_FACILITATOR_URL", "")
    if adapter == "facilitator" and not facilitator_url:
        raise ValueError(
            "CHAIN_FACILITATOR_URL required when CHAIN_ADAPTER is 'facilitator'. "
            "Set CHAIN_ADAPTER=dry-run for local development."
        )

    registry_path = os.environ.get("TOKEN_REGISTRY_PATH")

    return ServerConfig(
        escrow=EscrowConfig(
            nonce_secret=nonce_secret,
            platform_min_bid_usd=_parse_decimal("PLATFORM_MIN_BID_USD", "0.10"),
            challenge_ttl_minutes=int(os.environ.get("CHALLENGE_TTL_MINUTES", "15")),
            amount_tolerance_units=int(os.environ.get("AMOUNT_TOLERANCE_UNITS", "2")),
            token_registry_path=Path(registry_path) if registry_path else None,
        ),
        chain=ChainConfig(
            adapter=adapter,
            facilitator_url=facilitator_url,
            api_key=os.environ.get("CHAIN_FACILITATOR_API_KEY") or None,
            timeout=float(os.environ.get("CHAIN_TIMEOUT", "30.0")),
        ),
        sweeper=SweeperConfig(
            enabled=_parse_bool(os.environ.get("SWEEP_ENABLED", ""), default=True),
            interval_seconds=float(os.environ.get("SWEEP_INTERVAL_SECONDS", "300")),
            concurrency=max(1, int(os.environ.get("SWEEP_CONCURRENCY", "4"))),
        ),
        rate_limit=RateLimitConfig(
            requests_per_minute=int(os.environ.get("RATE_LIMIT_REQUESTS_PER_MINUTE", "120")),
        ),
        db_path=Path(os.environ.get("DB_PATH", "data/bidinbox.db")),
    )
