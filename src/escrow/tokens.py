"""Registry of payment assets the service accepts."""
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from src.escrow.amounts import is_wallet_address
from src.escrow.errors import UnsupportedAssetError


class TokenRegistryError(Exception):
    """Token registry file is missing or malformed."""

    pass


@dataclass(frozen=True)
class TokenInfo:
    """One payment asset on one chain.

    ``name`` and ``version`` are the EIP-712 domain values the token
    contract signs ``transferWithAuthorization`` messages under.
    """

    symbol: str
    name: str
    address: str
    decimals: int
    chain_id: int
    network_name: str
    version: str = "2"
    active: bool = True

    def __post_init__(self) -> None:
        if not is_wallet_address(self.address):
            raise ValueError(f"invalid token address: {self.address!r}")
        if not 0 <= self.decimals <= 36:
            raise ValueError(f"decimals out of range: {self.decimals}")

    def as_asset(self) -> dict[str, object]:
        return {
            "address": self.address,
            "symbol": self.symbol,
            "decimals": self.decimals,
        }


CELO_USDC = TokenInfo(
    symbol="USDC",
    name="USDC",
    address="0xcebA9300f2b948710d2653dD7B07f33A8B32118C",
    decimals=6,
    chain_id=42220,
    network_name="Celo",
)


class TokenRegistry:
    """Lookup of active tokens by symbol or by (chain id, address)."""

    def __init__(self, tokens: list[TokenInfo], default_symbol: Optional[str] = None) -> None:
        active = [t for t in tokens if t.active]
        if not active:
            raise TokenRegistryError("token registry has no active tokens")
        self._tokens = active
        self._default = default_symbol.upper() if default_symbol else active[0].symbol.upper()
        if self.find(self._default) is None:
            raise TokenRegistryError(f"default token {self._default!r} is not registered")

    @property
    def tokens(self) -> list[TokenInfo]:
        return list(self._tokens)

    @property
    def default(self) -> TokenInfo:
        return self.resolve(None)

    def find(self, symbol: str) -> Optional[TokenInfo]:
        wanted = symbol.upper()
        for token in self._tokens:
            if token.symbol.upper() == wanted:
                return token
        return None

    def find_by_address(self, chain_id: int, address: str) -> Optional[TokenInfo]:
        for token in self._tokens:
            if token.chain_id == chain_id and token.address.lower() == address.lower():
                return token
        return None

    def resolve(self, symbol: Optional[str]) -> TokenInfo:
        """Return the named token, or the default when no symbol is given."""
        token = self.find(symbol or self._default)
        if token is None:
            raise UnsupportedAssetError(
                f"Unsupported payment asset: {symbol}",
                {"supported": [t.symbol for t in self._tokens]},
            )
        return token


def load_token_registry(path: Optional[Path] = None) -> TokenRegistry:
    """Load the registry from YAML, or return the built-in default.

    Expected layout::

        default: USDC
        tokens:
          - symbol: USDC
            name: USDC
            address: "0x..."
            decimals: 6
            chain_id: 42220
            network_name: Celo
    """
    if path is None:
        return TokenRegistry([CELO_USDC])
    if not path.exists():
        raise TokenRegistryError(f"Token registry not found at {path}")

    with open(path) as f:
        data = yaml.safe_load(f)

    if not data or not isinstance(data.get("tokens"), list):
        raise TokenRegistryError("Invalid token registry: missing 'tokens' list")

    tokens = []
    for entry in data["tokens"]:
        try:
            tokens.append(
                TokenInfo(
                    symbol=entry["symbol"],
                    name=entry.get("name", entry["symbol"]),
                    address=entry["address"],
                    decimals=int(entry["decimals"]),
                    chain_id=int(entry["chain_id"]),
                    network_name=entry.get("network_name", str(entry["chain_id"])),
                    version=str(entry.get("version", "2")),
                    active=bool(entry.get("active", True)),
                )
            )
        except (KeyError, TypeError, ValueError) as e:
            raise TokenRegistryError(f"Invalid token entry {entry!r}: {e}") from e
    return TokenRegistry(tokens, default_symbol=data.get("default"))
