"""Tests for the token registry."""
from pathlib import Path

import pytest

from src.escrow.errors import UnsupportedAssetError
from src.escrow.tokens import (
    CELO_USDC,
    TokenInfo,
    TokenRegistry,
    TokenRegistryError,
    load_token_registry,
)

CUSD_ADDRESS = "0x765DE816845861e75A25fCA122bb6898B8B1282a"


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "tokens.yaml"
    path.write_text(text)
    return path


class TestTokenInfo:
    def test_rejects_bad_address(self) -> None:
        with pytest.raises(ValueError, match="token address"):
            TokenInfo("X", "X", "0x1234", 6, 1, "Test")

    def test_rejects_bad_decimals(self) -> None:
        with pytest.raises(ValueError, match="decimals"):
            TokenInfo("X", "X", CUSD_ADDRESS, 99, 1, "Test")

    def test_as_asset(self) -> None:
        assert CELO_USDC.as_asset() == {
            "address": CELO_USDC.address, "symbol": "USDC", "decimals": 6,
        }


class TestTokenRegistry:
    def test_default_is_first_active(self) -> None:
        registry = TokenRegistry([CELO_USDC])
        assert registry.default is CELO_USDC
        assert registry.resolve(None) is CELO_USDC

    def test_find_is_case_insensitive(self) -> None:
        assert TokenRegistry([CELO_USDC]).find("usdc") is CELO_USDC

    def test_find_by_address(self) -> None:
        registry = TokenRegistry([CELO_USDC])
        assert registry.find_by_address(42220, CELO_USDC.address.lower()) is CELO_USDC
        assert registry.find_by_address(1, CELO_USDC.address) is None

    def test_unknown_symbol_rejected(self) -> None:
        with pytest.raises(UnsupportedAssetError) as exc:
            TokenRegistry([CELO_USDC]).resolve("DOGE")
        assert exc.value.details == {"supported": ["USDC"]}
        assert exc.value.status_code == 400

    def test_inactive_tokens_skipped(self) -> None:
        inactive = TokenInfo("CUSD", "cUSD", CUSD_ADDRESS, 18, 42220, "Celo", active=False)
        registry = TokenRegistry([CELO_USDC, inactive])
        assert [t.symbol for t in registry.tokens] == ["USDC"]

    def test_empty_registry_rejected(self) -> None:
        with pytest.raises(TokenRegistryError):
            TokenRegistry([])

    def test_unknown_default_rejected(self) -> None:
        with pytest.raises(TokenRegistryError, match="default"):
            TokenRegistry([CELO_USDC], default_symbol="CUSD")


class TestLoadTokenRegistry:
    def test_builtin_default(self) -> None:
        registry = load_token_registry(None)
        assert registry.default.address == "0xcebA9300f2b948710d2653dD7B07f33A8B32118C"
        assert registry.default.chain_id == 42220

    def test_loads_yaml(self, tmp_path: Path) -> None:
        path = _write(tmp_path, f"""
default: CUSD
tokens:
  - symbol: USDC
    address: "{CELO_USDC.address}"
    decimals: 6
    chain_id: 42220
    network_name: Celo
  - symbol: CUSD
    name: Celo Dollar
    address: "{CUSD_ADDRESS}"
    decimals: 18
    chain_id: 42220
    network_name: Celo
""")
        registry = load_token_registry(path)
        assert registry.default.symbol == "CUSD"
        assert registry.default.decimals == 18
        assert registry.find("USDC").name == "USDC"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(TokenRegistryError, match="not found"):
            load_token_registry(tmp_path / "absent.yaml")

    def test_missing_tokens_list(self, tmp_path: Path) -> None:
        with pytest.raises(TokenRegistryError, match="tokens"):
            load_token_registry(_write(tmp_path, "default: USDC\n"))

    def test_bad_entry(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "tokens:\n  - symbol: USDC\n    decimals: 6\n")
        with pytest.raises(TokenRegistryError, match="Invalid token entry"):
            load_token_registry(path)
