"""Tests for payment challenge issuance."""
from decimal import Decimal

import pytest

from src.escrow.challenge import PaymentChallengeIssuer, X402_VERSION
from src.escrow.errors import InvalidRequestError
from src.escrow.tokens import CELO_USDC
from tests.conftest import RECIPIENT, FrozenClock


@pytest.fixture
def issuer() -> PaymentChallengeIssuer:
    return PaymentChallengeIssuer(b"secret", ttl_minutes=15, clock=FrozenClock())


class TestIssue:
    def test_amount_in_units(self, issuer: PaymentChallengeIssuer) -> None:
        challenge = issuer.issue(RECIPIENT, Decimal("2.50"), CELO_USDC)
        assert challenge.amount_units == 2_500_000
        assert challenge.recipient == RECIPIENT

    def test_expiration_uses_ttl(self) -> None:
        clock = FrozenClock()
        challenge = PaymentChallengeIssuer(b"k", ttl_minutes=15, clock=clock).issue(
            RECIPIENT, Decimal("1"), CELO_USDC,
        )
        assert challenge.expiration == int(clock.now.timestamp()) + 15 * 60

    def test_nonces_unique(self, issuer: PaymentChallengeIssuer) -> None:
        nonces = {issuer.issue(RECIPIENT, Decimal("1"), CELO_USDC).nonce for _ in range(50)}
        assert len(nonces) == 50
        assert all(n.startswith("0x") and len(n) == 66 for n in nonces)

    def test_excess_precision_rejected(self, issuer: PaymentChallengeIssuer) -> None:
        with pytest.raises(InvalidRequestError, match="decimal places"):
            issuer.issue(RECIPIENT, Decimal("0.0000001"), CELO_USDC)

    def test_empty_secret_rejected(self) -> None:
        with pytest.raises(ValueError):
            PaymentChallengeIssuer(b"")


class TestPayload:
    def test_x402_shape(self, issuer: PaymentChallengeIssuer) -> None:
        challenge = issuer.issue(
            RECIPIENT, Decimal("1.5"), CELO_USDC, quote={"minBidUsd": "0.10"},
        )
        payload = challenge.to_payload()
        assert payload["x402Version"] == X402_VERSION
        requirement = payload["paymentRequirements"][0]
        assert requirement["scheme"] == "exact"
        assert requirement["network"] == {"chainId": 42220, "name": "Celo"}
        assert requirement["asset"]["address"] == CELO_USDC.address
        assert requirement["amount"] == "1500000"
        assert requirement["recipient"] == RECIPIENT
        assert requirement["nonce"] == challenge.nonce
        assert payload["quote"] == {
            "bidUsd": "1.5", "tokenSymbol": "USDC", "minBidUsd": "0.10",
        }
