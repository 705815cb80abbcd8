"""Tests for authorization verification."""
import logging
from datetime import timedelta

import pytest

from src.escrow.authorization import Signature
from src.escrow.tokens import CELO_USDC
from src.escrow.verifier import (
    AuthorizationVerifier,
    ExpectedPayment,
    RejectionReason,
)
from tests.conftest import (
    OTHER,
    RECIPIENT,
    FakeChainAdapter,
    FrozenClock,
    make_authorization,
)

EXPECTED = ExpectedPayment(recipient=RECIPIENT, token=CELO_USDC, amount_units=1_500_000)


@pytest.fixture
def chain() -> FakeChainAdapter:
    return FakeChainAdapter()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def verifier(chain: FakeChainAdapter, clock: FrozenClock) -> AuthorizationVerifier:
    return AuthorizationVerifier(chain, amount_tolerance_units=2, clock=clock)


def _valid_before(clock: FrozenClock, **delta: float) -> int:
    return int((clock.now + timedelta(**delta)).timestamp())


class TestVerify:
    @pytest.mark.asyncio
    async def test_valid_authorization(self, verifier, chain, clock) -> None:
        auth = make_authorization(valid_before=_valid_before(clock, minutes=10))
        result = await verifier.verify(auth, EXPECTED)
        assert result.ok
        assert chain.verify_calls == [auth]

    @pytest.mark.asyncio
    async def test_incomplete_signature(self, verifier, chain, clock) -> None:
        auth = make_authorization(
            valid_before=_valid_before(clock, minutes=10),
            signature=Signature(v=27, r="", s=""),
        )
        result = await verifier.verify(auth, EXPECTED)
        assert result.reason == RejectionReason.INCOMPLETE
        assert chain.verify_calls == []

    @pytest.mark.asyncio
    async def test_chain_mismatch(self, verifier, clock) -> None:
        auth = make_authorization(valid_before=_valid_before(clock, minutes=10), chain_id=1)
        assert (await verifier.verify(auth, EXPECTED)).reason == RejectionReason.CHAIN_MISMATCH

    @pytest.mark.asyncio
    async def test_token_mismatch(self, verifier, clock) -> None:
        auth = make_authorization(
            valid_before=_valid_before(clock, minutes=10), token_address="0x" + "de" * 20,
        )
        assert (await verifier.verify(auth, EXPECTED)).reason == RejectionReason.TOKEN_MISMATCH

    @pytest.mark.asyncio
    async def test_token_address_case_insensitive(self, verifier, clock) -> None:
        auth = make_authorization(
            valid_before=_valid_before(clock, minutes=10),
            token_address=CELO_USDC.address.upper().replace("0X", "0x"),
        )
        assert (await verifier.verify(auth, EXPECTED)).ok

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount,ok", [
        (1_500_002, True),
        (1_499_998, True),
        (1_500_003, False),
        (1_000_000, False),
    ])
    async def test_amount_tolerance(self, verifier, clock, amount: int, ok: bool) -> None:
        auth = make_authorization(amount=amount, valid_before=_valid_before(clock, minutes=10))
        result = await verifier.verify(auth, EXPECTED)
        assert result.ok is ok
        if not ok:
            assert result.reason == RejectionReason.AMOUNT_MISMATCH

    @pytest.mark.asyncio
    async def test_expired(self, verifier, clock) -> None:
        auth = make_authorization(valid_before=_valid_before(clock, seconds=-1))
        assert (await verifier.verify(auth, EXPECTED)).reason == RejectionReason.EXPIRED

    @pytest.mark.asyncio
    async def test_millisecond_expiry_accepted(self, verifier, clock) -> None:
        auth = make_authorization(valid_before=_valid_before(clock, minutes=10) * 1000)
        assert (await verifier.verify(auth, EXPECTED)).ok

    @pytest.mark.asyncio
    async def test_recipient_mismatch_logged_as_security_warning(
        self, verifier, chain, clock, caplog,
    ) -> None:
        auth = make_authorization(
            recipient=OTHER, valid_before=_valid_before(clock, minutes=10),
        )
        with caplog.at_level(logging.WARNING, logger="src.escrow.verifier"):
            result = await verifier.verify(auth, EXPECTED)
        assert result.reason == RejectionReason.RECIPIENT_MISMATCH
        assert chain.verify_calls == []
        assert any("SECURITY" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_chain_rejects_signature(self, verifier, chain, clock) -> None:
        chain.verify_result = False
        auth = make_authorization(valid_before=_valid_before(clock, minutes=10))
        result = await verifier.verify(auth, EXPECTED)
        assert result.reason == RejectionReason.INVALID_SIGNATURE

    @pytest.mark.asyncio
    async def test_checks_run_in_order(self, verifier, clock) -> None:
        auth = make_authorization(
            chain_id=1, amount=1, recipient=OTHER,
            valid_before=_valid_before(clock, seconds=-1),
        )
        assert (await verifier.verify(auth, EXPECTED)).reason == RejectionReason.CHAIN_MISMATCH
