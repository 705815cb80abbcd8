"""Pytest fixtures shared by escrow, reputation and server tests."""
import hashlib
import json
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from src.escrow.amounts import from_units, to_units
from src.escrow.authorization import Signature, TransferAuthorization
from src.escrow.tokens import CELO_USDC, TokenInfo, TokenRegistry
from src.escrow.state_machine import EscrowStateMachine
from src.reputation.engine import ReputationEngine
from src.server.app import create_app
from src.server.config import ChainConfig, EscrowConfig, ServerConfig, SweeperConfig
from src.state.database import DatabaseManager
from src.state.models.message import Message
from src.state.models.payment import PaymentRecord

SENDER = "0x" + "a1" * 20
RECIPIENT = "0x" + "b2" * 20
OTHER = "0x" + "c3" * 20
SIGNATURE = {"v": 27, "r": "0x" + "11" * 32, "s": "0x" + "22" * 32}


class FakeChainAdapter:
    """In-memory chain adapter with switchable failures.

    ``on_settle`` runs between the settle call and its return, which lets a
    test interleave another transition with an in-flight settlement.
    """

    def __init__(self) -> None:
        self.verify_result = True
        self.settle_error: Optional[Exception] = None
        self.on_settle: Optional[Callable[[], Awaitable[None]]] = None
        self.verify_calls: list[TransferAuthorization] = []
        self.settle_calls: list[TransferAuthorization] = []
        self.refund_calls: list[tuple[str, int]] = []
        self.closed = False

    async def verify_signature_and_nonce(
        self,
        auth: TransferAuthorization,
        expected_recipient: str,
        expected_amount: int,
        token: TokenInfo,
    ) -> bool:
        self.verify_calls.append(auth)
        return self.verify_result

    async def settle(self, auth: TransferAuthorization, token: TokenInfo) -> str:
        self.settle_calls.append(auth)
        if self.settle_error is not None:
            raise self.settle_error
        if self.on_settle is not None:
            await self.on_settle()
        return "0x" + hashlib.sha256(auth.nonce.encode()).hexdigest()

    async def refund(self, wallet: str, amount_units: int, token: TokenInfo) -> str:
        self.refund_calls.append((wallet, amount_units))
        return "0x" + hashlib.sha256(f"{wallet}:{amount_units}".encode()).hexdigest()

    async def aclose(self) -> None:
        self.closed = True


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: Optional[datetime] = None) -> None:
        self.now = now or datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


def new_nonce() -> str:
    return "0x" + uuid.uuid4().hex * 2


def make_authorization(
    amount: int = 1_500_000,
    sender: str = SENDER,
    recipient: str = RECIPIENT,
    nonce: Optional[str] = None,
    valid_before: Optional[int] = None,
    token: TokenInfo = CELO_USDC,
    **overrides: Any,
) -> TransferAuthorization:
    if valid_before is None:
        valid_before = int((datetime.now(timezone.utc) + timedelta(hours=1)).timestamp())
    fields = dict(
        chain_id=token.chain_id,
        token_address=token.address,
        amount=amount,
        sender=sender,
        recipient=recipient,
        nonce=nonce or new_nonce(),
        valid_after=0,
        valid_before=valid_before,
        signature=Signature(**SIGNATURE),
    )
    fields.update(overrides)
    return TransferAuthorization(**fields)


def build_escrow(
    bid: str = "1.5",
    sender: str = SENDER,
    recipient: str = RECIPIENT,
    sent_at: Optional[datetime] = None,
    expires_in: timedelta = timedelta(hours=24),
    reply_bounty: Optional[str] = None,
    nonce: Optional[str] = None,
    token: TokenInfo = CELO_USDC,
) -> tuple[Message, PaymentRecord]:
    """A pending message and its authorized payment, ready for ``create``."""
    sent_at = sent_at or datetime.now(timezone.utc)
    units = to_units(Decimal(bid), token.decimals)
    message_id = str(uuid.uuid4())
    message = Message(
        message_id=message_id,
        sender_wallet=sender,
        sender_name="Sender",
        recipient_wallet=recipient,
        content="Can we talk about the audit?",
        bid_usd=from_units(units, token.decimals),
        reply_bounty_usd=Decimal(reply_bounty) if reply_bounty else None,
        sent_at=sent_at,
        expires_at=sent_at + expires_in,
    )
    payment = PaymentRecord(
        payment_id=str(uuid.uuid4()),
        message_id=message_id,
        chain_id=token.chain_id,
        token_address=token.address,
        token_symbol=token.symbol,
        token_decimals=token.decimals,
        amount_units=units,
        amount_decimal=from_units(units, token.decimals),
        sender=sender,
        recipient=recipient,
        nonce=nonce or new_nonce(),
        signature_v=SIGNATURE["v"],
        signature_r=SIGNATURE["r"],
        signature_s=SIGNATURE["s"],
        valid_after=0,
        valid_before=int((sent_at + expires_in).timestamp()),
        created_at=sent_at,
    )
    return message, payment


def proof_from_challenge(body: dict, sender: str = SENDER, **overrides: Any) -> dict:
    """Build the ``X-PAYMENT`` proof a wallet would sign for a 402 body."""
    requirement = body["paymentRequirements"][0]
    proof = {
        "chainId": requirement["network"]["chainId"],
        "tokenAddress": requirement["asset"]["address"],
        "amount": requirement["amount"],
        "sender": sender,
        "recipient": requirement["recipient"],
        "nonce": requirement["nonce"],
        "validAfter": 0,
        "validBefore": requirement["expiration"],
        "signature": dict(SIGNATURE),
    }
    proof.update(overrides)
    return proof


def payment_header(proof: dict) -> dict[str, str]:
    return {"X-PAYMENT": json.dumps(proof)}


def caller(wallet: str) -> dict[str, str]:
    return {"X-Wallet-Address": wallet}


@pytest.fixture
def fake_chain() -> FakeChainAdapter:
    return FakeChainAdapter()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def tokens() -> TokenRegistry:
    return TokenRegistry([CELO_USDC])


@pytest_asyncio.fixture
async def db(tmp_path: Path) -> DatabaseManager:
    """Create and initialize a temp database."""
    manager = DatabaseManager(tmp_path / "escrow.db")
    await manager.initialize()
    return manager


@pytest.fixture
def engine() -> ReputationEngine:
    return ReputationEngine()


@pytest.fixture
def state_machine(
    db: DatabaseManager,
    fake_chain: FakeChainAdapter,
    engine: ReputationEngine,
    tokens: TokenRegistry,
) -> EscrowStateMachine:
    return EscrowStateMachine(db, fake_chain, engine, tokens)


@pytest.fixture
def server_config(tmp_path: Path) -> ServerConfig:
    return ServerConfig(
        escrow=EscrowConfig(nonce_secret="test-nonce-secret"),
        chain=ChainConfig(adapter="dry-run"),
        sweeper=SweeperConfig(enabled=False),
        db_path=tmp_path / "api.db",
    )


@pytest.fixture
def client(server_config: ServerConfig, fake_chain: FakeChainAdapter) -> TestClient:
    app = create_app(server_config, chain_adapter=fake_chain)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def commit_body() -> dict:
    return {
        "recipient": RECIPIENT,
        "content": "Would you review our grant proposal?",
        "bidUsd": "1.5",
        "senderWallet": SENDER,
        "senderName": "Alice",
        "expirationHours": 24,
    }
