"""Commit flow: challenge, verify, escrow."""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable, Optional

from src.escrow.amounts import from_units, is_wallet_address
from src.escrow.authorization import TransferAuthorization
from src.escrow.challenge import PaymentChallenge, PaymentChallengeIssuer
from src.escrow.errors import (
    AuthorizationError,
    BidTooLowError,
    InvalidRequestError,
    PaymentRequiredError,
)
from src.escrow.recipients import RecipientResolver, ResolvedRecipient
from src.escrow.state_machine import EscrowStateMachine
from src.escrow.tokens import TokenInfo, TokenRegistry
from src.escrow.verifier import AuthorizationVerifier, ExpectedPayment
from src.reputation.engine import TRUSTED_SENDER_SCORE
from src.reputation.price_guide import PriceGuide
from src.state.database import DatabaseManager
from src.state.models.message import Message
from src.state.models.payment import PaymentRecord
from src.state.repositories.reputation import ReputationRepository

logger = logging.getLogger(__name__)

MIN_EXPIRATION_HOURS = 1
MAX_EXPIRATION_HOURS = 168


@dataclass(frozen=True)
class CommitRequest:
    recipient: str
    content: str
    bid_usd: Decimal
    sender_wallet: str
    sender_name: str
    expiration_hours: int = 24
    reply_bounty_usd: Optional[Decimal] = None
    token_symbol: Optional[str] = None


class CommitService:
    """Turns a commit request into either a challenge or a pending escrow.

    Without an authorization the caller gets a :class:`PaymentRequiredError`
    carrying a challenge. With one, the authorization is checked against
    the server's own recipient lookup and, if it passes, the escrow is
    created. Every rejected authorization also comes back with a fresh
    challenge so the sender can retry without starting over.
    """

    def __init__(
        self,
        db: DatabaseManager,
        tokens: TokenRegistry,
        resolver: RecipientResolver,
        issuer: PaymentChallengeIssuer,
        verifier: AuthorizationVerifier,
        state_machine: EscrowStateMachine,
        price_guide: PriceGuide,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._db = db
        self._tokens = tokens
        self._resolver = resolver
        self._issuer = issuer
        self._verifier = verifier
        self._state_machine = state_machine
        self._price_guide = price_guide
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def commit(
        self, request: CommitRequest, auth: Optional[TransferAuthorization] = None,
    ) -> Message:
        self._validate(request)
        token = self._tokens.resolve(request.token_symbol)
        recipient, quote = await self._prepare(request, token)

        if request.bid_usd < recipient.min_bid_usd:
            raise BidTooLowError(
                f"Bid too low: minimum is {recipient.min_bid_usd}",
                {"minBidUsd": str(recipient.min_bid_usd), "bidUsd": str(request.bid_usd)},
            )

        challenge = self._issuer.issue(recipient.wallet, request.bid_usd, token, quote)
        if auth is None:
            raise PaymentRequiredError("Payment required", challenge)

        if auth.sender.lower() != request.sender_wallet.lower():
            logger.warning(
                "SECURITY: authorization sender %s does not match asserted sender %s",
                auth.sender, request.sender_wallet,
            )
            raise PaymentRequiredError(
                "Authorization sender does not match sender wallet",
                challenge, reason="sender_mismatch",
            )

        expected = ExpectedPayment(
            recipient=recipient.wallet, token=token,
            amount_units=challenge.amount_units,
        )
        result = await self._verifier.verify(auth, expected)
        if not result.ok:
            raise PaymentRequiredError(
                f"Payment authorization rejected: {result.detail}",
                challenge, reason=result.reason.value,
            )

        bid_usd = from_units(auth.amount, token.decimals)
        if bid_usd < recipient.min_bid_usd:
            raise PaymentRequiredError(
                "Authorized amount is below the recipient minimum",
                challenge, reason="amount_below_minimum",
            )

        message, payment = self._build_records(request, auth, token, recipient, bid_usd)
        try:
            return await self._state_machine.create(message, payment)
        except AuthorizationError as e:
            logger.warning("Rejected replayed nonce %s from %s", auth.nonce, auth.sender)
            raise PaymentRequiredError(e.message, challenge, reason=e.reason) from e

    async def quote(self, request: CommitRequest) -> PaymentChallenge:
        """Issue a challenge without requiring an authorization attempt."""
        self._validate(request)
        token = self._tokens.resolve(request.token_symbol)
        recipient, quote = await self._prepare(request, token)
        return self._issuer.issue(recipient.wallet, request.bid_usd, token, quote)

    async def _prepare(
        self, request: CommitRequest, token: TokenInfo,
    ) -> tuple[ResolvedRecipient, dict[str, Any]]:
        async with self._db.connection() as conn:
            recipient = await self._resolver.resolve(conn, request.recipient)
            guidance = await self._price_guide.for_recipient(conn, recipient)
            snapshot = await ReputationRepository(conn).get_snapshot(
                request.sender_wallet.lower(),
            )
        sender_score = snapshot.sender_score if snapshot else None
        quote = {
            "minBidUsd": str(recipient.min_bid_usd),
            "suggestedBidUsd": str(guidance.median),
            "senderScore": sender_score,
            "trustedSender": sender_score is not None and sender_score >= TRUSTED_SENDER_SCORE,
        }
        return recipient, quote

    @staticmethod
    def _validate(request: CommitRequest) -> None:
        if not request.content.strip():
            raise InvalidRequestError("Message content cannot be empty")
        if request.bid_usd <= 0:
            raise InvalidRequestError("Bid must be positive")
        if not is_wallet_address(request.sender_wallet):
            raise InvalidRequestError("Invalid sender wallet address")
        if not MIN_EXPIRATION_HOURS <= request.expiration_hours <= MAX_EXPIRATION_HOURS:
            raise InvalidRequestError(
                f"expirationHours must be between {MIN_EXPIRATION_HOURS} and {MAX_EXPIRATION_HOURS}",
            )
        if request.reply_bounty_usd is not None and request.reply_bounty_usd < 0:
            raise InvalidRequestError("Reply bounty cannot be negative")

    def _build_records(
        self,
        request: CommitRequest,
        auth: TransferAuthorization,
        token: TokenInfo,
        recipient: ResolvedRecipient,
        bid_usd: Decimal,
    ) -> tuple[Message, PaymentRecord]:
        now = self._clock()
        message_id = str(uuid.uuid4())
        message = Message(
            message_id=message_id,
            sender_wallet=request.sender_wallet.lower(),
            sender_name=request.sender_name,
            recipient_wallet=recipient.wallet,
            content=request.content,
            bid_usd=bid_usd,
            reply_bounty_usd=request.reply_bounty_usd,
            sent_at=now,
            expires_at=now + timedelta(hours=request.expiration_hours),
        )
        payment = PaymentRecord(
            payment_id=str(uuid.uuid4()),
            message_id=message_id,
            chain_id=auth.chain_id,
            token_address=token.address,
            token_symbol=token.symbol,
            token_decimals=token.decimals,
            amount_units=auth.amount,
            amount_decimal=bid_usd,
            sender=auth.sender.lower(),
            recipient=recipient.wallet,
            nonce=auth.nonce,
            signature_v=auth.signature.v,
            signature_r=auth.signature.r,
            signature_s=auth.signature.s,
            valid_after=auth.valid_after,
            valid_before=auth.valid_before,
            created_at=now,
        )
        return message, payment
