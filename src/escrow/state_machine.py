"""Escrow lifecycle of a message and its payment authorization.

States: ``pending -> accepted | declined | expired``; accepted messages may
then be opened and replied to. Every transition is a guarded update that
re-checks the prior status inside a write transaction, so concurrent
accept/decline/expire calls on one message resolve to a single winner.
Settlement is the only step that touches the chain, and it runs before
the transaction opens so no lock is held while it is in flight.
"""
import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from src.escrow.authorization import Signature, TransferAuthorization
from src.escrow.chain import ChainAdapter
from src.escrow.errors import (
    AuthorizationError,
    ForbiddenError,
    NotFoundError,
    StateConflictError,
)
from src.escrow.tokens import TokenInfo, TokenRegistry
from src.reputation.engine import ReputationEngine
from src.state.database import DatabaseManager
from src.state.models.message import Message, MessageStatus
from src.state.models.payment import PaymentRecord, PaymentStatus
from src.state.models.reputation import ReputationEventType
from src.state.repositories.messages import MessageRepository
from src.state.repositories.payments import PaymentRepository

logger = logging.getLogger(__name__)

EXPIRY_REASON = "SLA expired"
DEFAULT_DECLINE_REASON = "Declined by recipient"


@dataclass(frozen=True)
class AcceptResult:
    message: Message
    settlement_tx_hash: str


def authorization_from_record(payment: PaymentRecord) -> TransferAuthorization:
    return TransferAuthorization(
        chain_id=payment.chain_id,
        token_address=payment.token_address,
        amount=payment.amount_units,
        sender=payment.sender,
        recipient=payment.recipient,
        nonce=payment.nonce,
        valid_after=payment.valid_after,
        valid_before=payment.valid_before,
        signature=Signature(
            v=payment.signature_v, r=payment.signature_r, s=payment.signature_s,
        ),
    )


class EscrowStateMachine:
    """Owns every mutation of messages and payments."""

    def __init__(
        self,
        db: DatabaseManager,
        chain: ChainAdapter,
        reputation: ReputationEngine,
        tokens: TokenRegistry,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._db = db
        self._chain = chain
        self._reputation = reputation
        self._tokens = tokens
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def create(self, message: Message, payment: PaymentRecord) -> Message:
        """Persist a pending message and its authorization atomically."""
        if message.message_id != payment.message_id:
            raise ValueError("payment does not belong to message")
        async with self._db.transaction() as conn:
            payments = PaymentRepository(conn)
            if await payments.nonce_exists(payment.nonce):
                raise AuthorizationError(
                    "Authorization nonce already used", reason="nonce_replayed",
                )
            try:
                await MessageRepository(conn).insert(message)
                await payments.insert(payment)
            except sqlite3.IntegrityError as e:
                raise AuthorizationError(
                    "Authorization nonce already used", reason="nonce_replayed",
                ) from e
            await self._reputation.record_transition(
                conn, message, ReputationEventType.SENT,
                {"bid_usd": str(message.bid_usd)},
            )
        logger.info(
            "Escrow created message=%s sender=%s recipient=%s bid=%s",
            message.message_id, message.sender_wallet,
            message.recipient_wallet, message.bid_usd,
        )
        return message

    async def accept(self, message_id: str, caller_wallet: str) -> AcceptResult:
        """Settle the authorization on-chain, then mark the message accepted.

        A chain failure leaves everything untouched and is raised as
        :class:`ChainAdapterError` for the caller to retry. If the message is
        resolved elsewhere while settlement is in flight, the tx hash is kept
        on the payment row for reconciliation and a conflict is raised.
        """
        message, payment = await self._load_pending(message_id, caller_wallet)
        now = self._clock()
        if now >= message.expires_at:
            raise StateConflictError(
                "Message has expired", {"message_id": message_id},
            )

        token = self._token_for(payment)
        tx_hash = await self._chain.settle(authorization_from_record(payment), token)
        logger.info("Settled message=%s tx=%s", message_id, tx_hash)

        settled_at = self._clock()
        lost = StateConflictError(
            "Message already resolved",
            {"message_id": message_id, "settlement_tx_hash": tx_hash},
        )
        try:
            async with self._db.transaction() as conn:
                messages = MessageRepository(conn)
                won = await messages.mark_accepted(message_id, settled_at)
                if won:
                    won = await PaymentRepository(conn).mark_settled(
                        message_id, tx_hash, settled_at,
                    )
                if not won:
                    raise lost
                updated = await messages.get_by_id(message_id)
                await self._reputation.record_transition(
                    conn, updated, ReputationEventType.DELIVERED, {"tx_hash": tx_hash},
                )
        except StateConflictError as e:
            if e is lost:
                await self._record_orphaned_settlement(message_id, tx_hash, settled_at)
            raise
        return AcceptResult(message=updated, settlement_tx_hash=tx_hash)

    async def _record_orphaned_settlement(
        self, message_id: str, tx_hash: str, settled_at: datetime,
    ) -> None:
        """Store the hash of funds that moved for a message resolved elsewhere."""
        async with self._db.transaction() as conn:
            await PaymentRepository(conn).record_orphaned_settlement(
                message_id, tx_hash, settled_at,
            )
        logger.error(
            "Settlement tx %s for message %s completed but the message "
            "was resolved concurrently; manual reconciliation required",
            tx_hash, message_id,
        )

    async def decline(
        self, message_id: str, caller_wallet: str, reason: Optional[str] = None,
    ) -> Message:
        """Void the authorization without any chain call."""
        await self._load_pending(message_id, caller_wallet)
        reason = reason or DEFAULT_DECLINE_REASON
        async with self._db.transaction() as conn:
            messages = MessageRepository(conn)
            if not await messages.mark_declined(message_id, self._clock(), reason):
                raise StateConflictError("Message already resolved", {"message_id": message_id})
            await PaymentRepository(conn).mark_unused(message_id)
            updated = await messages.get_by_id(message_id)
            await self._reputation.record_transition(
                conn, updated, ReputationEventType.REFUNDED, {"reason": reason},
            )
        logger.info("Declined message=%s", message_id)
        return updated

    async def expire(self, message_id: str) -> Message:
        """Expire a pending, unopened, past-due message.

        Funds never left the sender, so this is a status change on the
        message only; the payment record stays ``authorized`` and no
        chain call is made.

        Raises :class:`StateConflictError` if the message is no longer
        eligible, for example after losing a race with accept.
        """
        async with self._db.transaction() as conn:
            messages = MessageRepository(conn)
            if not await messages.mark_expired(message_id, self._clock(), EXPIRY_REASON):
                raise StateConflictError(
                    "Message not eligible for expiry", {"message_id": message_id},
                )
            updated = await messages.get_by_id(message_id)
            await self._reputation.record_transition(
                conn, updated, ReputationEventType.REFUNDED, {"reason": EXPIRY_REASON},
            )
        logger.info("Expired message=%s", message_id)
        return updated

    async def open(self, message_id: str, caller_wallet: str) -> Message:
        await self._load_owned(message_id, caller_wallet)
        async with self._db.transaction() as conn:
            messages = MessageRepository(conn)
            if not await messages.mark_opened(message_id, self._clock()):
                raise StateConflictError(
                    "Only accepted messages can be opened", {"message_id": message_id},
                )
            updated = await messages.get_by_id(message_id)
            await self._reputation.record_transition(
                conn, updated, ReputationEventType.OPENED,
            )
        return updated

    async def reply(self, message_id: str, caller_wallet: str) -> Message:
        await self._load_owned(message_id, caller_wallet)
        async with self._db.transaction() as conn:
            messages = MessageRepository(conn)
            if not await messages.mark_replied(message_id, self._clock()):
                raise StateConflictError(
                    "Only accepted or opened messages can be replied to",
                    {"message_id": message_id},
                )
            updated = await messages.get_by_id(message_id)
            await self._reputation.record_transition(
                conn, updated, ReputationEventType.REPLIED,
            )
        return updated

    async def _load_owned(self, message_id: str, caller_wallet: str) -> Message:
        async with self._db.connection() as conn:
            message = await MessageRepository(conn).get_by_id(message_id)
        if message is None:
            raise NotFoundError(f"Message not found: {message_id}")
        if message.recipient_wallet != caller_wallet.lower():
            raise ForbiddenError("Only the recipient can act on this message")
        return message

    async def _load_pending(
        self, message_id: str, caller_wallet: str,
    ) -> tuple[Message, PaymentRecord]:
        message = await self._load_owned(message_id, caller_wallet)
        async with self._db.connection() as conn:
            payment = await PaymentRepository(conn).get_by_message_id(message_id)
        if message.status != MessageStatus.PENDING:
            raise StateConflictError(
                f"Message already {message.status.value}",
                {"message_id": message_id, "status": message.status.value},
            )
        if payment is None or payment.status != PaymentStatus.AUTHORIZED:
            raise StateConflictError(
                "Payment authorization is not available",
                {"message_id": message_id},
            )
        return message, payment

    def _token_for(self, payment: PaymentRecord) -> TokenInfo:
        token = self._tokens.find_by_address(payment.chain_id, payment.token_address)
        if token is not None:
            return token
        return TokenInfo(
            symbol=payment.token_symbol,
            name=payment.token_symbol,
            address=payment.token_address,
            decimals=payment.token_decimals,
            chain_id=payment.chain_id,
            network_name=str(payment.chain_id),
        )
