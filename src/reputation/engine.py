"""Per-wallet reputation computation.

A snapshot is a cache: it is always recomputed in full from the message
history, blocks and vouches inside the lookback window, never patched.
Logging an event and refreshing the snapshot happen on the same
connection, so callers that hold a transaction get both or neither.
"""
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

import aiosqlite

from src.reputation.scoring import clamp, decayed_count, wilson_lower_bound
from src.state.database import DatabaseManager
from src.state.models.message import Message
from src.state.models.reputation import (
    ReputationEvent,
    ReputationEventType,
    ReputationSnapshot,
)
from src.state.repositories.messages import MessageRepository
from src.state.repositories.reputation import ReputationRepository
from src.state.repositories.social import SocialRepository

logger = logging.getLogger(__name__)

LOOKBACK_DAYS = 90
VOUCH_SCORE_CAP = 10.0
CONTRIBUTION_PER_MESSAGE = 0.1
CONTRIBUTION_CAP = 5.0
TRUSTED_SENDER_SCORE = 70.0


class ReputationEngine:
    """Computes, stores and explains reputation snapshots."""

    def __init__(
        self,
        lookback_days: int = LOOKBACK_DAYS,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._lookback = timedelta(days=lookback_days)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def compute(
        self,
        conn: aiosqlite.Connection,
        wallet: str,
        as_of: Optional[datetime] = None,
    ) -> ReputationSnapshot:
        """Derive a snapshot for ``wallet`` as seen at ``as_of``.

        Deterministic for a fixed ``as_of`` and unchanged history.
        """
        as_of = as_of or self._clock()
        wallet = wallet.lower()
        since = as_of - self._lookback

        sent, received = await MessageRepository(conn).list_involving(wallet, since)
        social = SocialRepository(conn)
        blocks = await social.list_blocks_against(wallet, since)
        vouches = [v for v in await social.list_vouches_for(wallet) if v.created_at >= since]

        def weigh(messages: list[Message]) -> float:
            return decayed_count((m.sent_at for m in messages), as_of)

        sent_total = weigh(sent)
        open_lb = wilson_lower_bound(weigh([m for m in sent if m.opened_at]), sent_total)
        reply_lb = wilson_lower_bound(weigh([m for m in sent if m.replied_at]), sent_total)
        refund_rate = _ratio(weigh([m for m in sent if m.refunded_at]), sent_total)
        block_rate = _ratio(
            decayed_count((b.created_at for b in blocks), as_of), sent_total,
        )

        received_total = weigh(received)
        recv_open_lb = wilson_lower_bound(
            weigh([m for m in received if m.opened_at]), received_total,
        )
        recv_reply_lb = wilson_lower_bound(
            weigh([m for m in received if m.replied_at and m.reply_bounty_usd]),
            received_total,
        )
        recv_refund_rate = _ratio(
            weigh([m for m in received if m.refunded_at]), received_total,
        )

        vouch_score = min(sum(v.weight for v in vouches), VOUCH_SCORE_CAP)
        contribution = min(len(sent) * CONTRIBUTION_PER_MESSAGE, CONTRIBUTION_CAP)

        sender_score = clamp(
            45 * reply_lb
            + 20 * open_lb
            + 8 * vouch_score / VOUCH_SCORE_CAP
            + 5 * contribution / CONTRIBUTION_CAP
            - 6 * refund_rate
            - 7 * block_rate,
            0.0, 100.0,
        )
        recipient_score = clamp(
            40 * recv_open_lb
            + 30 * recv_reply_lb
            - 10 * recv_refund_rate
            + 10 * (1 if vouches else 0),
            0.0, 100.0,
        )

        return ReputationSnapshot(
            wallet=wallet,
            sender_score=round(sender_score, 2),
            recipient_score=round(recipient_score, 2),
            open_rate=round(open_lb, 4),
            reply_rate=round(reply_lb, 4),
            refund_rate=round(refund_rate, 4),
            block_rate=round(block_rate, 4),
            vouch_count=len(vouches),
            total_sent=len(sent),
            total_received=len(received),
            updated_at=as_of,
        )

    async def refresh(self, conn: aiosqlite.Connection, wallet: str) -> ReputationSnapshot:
        """Recompute and replace the stored snapshot."""
        snapshot = await self.compute(conn, wallet)
        await ReputationRepository(conn).upsert_snapshot(snapshot)
        return snapshot

    async def log_event(
        self,
        conn: aiosqlite.Connection,
        wallet: str,
        event_type: ReputationEventType,
        message_id: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> ReputationSnapshot:
        """Append an event and refresh the wallet's snapshot."""
        event = ReputationEvent(
            event_id=str(uuid.uuid4()),
            wallet=wallet.lower(),
            event_type=event_type,
            related_message_id=message_id,
            metadata=metadata or {},
            created_at=self._clock(),
        )
        await ReputationRepository(conn).append_event(event)
        snapshot = await self.refresh(conn, event.wallet)
        logger.debug(
            "Reputation event %s for %s: sender=%.2f recipient=%.2f",
            event_type.value, event.wallet, snapshot.sender_score,
            snapshot.recipient_score,
        )
        return snapshot

    async def record_transition(
        self,
        conn: aiosqlite.Connection,
        message: Message,
        event_type: ReputationEventType,
        metadata: Optional[dict[str, Any]] = None,
    ) -> None:
        """Log one message transition against both of its parties."""
        for wallet, role in (
            (message.sender_wallet, "sender"),
            (message.recipient_wallet, "recipient"),
        ):
            await self.log_event(
                conn, wallet, event_type, message.message_id,
                {"role": role, **(metadata or {})},
            )

    async def get_or_compute(self, db: DatabaseManager, wallet: str) -> ReputationSnapshot:
        """Return the stored snapshot, computing and storing it if absent."""
        wallet = wallet.lower()
        async with db.connection() as conn:
            snapshot = await ReputationRepository(conn).get_snapshot(wallet)
        if snapshot is not None:
            return snapshot
        async with db.transaction() as conn:
            return await self.refresh(conn, wallet)

    async def sender_score(self, db: DatabaseManager, wallet: str) -> Optional[float]:
        async with db.connection() as conn:
            snapshot = await ReputationRepository(conn).get_snapshot(wallet.lower())
        return snapshot.sender_score if snapshot else None


def _ratio(part: float, total: float) -> float:
    return part / total if total > 0 else 0.0


def describe(snapshot: ReputationSnapshot) -> list[str]:
    """Human-readable facts about a snapshot."""
    facts: list[str] = []
    if snapshot.open_rate > 0:
        confidence = " (confident)" if snapshot.total_sent >= 10 else ""
        facts.append(f"Opens {round(snapshot.open_rate * 100)}%{confidence}")
    if snapshot.reply_rate > 0:
        facts.append(f"Replies {round(snapshot.reply_rate * 100)}%")
    if snapshot.vouch_count > 0:
        plural = "es" if snapshot.vouch_count > 1 else ""
        facts.append(f"{snapshot.vouch_count} vouch{plural}")
    if snapshot.block_rate == 0 and snapshot.total_sent >= 5:
        facts.append("0 blocks")
    if snapshot.refund_rate < 0.1 and snapshot.total_sent >= 5:
        facts.append("Low refund rate")
    return facts
