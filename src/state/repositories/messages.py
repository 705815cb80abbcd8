"""Message repository for escrowed bids.

Repositories never commit: callers run them inside
:meth:`DatabaseManager.transaction` so that multi-table changes land
atomically. Every status change is a guarded ``UPDATE`` that re-checks the
expected prior status and reports whether it won.
"""
import aiosqlite
from datetime import datetime
from decimal import Decimal
from typing import Optional

from src.state.database import from_db_time, to_db_time
from src.state.models.message import Message, MessageStatus

_MAX_LIST_LIMIT = 100

# Statuses reached through a successful settlement.
SETTLED_STATUSES = (
    MessageStatus.ACCEPTED.value,
    MessageStatus.OPENED.value,
    MessageStatus.REPLIED.value,
)


class MessageRepository:
    """Manages escrowed messages in the messages table."""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def insert(self, msg: Message) -> None:
        await self._conn.execute(
            "INSERT INTO messages (message_id, sender_wallet, sender_name, "
            "recipient_wallet, content, bid_usd, reply_bounty_usd, status, "
            "sent_at, expires_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                msg.message_id, msg.sender_wallet, msg.sender_name,
                msg.recipient_wallet, msg.content, str(msg.bid_usd),
                str(msg.reply_bounty_usd) if msg.reply_bounty_usd is not None else None,
                msg.status.value, to_db_time(msg.sent_at),
                to_db_time(msg.expires_at),
            ),
        )

    async def get_by_id(self, message_id: str) -> Optional[Message]:
        cursor = await self._conn.execute(
            "SELECT * FROM messages WHERE message_id = ?", (message_id,),
        )
        row = await cursor.fetchone()
        return self._row_to_message(row) if row else None

    async def list_pending_for_recipient(
        self, recipient_wallet: str, limit: int = 50,
    ) -> list[Message]:
        """List a recipient's pending messages, highest bid first."""
        if not isinstance(limit, int) or limit < 1:
            raise ValueError(f"limit must be a positive integer, got {limit!r}")
        capped = min(limit, _MAX_LIST_LIMIT)
        cursor = await self._conn.execute(
            "SELECT * FROM messages WHERE recipient_wallet = ? AND status = ? "
            "ORDER BY CAST(bid_usd AS REAL) DESC, sent_at ASC LIMIT ?",
            (recipient_wallet, MessageStatus.PENDING.value, capped),
        )
        rows = await cursor.fetchall()
        return [self._row_to_message(r) for r in rows]

    async def list_expired_pending(self, now: datetime) -> list[Message]:
        """Pending, unopened messages whose expiry has passed."""
        cursor = await self._conn.execute(
            "SELECT * FROM messages WHERE status = ? AND opened_at IS NULL "
            "AND expires_at < ? ORDER BY expires_at ASC",
            (MessageStatus.PENDING.value, to_db_time(now)),
        )
        rows = await cursor.fetchall()
        return [self._row_to_message(r) for r in rows]

    async def list_involving(
        self, wallet: str, since: datetime,
    ) -> tuple[list[Message], list[Message]]:
        """Return ``(sent, received)`` messages for a wallet since a cutoff."""
        cursor = await self._conn.execute(
            "SELECT * FROM messages WHERE (sender_wallet = ? OR recipient_wallet = ?) "
            "AND sent_at >= ? ORDER BY sent_at ASC",
            (wallet, wallet, to_db_time(since)),
        )
        rows = await cursor.fetchall()
        messages = [self._row_to_message(r) for r in rows]
        sent = [m for m in messages if m.sender_wallet == wallet]
        received = [m for m in messages if m.recipient_wallet == wallet]
        return sent, received

    async def list_pending_bids(self, recipient_wallet: str) -> list[Decimal]:
        cursor = await self._conn.execute(
            "SELECT bid_usd FROM messages WHERE recipient_wallet = ? AND status = ?",
            (recipient_wallet, MessageStatus.PENDING.value),
        )
        return [Decimal(row["bid_usd"]) for row in await cursor.fetchall()]

    async def list_recent_settled_bids(
        self, recipient_wallet: str, limit: int,
    ) -> list[Decimal]:
        """Bids of settled messages, most recently accepted first."""
        placeholders = ",".join("?" for _ in SETTLED_STATUSES)
        cursor = await self._conn.execute(
            f"SELECT bid_usd FROM messages WHERE recipient_wallet = ? "
            f"AND status IN ({placeholders}) "
            "ORDER BY accepted_at DESC LIMIT ?",
            (recipient_wallet, *SETTLED_STATUSES, limit),
        )
        return [Decimal(row["bid_usd"]) for row in await cursor.fetchall()]

    async def mark_accepted(self, message_id: str, accepted_at: datetime) -> bool:
        cursor = await self._conn.execute(
            "UPDATE messages SET status = ?, accepted_at = ? "
            "WHERE message_id = ? AND status = ?",
            (MessageStatus.ACCEPTED.value, to_db_time(accepted_at),
             message_id, MessageStatus.PENDING.value),
        )
        return cursor.rowcount > 0

    async def mark_declined(
        self, message_id: str, declined_at: datetime, reason: str,
    ) -> bool:
        cursor = await self._conn.execute(
            "UPDATE messages SET status = ?, declined_at = ?, refund_reason = ? "
            "WHERE message_id = ? AND status = ?",
            (MessageStatus.DECLINED.value, to_db_time(declined_at), reason,
             message_id, MessageStatus.PENDING.value),
        )
        return cursor.rowcount > 0

    async def mark_expired(
        self, message_id: str, refunded_at: datetime, reason: str,
    ) -> bool:
        """Expire a message only if it is still pending, unopened and past due."""
        stamp = to_db_time(refunded_at)
        cursor = await self._conn.execute(
            "UPDATE messages SET status = ?, refunded_at = ?, refund_reason = ? "
            "WHERE message_id = ? AND status = ? AND opened_at IS NULL "
            "AND expires_at < ?",
            (MessageStatus.EXPIRED.value, stamp, reason, message_id,
             MessageStatus.PENDING.value, stamp),
        )
        return cursor.rowcount > 0

    async def mark_opened(self, message_id: str, opened_at: datetime) -> bool:
        cursor = await self._conn.execute(
            "UPDATE messages SET status = ?, opened_at = ? "
            "WHERE message_id = ? AND status = ?",
            (MessageStatus.OPENED.value, to_db_time(opened_at),
             message_id, MessageStatus.ACCEPTED.value),
        )
        return cursor.rowcount > 0

    async def mark_replied(self, message_id: str, replied_at: datetime) -> bool:
        """Mark a settled message replied; opening is implied by a reply."""
        stamp = to_db_time(replied_at)
        cursor = await self._conn.execute(
            "UPDATE messages SET status = ?, replied_at = ?, "
            "opened_at = COALESCE(opened_at, ?) "
            "WHERE message_id = ? AND status IN (?, ?)",
            (MessageStatus.REPLIED.value, stamp, stamp, message_id,
             MessageStatus.ACCEPTED.value, MessageStatus.OPENED.value),
        )
        return cursor.rowcount > 0

    @staticmethod
    def _row_to_message(row: aiosqlite.Row) -> Message:
        bounty = row["reply_bounty_usd"]
        return Message(
            message_id=row["message_id"],
            sender_wallet=row["sender_wallet"],
            sender_name=row["sender_name"],
            recipient_wallet=row["recipient_wallet"],
            content=row["content"],
            bid_usd=Decimal(row["bid_usd"]),
            reply_bounty_usd=Decimal(bounty) if bounty is not None else None,
            status=MessageStatus(row["status"]),
            sent_at=from_db_time(row["sent_at"]),
            expires_at=from_db_time(row["expires_at"]),
            accepted_at=from_db_time(row["accepted_at"]),
            declined_at=from_db_time(row["declined_at"]),
            refunded_at=from_db_time(row["refunded_at"]),
            opened_at=from_db_time(row["opened_at"]),
            replied_at=from_db_time(row["replied_at"]),
            refund_reason=row["refund_reason"],
        )
