"""Reputation event log and snapshot repository."""
import json
import aiosqlite
from datetime import datetime
from typing import Optional

from src.state.database import from_db_time, to_db_time
from src.state.models.reputation import (
    ReputationEvent,
    ReputationEventType,
    ReputationSnapshot,
)


class ReputationRepository:
    """Appends reputation events and stores the derived snapshots.

    Events are append-only.
    """

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def append_event(self, event: ReputationEvent) -> None:
        await self._conn.execute(
            "INSERT INTO reputation_events (event_id, wallet, event_type, "
            "related_message_id, metadata, created_at) VALUES (?, ?, ?, ?, ?, ?)",
            (
                event.event_id, event.wallet, event.event_type.value,
                event.related_message_id,
                json.dumps(event.metadata, sort_keys=True),
                to_db_time(event.created_at),
            ),
        )

    async def list_events(
        self, wallet: str, since: Optional[datetime] = None,
    ) -> list[ReputationEvent]:
        if since is None:
            cursor = await self._conn.execute(
                "SELECT * FROM reputation_events WHERE wallet = ? "
                "ORDER BY created_at ASC",
                (wallet,),
            )
        else:
            cursor = await self._conn.execute(
                "SELECT * FROM reputation_events WHERE wallet = ? "
                "AND created_at >= ? ORDER BY created_at ASC",
                (wallet, to_db_time(since)),
            )
        rows = await cursor.fetchall()
        return [self._row_to_event(r) for r in rows]

    async def upsert_snapshot(self, snapshot: ReputationSnapshot) -> None:
        await self._conn.execute(
            "INSERT INTO reputation_snapshots (wallet, sender_score, "
            "recipient_score, open_rate, reply_rate, refund_rate, block_rate, "
            "vouch_count, total_sent, total_received, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(wallet) DO UPDATE SET "
            "sender_score = excluded.sender_score, "
            "recipient_score = excluded.recipient_score, "
            "open_rate = excluded.open_rate, "
            "reply_rate = excluded.reply_rate, "
            "refund_rate = excluded.refund_rate, "
            "block_rate = excluded.block_rate, "
            "vouch_count = excluded.vouch_count, "
            "total_sent = excluded.total_sent, "
            "total_received = excluded.total_received, "
            "updated_at = excluded.updated_at",
            (
                snapshot.wallet, snapshot.sender_score, snapshot.recipient_score,
                snapshot.open_rate, snapshot.reply_rate, snapshot.refund_rate,
                snapshot.block_rate, snapshot.vouch_count, snapshot.total_sent,
                snapshot.total_received, to_db_time(snapshot.updated_at),
            ),
        )

    async def get_snapshot(self, wallet: str) -> Optional[ReputationSnapshot]:
        cursor = await self._conn.execute(
            "SELECT * FROM reputation_snapshots WHERE wallet = ?", (wallet,),
        )
        row = await cursor.fetchone()
        return self._row_to_snapshot(row) if row else None

    @staticmethod
    def _row_to_event(row: aiosqlite.Row) -> ReputationEvent:
        return ReputationEvent(
            event_id=row["event_id"],
            wallet=row["wallet"],
            event_type=ReputationEventType(row["event_type"]),
            related_message_id=row["related_message_id"],
            metadata=json.loads(row["metadata"]) if row["metadata"] else {},
            created_at=from_db_time(row["created_at"]),
        )

    @staticmethod
    def _row_to_snapshot(row: aiosqlite.Row) -> ReputationSnapshot:
        return ReputationSnapshot(
            wallet=row["wallet"],
            sender_score=row["sender_score"],
            recipient_score=row["recipient_score"],
            open_rate=row["open_rate"],
            reply_rate=row["reply_rate"],
            refund_rate=row["refund_rate"],
            block_rate=row["block_rate"],
            vouch_count=row["vouch_count"],
            total_sent=row["total_sent"],
            total_received=row["total_received"],
            updated_at=from_db_time(row["updated_at"]),
        )
