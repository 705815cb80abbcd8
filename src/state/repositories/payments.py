"""Payment authorization repository."""
import aiosqlite
from datetime import datetime
from decimal import Decimal
from typing import Optional

from src.state.database import from_db_time, to_db_time
from src.state.models.payment import PaymentRecord, PaymentStatus


class PaymentRepository:
    """Manages escrowed authorizations in the payments table.

    The nonce column is UNIQUE, so a replayed authorization fails at insert
    time even if two commits race past :meth:`nonce_exists`.
    """

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def insert(self, payment: PaymentRecord) -> None:
        await self._conn.execute(
            "INSERT INTO payments (payment_id, message_id, chain_id, "
            "token_address, token_symbol, token_decimals, amount_units, "
            "amount_decimal, sender, recipient, nonce, signature_v, "
            "signature_r, signature_s, valid_after, valid_before, status, "
            "created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                payment.payment_id, payment.message_id, payment.chain_id,
                payment.token_address, payment.token_symbol,
                payment.token_decimals, str(payment.amount_units),
                str(payment.amount_decimal), payment.sender, payment.recipient,
                payment.nonce, payment.signature_v, payment.signature_r,
                payment.signature_s, payment.valid_after, payment.valid_before,
                payment.status.value, to_db_time(payment.created_at),
            ),
        )

    async def get_by_message_id(self, message_id: str) -> Optional[PaymentRecord]:
        cursor = await self._conn.execute(
            "SELECT * FROM payments WHERE message_id = ?", (message_id,),
        )
        row = await cursor.fetchone()
        return self._row_to_payment(row) if row else None

    async def nonce_exists(self, nonce: str) -> bool:
        cursor = await self._conn.execute(
            "SELECT 1 FROM payments WHERE lower(nonce) = lower(?)", (nonce,),
        )
        return await cursor.fetchone() is not None

    async def mark_settled(
        self, message_id: str, tx_hash: str, settled_at: datetime,
    ) -> bool:
        cursor = await self._conn.execute(
            "UPDATE payments SET status = ?, settlement_tx_hash = ?, settled_at = ? "
            "WHERE message_id = ? AND status = ?",
            (PaymentStatus.SETTLED.value, tx_hash, to_db_time(settled_at),
             message_id, PaymentStatus.AUTHORIZED.value),
        )
        return cursor.rowcount > 0

    async def mark_unused(self, message_id: str) -> bool:
        cursor = await self._conn.execute(
            "UPDATE payments SET status = ? WHERE message_id = ? AND status = ?",
            (PaymentStatus.UNUSED.value, message_id, PaymentStatus.AUTHORIZED.value),
        )
        return cursor.rowcount > 0

    async def record_orphaned_settlement(
        self, message_id: str, tx_hash: str, settled_at: datetime,
    ) -> bool:
        """Keep the hash of a settlement whose message was resolved another way.

        The status is left as it is, so the row stays visible to
        :meth:`list_orphaned_settlements` until an operator reconciles it.
        """
        cursor = await self._conn.execute(
            "UPDATE payments SET settlement_tx_hash = ?, settled_at = ? "
            "WHERE message_id = ? AND status != ? AND settlement_tx_hash IS NULL",
            (tx_hash, to_db_time(settled_at), message_id, PaymentStatus.SETTLED.value),
        )
        return cursor.rowcount > 0

    async def list_orphaned_settlements(self) -> list[PaymentRecord]:
        cursor = await self._conn.execute(
            "SELECT * FROM payments WHERE settlement_tx_hash IS NOT NULL "
            "AND status != ? ORDER BY settled_at ASC",
            (PaymentStatus.SETTLED.value,),
        )
        return [self._row_to_payment(r) for r in await cursor.fetchall()]

    @staticmethod
    def _row_to_payment(row: aiosqlite.Row) -> PaymentRecord:
        return PaymentRecord(
            payment_id=row["payment_id"],
            message_id=row["message_id"],
            chain_id=row["chain_id"],
            token_address=row["token_address"],
            token_symbol=row["token_symbol"],
            token_decimals=row["token_decimals"],
            amount_units=int(row["amount_units"]),
            amount_decimal=Decimal(row["amount_decimal"]),
            sender=row["sender"],
            recipient=row["recipient"],
            nonce=row["nonce"],
            signature_v=row["signature_v"],
            signature_r=row["signature_r"],
            signature_s=row["signature_s"],
            valid_after=row["valid_after"],
            valid_before=row["valid_before"],
            status=PaymentStatus(row["status"]),
            settlement_tx_hash=row["settlement_tx_hash"],
            refund_tx_hash=row["refund_tx_hash"],
            created_at=from_db_time(row["created_at"]),
            settled_at=from_db_time(row["settled_at"]),
        )
