"""Vouch and block repository."""
import aiosqlite
from datetime import datetime

from src.state.database import from_db_time, to_db_time
from src.state.models.reputation import Block, Vouch


class SocialRepository:
    """Stores directed wallet-to-wallet vouches and blocks.

    Both tables carry a UNIQUE pair constraint; a duplicate insert raises
    :class:`sqlite3.IntegrityError` for the caller to translate.
    """

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def insert_vouch(self, vouch: Vouch) -> None:
        await self._conn.execute(
            "INSERT INTO vouches (vouch_id, voucher, vouchee, weight, "
            "message_id, created_at) VALUES (?, ?, ?, ?, ?, ?)",
            (
                vouch.vouch_id, vouch.voucher, vouch.vouchee, vouch.weight,
                vouch.message_id, to_db_time(vouch.created_at),
            ),
        )

    async def vouch_exists(self, voucher: str, vouchee: str) -> bool:
        cursor = await self._conn.execute(
            "SELECT 1 FROM vouches WHERE voucher = ? AND vouchee = ?",
            (voucher, vouchee),
        )
        return await cursor.fetchone() is not None

    async def list_vouches_for(self, vouchee: str) -> list[Vouch]:
        cursor = await self._conn.execute(
            "SELECT * FROM vouches WHERE vouchee = ? ORDER BY created_at ASC",
            (vouchee,),
        )
        rows = await cursor.fetchall()
        return [
            Vouch(
                vouch_id=r["vouch_id"],
                voucher=r["voucher"],
                vouchee=r["vouchee"],
                weight=r["weight"],
                message_id=r["message_id"],
                created_at=from_db_time(r["created_at"]),
            )
            for r in rows
        ]

    async def insert_block(self, block: Block) -> None:
        await self._conn.execute(
            "INSERT INTO blocks (block_id, blocker, blocked, created_at) "
            "VALUES (?, ?, ?, ?)",
            (block.block_id, block.blocker, block.blocked,
             to_db_time(block.created_at)),
        )

    async def block_exists(self, blocker: str, blocked: str) -> bool:
        cursor = await self._conn.execute(
            "SELECT 1 FROM blocks WHERE blocker = ? AND blocked = ?",
            (blocker, blocked),
        )
        return await cursor.fetchone() is not None

    async def list_blocks_against(self, blocked: str, since: datetime) -> list[Block]:
        cursor = await self._conn.execute(
            "SELECT * FROM blocks WHERE blocked = ? AND created_at >= ? "
            "ORDER BY created_at ASC",
            (blocked, to_db_time(since)),
        )
        rows = await cursor.fetchall()
        return [
            Block(
                block_id=r["block_id"],
                blocker=r["blocker"],
                blocked=r["blocked"],
                created_at=from_db_time(r["created_at"]),
            )
            for r in rows
        ]
