"""Recipient profile repository."""
import aiosqlite
from decimal import Decimal
from typing import Optional

from src.state.database import from_db_time, to_db_time
from src.state.models.profile import RecipientProfile


class ProfileRepository:
    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def insert(self, profile: RecipientProfile) -> None:
        await self._conn.execute(
            "INSERT INTO profiles (wallet_address, username, display_name, "
            "min_bid_usd, is_public, created_at) VALUES (?, ?, ?, ?, ?, ?)",
            (
                profile.wallet_address, profile.username, profile.display_name,
                str(profile.min_bid_usd), int(profile.is_public),
                to_db_time(profile.created_at),
            ),
        )

    async def get_by_username(self, username: str) -> Optional[RecipientProfile]:
        cursor = await self._conn.execute(
            "SELECT * FROM profiles WHERE username = ?", (username.lower(),),
        )
        row = await cursor.fetchone()
        return self._row_to_profile(row) if row else None

    async def get_by_wallet(self, wallet_address: str) -> Optional[RecipientProfile]:
        cursor = await self._conn.execute(
            "SELECT * FROM profiles WHERE wallet_address = ?",
            (wallet_address.lower(),),
        )
        row = await cursor.fetchone()
        return self._row_to_profile(row) if row else None

    @staticmethod
    def _row_to_profile(row: aiosqlite.Row) -> RecipientProfile:
        return RecipientProfile(
            wallet_address=row["wallet_address"],
            username=row["username"],
            display_name=row["display_name"],
            min_bid_usd=Decimal(row["min_bid_usd"]),
            is_public=bool(row["is_public"]),
            created_at=from_db_time(row["created_at"]),
        )
