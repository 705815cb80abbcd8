"""Recipient lookup shared by the commit flow and price guidance."""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

import aiosqlite

from src.escrow.amounts import is_wallet_address
from src.escrow.errors import NotFoundError
from src.state.models.profile import RecipientProfile
from src.state.repositories.profiles import ProfileRepository

PLATFORM_MIN_BID_USD = Decimal("0.10")


@dataclass(frozen=True)
class ResolvedRecipient:
    wallet: str
    min_bid_usd: Decimal
    profile: Optional[RecipientProfile] = None

    @property
    def is_registered(self) -> bool:
        return self.profile is not None

    @property
    def username(self) -> Optional[str]:
        return self.profile.username if self.profile else None


class RecipientResolver:
    """Maps a username or wallet to the wallet funds must go to.

    A registered profile supplies its own minimum bid; a bare wallet gets
    the platform default.
    """

    def __init__(self, default_min_bid: Decimal = PLATFORM_MIN_BID_USD) -> None:
        self._default_min_bid = default_min_bid

    @property
    def default_min_bid(self) -> Decimal:
        return self._default_min_bid

    async def resolve(self, conn: aiosqlite.Connection, identifier: str) -> ResolvedRecipient:
        identifier = identifier.strip()
        profiles = ProfileRepository(conn)
        if is_wallet_address(identifier):
            wallet = identifier.lower()
            profile = await profiles.get_by_wallet(wallet)
            if profile is None:
                return ResolvedRecipient(wallet=wallet, min_bid_usd=self._default_min_bid)
        else:
            profile = await profiles.get_by_username(identifier.lstrip("@"))
            if profile is None:
                raise NotFoundError(f"Recipient not found: {identifier}")
        return ResolvedRecipient(
            wallet=profile.wallet_address,
            min_bid_usd=profile.min_bid_usd,
            profile=profile,
        )
