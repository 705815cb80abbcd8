"""Bid guidance from a recipient's current and recent bids."""
import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Sequence

import aiosqlite

from src.escrow.recipients import RecipientResolver, ResolvedRecipient
from src.state.repositories.messages import MessageRepository

MIN_PENDING_SAMPLE = 5
ACCEPTED_TOP_UP_LIMIT = 20
WINSOR_QUANTILE = 0.95


@dataclass(frozen=True)
class Percentiles:
    p25: Decimal
    median: Decimal
    p75: Decimal
    sample_size: int


@dataclass(frozen=True)
class PriceGuidance:
    min_bid_usd: Decimal
    p25: Decimal
    median: Decimal
    p75: Decimal
    sample_size: int
    is_registered: bool
    username: Optional[str] = None


def _at(sorted_values: Sequence[Decimal], quantile: float) -> Decimal:
    index = min(math.floor(len(sorted_values) * quantile), len(sorted_values) - 1)
    return sorted_values[index]


def winsorized_percentiles(bids: Sequence[Decimal], minimum: Decimal) -> Percentiles:
    """p25, median and p75 after clipping every bid into ``[minimum, p95]``.

    An empty sample reports the minimum for all three and a size of 0.
    """
    if not bids:
        return Percentiles(minimum, minimum, minimum, 0)
    ordered = sorted(bids)
    p95 = _at(ordered, WINSOR_QUANTILE)
    clipped = [max(minimum, min(bid, p95)) for bid in ordered]
    return Percentiles(
        p25=_at(clipped, 0.25),
        median=_at(clipped, 0.5),
        p75=_at(clipped, 0.75),
        sample_size=len(ordered),
    )


class PriceGuide:
    """Read-only percentile statistics over a recipient's bids.

    Pending bids are the primary sample. When there are fewer than five,
    up to twenty of the most recently accepted bids are added.
    """

    def __init__(self, resolver: RecipientResolver) -> None:
        self._resolver = resolver

    async def sample(self, conn: aiosqlite.Connection, wallet: str) -> list[Decimal]:
        repo = MessageRepository(conn)
        bids = [b for b in await repo.list_pending_bids(wallet) if b > 0]
        if len(bids) < MIN_PENDING_SAMPLE:
            accepted = await repo.list_recent_settled_bids(wallet, ACCEPTED_TOP_UP_LIMIT)
            bids.extend(b for b in accepted if b > 0)
        return bids

    async def for_recipient(self, conn: aiosqlite.Connection, recipient: ResolvedRecipient) -> PriceGuidance:
        stats = winsorized_percentiles(
            await self.sample(conn, recipient.wallet), recipient.min_bid_usd,
        )
        return PriceGuidance(
            min_bid_usd=recipient.min_bid_usd,
            p25=stats.p25,
            median=stats.median,
            p75=stats.p75,
            sample_size=stats.sample_size,
            is_registered=recipient.is_registered,
            username=recipient.username,
        )

    async def lookup(self, conn: aiosqlite.Connection, identifier: str) -> PriceGuidance:
        """Resolve a username or wallet and compute its guidance."""
        recipient = await self._resolver.resolve(conn, identifier)
        return await self.for_recipient(conn, recipient)
