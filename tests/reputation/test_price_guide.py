"""Tests for winsorized bid guidance."""
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from src.escrow.recipients import RecipientResolver
from src.reputation.price_guide import PriceGuide, winsorized_percentiles
from src.state.models.profile import RecipientProfile
from src.state.repositories.profiles import ProfileRepository
from tests.conftest import RECIPIENT, build_escrow


def _bids(*values) -> list[Decimal]:
    return [Decimal(str(v)) for v in values]


class TestWinsorizedPercentiles:
    def test_empty_sample_reports_minimum(self) -> None:
        stats = winsorized_percentiles([], Decimal("0.10"))
        assert (stats.p25, stats.median, stats.p75) == (Decimal("0.10"),) * 3
        assert stats.sample_size == 0

    def test_percentile_positions(self) -> None:
        stats = winsorized_percentiles(_bids(*range(1, 21)), Decimal("1"))
        assert (stats.p25, stats.median, stats.p75) == (6, 11, 16)
        assert stats.sample_size == 20

    def test_outlier_clipped_to_p95(self) -> None:
        bids = _bids(*range(1, 40), 10_000)
        stats = winsorized_percentiles(bids, Decimal("1"))
        assert stats.p75 == 31
        assert stats.p75 <= 39

    def test_low_bids_raised_to_minimum(self) -> None:
        stats = winsorized_percentiles(_bids(1, 1, 1, 1, 10), Decimal("2"))
        assert (stats.p25, stats.median, stats.p75) == (2, 2, 2)

    def test_ordering(self) -> None:
        stats = winsorized_percentiles(_bids(5, 0.5, 3, 12, 7, 2.2, 9), Decimal("0.10"))
        assert stats.p25 <= stats.median <= stats.p75


class TestPriceGuide:
    @pytest.mark.asyncio
    async def test_uses_pending_bids(self, db, state_machine) -> None:
        for bid in ("1", "2", "3", "4", "5", "6"):
            await state_machine.create(*build_escrow(bid=bid))
        guide = PriceGuide(RecipientResolver(Decimal("0.10")))
        async with db.connection() as conn:
            guidance = await guide.lookup(conn, RECIPIENT)
        assert guidance.sample_size == 6
        assert guidance.median == 4
        assert guidance.is_registered is False

    @pytest.mark.asyncio
    async def test_tops_up_with_accepted_bids(self, db, state_machine) -> None:
        for bid in ("8", "9"):
            message, payment = build_escrow(bid=bid)
            await state_machine.create(message, payment)
            await state_machine.accept(message.message_id, RECIPIENT)
        await state_machine.create(*build_escrow(bid="1"))
        guide = PriceGuide(RecipientResolver(Decimal("0.10")))
        async with db.connection() as conn:
            guidance = await guide.lookup(conn, RECIPIENT)
        assert guidance.sample_size == 3

    @pytest.mark.asyncio
    async def test_declined_bids_excluded(self, db, state_machine) -> None:
        message, payment = build_escrow(bid="50")
        await state_machine.create(message, payment)
        await state_machine.decline(message.message_id, RECIPIENT)
        guide = PriceGuide(RecipientResolver(Decimal("0.10")))
        async with db.connection() as conn:
            guidance = await guide.lookup(conn, RECIPIENT)
        assert guidance.sample_size == 0
        assert guidance.median == Decimal("0.10")

    @pytest.mark.asyncio
    async def test_registered_recipient_minimum(self, db) -> None:
        async with db.transaction() as conn:
            await ProfileRepository(conn).insert(RecipientProfile(
                wallet_address=RECIPIENT, username="carol", display_name="Carol",
                min_bid_usd=Decimal("3"), created_at=datetime.now(timezone.utc),
            ))
        guide = PriceGuide(RecipientResolver(Decimal("0.10")))
        async with db.connection() as conn:
            guidance = await guide.lookup(conn, "carol")
        assert guidance.min_bid_usd == 3
        assert guidance.username == "carol"
        assert guidance.is_registered is True
