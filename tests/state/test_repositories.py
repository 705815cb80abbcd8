"""Tests for the SQLite repositories and transaction handling."""
import sqlite3
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

import pytest

from src.state.database import SCHEMA_VERSION, DatabaseManager, from_db_time, to_db_time
from src.state.models.message import MessageStatus
from src.state.models.payment import PaymentStatus
from src.state.models.profile import RecipientProfile
from src.state.models.reputation import (
    Block,
    ReputationEvent,
    ReputationEventType,
    ReputationSnapshot,
    Vouch,
)
from src.state.repositories.messages import MessageRepository
from src.state.repositories.payments import PaymentRepository
from src.state.repositories.profiles import ProfileRepository
from src.state.repositories.reputation import ReputationRepository
from src.state.repositories.social import SocialRepository
from tests.conftest import OTHER, RECIPIENT, SENDER, build_escrow

NOW = datetime(2026, 4, 1, 9, 30, tzinfo=timezone.utc)


async def _insert(db: DatabaseManager, **kwargs):
    message, payment = build_escrow(**kwargs)
    async with db.transaction() as conn:
        await MessageRepository(conn).insert(message)
        await PaymentRepository(conn).insert(payment)
    return message, payment


class TestDatabase:
    @pytest.mark.asyncio
    async def test_initialize_records_version(self, tmp_path: Path) -> None:
        db = DatabaseManager(tmp_path / "nested" / "x.db")
        await db.initialize()
        await db.initialize()
        assert db.is_initialized
        async with db.connection() as conn:
            cursor = await conn.execute("SELECT version FROM schema_versions")
            rows = await cursor.fetchall()
        assert [r["version"] for r in rows] == [SCHEMA_VERSION]

    @pytest.mark.asyncio
    async def test_transaction_rolls_back_on_error(self, db) -> None:
        message, _ = build_escrow()
        with pytest.raises(RuntimeError):
            async with db.transaction() as conn:
                await MessageRepository(conn).insert(message)
                raise RuntimeError("boom")
        async with db.connection() as conn:
            assert await MessageRepository(conn).get_by_id(message.message_id) is None

    def test_time_roundtrip_preserves_order(self) -> None:
        early = to_db_time(NOW)
        late = to_db_time(NOW + timedelta(microseconds=1))
        assert early < late
        assert from_db_time(early) == NOW
        assert from_db_time(None) is None

    def test_naive_times_treated_as_utc(self) -> None:
        assert to_db_time(datetime(2026, 1, 1)) == "2026-01-01T00:00:00.000000+00:00"


class TestMessageRepository:
    @pytest.mark.asyncio
    async def test_roundtrip(self, db) -> None:
        message, _ = await _insert(db, bid="12.345678", reply_bounty="0.5")
        async with db.connection() as conn:
            stored = await MessageRepository(conn).get_by_id(message.message_id)
        assert stored == message

    @pytest.mark.asyncio
    async def test_pending_sorted_by_bid(self, db) -> None:
        for bid in ("2", "10", "0.5"):
            await _insert(db, bid=bid)
        await _insert(db, bid="50", recipient=OTHER)
        async with db.connection() as conn:
            pending = await MessageRepository(conn).list_pending_for_recipient(RECIPIENT)
        assert [m.bid_usd for m in pending] == [Decimal("10"), Decimal("2"), Decimal("0.5")]

    @pytest.mark.asyncio
    async def test_pending_limit_validated(self, db) -> None:
        async with db.connection() as conn:
            with pytest.raises(ValueError):
                await MessageRepository(conn).list_pending_for_recipient(RECIPIENT, 0)

    @pytest.mark.asyncio
    async def test_expired_pending(self, db) -> None:
        due, _ = await _insert(db, sent_at=NOW, expires_in=timedelta(hours=1))
        await _insert(db, sent_at=NOW, expires_in=timedelta(hours=5))
        async with db.connection() as conn:
            found = await MessageRepository(conn).list_expired_pending(NOW + timedelta(hours=2))
        assert [m.message_id for m in found] == [due.message_id]

    @pytest.mark.asyncio
    async def test_guarded_updates(self, db) -> None:
        message, _ = await _insert(db)
        async with db.transaction() as conn:
            repo = MessageRepository(conn)
            assert await repo.mark_accepted(message.message_id, NOW)
            assert not await repo.mark_accepted(message.message_id, NOW)
            assert not await repo.mark_declined(message.message_id, NOW, "late")
            assert not await repo.mark_replied("missing", NOW)
            assert await repo.mark_opened(message.message_id, NOW)
            assert not await repo.mark_opened(message.message_id, NOW)
            assert await repo.mark_replied(message.message_id, NOW)
            stored = await repo.get_by_id(message.message_id)
        assert stored.status == MessageStatus.REPLIED

    @pytest.mark.asyncio
    async def test_mark_expired_requires_past_due(self, db) -> None:
        message, _ = await _insert(db, sent_at=NOW, expires_in=timedelta(hours=1))
        async with db.transaction() as conn:
            repo = MessageRepository(conn)
            assert not await repo.mark_expired(message.message_id, NOW, "SLA expired")
            assert await repo.mark_expired(message.message_id, NOW + timedelta(hours=2), "SLA expired")

    @pytest.mark.asyncio
    async def test_list_involving_splits_roles(self, db) -> None:
        await _insert(db, sender=SENDER, recipient=RECIPIENT)
        await _insert(db, sender=RECIPIENT, recipient=SENDER)
        await _insert(db, sender=OTHER, recipient=RECIPIENT)
        async with db.connection() as conn:
            sent, received = await MessageRepository(conn).list_involving(
                SENDER, datetime.now(timezone.utc) - timedelta(days=1),
            )
        assert len(sent) == 1 and len(received) == 1

    @pytest.mark.asyncio
    async def test_bid_samples(self, db) -> None:
        accepted, _ = await _insert(db, bid="7")
        await _insert(db, bid="3")
        async with db.transaction() as conn:
            await MessageRepository(conn).mark_accepted(accepted.message_id, NOW)
        async with db.connection() as conn:
            repo = MessageRepository(conn)
            assert await repo.list_pending_bids(RECIPIENT) == [Decimal("3")]
            assert await repo.list_recent_settled_bids(RECIPIENT, 20) == [Decimal("7")]


class TestPaymentRepository:
    @pytest.mark.asyncio
    async def test_roundtrip_and_nonce(self, db) -> None:
        _, payment = await _insert(db)
        async with db.connection() as conn:
            repo = PaymentRepository(conn)
            assert await repo.get_by_message_id(payment.message_id) == payment
            assert await repo.nonce_exists(payment.nonce)
            assert not await repo.nonce_exists("0xunused")

    @pytest.mark.asyncio
    async def test_nonce_unique_constraint(self, db) -> None:
        await _insert(db, nonce="0x" + "ee" * 32)
        with pytest.raises(sqlite3.IntegrityError):
            await _insert(db, nonce="0x" + "ee" * 32)

    @pytest.mark.asyncio
    async def test_settle_then_unused_guarded(self, db) -> None:
        _, payment = await _insert(db)
        async with db.transaction() as conn:
            repo = PaymentRepository(conn)
            assert await repo.mark_settled(payment.message_id, "0xabc", NOW)
            assert not await repo.mark_unused(payment.message_id)
            stored = await repo.get_by_message_id(payment.message_id)
        assert stored.status == PaymentStatus.SETTLED
        assert stored.settlement_tx_hash == "0xabc"

    @pytest.mark.asyncio
    async def test_orphaned_settlement_recorded_once(self, db) -> None:
        _, orphan = await _insert(db)
        _, settled = await _insert(db)
        async with db.transaction() as conn:
            repo = PaymentRepository(conn)
            assert await repo.record_orphaned_settlement(orphan.message_id, "0xfeed", NOW)
            assert not await repo.record_orphaned_settlement(orphan.message_id, "0xbeef", NOW)
            assert await repo.mark_settled(settled.message_id, "0xabc", NOW)
            assert not await repo.record_orphaned_settlement(settled.message_id, "0xbeef", NOW)
            listed = await repo.list_orphaned_settlements()
        assert [(p.message_id, p.settlement_tx_hash) for p in listed] == [
            (orphan.message_id, "0xfeed"),
        ]
        assert listed[0].status == PaymentStatus.AUTHORIZED


class TestProfileRepository:
    @pytest.mark.asyncio
    async def test_lookup_by_username_and_wallet(self, db) -> None:
        profile = RecipientProfile(RECIPIENT, "dana", "Dana", Decimal("0.25"), NOW, is_public=False)
        async with db.transaction() as conn:
            await ProfileRepository(conn).insert(profile)
        async with db.connection() as conn:
            repo = ProfileRepository(conn)
            assert await repo.get_by_username("DANA") == profile
            assert await repo.get_by_wallet(RECIPIENT) == profile
            assert await repo.get_by_wallet(OTHER) is None


class TestReputationRepository:
    @pytest.mark.asyncio
    async def test_events_in_order(self, db) -> None:
        async with db.transaction() as conn:
            repo = ReputationRepository(conn)
            for offset, kind in enumerate((ReputationEventType.SENT, ReputationEventType.OPENED)):
                await repo.append_event(ReputationEvent(
                    event_id=str(uuid.uuid4()), wallet=SENDER, event_type=kind,
                    created_at=NOW + timedelta(minutes=offset), metadata={"n": offset},
                ))
        async with db.connection() as conn:
            repo = ReputationRepository(conn)
            events = await repo.list_events(SENDER)
            recent = await repo.list_events(SENDER, since=NOW + timedelta(seconds=30))
        assert [e.event_type for e in events] == [ReputationEventType.SENT, ReputationEventType.OPENED]
        assert events[1].metadata == {"n": 1}
        assert len(recent) == 1

    @pytest.mark.asyncio
    async def test_snapshot_upsert(self, db) -> None:
        first = ReputationSnapshot(SENDER, 10.0, 20.0, 0.1, 0.2, 0.0, 0.0, 0, 3, 1, NOW)
        second = ReputationSnapshot(SENDER, 30.0, 20.0, 0.3, 0.2, 0.0, 0.0, 1, 4, 1, NOW)
        async with db.transaction() as conn:
            repo = ReputationRepository(conn)
            await repo.upsert_snapshot(first)
            await repo.upsert_snapshot(second)
        async with db.connection() as conn:
            stored = await ReputationRepository(conn).get_snapshot(SENDER)
        assert stored.scores_equal(second)


class TestSocialRepository:
    @pytest.mark.asyncio
    async def test_vouches_and_blocks(self, db) -> None:
        async with db.transaction() as conn:
            repo = SocialRepository(conn)
            await repo.insert_vouch(Vouch("v1", RECIPIENT, SENDER, 0.5, NOW))
            await repo.insert_block(Block("b1", OTHER, SENDER, NOW))
        async with db.connection() as conn:
            repo = SocialRepository(conn)
            assert await repo.vouch_exists(RECIPIENT, SENDER)
            assert not await repo.vouch_exists(SENDER, RECIPIENT)
            assert [v.weight for v in await repo.list_vouches_for(SENDER)] == [0.5]
            assert await repo.block_exists(OTHER, SENDER)
            assert len(await repo.list_blocks_against(SENDER, NOW - timedelta(days=1))) == 1
            assert await repo.list_blocks_against(SENDER, NOW + timedelta(days=1)) == []

    @pytest.mark.asyncio
    async def test_duplicate_vouch_constraint(self, db) -> None:
        async with db.transaction() as conn:
            await SocialRepository(conn).insert_vouch(Vouch("v1", RECIPIENT, SENDER, 1.0, NOW))
        with pytest.raises(sqlite3.IntegrityError):
            async with db.transaction() as conn:
                await SocialRepository(conn).insert_vouch(Vouch("v2", RECIPIENT, SENDER, 1.0, NOW))
