"""Vouches and blocks between wallets."""
import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

from src.escrow.amounts import normalize_address
from src.escrow.errors import DuplicateError, InvalidRequestError
from src.reputation.engine import ReputationEngine
from src.reputation.scoring import clamp
from src.state.database import DatabaseManager
from src.state.models.reputation import Block, ReputationEventType, Vouch
from src.state.repositories.reputation import ReputationRepository
from src.state.repositories.social import SocialRepository

logger = logging.getLogger(__name__)

MIN_VOUCH_WEIGHT = 0.2
MAX_VOUCH_WEIGHT = 1.0


def vouch_weight(voucher_recipient_score: Optional[float]) -> float:
    """Weight of a new vouch given the voucher's current recipient score."""
    if voucher_recipient_score is None:
        return MAX_VOUCH_WEIGHT
    return clamp(voucher_recipient_score / 100, MIN_VOUCH_WEIGHT, MAX_VOUCH_WEIGHT)


def _wallet(value: str, field: str) -> str:
    try:
        return normalize_address(value)
    except ValueError as e:
        raise InvalidRequestError(f"Invalid {field}", {"field": field}) from e


class SocialService:
    """Creates vouches and blocks and feeds them to the reputation engine."""

    def __init__(
        self,
        db: DatabaseManager,
        engine: ReputationEngine,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._db = db
        self._engine = engine
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def vouch(
        self, voucher: str, vouchee: str, message_id: Optional[str] = None,
    ) -> Vouch:
        voucher = _wallet(voucher, "voucher")
        vouchee = _wallet(vouchee, "vouchee")
        if voucher == vouchee:
            raise InvalidRequestError("Cannot vouch for yourself")

        async with self._db.transaction() as conn:
            social = SocialRepository(conn)
            if await social.vouch_exists(voucher, vouchee):
                raise DuplicateError("Already vouched for this wallet")
            snapshot = await ReputationRepository(conn).get_snapshot(voucher)
            vouch = Vouch(
                vouch_id=str(uuid.uuid4()),
                voucher=voucher,
                vouchee=vouchee,
                weight=vouch_weight(snapshot.recipient_score if snapshot else None),
                message_id=message_id,
                created_at=self._clock(),
            )
            try:
                await social.insert_vouch(vouch)
            except sqlite3.IntegrityError as e:
                raise DuplicateError("Already vouched for this wallet") from e
            await self._engine.log_event(
                conn, vouchee, ReputationEventType.VOUCHED, message_id,
                {"voucher": voucher, "weight": vouch.weight},
            )
        logger.info("Vouch %s -> %s weight=%.2f", voucher, vouchee, vouch.weight)
        return vouch

    async def block(self, blocker: str, blocked: str) -> Block:
        blocker = _wallet(blocker, "blocker")
        blocked = _wallet(blocked, "blocked")
        if blocker == blocked:
            raise InvalidRequestError("Cannot block yourself")

        async with self._db.transaction() as conn:
            social = SocialRepository(conn)
            if await social.block_exists(blocker, blocked):
                raise DuplicateError("Wallet already blocked")
            block = Block(
                block_id=str(uuid.uuid4()),
                blocker=blocker,
                blocked=blocked,
                created_at=self._clock(),
            )
            try:
                await social.insert_block(block)
            except sqlite3.IntegrityError as e:
                raise DuplicateError("Wallet already blocked") from e
            await self._engine.log_event(
                conn, blocked, ReputationEventType.BLOCKED, None,
                {"blocker": blocker},
            )
        logger.info("Block %s -> %s", blocker, blocked)
        return block
