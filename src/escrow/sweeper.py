"""Background expiry of pending escrows past their deadline."""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from src.escrow.errors import StateConflictError
from src.escrow.state_machine import EscrowStateMachine
from src.state.database import DatabaseManager
from src.state.models.message import Message
from src.state.repositories.messages import MessageRepository

logger = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL_SECONDS = 300
DEFAULT_SWEEP_CONCURRENCY = 4


class RefundSweeper:
    """Finds expired, unopened, pending messages and expires each one.

    Messages are processed concurrently, at most ``concurrency`` at a time,
    and independently: one failure is logged and left for the next pass. A
    message that was resolved in the meantime is skipped quietly.
    """

    def __init__(
        self,
        db: DatabaseManager,
        state_machine: EscrowStateMachine,
        interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        concurrency: int = DEFAULT_SWEEP_CONCURRENCY,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._db = db
        self._state_machine = state_machine
        self._interval = interval_seconds
        self._limit = asyncio.Semaphore(max(1, concurrency))
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def sweep_once(self) -> dict[str, int]:
        """Run one pass and return counts of each outcome."""
        results = {"candidates": 0, "expired": 0, "skipped": 0, "failed": 0}
        async with self._db.connection() as conn:
            candidates = await MessageRepository(conn).list_expired_pending(self._clock())
        results["candidates"] = len(candidates)
        if not candidates:
            return results

        outcomes = await asyncio.gather(
            *(self._expire(m.message_id) for m in candidates),
            return_exceptions=True,
        )
        for message, outcome in zip(candidates, outcomes):
            if isinstance(outcome, StateConflictError):
                results["skipped"] += 1
                logger.debug("Sweep skipped %s: already resolved", message.message_id)
            elif isinstance(outcome, BaseException):
                results["failed"] += 1
                logger.error(
                    "Sweep failed for message %s: %s", message.message_id, outcome,
                    exc_info=outcome,
                )
            else:
                results["expired"] += 1

        logger.info(
            "Sweep complete: %d candidates, %d expired, %d skipped, %d failed",
            results["candidates"], results["expired"], results["skipped"],
            results["failed"],
        )
        return results

    async def _expire(self, message_id: str) -> Message:
        async with self._limit:
            return await self._state_machine.expire(message_id)

    async def run_forever(self) -> None:
        """Sweep immediately, then every interval until cancelled."""
        logger.info("Refund sweeper started, interval=%ss", self._interval)
        while True:
            try:
                await self.sweep_once()
            except Exception as exc:
                logger.exception("Sweep pass failed: %s", exc)
            await asyncio.sleep(self._interval)
