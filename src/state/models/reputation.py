"""Reputation event, snapshot and social signal models."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class ReputationEventType(Enum):
    SENT = "sent"
    DELIVERED = "delivered"
    OPENED = "opened"
    REPLIED = "replied"
    REFUNDED = "refunded"
    BLOCKED = "blocked"
    VOUCHED = "vouched"


@dataclass(frozen=True)
class ReputationEvent:
    """Append-only behavioral fact about a wallet."""

    event_id: str
    wallet: str
    event_type: ReputationEventType
    created_at: datetime
    related_message_id: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ReputationSnapshot:
    """Cached per-wallet aggregate, recomputed in full on every event.

    Scores are in [0, 100]; rates are fractions in [0, 1].
    """

    wallet: str
    sender_score: float
    recipient_score: float
    open_rate: float
    reply_rate: float
    refund_rate: float
    block_rate: float
    vouch_count: int
    total_sent: int
    total_received: int
    updated_at: datetime

    def __post_init__(self) -> None:
        for name in ("sender_score", "recipient_score"):
            value = getattr(self, name)
            if not 0 <= value <= 100:
                raise ValueError(f"{name} must be within [0, 100], got {value}")

    def scores_equal(self, other: "ReputationSnapshot") -> bool:
        """Compare everything except ``updated_at``."""
        return (
            self.wallet, self.sender_score, self.recipient_score,
            self.open_rate, self.reply_rate, self.refund_rate,
            self.block_rate, self.vouch_count, self.total_sent,
            self.total_received,
        ) == (
            other.wallet, other.sender_score, other.recipient_score,
            other.open_rate, other.reply_rate, other.refund_rate,
            other.block_rate, other.vouch_count, other.total_sent,
            other.total_received,
        )


@dataclass(frozen=True)
class Vouch:
    """Endorsement whose weight is frozen at creation."""

    vouch_id: str
    voucher: str
    vouchee: str
    weight: float
    created_at: datetime
    message_id: Optional[str] = None

    def __post_init__(self) -> None:
        if self.voucher == self.vouchee:
            raise ValueError("cannot vouch for yourself")
        if not 0 < self.weight <= 1:
            raise ValueError("weight must be within (0, 1]")


@dataclass(frozen=True)
class Block:
    block_id: str
    blocker: str
    blocked: str
    created_at: datetime

    def __post_init__(self) -> None:
        if self.blocker == self.blocked:
            raise ValueError("cannot block yourself")
