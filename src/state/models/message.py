"""Escrowed message models."""
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class MessageStatus(Enum):
    """Lifecycle status of an escrowed message."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"
    OPENED = "opened"
    REPLIED = "replied"


# Timestamp that must be set once a message reaches each status.
_STATUS_TIMESTAMP = {
    MessageStatus.ACCEPTED: "accepted_at",
    MessageStatus.DECLINED: "declined_at",
    MessageStatus.EXPIRED: "refunded_at",
    MessageStatus.OPENED: "opened_at",
    MessageStatus.REPLIED: "replied_at",
}

# Resolution timestamps; at most one may be set.
_RESOLUTION_FIELDS = ("accepted_at", "declined_at", "refunded_at")


@dataclass(frozen=True)
class Message:
    """One bid to deliver content to a recipient.

    Attributes:
        message_id: Unique identifier for the message.
        sender_wallet: Lower-cased wallet of the sender.
        sender_name: Display name the sender asserted at commit time.
        recipient_wallet: Lower-cased wallet of the recipient of record.
        content: Message body.
        bid_usd: Bid in decimal currency units, derived from the
            authorization's integer amount.
        sent_at: When the escrow was created.
        expires_at: Sender-chosen expiry; pending messages past this
            instant are expired by the sweeper.
        status: Current lifecycle status.
        reply_bounty_usd: Optional extra offered for a reply.
        refund_reason: Why the escrow was voided (decline or expiry).
    """

    message_id: str
    sender_wallet: str
    sender_name: str
    recipient_wallet: str
    content: str
    bid_usd: Decimal
    sent_at: datetime
    expires_at: datetime
    status: MessageStatus = MessageStatus.PENDING
    reply_bounty_usd: Optional[Decimal] = None
    accepted_at: Optional[datetime] = None
    declined_at: Optional[datetime] = None
    refunded_at: Optional[datetime] = None
    opened_at: Optional[datetime] = None
    replied_at: Optional[datetime] = None
    refund_reason: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.message_id:
            raise ValueError("message_id cannot be empty")
        if not self.sender_wallet:
            raise ValueError("sender_wallet cannot be empty")
        if not self.recipient_wallet:
            raise ValueError("recipient_wallet cannot be empty")
        if self.bid_usd <= 0:
            raise ValueError("bid_usd must be positive")
        if self.expires_at <= self.sent_at:
            raise ValueError("expires_at must be after sent_at")
        resolved = [f for f in _RESOLUTION_FIELDS if getattr(self, f) is not None]
        if len(resolved) > 1:
            raise ValueError(f"conflicting resolution timestamps: {resolved}")
        if self.status == MessageStatus.PENDING and resolved:
            raise ValueError("pending message cannot carry a resolution timestamp")
        required = _STATUS_TIMESTAMP.get(self.status)
        if required and getattr(self, required) is None:
            raise ValueError(f"status {self.status.value} requires {required}")

    @property
    def is_pending(self) -> bool:
        return self.status == MessageStatus.PENDING

    def with_status(self, status: MessageStatus, **changes: object) -> "Message":
        return replace(self, status=status, **changes)
