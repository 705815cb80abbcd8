"""State models."""
from src.state.models.message import Message, MessageStatus
from src.state.models.payment import PaymentRecord, PaymentStatus
from src.state.models.profile import RecipientProfile, USERNAME_PATTERN
from src.state.models.reputation import (
    Block,
    ReputationEvent,
    ReputationEventType,
    ReputationSnapshot,
    Vouch,
)
__all__ = [
    "Message", "MessageStatus",
    "PaymentRecord", "PaymentStatus",
    "RecipientProfile", "USERNAME_PATTERN",
    "ReputationEvent", "ReputationEventType", "ReputationSnapshot",
    "Vouch", "Block",
]
