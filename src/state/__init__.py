"""State management module."""
from src.state.database import DatabaseManager, DatabaseError, from_db_time, to_db_time
from src.state.models import (
    Block, Message, MessageStatus, PaymentRecord, PaymentStatus, RecipientProfile,
    ReputationEvent, ReputationEventType, ReputationSnapshot, Vouch,
)
from src.state.repositories import (
    MessageRepository, PaymentRepository, ProfileRepository, ReputationRepository,
    SocialRepository,
)
__all__ = ["DatabaseManager", "DatabaseError", "from_db_time", "to_db_time",
           "Block", "Message", "MessageStatus", "PaymentRecord", "PaymentStatus",
           "RecipientProfile", "ReputationEvent", "ReputationEventType",
           "ReputationSnapshot", "Vouch",
           "MessageRepository", "PaymentRepository", "ProfileRepository",
           "ReputationRepository", "SocialRepository"]
