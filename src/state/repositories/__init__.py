"""Repositories."""
from src.state.repositories.messages import MessageRepository
from src.state.repositories.payments import PaymentRepository
from src.state.repositories.profiles import ProfileRepository
from src.state.repositories.reputation import ReputationRepository
from src.state.repositories.social import SocialRepository
__all__ = [
    "MessageRepository",
    "PaymentRepository",
    "ProfileRepository",
    "ReputationRepository",
    "SocialRepository",
]
