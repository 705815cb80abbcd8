"""Recipient profile models."""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
import re

USERNAME_PATTERN = re.compile(r"^[a-z0-9_]{3,30}$")


@dataclass(frozen=True)
class RecipientProfile:
    """A registered recipient with a configured minimum bid."""

    wallet_address: str
    username: str
    display_name: str
    min_bid_usd: Decimal
    created_at: datetime
    is_public: bool = True

    def __post_init__(self) -> None:
        if not USERNAME_PATTERN.match(self.username):
            raise ValueError(
                "username must be 3-30 characters of lowercase letters, digits or underscores"
            )
        if not self.display_name:
            raise ValueError("display_name cannot be empty")
        if self.min_bid_usd <= 0:
            raise ValueError("min_bid_usd must be positive")
