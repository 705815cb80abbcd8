"""Input validation utilities for CLI commands."""

from src.escrow.amounts import is_wallet_address, normalize_address
from src.state.models.profile import USERNAME_PATTERN


def validate_wallet(wallet: str) -> str:
    """Validate and return a lowercased wallet address. Raises ValueError if invalid."""
    if not wallet or not wallet.strip():
        raise ValueError("Wallet address cannot be empty")
    wallet = wallet.strip()
    if not is_wallet_address(wallet):
        raise ValueError("Wallet address must be 0x followed by 40 hex characters")
    return normalize_address(wallet)


def validate_recipient(recipient: str) -> str:
    """Validate a username or wallet address. Raises ValueError if invalid."""
    if not recipient or not recipient.strip():
        raise ValueError("Recipient cannot be empty")
    recipient = recipient.strip()
    if recipient.startswith("0x"):
        return validate_wallet(recipient)
    username = recipient.lstrip("@").lower()
    if not USERNAME_PATTERN.match(username):
        raise ValueError(
            "Username must be 3-30 lowercase letters, digits, or underscores"
        )
    return username


def validate_server_url(url: str) -> str:
    """Validate and return a server base URL without a trailing slash."""
    if not url or not url.strip():
        raise ValueError("Server URL cannot be empty")
    url = url.strip()
    if not url.startswith(("http://", "https://")):
        raise ValueError("Server URL must start with http:// or https://")
    return url.rstrip("/")
