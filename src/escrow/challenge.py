"""Payment-required challenge issuance."""
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable, Optional

from cryptography.hazmat.primitives import hashes, hmac

from src.escrow.amounts import to_units
from src.escrow.errors import InvalidRequestError
from src.escrow.tokens import TokenInfo

logger = logging.getLogger(__name__)

X402_VERSION = 1
PAYMENT_SCHEME = "exact"
DEFAULT_CHALLENGE_TTL_MINUTES = 15


@dataclass(frozen=True)
class PaymentChallenge:
    """What a valid authorization must contain before a commit proceeds."""

    amount_units: int
    bid_usd: Decimal
    token: TokenInfo
    recipient: str
    nonce: str
    expiration: int
    quote: dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        return {
            "x402Version": X402_VERSION,
            "paymentRequirements": [
                {
                    "scheme": PAYMENT_SCHEME,
                    "network": {
                        "chainId": self.token.chain_id,
                        "name": self.token.network_name,
                    },
                    "asset": self.token.as_asset(),
                    "amount": str(self.amount_units),
                    "recipient": self.recipient,
                    "nonce": self.nonce,
                    "expiration": self.expiration,
                }
            ],
            "quote": {
                "bidUsd": str(self.bid_usd),
                "tokenSymbol": self.token.symbol,
                **self.quote,
            },
        }


class PaymentChallengeIssuer:
    """Builds challenges; persists nothing.

    Nonces are an HMAC-SHA256 of 32 fresh random bytes under the server
    secret, so they are unpredictable without the secret and collision-free
    in practice.
    """

    def __init__(
        self,
        secret: bytes,
        ttl_minutes: int = DEFAULT_CHALLENGE_TTL_MINUTES,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        if not secret:
            raise ValueError("challenge secret cannot be empty")
        self._secret = secret
        self._ttl = timedelta(minutes=ttl_minutes)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def new_nonce(self) -> str:
        h = hmac.HMAC(self._secret, hashes.SHA256())
        h.update(os.urandom(32))
        return "0x" + h.finalize().hex()

    def issue(
        self,
        recipient_wallet: str,
        bid_usd: Decimal,
        token: TokenInfo,
        quote: Optional[dict[str, Any]] = None,
    ) -> PaymentChallenge:
        try:
            amount_units = to_units(bid_usd, token.decimals)
        except ValueError as e:
            raise InvalidRequestError(str(e), {"decimals": token.decimals}) from e
        expiration = int((self._clock() + self._ttl).timestamp())
        challenge = PaymentChallenge(
            amount_units=amount_units,
            bid_usd=bid_usd,
            token=token,
            recipient=recipient_wallet,
            nonce=self.new_nonce(),
            expiration=expiration,
            quote=dict(quote or {}),
        )
        logger.debug(
            "Issued challenge recipient=%s amount=%d %s expiration=%d",
            recipient_wallet, amount_units, token.symbol, expiration,
        )
        return challenge
