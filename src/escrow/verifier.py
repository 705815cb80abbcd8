"""Verification of submitted payment authorizations."""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional

from src.escrow.amounts import normalize_timestamp
from src.escrow.authorization import TransferAuthorization
from src.escrow.chain import ChainAdapter
from src.escrow.tokens import TokenInfo

logger = logging.getLogger(__name__)

DEFAULT_AMOUNT_TOLERANCE_UNITS = 2


class RejectionReason(Enum):
    INCOMPLETE = "incomplete_authorization"
    CHAIN_MISMATCH = "chain_mismatch"
    TOKEN_MISMATCH = "token_mismatch"
    AMOUNT_MISMATCH = "amount_mismatch"
    EXPIRED = "authorization_expired"
    RECIPIENT_MISMATCH = "recipient_mismatch"
    INVALID_SIGNATURE = "invalid_signature_or_used_nonce"


@dataclass(frozen=True)
class ExpectedPayment:
    """Server-side view of what the authorization must say.

    ``recipient`` always comes from the server's own recipient lookup.
    """

    recipient: str
    token: TokenInfo
    amount_units: int


@dataclass(frozen=True)
class VerificationResult:
    reason: Optional[RejectionReason] = None
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.reason is None


class AuthorizationVerifier:
    """Checks an authorization against server-computed expectations.

    Checks run in a fixed order and stop at the first failure. Only the
    last step reaches the chain adapter. Nothing is transferred here.
    """

    def __init__(
        self,
        chain: ChainAdapter,
        amount_tolerance_units: int = DEFAULT_AMOUNT_TOLERANCE_UNITS,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._chain = chain
        self._tolerance = amount_tolerance_units
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def verify(
        self, auth: TransferAuthorization, expected: ExpectedPayment,
    ) -> VerificationResult:
        result = self._check_fields(auth, expected)
        if result.ok:
            valid = await self._chain.verify_signature_and_nonce(
                auth, expected.recipient, expected.amount_units, expected.token,
            )
            if not valid:
                result = VerificationResult(
                    RejectionReason.INVALID_SIGNATURE,
                    "signature invalid for sender or nonce already used",
                )
        self._log(auth, expected, result)
        return result

    def _check_fields(
        self, auth: TransferAuthorization, expected: ExpectedPayment,
    ) -> VerificationResult:
        sig = auth.signature
        if not auth.nonce or sig is None or not sig.r or not sig.s:
            return VerificationResult(RejectionReason.INCOMPLETE, "signature and nonce are required")

        if auth.chain_id != expected.token.chain_id:
            return VerificationResult(
                RejectionReason.CHAIN_MISMATCH,
                f"expected chain {expected.token.chain_id}, got {auth.chain_id}",
            )

        if auth.token_address.lower() != expected.token.address.lower():
            return VerificationResult(
                RejectionReason.TOKEN_MISMATCH,
                f"expected token {expected.token.address}",
            )

        if abs(auth.amount - expected.amount_units) > self._tolerance:
            return VerificationResult(
                RejectionReason.AMOUNT_MISMATCH,
                f"expected {expected.amount_units} units, got {auth.amount}",
            )

        now = int(self._clock().timestamp())
        if normalize_timestamp(auth.valid_before) <= now:
            return VerificationResult(RejectionReason.EXPIRED, "authorization has expired")

        if auth.recipient.lower() != expected.recipient.lower():
            return VerificationResult(
                RejectionReason.RECIPIENT_MISMATCH,
                "authorization pays a different recipient",
            )

        return VerificationResult()

    @staticmethod
    def _log(
        auth: TransferAuthorization,
        expected: ExpectedPayment,
        result: VerificationResult,
    ) -> None:
        if result.ok:
            logger.info(
                "Authorization verified sender=%s recipient=%s amount=%d nonce=%s",
                auth.sender, auth.recipient, auth.amount, auth.nonce,
            )
            return
        context: dict[str, Any] = {
            "sender": auth.sender,
            "claimed_recipient": auth.recipient,
            "expected_recipient": expected.recipient,
            "chain_id": auth.chain_id,
            "token": auth.token_address,
            "amount": auth.amount,
            "expected_amount": expected.amount_units,
            "nonce": auth.nonce,
        }
        if result.reason == RejectionReason.RECIPIENT_MISMATCH:
            logger.warning(
                "SECURITY: authorization recipient mismatch, possible fund redirection %s",
                context,
            )
        else:
            logger.info(
                "Authorization rejected reason=%s detail=%s %s",
                result.reason.value, result.detail, context,
            )
