"""Exception taxonomy for the escrow service.

Every error carries the HTTP status and machine-readable code it is
reported with, so route handlers can simply let them propagate.
"""
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from src.escrow.challenge import PaymentChallenge


class EscrowError(Exception):
    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidRequestError(EscrowError):
    """Malformed request; rejected with no side effects."""

    status_code = 400
    error_code = "INVALID_REQUEST"


class BidTooLowError(InvalidRequestError):
    error_code = "BID_TOO_LOW"


class UnsupportedAssetError(InvalidRequestError):
    error_code = "UNSUPPORTED_ASSET"


class NotFoundError(EscrowError):
    status_code = 404
    error_code = "NOT_FOUND"


class ForbiddenError(EscrowError):
    status_code = 403
    error_code = "NOT_AUTHORIZED"


class AuthorizationError(EscrowError):
    """Payment authorization rejected; the caller may retry with a new one."""

    status_code = 402
    error_code = "AUTHORIZATION_FAILED"

    def __init__(
        self,
        message: str,
        reason: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        merged = dict(details or {})
        if reason:
            merged["reason"] = reason
        super().__init__(message, merged or None)
        self.reason = reason


class PaymentRequiredError(AuthorizationError):
    """No acceptable authorization; carries a fresh challenge to retry with."""

    error_code = "PAYMENT_REQUIRED"

    def __init__(
        self,
        message: str,
        challenge: "PaymentChallenge",
        reason: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, reason=reason, details=details)
        self.challenge = challenge


class StateConflictError(EscrowError):
    """The message already left the state the transition requires."""

    status_code = 409
    error_code = "ALREADY_RESOLVED"


class DuplicateError(EscrowError):
    status_code = 409
    error_code = "DUPLICATE"


class ChainAdapterError(EscrowError):
    """A settlement or refund call failed; nothing was changed."""

    status_code = 502
    error_code = "CHAIN_ADAPTER_ERROR"
    retryable = True
