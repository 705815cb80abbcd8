"""Deferred-settlement escrow: challenges, verification and chain access."""
from src.escrow.authorization import Signature, TransferAuthorization
from src.escrow.challenge import PaymentChallenge, PaymentChallengeIssuer
from src.escrow.chain import ChainAdapter, DryRunChainAdapter, FacilitatorChainAdapter
from src.escrow.errors import (
    AuthorizationError, BidTooLowError, ChainAdapterError, DuplicateError, EscrowError,
    ForbiddenError, InvalidRequestError, NotFoundError, PaymentRequiredError,
    StateConflictError, UnsupportedAssetError,
)
from src.escrow.recipients import PLATFORM_MIN_BID_USD, RecipientResolver, ResolvedRecipient
from src.escrow.tokens import CELO_USDC, TokenInfo, TokenRegistry, load_token_registry
from src.escrow.verifier import AuthorizationVerifier, ExpectedPayment, RejectionReason
__all__ = [
    "Signature", "TransferAuthorization",
    "PaymentChallenge", "PaymentChallengeIssuer",
    "ChainAdapter", "DryRunChainAdapter", "FacilitatorChainAdapter",
    "AuthorizationError", "BidTooLowError", "ChainAdapterError", "DuplicateError",
    "EscrowError", "ForbiddenError", "InvalidRequestError", "NotFoundError",
    "PaymentRequiredError", "StateConflictError", "UnsupportedAssetError",
    "PLATFORM_MIN_BID_USD", "RecipientResolver", "ResolvedRecipient",
    "CELO_USDC", "TokenInfo", "TokenRegistry", "load_token_registry",
    "AuthorizationVerifier", "ExpectedPayment", "RejectionReason",
]
