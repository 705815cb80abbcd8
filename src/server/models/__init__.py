"""Pydantic models for request/response validation."""
from src.server.models.common import CamelModel, SignatureModel, WalletAddress
from src.server.models.requests import (
    BlockBody,
    CommitBody,
    DeclineBody,
    PaymentProof,
    ProfileBody,
    VouchBody,
)
from src.server.models.responses import (
    AcceptResponse,
    BlockResponse,
    CommitResponse,
    DeclineResponse,
    ErrorDetail,
    ErrorResponse,
    HealthResponse,
    MessageView,
    PendingListResponse,
    PriceGuideResponse,
    ProfileResponse,
    ReputationResponse,
    SnapshotView,
    TokensResponse,
    TokenView,
    VouchResponse,
)

__all__ = [
    "CamelModel",
    "SignatureModel",
    "WalletAddress",
    "BlockBody",
    "CommitBody",
    "DeclineBody",
    "PaymentProof",
    "ProfileBody",
    "VouchBody",
    "AcceptResponse",
    "BlockResponse",
    "CommitResponse",
    "DeclineResponse",
    "ErrorDetail",
    "ErrorResponse",
    "HealthResponse",
    "MessageView",
    "PendingListResponse",
    "PriceGuideResponse",
    "ProfileResponse",
    "ReputationResponse",
    "SnapshotView",
    "TokensResponse",
    "TokenView",
    "VouchResponse",
]
