"""Response models for API endpoints."""
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Literal, Optional
from pydantic import BaseModel, Field

from src.escrow.tokens import TokenInfo
from src.reputation.price_guide import PriceGuidance
from src.server.models.common import CamelModel
from src.state.models.message import Message
from src.state.models.profile import RecipientProfile
from src.state.models.reputation import ReputationSnapshot


class CommitResponse(CamelModel):
    message_id: str
    status: Literal["pending"] = "pending"
    bid_usd: Decimal
    expires_at: datetime


class AcceptResponse(CamelModel):
    message_id: str
    status: Literal["accepted"] = "accepted"
    settlement_tx_hash: str


class DeclineResponse(CamelModel):
    message_id: str
    status: Literal["declined"] = "declined"
    note: str


class MessageView(CamelModel):
    message_id: str
    sender_wallet: str
    sender_name: str
    recipient_wallet: str
    content: str
    bid_usd: Decimal
    reply_bounty_usd: Optional[Decimal] = None
    status: str
    sent_at: datetime
    expires_at: datetime
    accepted_at: Optional[datetime] = None
    declined_at: Optional[datetime] = None
    refunded_at: Optional[datetime] = None
    opened_at: Optional[datetime] = None
    replied_at: Optional[datetime] = None
    refund_reason: Optional[str] = None

    @classmethod
    def from_message(cls, message: Message) -> "MessageView":
        return cls(
            message_id=message.message_id,
            sender_wallet=message.sender_wallet,
            sender_name=message.sender_name,
            recipient_wallet=message.recipient_wallet,
            content=message.content,
            bid_usd=message.bid_usd,
            reply_bounty_usd=message.reply_bounty_usd,
            status=message.status.value,
            sent_at=message.sent_at,
            expires_at=message.expires_at,
            accepted_at=message.accepted_at,
            declined_at=message.declined_at,
            refunded_at=message.refunded_at,
            opened_at=message.opened_at,
            replied_at=message.replied_at,
            refund_reason=message.refund_reason,
        )


class PendingListResponse(CamelModel):
    messages: list[MessageView]
    count: int


class PriceGuideResponse(CamelModel):
    min_base_usd: Decimal
    p25: Decimal
    median: Decimal
    p75: Decimal
    sample_size: int
    is_registered: bool
    username: Optional[str] = None

    @classmethod
    def from_guidance(cls, guidance: PriceGuidance) -> "PriceGuideResponse":
        return cls(
            min_base_usd=guidance.min_bid_usd,
            p25=guidance.p25,
            median=guidance.median,
            p75=guidance.p75,
            sample_size=guidance.sample_size,
            is_registered=guidance.is_registered,
            username=guidance.username,
        )


class SnapshotView(CamelModel):
    wallet: str
    sender_score: float
    recipient_score: float
    open_rate: float
    reply_rate: float
    refund_rate: float
    block_rate: float
    vouch_count: int
    total_sent: int
    total_received: int
    updated_at: datetime

    @classmethod
    def from_snapshot(cls, snapshot: ReputationSnapshot) -> "SnapshotView":
        return cls(
            wallet=snapshot.wallet,
            sender_score=snapshot.sender_score,
            recipient_score=snapshot.recipient_score,
            open_rate=snapshot.open_rate,
            reply_rate=snapshot.reply_rate,
            refund_rate=snapshot.refund_rate,
            block_rate=snapshot.block_rate,
            vouch_count=snapshot.vouch_count,
            total_sent=snapshot.total_sent,
            total_received=snapshot.total_received,
            updated_at=snapshot.updated_at,
        )


class ReputationResponse(CamelModel):
    wallet: str
    facts: list[str]
    snapshot: SnapshotView


class VouchResponse(CamelModel):
    vouch_id: str
    voucher: str
    vouchee: str
    weight: float


class BlockResponse(CamelModel):
    block_id: str
    blocker: str
    blocked: str


class ProfileResponse(CamelModel):
    username: str
    display_name: str
    wallet_address: str
    min_bid_usd: Decimal
    is_public: bool

    @classmethod
    def from_profile(cls, profile: RecipientProfile) -> "ProfileResponse":
        return cls(
            username=profile.username,
            display_name=profile.display_name,
            wallet_address=profile.wallet_address,
            min_bid_usd=profile.min_bid_usd,
            is_public=profile.is_public,
        )


class TokenView(CamelModel):
    symbol: str
    name: str
    address: str
    decimals: int
    chain_id: int
    network_name: str

    @classmethod
    def from_token(cls, token: TokenInfo) -> "TokenView":
        return cls(
            symbol=token.symbol,
            name=token.name,
            address=token.address,
            decimals=token.decimals,
            chain_id=token.chain_id,
            network_name=token.network_name,
        )


class TokensResponse(CamelModel):
    default: str
    tokens: list[TokenView]


class HealthResponse(BaseModel):
    status: Annotated[Literal["healthy", "degraded"], Field()]
    version: Annotated[str, Field()]
    timestamp: Annotated[str, Field()]
    sweeper: Annotated[Literal["running", "stopped", "disabled"], Field()]
    message: Optional[str] = None


class ErrorDetail(BaseModel):
    code: Annotated[
        Literal[
            "INVALID_FORMAT",
            "INVALID_REQUEST",
            "BID_TOO_LOW",
            "UNSUPPORTED_ASSET",
            "NOT_FOUND",
            "NOT_AUTHORIZED",
            "UNAUTHENTICATED",
            "AUTHORIZATION_FAILED",
            "PAYMENT_REQUIRED",
            "ALREADY_RESOLVED",
            "DUPLICATE",
            "CHAIN_ADAPTER_ERROR",
            "RATE_LIMITED",
            "INTERNAL_ERROR",
        ],
        Field(),
    ]
    message: Annotated[str, Field()]
    details: Optional[dict[str, Any]] = None


class ErrorResponse(BaseModel):
    error: ErrorDetail
