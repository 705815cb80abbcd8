"""Request models for API endpoints."""
from decimal import Decimal
from typing import Annotated, Optional
from pydantic import Field, field_validator

from src.escrow.authorization import Signature, TransferAuthorization
from src.escrow.service import CommitRequest
from src.server.models.common import CamelModel, SignatureModel, WalletAddress


class CommitBody(CamelModel):
    recipient: Annotated[str, Field(min_length=1, max_length=64)]
    content: Annotated[str, Field(min_length=1, max_length=10000)]
    bid_usd: Annotated[Decimal, Field(gt=0, max_digits=18, decimal_places=6)]
    sender_wallet: WalletAddress
    sender_name: Annotated[str, Field(min_length=1, max_length=100)]
    reply_bounty_usd: Optional[Annotated[Decimal, Field(ge=0, decimal_places=6)]] = None
    expiration_hours: Annotated[int, Field(ge=1, le=168)] = 24
    token: Optional[str] = None

    def to_commit_request(self) -> CommitRequest:
        return CommitRequest(
            recipient=self.recipient,
            content=self.content,
            bid_usd=self.bid_usd,
            sender_wallet=self.sender_wallet,
            sender_name=self.sender_name,
            expiration_hours=self.expiration_hours,
            reply_bounty_usd=self.reply_bounty_usd,
            token_symbol=self.token,
        )


class PaymentProof(CamelModel):
    """Decoded ``X-PAYMENT`` header. Every field is required except ``validAfter``."""

    chain_id: Annotated[int, Field(gt=0)]
    token_address: WalletAddress
    amount: Annotated[int, Field(gt=0)]
    sender: WalletAddress
    recipient: WalletAddress
    nonce: Annotated[str, Field(min_length=1, max_length=80)]
    valid_after: Annotated[int, Field(ge=0)] = 0
    valid_before: Annotated[int, Field(gt=0)]
    signature: SignatureModel

    @field_validator("amount", mode="before")
    @classmethod
    def validate_integer_string(cls, v: object) -> object:
        if isinstance(v, str) and not v.isdigit():
            raise ValueError("amount must be an integer number of smallest units")
        return v

    def to_authorization(self) -> TransferAuthorization:
        return TransferAuthorization(
            chain_id=self.chain_id,
            token_address=self.token_address,
            amount=self.amount,
            sender=self.sender,
            recipient=self.recipient,
            nonce=self.nonce,
            valid_after=self.valid_after,
            valid_before=self.valid_before,
            signature=Signature(v=self.signature.v, r=self.signature.r, s=self.signature.s),
        )


class DeclineBody(CamelModel):
    reason: Optional[Annotated[str, Field(max_length=500)]] = None


class VouchBody(CamelModel):
    voucher: WalletAddress
    vouchee: WalletAddress
    message_id: Optional[str] = None


class BlockBody(CamelModel):
    blocker: WalletAddress
    blocked: WalletAddress


class ProfileBody(CamelModel):
    username: Annotated[str, Field(pattern=r"^[a-z0-9_]{3,30}$")]
    display_name: Annotated[str, Field(min_length=1, max_length=100)]
    wallet_address: WalletAddress
    min_bid_usd: Annotated[Decimal, Field(gt=0, decimal_places=6)] = Decimal("0.10")
    is_public: bool = True
