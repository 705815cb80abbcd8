"""Payment authorization (escrow record) models."""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, localcontext
from enum import Enum
from typing import Optional


class PaymentStatus(Enum):
    AUTHORIZED = "authorized"
    SETTLED = "settled"
    UNUSED = "unused"
    REFUNDED = "refunded"


@dataclass(frozen=True)
class PaymentRecord:
    """A signed transfer authorization held in escrow for one message.

    ``amount_units`` is authoritative; ``amount_decimal`` is the same value
    scaled by ``token_decimals`` for display and must agree with it.
    """

    payment_id: str
    message_id: str
    chain_id: int
    token_address: str
    token_symbol: str
    token_decimals: int
    amount_units: int
    amount_decimal: Decimal
    sender: str
    recipient: str
    nonce: str
    signature_v: int
    signature_r: str
    signature_s: str
    valid_after: int
    valid_before: int
    created_at: datetime
    status: PaymentStatus = PaymentStatus.AUTHORIZED
    settlement_tx_hash: Optional[str] = None
    refund_tx_hash: Optional[str] = None
    settled_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not self.nonce:
            raise ValueError("nonce cannot be empty")
        if self.amount_units <= 0:
            raise ValueError("amount_units must be positive")
        with localcontext() as ctx:
            ctx.prec = 160
            scaled = self.amount_decimal.scaleb(self.token_decimals)
        if scaled != self.amount_units:
            raise ValueError("amount_decimal does not match amount_units")
        if self.status == PaymentStatus.SETTLED and not self.settlement_tx_hash:
            raise ValueError("settled payment requires settlement_tx_hash")
