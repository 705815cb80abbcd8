"""Typed transfer authorization submitted by a sender."""
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Signature:
    v: int
    r: str
    s: str


@dataclass(frozen=True)
class TransferAuthorization:
    """A signed ``transferWithAuthorization`` permission (EIP-3009).

    Built once at the request boundary from the ``X-PAYMENT`` header.
    ``amount`` is in the token's smallest integer units.
    """

    chain_id: int
    token_address: str
    amount: int
    sender: str
    recipient: str
    nonce: str
    valid_after: int
    valid_before: int
    signature: Signature

    def to_payload(self) -> dict[str, Any]:
        """Wire form used when handing the authorization to a facilitator."""
        return {
            "chainId": self.chain_id,
            "tokenAddress": self.token_address,
            "amount": str(self.amount),
            "sender": self.sender,
            "recipient": self.recipient,
            "nonce": self.nonce,
            "validAfter": self.valid_after,
            "validBefore": self.valid_before,
            "signature": {
                "v": self.signature.v,
                "r": self.signature.r,
                "s": self.signature.s,
            },
        }
