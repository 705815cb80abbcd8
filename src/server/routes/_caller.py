"""Caller identity and payment header helpers shared by routes."""
import base64
import binascii
import json
import logging
from typing import Annotated, Optional

from fastapi import Depends, Header
from pydantic import ValidationError

from src.escrow.amounts import is_wallet_address
from src.escrow.authorization import TransferAuthorization
from src.escrow.errors import ForbiddenError, InvalidRequestError
from src.server.errors import UnauthenticatedError
from src.server.middleware.logging import sanitize_dict
from src.server.models.requests import PaymentProof

logger = logging.getLogger(__name__)

CALLER_HEADER = "X-Wallet-Address"
PAYMENT_HEADER = "X-PAYMENT"


async def caller_wallet(
    x_wallet_address: Annotated[Optional[str], Header(alias=CALLER_HEADER)] = None,
) -> str:
    """Caller identity as set by the fronting session layer."""
    if not x_wallet_address or not is_wallet_address(x_wallet_address):
        raise UnauthenticatedError(f"Missing or invalid {CALLER_HEADER} header")
    return x_wallet_address.lower()


Caller = Annotated[str, Depends(caller_wallet)]


def require_acting_wallet(caller: str, wallet: str, field: str) -> None:
    """Reject a body that acts on behalf of a wallet other than the caller."""
    if wallet.lower() != caller:
        raise ForbiddenError(
            f"{field} must match the {CALLER_HEADER} header", {"field": field},
        )


def _decode_header(raw: str) -> str:
    """Accept the proof as plain JSON or as base64-encoded JSON."""
    stripped = raw.strip()
    if stripped.startswith("{"):
        return stripped
    try:
        return base64.b64decode(stripped, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise InvalidRequestError(f"{PAYMENT_HEADER} header is not JSON or base64 JSON") from e


def parse_payment_header(raw: Optional[str]) -> Optional[TransferAuthorization]:
    """Validate the payment header once, at the boundary.

    Returns None when the header is absent. Anything incomplete or
    malformed is rejected here and never reaches the verifier.
    """
    if not raw:
        return None
    text = _decode_header(raw)
    try:
        proof = PaymentProof.model_validate_json(text)
    except ValidationError as e:
        try:
            logged = json.loads(text)
        except ValueError:
            logged = None
        logger.info(
            "Malformed payment proof: %s",
            sanitize_dict(logged) if isinstance(logged, dict) else "<unparseable>",
        )
        raise InvalidRequestError(
            "Malformed payment proof",
            {"validation_errors": e.errors(include_url=False, include_context=False)},
        ) from e
    return proof.to_authorization()
