"""Chain adapter boundary.

The escrow core never talks to an RPC node itself. It depends on a
:class:`ChainAdapter` that can check an authorization, execute it, and send
a plain transfer. :class:`FacilitatorChainAdapter` delegates all three to
an HTTP facilitator; :class:`DryRunChainAdapter` is for local development.
"""
import hashlib
import logging
from typing import Any, Optional, Protocol, runtime_checkable

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.escrow.authorization import TransferAuthorization
from src.escrow.errors import ChainAdapterError
from src.escrow.tokens import TokenInfo

logger = logging.getLogger(__name__)


@runtime_checkable
class ChainAdapter(Protocol):
    async def verify_signature_and_nonce(
        self,
        auth: TransferAuthorization,
        expected_recipient: str,
        expected_amount: int,
        token: TokenInfo,
    ) -> bool:
        """True when the signature is valid for the sender and the nonce is unused."""
        ...

    async def settle(self, auth: TransferAuthorization, token: TokenInfo) -> str:
        """Execute the authorized transfer and return its tx hash."""
        ...

    async def refund(self, wallet: str, amount_units: int, token: TokenInfo) -> str:
        """Send a plain transfer to ``wallet`` and return its tx hash."""
        ...

    async def aclose(self) -> None:
        ...


class VerifyResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_valid: bool = Field(alias="isValid")
    invalid_reason: Optional[str] = Field(default=None, alias="invalidReason")


class TransactionResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    transaction: Optional[str] = None
    error_reason: Optional[str] = Field(default=None, alias="errorReason")


def _token_payload(token: TokenInfo) -> dict[str, Any]:
    return {
        "chainId": token.chain_id,
        "address": token.address,
        "symbol": token.symbol,
        "decimals": token.decimals,
        "name": token.name,
        "version": token.version,
    }


class FacilitatorChainAdapter:
    """Chain adapter backed by an HTTP payment facilitator.

    Any transport failure, non-2xx status or ``success: false`` answer is
    raised as :class:`ChainAdapterError`; callers decide whether to retry.
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> "FacilitatorChainAdapter":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _get_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = await self._client.post(url, json=payload, headers=self._get_headers())
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise ChainAdapterError(
                f"Facilitator returned {e.response.status_code} for {path}",
                {"status": e.response.status_code, "body": e.response.text[:500]},
            ) from e
        except httpx.HTTPError as e:
            raise ChainAdapterError(f"Facilitator unreachable: {e}", {"path": path}) from e
        except ValueError as e:
            raise ChainAdapterError(f"Facilitator returned invalid JSON for {path}") from e

    async def verify_signature_and_nonce(
        self,
        auth: TransferAuthorization,
        expected_recipient: str,
        expected_amount: int,
        token: TokenInfo,
    ) -> bool:
        data = await self._post("/verify", {
            "authorization": auth.to_payload(),
            "expectedRecipient": expected_recipient,
            "expectedAmount": str(expected_amount),
            "token": _token_payload(token),
        })
        try:
            result = VerifyResult.model_validate(data)
        except ValidationError as e:
            raise ChainAdapterError("Malformed facilitator verify response") from e
        if not result.is_valid:
            logger.info(
                "Facilitator rejected authorization nonce=%s reason=%s",
                auth.nonce, result.invalid_reason,
            )
        return result.is_valid

    async def settle(self, auth: TransferAuthorization, token: TokenInfo) -> str:
        data = await self._post("/settle", {
            "authorization": auth.to_payload(),
            "token": _token_payload(token),
        })
        return self._tx_hash(data, "settlement")

    async def refund(self, wallet: str, amount_units: int, token: TokenInfo) -> str:
        data = await self._post("/refund", {
            "to": wallet,
            "amount": str(amount_units),
            "token": _token_payload(token),
        })
        return self._tx_hash(data, "refund")

    @staticmethod
    def _tx_hash(data: dict[str, Any], operation: str) -> str:
        try:
            result = TransactionResult.model_validate(data)
        except ValidationError as e:
            raise ChainAdapterError(f"Malformed facilitator {operation} response") from e
        if not result.success or not result.transaction:
            raise ChainAdapterError(
                f"{operation.capitalize()} failed: {result.error_reason or 'no transaction hash'}",
                {"reason": result.error_reason},
            )
        return result.transaction


class DryRunChainAdapter:
    """Accepts every authorization and fabricates deterministic tx hashes.

    Never use in production: signatures are not checked.
    """

    def __init__(self) -> None:
        logger.warning("DryRunChainAdapter active: signatures are NOT verified")

    async def verify_signature_and_nonce(
        self,
        auth: TransferAuthorization,
        expected_recipient: str,
        expected_amount: int,
        token: TokenInfo,
    ) -> bool:
        return True

    async def settle(self, auth: TransferAuthorization, token: TokenInfo) -> str:
        return "0x" + hashlib.sha256(f"settle:{auth.nonce}".encode()).hexdigest()

    async def refund(self, wallet: str, amount_units: int, token: TokenInfo) -> str:
        return "0x" + hashlib.sha256(f"refund:{wallet}:{amount_units}".encode()).hexdigest()

    async def aclose(self) -> None:
        return None
