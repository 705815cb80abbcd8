"""POST /api/commit endpoint handler."""
import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Header, status

from src.escrow.service import CommitService
from src.server.models.requests import CommitBody
from src.server.models.responses import CommitResponse, ErrorResponse
from src.server.routes._caller import PAYMENT_HEADER, parse_payment_header

logger = logging.getLogger(__name__)


def create_commit_router(commit_service: CommitService) -> APIRouter:
    """Create commit router with injected dependencies."""
    router = APIRouter()

    @router.post(
        "/api/commit",
        response_model=CommitResponse,
        status_code=status.HTTP_200_OK,
        responses={402: {"model": ErrorResponse, "description": "Payment required"}},
        tags=["escrow"],
    )
    async def commit(
        body: CommitBody,
        x_payment: Annotated[Optional[str], Header(alias=PAYMENT_HEADER)] = None,
    ) -> CommitResponse:
        """Escrow a message behind a signed payment authorization.

        Without an ``X-PAYMENT`` header, or with one that fails
        verification, answers 402 with a fresh challenge describing the
        authorization to sign.
        """
        auth = parse_payment_header(x_payment)
        message = await commit_service.commit(body.to_commit_request(), auth)
        return CommitResponse(
            message_id=message.message_id,
            bid_usd=message.bid_usd,
            expires_at=message.expires_at,
        )

    return router
