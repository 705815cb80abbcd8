"""Reputation query and social signal endpoints."""
from typing import Annotated

from fastapi import APIRouter, Path, status

from src.escrow.amounts import is_wallet_address
from src.escrow.errors import InvalidRequestError
from src.reputation.engine import ReputationEngine, describe
from src.reputation.social import SocialService
from src.server.models.requests import BlockBody, VouchBody
from src.server.models.responses import (
    BlockResponse,
    ReputationResponse,
    SnapshotView,
    VouchResponse,
)
from src.server.routes._caller import Caller, require_acting_wallet
from src.state.database import DatabaseManager


def create_reputation_router(
    db: DatabaseManager, engine: ReputationEngine, social: SocialService,
) -> APIRouter:
    """Create reputation router with injected dependencies."""
    router = APIRouter(tags=["reputation"])

    @router.get("/api/reputation/{wallet}", response_model=ReputationResponse)
    async def get_reputation(
        wallet: Annotated[str, Path(description="Wallet address")],
    ) -> ReputationResponse:
        """Snapshot and readable facts; computed on first request."""
        if not is_wallet_address(wallet):
            raise InvalidRequestError("Invalid wallet address")
        snapshot = await engine.get_or_compute(db, wallet)
        return ReputationResponse(
            wallet=snapshot.wallet,
            facts=describe(snapshot),
            snapshot=SnapshotView.from_snapshot(snapshot),
        )

    @router.post("/api/vouches", response_model=VouchResponse, status_code=status.HTTP_201_CREATED)
    async def create_vouch(body: VouchBody, caller: Caller) -> VouchResponse:
        require_acting_wallet(caller, body.voucher, "voucher")
        vouch = await social.vouch(body.voucher, body.vouchee, body.message_id)
        return VouchResponse(
            vouch_id=vouch.vouch_id, voucher=vouch.voucher,
            vouchee=vouch.vouchee, weight=vouch.weight,
        )

    @router.post("/api/blocks", response_model=BlockResponse, status_code=status.HTTP_201_CREATED)
    async def create_block(body: BlockBody, caller: Caller) -> BlockResponse:
        require_acting_wallet(caller, body.blocker, "blocker")
        block = await social.block(body.blocker, body.blocked)
        return BlockResponse(
            block_id=block.block_id, blocker=block.blocker, blocked=block.blocked,
        )

    return router
