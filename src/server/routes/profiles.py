"""Recipient profile registration endpoints."""
import logging
import sqlite3
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Path, status

from src.escrow.errors import DuplicateError, NotFoundError
from src.server.models.requests import ProfileBody
from src.server.models.responses import ProfileResponse
from src.server.routes._caller import Caller, require_acting_wallet
from src.state.database import DatabaseManager
from src.state.models.profile import RecipientProfile
from src.state.repositories.profiles import ProfileRepository

logger = logging.getLogger(__name__)


def create_profiles_router(db: DatabaseManager) -> APIRouter:
    """Create profile router with injected database dependency."""
    router = APIRouter(prefix="/api/profiles", tags=["profiles"])

    @router.post("", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
    async def register(body: ProfileBody, caller: Caller) -> ProfileResponse:
        """Register a recipient profile with its minimum bid."""
        require_acting_wallet(caller, body.wallet_address, "walletAddress")
        profile = RecipientProfile(
            wallet_address=body.wallet_address.lower(),
            username=body.username,
            display_name=body.display_name,
            min_bid_usd=body.min_bid_usd,
            is_public=body.is_public,
            created_at=datetime.now(timezone.utc),
        )
        async with db.transaction() as conn:
            repo = ProfileRepository(conn)
            if await repo.get_by_username(profile.username) is not None:
                raise DuplicateError(f"Username already taken: {profile.username}")
            if await repo.get_by_wallet(profile.wallet_address) is not None:
                raise DuplicateError("Wallet already has a profile")
            try:
                await repo.insert(profile)
            except sqlite3.IntegrityError as e:
                raise DuplicateError("Profile already exists") from e
        logger.info("Registered profile %s for %s", profile.username, profile.wallet_address)
        return ProfileResponse.from_profile(profile)

    @router.get("/{username}", response_model=ProfileResponse)
    async def get_profile(
        username: Annotated[str, Path(description="Username")],
    ) -> ProfileResponse:
        async with db.connection() as conn:
            profile = await ProfileRepository(conn).get_by_username(username)
        if profile is None or not profile.is_public:
            raise NotFoundError(f"Profile not found: {username}")
        return ProfileResponse.from_profile(profile)

    return router
