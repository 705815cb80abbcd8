"""GET /api/price-guide/{recipient} endpoint handler."""
from typing import Annotated

from fastapi import APIRouter, Path

from src.reputation.price_guide import PriceGuide
from src.server.models.responses import PriceGuideResponse
from src.state.database import DatabaseManager


def create_price_guide_router(db: DatabaseManager, price_guide: PriceGuide) -> APIRouter:
    """Create price guide router with injected dependencies."""
    router = APIRouter()

    @router.get("/api/price-guide/{recipient}", response_model=PriceGuideResponse, tags=["pricing"])
    async def get_price_guide(
        recipient: Annotated[str, Path(description="Username or wallet address")],
    ) -> PriceGuideResponse:
        """Winsorized bid percentiles for a recipient."""
        async with db.connection() as conn:
            guidance = await price_guide.lookup(conn, recipient)
        return PriceGuideResponse.from_guidance(guidance)

    return router
