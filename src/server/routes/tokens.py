"""GET /api/tokens endpoint handler."""
from fastapi import APIRouter

from src.escrow.tokens import TokenRegistry
from src.server.models.responses import TokensResponse, TokenView


def create_tokens_router(tokens: TokenRegistry) -> APIRouter:
    router = APIRouter()

    @router.get("/api/tokens", response_model=TokensResponse, tags=["pricing"])
    async def list_tokens() -> TokensResponse:
        """Payment assets accepted for bids."""
        return TokensResponse(
            default=tokens.default.symbol,
            tokens=[TokenView.from_token(t) for t in tokens.tokens],
        )

    return router
