"""Route handlers for the escrow service endpoints."""
from src.server.routes.commit import create_commit_router
from src.server.routes.health import create_health_router
from src.server.routes.messages import create_messages_router
from src.server.routes.price_guide import create_price_guide_router
from src.server.routes.profiles import create_profiles_router
from src.server.routes.reputation import create_reputation_router
from src.server.routes.tokens import create_tokens_router
__all__ = [
    "create_commit_router",
    "create_health_router",
    "create_messages_router",
    "create_price_guide_router",
    "create_profiles_router",
    "create_reputation_router",
    "create_tokens_router",
]
