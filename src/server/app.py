"""FastAPI application factory."""
import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from src.escrow.chain import ChainAdapter
from src.escrow.errors import EscrowError
from src.server.config import ServerConfig, load_config_from_env
from src.server.errors import (
    escrow_error_handler,
    request_validation_error_handler,
    validation_error_handler,
)
from src.server.middleware.rate_limit import RateLimitMiddleware
from src.server.middleware.logging import RequestLoggingMiddleware
from src.server.routes.commit import create_commit_router
from src.server.routes.health import create_health_router
from src.server.routes.messages import create_messages_router
from src.server.routes.price_guide import create_price_guide_router
from src.server.routes.profiles import create_profiles_router
from src.server.routes.reputation import create_reputation_router
from src.server.routes.tokens import create_tokens_router
from src.server.services import build_services

logger = logging.getLogger(__name__)


def create_app(
    config: Optional[ServerConfig] = None,
    chain_adapter: Optional[ChainAdapter] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    When called without arguments (e.g. via uvicorn --factory), loads
    configuration from environment variables. ``chain_adapter`` replaces
    the configured adapter.
    """
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    if config is None:
        config = load_config_from_env()

    services = build_services(config, chain_adapter)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await services.db.initialize()
        logger.info("Database initialized at %s", config.db_path)

        sweeper_task = None
        if config.sweeper.enabled:
            sweeper_task = asyncio.create_task(services.sweeper.run_forever())
            logger.info(
                "Refund sweeper active, interval=%ss", config.sweeper.interval_seconds,
            )
        else:
            logger.info("Refund sweeper disabled")

        app.state.sweeper_task = sweeper_task
        yield
        if sweeper_task is not None:
            sweeper_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper_task
        await services.chain.aclose()
        await services.db.close()

    app = FastAPI(
        title="bidinbox",
        description="Bid-to-deliver messaging with deferred-settlement escrow",
        version=config.version,
        lifespan=lifespan,
    )
    app.state.services = services
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RateLimitMiddleware, requests_per_minute=config.rate_limit.requests_per_minute)
    app.add_exception_handler(EscrowError, escrow_error_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.include_router(create_commit_router(services.commit))
    app.include_router(create_messages_router(services.db, services.state_machine))
    app.include_router(create_price_guide_router(services.db, services.price_guide))
    app.include_router(create_reputation_router(services.db, services.reputation, services.social))
    app.include_router(create_profiles_router(services.db))
    app.include_router(create_tokens_router(services.tokens))
    app.include_router(create_health_router(config))

    return app
