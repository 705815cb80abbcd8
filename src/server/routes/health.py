"""GET /health endpoint handler."""
from datetime import datetime, timezone
from fastapi import APIRouter, Request, status
from src.server.config import ServerConfig
from src.server.models.responses import HealthResponse


def create_health_router(config: ServerConfig) -> APIRouter:
    """Create health router with injected dependencies."""
    router = APIRouter()

    @router.get("/health", response_model=HealthResponse, status_code=status.HTTP_200_OK, tags=["status"])
    async def health_check(request: Request) -> HealthResponse:
        """Check if the service is operational and the sweeper is alive."""
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"
        if not config.sweeper.enabled:
            return HealthResponse(
                status="healthy", version=config.version, timestamp=timestamp,
                sweeper="disabled",
            )
        task = getattr(request.app.state, "sweeper_task", None)
        if task is None or task.done():
            return HealthResponse(
                status="degraded", version=config.version, timestamp=timestamp,
                sweeper="stopped", message="Refund sweeper is not running",
            )
        return HealthResponse(
            status="healthy", version=config.version, timestamp=timestamp,
            sweeper="running",
        )

    return router
