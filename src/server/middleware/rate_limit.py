"""Per-client rate limiting middleware."""
import time
from collections import defaultdict
from typing import Callable, Iterable
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

EXEMPT_PATHS = frozenset({"/health"})
WINDOW_SECONDS = 60


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Sliding one-minute window keyed by caller wallet, falling back to client IP."""

    def __init__(
        self,
        app: ASGIApp,
        requests_per_minute: int = 120,
        exempt_paths: Iterable[str] = EXEMPT_PATHS,
    ) -> None:
        super().__init__(app)
        self._limit = requests_per_minute
        self._exempt = frozenset(exempt_paths)
        self._hits: dict[str, list[float]] = defaultdict(list)

    @staticmethod
    def _client_key(request: Request) -> str:
        wallet = request.headers.get("X-Wallet-Address")
        if wallet:
            return f"wallet:{wallet.lower()}"
        return f"ip:{request.client.host if request.client else 'unknown'}"

    async def dispatch(self, request: Request, call_next: Callable[[Request], Response]) -> Response:
        if request.url.path in self._exempt:
            return await call_next(request)

        key = self._client_key(request)
        now = time.time()
        window_start = now - WINDOW_SECONDS
        hits = [t for t in self._hits[key] if t > window_start]
        self._hits[key] = hits

        if len(hits) >= self._limit:
            retry_after = max(1, int(hits[0] + WINDOW_SECONDS - now))
            return JSONResponse(
                status_code=429,
                content={
                    "error": {
                        "code": "RATE_LIMITED",
                        "message": "Rate limit exceeded",
                        "details": {"retry_after": retry_after},
                    }
                },
                headers={"Retry-After": str(retry_after)},
            )

        hits.append(now)
        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self._limit)
        response.headers["X-RateLimit-Remaining"] = str(max(0, self._limit - len(hits)))
        return response
