"""Request logging middleware and log redaction helpers."""
import logging
import time
import uuid
from typing import Any, Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = logging.getLogger("bidinbox.server")

REQUEST_ID_HEADER = "X-Request-ID"
REDACTED = "[REDACTED]"
# Signature parts and credentials never reach the logs.
SENSITIVE_FIELDS = frozenset({"signature", "r", "s", "x-payment", "authorization", "x-api-key"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One line per request and one per response, tied together by a request id.

    The id is taken from ``X-Request-ID`` when the caller supplies one and
    echoed back on the response. Server errors log at ERROR, client errors
    at WARNING.
    """

    def __init__(self, app: ASGIApp) -> None:
        super().__init__(app)

    async def dispatch(self, request: Request, call_next: Callable[[Request], Response]) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        request.state.request_id = request_id
        wallet = request.headers.get("X-Wallet-Address", "-")
        started = time.perf_counter()
        logger.info(
            "[%s] %s %s wallet=%s payment=%s",
            request_id, request.method, request.url.path, wallet,
            "X-PAYMENT" in request.headers,
        )

        response = await call_next(request)

        elapsed_ms = (time.perf_counter() - started) * 1000
        level = _level_for(response.status_code)
        logger.log(
            level, "[%s] -> %d in %.1fms", request_id, response.status_code, elapsed_ms,
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def _level_for(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400 and status_code != 402:
        return logging.WARNING
    return logging.INFO


def sanitize_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Copy of ``data`` with signature material and credentials replaced."""
    return {
        key: REDACTED if key.lower() in SENSITIVE_FIELDS else _sanitize_value(value)
        for key, value in data.items()
    }


def _sanitize_value(value: Any) -> Any:
    if isinstance(value, dict):
        return sanitize_dict(value)
    if isinstance(value, list):
        return [_sanitize_value(v) for v in value]
    return value
