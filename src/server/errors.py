"""Server-side errors and exception handlers."""
import logging
from typing import Any, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from src.escrow.errors import ChainAdapterError, EscrowError, PaymentRequiredError
from src.server.models.responses import ErrorDetail, ErrorResponse

logger = logging.getLogger(__name__)


class UnauthenticatedError(EscrowError):
    """No usable caller identity on a recipient-initiated request."""

    status_code = 401
    error_code = "UNAUTHENTICATED"


def _error_body(code: str, message: str, details: Optional[dict[str, Any]]) -> dict[str, Any]:
    return ErrorResponse(error=ErrorDetail(code=code, message=message, details=details)).model_dump()


async def escrow_error_handler(request: Request, exc: EscrowError) -> JSONResponse:
    content = _error_body(exc.error_code, exc.message, exc.details)
    headers = None
    if isinstance(exc, PaymentRequiredError):
        content.update(exc.challenge.to_payload())
    elif isinstance(exc, ChainAdapterError):
        content["error"]["details"] = {**(exc.details or {}), "retryable": exc.retryable}
        headers = {"Retry-After": "5"}
        logger.warning("Chain adapter failure on %s: %s", request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=_error_body(
            "INVALID_FORMAT", "Request validation failed",
            {"validation_errors": exc.errors(include_url=False, include_context=False)},
        ),
    )


async def request_validation_error_handler(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    errors = [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")}
        for e in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=_error_body("INVALID_FORMAT", "Request validation failed", {"validation_errors": errors}),
    )
