"""ASGI middleware: request logging and per-client rate limiting."""
from src.server.middleware.logging import RequestLoggingMiddleware, sanitize_dict
from src.server.middleware.rate_limit import RateLimitMiddleware

__all__ = ["RateLimitMiddleware", "RequestLoggingMiddleware", "sanitize_dict"]
