"""Request logging middleware."""
import logging
import time
from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = logging.getLogger("sharbox.relay")
SENSITIVE_FIELDS = frozenset({"email", "phone", "social_media", "authorization", "x-api-key"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs each relay call with the calling user and its timing."""

    def __init__(self, app: ASGIApp) -> None:
        super().__init__(app)

    async def dispatch(self, request: Request, call_next: Callable[[Request], Response]) -> Response:
        start_time = time.perf_counter()
        user = request.headers.get("X-Sharbox-User", "unknown")
        protocol = request.headers.get("X-Sharbox-Protocol", "unknown")
        logger.info("Request: %s %s user=%s protocol=%s", request.method, request.url.path, user, protocol)

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info("Response: %s %s status=%d duration=%.2fms", request.method, request.url.path, response.status_code, duration_ms)
        return response


def sanitize_dict(data: dict) -> dict:
    """Redact contact details from an envelope before it is logged."""
    result = {}
    for key, value in data.items():
        if key.lower() in SENSITIVE_FIELDS:
            result[key] = "[REDACTED]"
        elif isinstance(value, dict):
            result[key] = sanitize_dict(value)
        else:
            result[key] = value
    return result
