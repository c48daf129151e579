"""Rate limiting middleware."""
import time
from collections import defaultdict
from typing import Callable
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Sliding one-minute window per calling user, falling back to client IP."""

    def __init__(self, app: ASGIApp, requests_per_minute: int = 120) -> None:
        super().__init__(app)
        self._requests_per_minute = requests_per_minute
        self._request_times: dict[str, list[float]] = defaultdict(list)

    def _caller(self, request: Request) -> str:
        user = request.headers.get("X-Sharbox-User")
        if user:
            return f"user:{user}"
        return f"ip:{request.client.host if request.client else 'unknown'}"

    async def dispatch(self, request: Request, call_next: Callable[[Request], Response]) -> Response:
        caller = self._caller(request)
        now = time.time()
        minute_ago = now - 60

        self._request_times[caller] = [t for t in self._request_times[caller] if t > minute_ago]
        if len(self._request_times[caller]) >= self._requests_per_minute:
            retry_after = max(1, int(min(self._request_times[caller]) + 60 - now))
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

        self._request_times[caller].append(now)
        response = await call_next(request)

        remaining = self._requests_per_minute - len(self._request_times[caller])
        response.headers["X-RateLimit-Limit"] = str(self._requests_per_minute)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        return response
