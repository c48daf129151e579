"""Relay middleware."""
from sharbox.relay.middleware.rate_limit import RateLimitMiddleware
from sharbox.relay.middleware.logging import RequestLoggingMiddleware

__all__ = ["RateLimitMiddleware", "RequestLoggingMiddleware"]
