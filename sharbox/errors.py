"""Exception types for the sharbox library."""


class SharboxError(Exception):
    """Base exception for all sharbox errors."""
    pass


class ConfigError(SharboxError):
    """Configuration is missing or invalid."""
    pass


class TransportUnavailableError(SharboxError):
    """A mailbox operation could not be completed."""
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(TransportUnavailableError):
    """The mailbox relay rate limited the request."""
    def __init__(self, message: str, retry_after: int | None = None) -> None:
        super().__init__(message, status_code=429)
        self.retry_after = retry_after


class InvalidTransitionError(SharboxError):
    """A share status transition would move backwards."""
    pass

