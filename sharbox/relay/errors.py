"""Exception types raised by relay routes."""
from typing import Any, Optional


class RelayError(Exception):
    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidEnvelopeError(RelayError):
    status_code = 400
    error_code = "INVALID_FORMAT"


class BatchTooLargeError(RelayError):
    status_code = 413
    error_code = "BATCH_TOO_LARGE"

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(f"Batch of {size} exceeds limit of {limit}", {"size": size, "limit": limit})


class StoreUnavailableError(RelayError):
    status_code = 503
    error_code = "STORE_UNAVAILABLE"
