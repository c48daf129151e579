"""Sharbox: cross-user sharing of library items via a receiver-addressed mailbox."""
from sharbox.config import SharboxConfig, load_config_from_env
from sharbox.errors import (
    ConfigError, InvalidTransitionError, RateLimitError, SharboxError, TransportUnavailableError,
)
from sharbox.service import SharboxService
from sharbox.state.models import Envelope, ItemSnapshot, PartyProfile, ShareStatus

__version__ = "0.1.0"
__all__ = [
    "SharboxConfig", "load_config_from_env",
    "ConfigError", "InvalidTransitionError", "RateLimitError", "SharboxError", "TransportUnavailableError",
    "SharboxService",
    "Envelope", "ItemSnapshot", "PartyProfile", "ShareStatus",
]
