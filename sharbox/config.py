"""Library and relay configuration."""
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from sharbox.errors import ConfigError

logger = logging.getLogger(__name__)

_RECOGNISED_BOOL_VALUES = frozenset(
    ("1", "true", "yes", "0", "false", "no")
)


@dataclass(frozen=True)
class TransportConfig:
    """Where the mailbox lives.

    Exactly one of ``mailbox_db_path`` (shared SQLite mailbox) or
    ``relay_url`` (HTTP relay) is used; the relay wins when both are set.
    """

    mailbox_db_path: Optional[Path] = None
    relay_url: Optional[str] = None
    timeout: float = 30.0
    max_retries: int = 3
    ack_batch_size: int = 500


@dataclass(frozen=True)
class SyncConfig:
    """Drain scheduling.

    ``interval_seconds``: fixed interval of the periodic drain.
    ``sync_on_start``: drain once when the service starts.
    ``failure_threshold``: consecutive failing cycles before a warning.
    """

    interval_seconds: float = 300.0
    sync_on_start: bool = True
    failure_threshold: int = 3


@dataclass(frozen=True)
class NotificationConfig:
    horizon_days: int = 3


@dataclass(frozen=True)
class SharboxConfig:
    user_id: str
    db_path: Path = field(default_factory=lambda: Path("data/sharbox.db"))
    transport: TransportConfig = field(default_factory=TransportConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)

    def __post_init__(self) -> None:
        if not self.user_id:
            raise ConfigError("user_id cannot be empty")
        if self.sync.interval_seconds <= 0:
            raise ConfigError("sync interval must be positive")
        if self.notifications.horizon_days < 0:
            raise ConfigError("notification horizon must be >= 0")


@dataclass(frozen=True)
class RelayConfig:
    db_path: Path = field(default_factory=lambda: Path("data/mailbox.db"))
    requests_per_minute: int = 120
    max_batch_size: int = 500


def _parse_bool(value: str, default: bool) -> bool:
    """Parse a boolean environment variable with explicit default.

    Recognises ``true/1/yes`` and ``false/0/no`` (case-insensitive).
    Returns *default* when the value is empty or unset.
    Logs a warning and returns *default* for unrecognised values.
    """
    if not value:
        return default
    normalised = value.lower()
    if normalised not in _RECOGNISED_BOOL_VALUES:
        logger.warning(
            "Unrecognised boolean value %r, using default %s. "
            "Expected one of: true/1/yes or false/0/no.",
            value,
            default,
        )
        return default
    return normalised in ("1", "true", "yes")


def _parse_number(name: str, default: str, cast: type) -> float | int:
    raw = os.environ.get(name, default)
    try:
        return cast(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from exc


def load_config_from_env() -> SharboxConfig:
    user_id = os.environ.get("SHARBOX_USER_ID")
    relay_url = os.environ.get("SHARBOX_RELAY_URL")
    mailbox_db = os.environ.get("SHARBOX_MAILBOX_DB_PATH")
    missing = []
    if not user_id:
        missing.append("SHARBOX_USER_ID")
    if not relay_url and not mailbox_db:
        missing.append("SHARBOX_RELAY_URL or SHARBOX_MAILBOX_DB_PATH")
    if missing:
        raise ConfigError(f"Missing: {', '.join(missing)}")

    return SharboxConfig(
        user_id=user_id,
        db_path=Path(os.environ.get("SHARBOX_DB_PATH", "data/sharbox.db")),
        transport=TransportConfig(
            mailbox_db_path=Path(mailbox_db) if mailbox_db else None,
            relay_url=relay_url or None,
            timeout=_parse_number("SHARBOX_TRANSPORT_TIMEOUT", "30.0", float),
            max_retries=_parse_number("SHARBOX_TRANSPORT_MAX_RETRIES", "3", int),
            ack_batch_size=_parse_number("SHARBOX_TRANSPORT_ACK_BATCH", "500", int),
        ),
        sync=SyncConfig(
            interval_seconds=_parse_number("SHARBOX_DRAIN_INTERVAL", "300", float),
            sync_on_start=_parse_bool(os.environ.get("SHARBOX_SYNC_ON_START", ""), default=True),
            failure_threshold=_parse_number("SHARBOX_DRAIN_FAILURE_THRESHOLD", "3", int),
        ),
        notifications=NotificationConfig(
            horizon_days=_parse_number("SHARBOX_TASK_HORIZON_DAYS", "3", int),
        ),
    )


def load_relay_config_from_env() -> RelayConfig:
    return RelayConfig(
        db_path=Path(os.environ.get("SHARBOX_RELAY_DB_PATH", "data/mailbox.db")),
        requests_per_minute=_parse_number("SHARBOX_RELAY_RATE_LIMIT", "120", int),
        max_batch_size=_parse_number("SHARBOX_RELAY_MAX_BATCH", "500", int),
    )
