"""Shared fixtures: temp registries, a shared mailbox and the current user's profile."""
from datetime import datetime, timezone
from pathlib import Path

import pytest
import pytest_asyncio

from sharbox.state.database import MAILBOX_SCHEMA, DatabaseManager
from sharbox.sharing.profile import ProfileCache
from sharbox.transport.sqlite import SqliteMailbox
from tests.helpers import make_profile, static_provider


@pytest_asyncio.fixture
async def db(tmp_path: Path) -> DatabaseManager:
    """Initialized registry for one user."""
    manager = DatabaseManager(tmp_path / "registry.db")
    await manager.initialize()
    return manager


@pytest_asyncio.fixture
async def sender_db(tmp_path: Path) -> DatabaseManager:
    """Initialized registry for the sending user."""
    manager = DatabaseManager(tmp_path / "sender.db")
    await manager.initialize()
    return manager


@pytest_asyncio.fixture
async def mailbox_db(tmp_path: Path) -> DatabaseManager:
    manager = DatabaseManager(tmp_path / "mailbox.db", schema=MAILBOX_SCHEMA)
    await manager.initialize()
    return manager


@pytest.fixture
def mailbox(mailbox_db: DatabaseManager) -> SqliteMailbox:
    return SqliteMailbox(mailbox_db)


@pytest.fixture
def broken_db(tmp_path: Path) -> DatabaseManager:
    """A registry whose file can never be opened."""
    return DatabaseManager(tmp_path / "missing-dir" / "nested" / "registry.db")


@pytest.fixture
def alice_profiles() -> ProfileCache:
    return ProfileCache(static_provider(make_profile()))


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
