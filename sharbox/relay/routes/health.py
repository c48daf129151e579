"""GET /api/health endpoint handler."""
from datetime import datetime, timezone

import aiosqlite
from fastapi import APIRouter, status

from sharbox.relay.models import HealthResponse
from sharbox.state.database import DatabaseManager
from sharbox.transport.http import PROTOCOL_VERSION


def create_health_router(db: DatabaseManager) -> APIRouter:
    """Create health router with injected dependencies."""
    router = APIRouter()

    @router.get("/api/health", response_model=HealthResponse, status_code=status.HTTP_200_OK, tags=["status"])
    async def health_check() -> HealthResponse:
        """Check whether the relay can reach its store."""
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"
        try:
            async with db.connection() as conn:
                await conn.execute("SELECT 1 FROM mailbox LIMIT 1")
        except aiosqlite.Error:
            return HealthResponse(
                status="degraded", protocol_version=PROTOCOL_VERSION, timestamp=timestamp,
                message="Mailbox store unavailable",
            )
        return HealthResponse(status="healthy", protocol_version=PROTOCOL_VERSION, timestamp=timestamp)

    return router
