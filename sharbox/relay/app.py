"""FastAPI application factory for the mailbox relay."""
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from sharbox.config import RelayConfig, load_relay_config_from_env
from sharbox.relay.errors import RelayError
from sharbox.relay.middleware.logging import RequestLoggingMiddleware
from sharbox.relay.middleware.rate_limit import RateLimitMiddleware
from sharbox.relay.models import ErrorDetail, ErrorResponse
from sharbox.relay.routes.health import create_health_router
from sharbox.relay.routes.mailbox import create_mailbox_router
from sharbox.state.database import MAILBOX_SCHEMA, DatabaseManager
from sharbox.transport.http import PROTOCOL_VERSION

logger = logging.getLogger(__name__)


def create_app(config: Optional[RelayConfig] = None) -> FastAPI:
    """Create and configure the relay application.

    When called without arguments (e.g. via uvicorn --factory), loads
    configuration from environment variables.
    """
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    if config is None:
        config = load_relay_config_from_env()

    db_manager = DatabaseManager(config.db_path, schema=MAILBOX_SCHEMA)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await db_manager.initialize()
        logger.info("Mailbox store initialized at %s", config.db_path)
        yield
        await db_manager.close()

    app = FastAPI(
        title="Sharbox Mailbox Relay",
        description="Receiver-addressed envelope buffer for Sharbox clients",
        version=PROTOCOL_VERSION,
        lifespan=lifespan,
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RateLimitMiddleware, requests_per_minute=config.requests_per_minute)
    app.add_exception_handler(RelayError, _relay_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.include_router(create_mailbox_router(config, db_manager))
    app.include_router(create_health_router(db_manager))
    return app


async def _relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    response = ErrorResponse(error=ErrorDetail(code=exc.error_code, message=exc.message, details=exc.details))
    return JSONResponse(status_code=exc.status_code, content=response.model_dump())


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [{"loc": list(e.get("loc", ())), "msg": e.get("msg", "")} for e in exc.errors()]
    response = ErrorResponse(error=ErrorDetail(code="INVALID_FORMAT", message="Request validation failed", details={"validation_errors": errors}))
    return JSONResponse(status_code=400, content=response.model_dump())
