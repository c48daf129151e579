"""Relay API routes."""
from sharbox.relay.routes.health import create_health_router
from sharbox.relay.routes.mailbox import create_mailbox_router

__all__ = ["create_health_router", "create_mailbox_router"]
