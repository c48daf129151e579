"""Reference mailbox relay served over HTTP."""
from sharbox.relay.app import create_app

__all__ = ["create_app"]
