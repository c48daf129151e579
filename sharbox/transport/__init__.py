"""Mailbox transports."""
from sharbox.transport.base import Mailbox
from sharbox.transport.http import HttpMailbox
from sharbox.transport.sqlite import SqliteMailbox
__all__ = ["Mailbox", "HttpMailbox", "SqliteMailbox"]
