"""HTTP mailbox client for the relay, with retry logic and connection pooling."""

import asyncio
import logging
import random
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from sharbox.errors import RateLimitError, TransportUnavailableError
from sharbox.state.models.envelope import Envelope
from sharbox.transport.base import Mailbox

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "1.0"
DEFAULT_ACK_BATCH_SIZE = 500


class HttpMailbox(Mailbox):
    """Talks to a mailbox relay over HTTP.

    Use as an async context manager so the connection pool is opened and
    closed with the caller's lifetime. Acknowledgments are sent in chunks of
    at most ``ack_batch_size`` ids, which must not exceed the relay's batch limit.
    """

    def __init__(self, base_url: str, user_id: str, timeout: float = 30.0, max_retries: int = 3,
                 transport: httpx.AsyncBaseTransport | None = None,
                 ack_batch_size: int = DEFAULT_ACK_BATCH_SIZE) -> None:
        if not base_url:
            raise ValueError("base_url cannot be empty")
        self._base_url = base_url.rstrip("/")
        self._user_id = user_id
        self._timeout = timeout
        self._max_retries = max(1, max_retries)
        self._ack_batch_size = max(1, ack_batch_size)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "HttpMailbox":
        self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout), transport=self._transport,
            limits=httpx.Limits(max_connections=20, max_keepalive_connections=5))
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Any, exc_tb: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _url(self, receiver_id: str, suffix: str = "") -> str:
        return f"{self._base_url}/api/mailbox/{quote(receiver_id, safe='')}{suffix}"

    def _headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", "X-Sharbox-User": self._user_id,
                "X-Sharbox-Protocol": PROTOCOL_VERSION}

    def _backoff(self, attempt: int) -> float:
        delay = min(0.5 * (2 ** attempt), 10.0)
        return max(0.05, delay + delay * 0.25 * (2 * random.random() - 1))

    def _retryable(self, code: int) -> bool:
        return code in (408, 500, 502, 503, 504)

    async def append_message(self, receiver_id: str, envelope: Envelope) -> None:
        if not receiver_id:
            raise ValueError("receiver_id cannot be empty")
        code, _ = await self._request("POST", self._url(receiver_id), envelope.to_wire_format())
        self._expect(code, (200, 201), "append")

    async def fetch_buffer(self, for_user_id: str) -> list[Envelope]:
        code, body = await self._request("GET", self._url(for_user_id), None)
        self._expect(code, (200,), "fetch")
        if not body or not isinstance(body.get("envelopes"), list):
            raise TransportUnavailableError("Malformed fetch response", status_code=code)
        envelopes: list[Envelope] = []
        for raw in body["envelopes"]:
            try:
                envelopes.append(Envelope.from_wire(raw))
            except ValidationError as exc:
                logger.warning("Skipping unreadable buffer entry: %s", exc)
        return envelopes

    async def delete_from_buffer(self, receiver_id: str, message_ids: list[str]) -> int:
        if not message_ids:
            return 0
        ids = list(message_ids)
        deleted = 0
        for start in range(0, len(ids), self._ack_batch_size):
            chunk = ids[start:start + self._ack_batch_size]
            code, body = await self._request("POST", self._url(receiver_id, "/ack"), {"message_ids": chunk})
            self._expect(code, (200,), "ack")
            deleted += int((body or {}).get("deleted", 0))
        return deleted

    def _expect(self, code: int, ok: tuple[int, ...], operation: str) -> None:
        if code not in ok:
            raise TransportUnavailableError(f"Mailbox {operation} returned {code}", status_code=code)

    async def _request(self, method: str, url: str, data: dict | None) -> tuple[int, dict | None]:
        if not self._client:
            raise TransportUnavailableError("Mailbox client not initialized")
        last_err: Exception | None = None
        for i in range(self._max_retries):
            try:
                resp = await (self._client.post(url, json=data, headers=self._headers()) if method == "POST"
                              else self._client.get(url, headers=self._headers()))
                if resp.status_code == 429:
                    raise RateLimitError("Rate limited", _retry_after(resp.headers.get("Retry-After")))
                if self._retryable(resp.status_code) and i < self._max_retries - 1:
                    await asyncio.sleep(self._backoff(i))
                    continue
                try:
                    body = resp.json() if resp.content else None
                except ValueError:
                    return resp.status_code, None
                if body is not None and not isinstance(body, dict):
                    raise TransportUnavailableError(
                        f"Unexpected {type(body).__name__} body from mailbox", status_code=resp.status_code)
                return resp.status_code, body
            except TransportUnavailableError:
                raise
            except (httpx.TimeoutException, httpx.RequestError) as e:
                last_err = e
                if i < self._max_retries - 1:
                    await asyncio.sleep(self._backoff(i))
        raise TransportUnavailableError(f"Request failed after {self._max_retries} attempts: {last_err}")


def _retry_after(value: str | None) -> int | None:
    """Seconds to wait from a Retry-After header, in delta-seconds or HTTP-date form."""
    if not value:
        return None
    try:
        return max(0, int(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        logger.debug("Ignoring unparseable Retry-After %r", value)
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0, int((when - datetime.now(timezone.utc)).total_seconds()))
