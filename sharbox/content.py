"""Lazy resolution of large content referenced by a snapshot.

Full text and generated insights live in an external blob store; the
snapshot only carries their file ids and the storage node URL. Viewing
code resolves them on demand. The sync engine never calls this module.
"""
import json
import logging
from typing import Any, Optional

import httpx

from sharbox.state.models.envelope import ItemSnapshot

logger = logging.getLogger(__name__)


class ContentResolver:
    """Fetches JSON blobs from a storage node.

    A node answers ``GET <node>?action=getFileContent&fileId=<id>`` with
    ``{"status": "success", "content": "<json string>"}``.
    """

    def __init__(self, default_node_url: Optional[str] = None, timeout: float = 15.0,
                 transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._default_node_url = default_node_url
        self._timeout = timeout
        self._transport = transport

    async def fetch(self, file_id: str, node_url: Optional[str] = None) -> Optional[Any]:
        """Return the decoded content of a blob, or None if unavailable."""
        target = node_url or self._default_node_url
        if not file_id or not target:
            return None
        params = {"action": "getFileContent", "fileId": file_id}
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.get(target, params=params)
            if response.status_code >= 400:
                logger.warning("Content node returned %d for %s", response.status_code, file_id)
                return None
            body = response.json()
            if not isinstance(body, dict) or body.get("status") != "success":
                return None
            return json.loads(body["content"])
        except (httpx.HTTPError, ValueError, KeyError) as exc:
            logger.warning("Content fetch failed for %s: %s", file_id, exc)
            return None

    async def extracted_text(self, snapshot: ItemSnapshot) -> Optional[Any]:
        """Full extracted text of the shared item."""
        if not snapshot.extracted_json_id:
            return None
        return await self.fetch(snapshot.extracted_json_id, snapshot.storage_node_url)

    async def insights(self, snapshot: ItemSnapshot) -> Optional[Any]:
        """Generated insights for the shared item."""
        if not snapshot.insight_json_id:
            return None
        return await self.fetch(snapshot.insight_json_id, snapshot.storage_node_url)
