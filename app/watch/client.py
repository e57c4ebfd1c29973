"""HTTP client a player integration uses to talk to the progress API.

``ProgressApiClient`` implements the tracker's ``ProgressSink``: flushes go
to the ingest endpoint and failures surface as ``ProgressSyncError`` so the
tracker can keep the rows queued.
"""

import logging
from typing import Any

import httpx

from app.watch.tracker import ProgressSyncError

logger = logging.getLogger(__name__)


class ProgressApiClient:
    def __init__(
        self,
        base_url: str,
        access_token: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            cookies={"access_token": self.access_token},
            transport=self.transport,
        )

    async def push(self, session_id: str, batch: dict[str, Any]) -> None:
        try:
            async with self._client() as client:
                response = await client.post(f"/progress/sessions/{session_id}/events", json=batch)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ProgressSyncError(
                f"Ingest rejected with status {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise ProgressSyncError(f"Connection error: {e}") from e

    async def fetch_snapshot(self, session_id: str) -> dict[str, Any] | None:
        """Return the persisted log for a tracker restore, or None if unavailable."""
        try:
            async with self._client() as client:
                response = await client.get(f"/progress/sessions/{session_id}")
                response.raise_for_status()
                snapshot: dict[str, Any] = response.json()
                return snapshot
        except httpx.HTTPError as e:
            logger.warning("Could not load progress snapshot for %s: %s", session_id, e)
            return None

    async def request_validation(self, session_id: str) -> dict[str, Any]:
        """Ask the server for the authoritative verdict.

        Raises ``httpx.HTTPStatusError`` when the server cannot resolve the
        session; the caller must then treat the session as not complete.
        """
        async with self._client() as client:
            response = await client.post(f"/progress/sessions/{session_id}/validate")
            response.raise_for_status()
            result: dict[str, Any] = response.json()
            return result
