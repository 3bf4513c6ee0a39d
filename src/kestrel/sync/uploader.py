"""Upload events captured while offline to the sync server.

The store already applied these changes locally when they were published.
On reconnection it hands the drained queue to a replay handler; this one
ships the batch to the server and never writes back into the store.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx

from kestrel.contracts import thaw

if TYPE_CHECKING:
    from kestrel.store.connectivity import QueuedEvent

_logger = logging.getLogger(__name__)


class SyncUploadError(RuntimeError):
    """The sync server rejected the batch or could not be reached."""


def encode_offline_batch(events: list[QueuedEvent]) -> list[dict[str, Any]]:
    return [
        {
            "event_type": meta.event_type,
            "source": meta.source.value,
            "timestamp": meta.timestamp,
            "changes": thaw(changes),
        }
        for changes, meta in events
    ]


@dataclass
class SyncUploaderConfig:
    url: str
    timeout: float = 8.0
    api_key: str | None = None


class HttpSyncUploader:
    """Replay handler that POSTs the offline batch as JSON."""

    def __init__(
        self,
        config: SyncUploaderConfig,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._client = client
        self._owns_client = client is None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._config.timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def __call__(self, events: list[QueuedEvent]) -> None:
        if not events:
            return
        headers = {"Content-Type": "application/json"}
        if self._config.api_key:
            headers["Authorization"] = f"Bearer {self._config.api_key}"
        try:
            response = await self._http().post(
                self._config.url,
                headers=headers,
                json={"events": encode_offline_batch(events)},
                timeout=self._config.timeout,
            )
        except httpx.HTTPError as exc:
            raise SyncUploadError(f"sync upload transport error: {exc}") from exc

        if response.status_code >= 300:
            _logger.error(
                "Sync upload rejected: %s - %s", response.status_code, response.text[:500]
            )
            raise SyncUploadError(f"sync upload failed with {response.status_code}")
        _logger.info("Uploaded %d offline events", len(events))


__all__ = [
    "HttpSyncUploader",
    "SyncUploadError",
    "SyncUploaderConfig",
    "encode_offline_batch",
]
