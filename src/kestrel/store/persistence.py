"""Persistence collaborators for the canonical snapshot.

The store persists one JSON document under a fixed key after every publish.
The in-memory copy stays authoritative; a failing backend is logged by the
store and never rolls state back.
"""

from __future__ import annotations

import json
from typing import Any, Mapping, Protocol

import redis.asyncio as aioredis

from kestrel.contracts import thaw


class PersistenceStore(Protocol):
    async def get(self, key: str) -> str | None:
        ...

    async def set(self, key: str, blob: str) -> None:
        ...


def encode_state(state: Mapping[str, Any]) -> str:
    return json.dumps(thaw(state), sort_keys=True, separators=(",", ":"))


def decode_state(blob: str | bytes) -> dict[str, Any]:
    """Parse a persisted snapshot.

    Raises:
        ValueError: If the blob is not JSON or not a JSON object.
    """
    if isinstance(blob, bytes):
        blob = blob.decode("utf-8")
    data = json.loads(blob)
    if not isinstance(data, dict):
        raise ValueError(f"Persisted state must be a mapping, got {type(data).__name__}")
    return data


class InMemoryPersistence:
    """Dict-backed store for tests and single-process hosts."""

    def __init__(self, initial: Mapping[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})
        self.writes = 0

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, blob: str) -> None:
        self._data[key] = blob
        self.writes += 1


class RedisPersistence:
    """Snapshot persistence on a Redis string key."""

    def __init__(
        self,
        redis_url: str,
        *,
        redis_client: aioredis.Redis | None = None,
    ) -> None:
        self._redis = redis_client or aioredis.from_url(redis_url)

    async def get(self, key: str) -> str | None:
        raw = await self._redis.get(key)
        if raw is None:
            return None
        return raw.decode("utf-8") if isinstance(raw, bytes) else str(raw)

    async def set(self, key: str, blob: str) -> None:
        await self._redis.set(key, blob)

    async def close(self) -> None:
        await self._redis.close()


__all__ = [
    "InMemoryPersistence",
    "PersistenceStore",
    "RedisPersistence",
    "decode_state",
    "encode_state",
]
