"""Bounded audit trail of publishes."""

from __future__ import annotations

from collections import deque
from typing import Iterable

from kestrel.contracts import DEFAULT_AUDIT_CAPACITY, AuditEntry, EventMeta


class AuditTrail:
    """Ring buffer of ``AuditEntry``; the oldest entry is evicted when full."""

    def __init__(self, capacity: int = DEFAULT_AUDIT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError(f"audit capacity must be positive, got {capacity}")
        self._entries: deque[AuditEntry] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        assert self._entries.maxlen is not None
        return self._entries.maxlen

    def __len__(self) -> int:
        return len(self._entries)

    def record(self, meta: EventMeta, changed_keys: Iterable[str]) -> AuditEntry:
        entry = AuditEntry(
            timestamp=meta.timestamp,
            event_type=meta.event_type,
            source=meta.source.value,
            changed_keys=tuple(changed_keys),
        )
        self._entries.append(entry)
        return entry

    def entries(self) -> list[AuditEntry]:
        """Newest first."""
        return list(reversed(self._entries))

    def clear(self) -> None:
        self._entries.clear()


__all__ = ["AuditTrail"]
