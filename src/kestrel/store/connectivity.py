"""Connectivity signal and the offline event queue."""

from __future__ import annotations

import logging
from collections import deque
from typing import Any, Callable, Mapping

from kestrel.contracts import EventMeta

_logger = logging.getLogger(__name__)

Listener = Callable[[bool], None]
QueuedEvent = tuple[Mapping[str, Any], EventMeta]


class ConnectivitySignal:
    """Online/offline flag with change listeners."""

    def __init__(self, online: bool = True) -> None:
        self._online = online
        self._listeners: list[Listener] = []

    @property
    def online(self) -> bool:
        return self._online

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def set_online(self, online: bool) -> None:
        if online == self._online:
            return
        self._online = online
        _logger.info("Connectivity changed: %s", "online" if online else "offline")
        for listener in list(self._listeners):
            try:
                listener(online)
            except Exception:
                _logger.exception("Connectivity listener failed")


class OfflineQueue:
    """FIFO of events published while offline."""

    def __init__(self) -> None:
        self._events: deque[QueuedEvent] = deque()

    def __len__(self) -> int:
        return len(self._events)

    def append(self, changes: Mapping[str, Any], meta: EventMeta) -> None:
        self._events.append((changes, meta))

    def drain(self) -> list[QueuedEvent]:
        events = list(self._events)
        self._events.clear()
        return events


__all__ = ["ConnectivitySignal", "OfflineQueue", "QueuedEvent"]
