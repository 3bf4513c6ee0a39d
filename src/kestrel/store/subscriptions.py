"""Selector-based subscriptions with change detection, throttling and redaction."""

from __future__ import annotations

import inspect
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Mapping

from kestrel.contracts import EventMeta

_logger = logging.getLogger(__name__)

REDACTED = "[REDACTED]"

Selector = Callable[[Mapping[str, Any]], Any]
Callback = Callable[[Any, Any, EventMeta], "Awaitable[None] | None"]

_UNSET: Any = object()


class SubscriberRole(str, Enum):
    USER = "user"
    COACH = "coach"
    ADMIN = "admin"
    SYSTEM = "system"


def redact(value: Any, role: SubscriberRole) -> Any:
    """Hide medical biomarkers from roles that may not see them."""
    if role is not SubscriberRole.COACH:
        return value
    if isinstance(value, Mapping) and "biomarkers" in value:
        return MappingProxyType({**value, "biomarkers": REDACTED})
    return value


@dataclass(slots=True)
class SubscriberEntry:
    id: str
    selector: Selector
    callback: Callback
    role: SubscriberRole = SubscriberRole.USER
    throttle_ms: float = 0.0
    cached_value: Any = _UNSET
    last_called: float | None = field(default=None)

    def throttled(self, now: float) -> bool:
        if self.throttle_ms <= 0 or self.last_called is None:
            return False
        return (now - self.last_called) * 1000.0 < self.throttle_ms


class SubscriptionRegistry:
    """Holds subscribers and fans state changes out to them.

    A failing selector or callback is logged and never affects other
    subscribers or the publisher.
    """

    def __init__(self) -> None:
        self._entries: dict[str, SubscriberEntry] = {}
        self.failures = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, subscriber_id: object) -> bool:
        return subscriber_id in self._entries

    def add(
        self,
        selector: Selector,
        callback: Callback,
        *,
        role: SubscriberRole | str = SubscriberRole.USER,
        throttle_ms: float = 0.0,
        subscriber_id: str | None = None,
    ) -> SubscriberEntry:
        entry = SubscriberEntry(
            id=subscriber_id or uuid.uuid4().hex,
            selector=selector,
            callback=callback,
            role=SubscriberRole(role),
            throttle_ms=float(throttle_ms),
        )
        if entry.id in self._entries:
            _logger.warning("Replacing existing subscriber %s", entry.id)
        self._entries[entry.id] = entry
        return entry

    def remove(self, subscriber_id: str) -> bool:
        return self._entries.pop(subscriber_id, None) is not None

    def get(self, subscriber_id: str) -> SubscriberEntry | None:
        return self._entries.get(subscriber_id)

    def clear(self) -> None:
        self._entries.clear()

    def prime(self, entry: SubscriberEntry, state: Mapping[str, Any]) -> bool:
        """Seed the cached value so only later changes are delivered."""
        value = self.select(entry, state)
        entry.cached_value = value
        return value is not _UNSET

    def select(self, entry: SubscriberEntry, state: Mapping[str, Any]) -> Any:
        """Run the selector; returns ``_UNSET`` if it raises."""
        try:
            return entry.selector(state)
        except Exception:
            self.failures += 1
            _logger.exception("Selector for subscriber %s failed", entry.id)
            return _UNSET

    def invoke(
        self, entry: SubscriberEntry, new: Any, old: Any, meta: EventMeta
    ) -> Awaitable[None] | None:
        """Call the callback; async callbacks come back as an awaitable to run."""
        try:
            result = entry.callback(
                redact(new, entry.role),
                None if old is _UNSET else redact(old, entry.role),
                meta,
            )
        except Exception:
            self.failures += 1
            _logger.exception("Subscriber %s callback failed", entry.id)
            return None
        if inspect.isawaitable(result):
            return self._guard(entry, result)
        return None

    async def _guard(self, entry: SubscriberEntry, pending: Awaitable[None]) -> None:
        try:
            await pending
        except Exception:
            self.failures += 1
            _logger.exception("Subscriber %s callback failed", entry.id)

    async def broadcast(
        self, state: Mapping[str, Any], meta: EventMeta, now: float
    ) -> int:
        """Deliver to every subscriber whose selected value changed.

        Returns the number of callbacks invoked.
        """
        delivered = 0
        for entry in list(self._entries.values()):
            if entry.id not in self._entries:
                continue  # unsubscribed by an earlier callback
            value = self.select(entry, state)
            if value is _UNSET:
                continue
            if entry.cached_value is not _UNSET and value == entry.cached_value:
                continue
            if entry.throttled(now):
                continue
            old = entry.cached_value
            entry.cached_value = value
            entry.last_called = now
            delivered += 1
            pending = self.invoke(entry, value, old, meta)
            if pending is not None:
                await pending
        return delivered


__all__ = [
    "REDACTED",
    "SubscriberEntry",
    "SubscriberRole",
    "SubscriptionRegistry",
    "redact",
]
