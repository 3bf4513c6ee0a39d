"""Event metadata carried alongside every publish, and the audit record it leaves."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum


# Event type delivered to subscribers registered with immediate=True.
SUBSCRIPTION_INIT = "SUBSCRIPTION_INIT"


class EventSource(str, Enum):
    """Who originated a state change."""

    USER = "user"
    SYNC = "sync"
    ENGINE = "engine"
    ADVISORY = "advisory"
    SYSTEM = "system"


@dataclass(slots=True, frozen=True)
class EventMeta:
    """Describes a single publish.

    ``trigger_orchestrator`` is False for the engine's own write-back so that
    derived output never re-triggers the pipeline. ``urgent`` bypasses the
    debounce timer and runs the pipeline inline.
    """

    event_type: str
    source: EventSource = EventSource.USER
    timestamp: float = field(default_factory=time.time)
    trigger_orchestrator: bool = True
    urgent: bool = False
    override_use_llm: bool = False

    @classmethod
    def engine(cls, event_type: str = "ORCHESTRATOR_OUTPUT") -> EventMeta:
        return cls(
            event_type=event_type,
            source=EventSource.ENGINE,
            trigger_orchestrator=False,
        )

    @classmethod
    def advisory(cls, event_type: str = "ADVISORY_SYNTHESIS") -> EventMeta:
        return cls(
            event_type=event_type,
            source=EventSource.ADVISORY,
            trigger_orchestrator=False,
        )


@dataclass(slots=True, frozen=True)
class AuditEntry:
    """One line of the store's bounded audit trail."""

    timestamp: float
    event_type: str
    source: str
    changed_keys: tuple[str, ...]

    def to_dict(self) -> dict[str, object]:
        return {
            "timestamp": self.timestamp,
            "event_type": self.event_type,
            "source": self.source,
            "changed_keys": list(self.changed_keys),
        }


__all__ = [
    "AuditEntry",
    "EventMeta",
    "EventSource",
    "SUBSCRIPTION_INIT",
]
