"""Kestrel store - reactive canonical state.

Owns the single state snapshot and drives the readiness pipeline from it:
- StateStore: publish/subscribe, coalesced pipeline scheduling, advisory
- SubscriptionRegistry: change-detected, throttled, role-redacted delivery
- AuditTrail: bounded history of publishes
- Persistence: in-memory and Redis snapshot backends
- ConnectivitySignal / OfflineQueue: offline capture and replay
"""

from kestrel.store.audit import AuditTrail
from kestrel.store.connectivity import ConnectivitySignal, OfflineQueue, QueuedEvent
from kestrel.store.persistence import (
    InMemoryPersistence,
    PersistenceStore,
    RedisPersistence,
    decode_state,
    encode_state,
)
from kestrel.store.store import ReplayHandler, StateStore
from kestrel.store.subscriptions import (
    REDACTED,
    SubscriberEntry,
    SubscriberRole,
    SubscriptionRegistry,
    redact,
)

__all__ = [
    "AuditTrail",
    "ConnectivitySignal",
    "InMemoryPersistence",
    "OfflineQueue",
    "PersistenceStore",
    "QueuedEvent",
    "REDACTED",
    "RedisPersistence",
    "ReplayHandler",
    "StateStore",
    "SubscriberEntry",
    "SubscriberRole",
    "SubscriptionRegistry",
    "decode_state",
    "encode_state",
    "redact",
]
