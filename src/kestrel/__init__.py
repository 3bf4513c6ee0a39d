"""Kestrel - Adaptive readiness orchestration engine.

Kestrel keeps one canonical athlete state, and every reported change flows
through a reactive store into a staged readiness pipeline:
evaluate -> detect -> prioritize -> ripple -> timeline -> summarize.

Subpackages:
- contracts: Shared data types, state shape and constants
- classify: Versioned threshold tables and status classification
- evaluators: Per-domain penalty evaluators
- engine: Red-day detection, prioritization, ripples, timeline, pipeline
- store: Reactive state store, subscriptions, persistence, offline queue
- advisory: Optional cloud advisory client
- sync: Named external events into store publishes
- core: Settings and logging bootstrap
"""

__version__ = "0.1.0"

# Re-export key types for convenience
from kestrel.contracts import EventMeta, EventSource, Severity
from kestrel.engine import ReadinessPipeline
from kestrel.store import StateStore
from kestrel.sync import SyncLayer

__all__ = [
    "EventMeta",
    "EventSource",
    "ReadinessPipeline",
    "Severity",
    "StateStore",
    "SyncLayer",
]
