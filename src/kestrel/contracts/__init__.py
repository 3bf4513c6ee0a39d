"""Contracts - Shared data types and engine constants for Kestrel.

Everything that crosses a component boundary (state snapshots, signals,
action candidates, sessions, event metadata) is defined here so that the
store, the engine stages and the sync layer agree on one vocabulary.

Example:
    from kestrel.contracts import EventMeta, Severity, Domain
"""

# Version
CONTRACTS_VERSION = "1.0.0"

# =============================================================================
# Store Constants
# =============================================================================

# Debounce window for non-urgent pipeline triggers.
DEFAULT_COALESCE_WINDOW_MS = 150

# Upper bound on pipeline run starts per second (None disables the limit).
DEFAULT_MAX_RUNS_PER_SEC = 5

# Audit ring capacity; oldest entries are evicted first.
DEFAULT_AUDIT_CAPACITY = 100

# Key the whole canonical snapshot is persisted under.
DEFAULT_PERSISTENCE_KEY = "kestrel_state_v1"

# =============================================================================
# Engine Constants
# =============================================================================

# Readiness below this engages the cloud advisory collaborator.
ADVISORY_READINESS_THRESHOLD = 40

# Readiness below this gates (but does not downgrade) high-intensity sessions.
READINESS_GATE_THRESHOLD = 60

# Priority score blend: priority = urgency * W + enablement * (1 - W).
PRIORITY_URGENCY_WEIGHT = 0.6
PRIORITY_ENABLEMENT_WEIGHT = 0.4

# Secondary penalties contribute this fraction in dominant integration.
DOMINANT_SECONDARY_FRACTION = 0.2

from kestrel.contracts.events import (
    AuditEntry,
    EventMeta,
    EventSource,
    SUBSCRIPTION_INIT,
)
from kestrel.contracts.signals import (
    RedDayAssessment,
    Severity,
    Signal,
)
from kestrel.contracts.actions import (
    ActionCandidate,
    ActiveCommand,
    DOMAIN_ORDER,
    Domain,
    ENABLEMENT,
    enablement_for,
)
from kestrel.contracts.sessions import (
    Intensity,
    SequenceBlock,
    Session,
    minutes_of_day,
)
from kestrel.contracts.state import (
    KNOWN_KEYS,
    default_state,
    freeze,
    thaw,
    unknown_keys,
)

__all__ = [
    # Version
    "CONTRACTS_VERSION",
    # Constants
    "DEFAULT_COALESCE_WINDOW_MS",
    "DEFAULT_MAX_RUNS_PER_SEC",
    "DEFAULT_AUDIT_CAPACITY",
    "DEFAULT_PERSISTENCE_KEY",
    "ADVISORY_READINESS_THRESHOLD",
    "READINESS_GATE_THRESHOLD",
    "PRIORITY_URGENCY_WEIGHT",
    "PRIORITY_ENABLEMENT_WEIGHT",
    "DOMINANT_SECONDARY_FRACTION",
    # Events
    "AuditEntry",
    "EventMeta",
    "EventSource",
    "SUBSCRIPTION_INIT",
    # Signals
    "RedDayAssessment",
    "Severity",
    "Signal",
    # Actions
    "ActionCandidate",
    "ActiveCommand",
    "DOMAIN_ORDER",
    "Domain",
    "ENABLEMENT",
    "enablement_for",
    # Sessions
    "Intensity",
    "SequenceBlock",
    "Session",
    "minutes_of_day",
    # State
    "KNOWN_KEYS",
    "default_state",
    "freeze",
    "thaw",
    "unknown_keys",
]
