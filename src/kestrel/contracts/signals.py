"""Risk signals raised by the red-day detector battery."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Severity(str, Enum):
    """Signal severity, ordered from least to most serious."""

    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.LOW: 0,
    Severity.MODERATE: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}


@dataclass(slots=True, frozen=True)
class Signal:
    """A single detected failure signal. Recomputed every cycle."""

    id: str
    label: str
    severity: Severity
    rationale: str

    @property
    def is_critical(self) -> bool:
        return self.severity is Severity.CRITICAL

    def to_dict(self) -> dict[str, str]:
        return {
            "id": self.id,
            "label": self.label,
            "severity": self.severity.value,
            "rationale": self.rationale,
        }


@dataclass(slots=True, frozen=True)
class RedDayAssessment:
    """Verdict of the red-day detector battery for one cycle."""

    is_red_day: bool
    signals: tuple[Signal, ...] = ()
    load_multiplier: float = 1.0
    narrative: str = ""
    action_plan: tuple[str, ...] = field(default_factory=tuple)

    @property
    def critical_count(self) -> int:
        return sum(1 for s in self.signals if s.is_critical)

    @property
    def signal_ids(self) -> tuple[str, ...]:
        return tuple(s.id for s in self.signals)

    def has_family(self, family: str) -> bool:
        """True when any signal id contains ``family`` (e.g. ``"HRV"``)."""
        return any(family in s.id for s in self.signals)


__all__ = [
    "RedDayAssessment",
    "Severity",
    "Signal",
]
