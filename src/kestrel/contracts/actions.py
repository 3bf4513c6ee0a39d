"""Action candidates ranked by the priority engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from kestrel.contracts import PRIORITY_ENABLEMENT_WEIGHT, PRIORITY_URGENCY_WEIGHT


class Domain(str, Enum):
    RECOVERY = "recovery"
    FUEL = "fuel"
    MINDSPACE = "mindspace"
    PERFORMANCE = "performance"


# Final tie-break order when priority and urgency are equal.
DOMAIN_ORDER: tuple[Domain, ...] = (
    Domain.RECOVERY,
    Domain.FUEL,
    Domain.MINDSPACE,
    Domain.PERFORMANCE,
)

# How quickly an action in each domain can be executed (0-100).
ENABLEMENT: dict[Domain, int] = {
    Domain.FUEL: 70,
    Domain.MINDSPACE: 80,
    Domain.RECOVERY: 50,
    Domain.PERFORMANCE: 30,
}

DEFAULT_ENABLEMENT = 40


def enablement_for(domain: Domain | str) -> int:
    """Static enablement for ``domain``; unknown domains get the default."""
    try:
        return ENABLEMENT[Domain(domain)]
    except ValueError:
        return DEFAULT_ENABLEMENT


def priority_score(urgency: float, enablement: float) -> float:
    return PRIORITY_URGENCY_WEIGHT * urgency + PRIORITY_ENABLEMENT_WEIGHT * enablement


@dataclass(slots=True, frozen=True)
class ActionCandidate:
    """A domain intervention competing for the active command slot."""

    domain: Domain
    name: str
    description: str
    urgency: float
    enablement: float
    duration_minutes: int
    rationale: str

    @property
    def priority(self) -> float:
        return priority_score(self.urgency, self.enablement)

    @property
    def id(self) -> str:
        return f"{self.domain.value}:{self.name.lower().replace(' ', '_')}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "domain": self.domain.value,
            "name": self.name,
            "description": self.description,
            "urgency": self.urgency,
            "enablement": self.enablement,
            "priority": round(self.priority, 2),
            "duration_minutes": self.duration_minutes,
            "rationale": self.rationale,
        }


@dataclass(slots=True, frozen=True)
class ActiveCommand:
    """Rendered form of the top-ranked candidate."""

    id: str
    name: str
    description: str
    instructions: str
    duration_minutes: int
    rationale: str
    metric: str

    @classmethod
    def from_candidate(cls, candidate: ActionCandidate) -> ActiveCommand:
        return cls(
            id=candidate.id,
            name=candidate.name,
            description=candidate.description,
            instructions=(
                f"Execute {candidate.name} protocol. "
                f"Duration: {candidate.duration_minutes}m."
            ),
            duration_minutes=candidate.duration_minutes,
            rationale=candidate.rationale,
            metric=candidate.domain.value.upper(),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "instructions": self.instructions,
            "duration_minutes": self.duration_minutes,
            "rationale": self.rationale,
            "metric": self.metric,
            "status": "active",
        }


__all__ = [
    "ActionCandidate",
    "ActiveCommand",
    "DEFAULT_ENABLEMENT",
    "DOMAIN_ORDER",
    "Domain",
    "ENABLEMENT",
    "enablement_for",
    "priority_score",
]
