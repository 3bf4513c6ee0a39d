"""Shared evaluator plumbing.

Every domain evaluator is a pure function of ``(state, baselines)``. Rules
that fire contribute a candidate penalty; the domain penalty is the maximum
across fired rules, never their sum.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Protocol

from kestrel.contracts import Domain

_EMPTY: Mapping[str, Any] = {}


@dataclass(slots=True, frozen=True)
class DomainEvaluation:
    """Penalty (0-100, 100 = worst) and the reasons that produced it."""

    domain: Domain
    penalty: float = 0.0
    reasons: tuple[str, ...] = ()

    @property
    def score(self) -> float:
        return 100.0 - self.penalty

    def to_dict(self) -> dict[str, Any]:
        return {
            "domain": self.domain.value,
            "penalty": self.penalty,
            "reasons": list(self.reasons),
        }


class DomainEvaluator(Protocol):
    """Protocol for per-domain evaluators."""

    domain: Domain

    def evaluate(
        self, state: Mapping[str, Any], baselines: Mapping[str, Any]
    ) -> DomainEvaluation:
        ...


class PenaltyAccumulator:
    """Collects fired rules for one domain."""

    def __init__(self, domain: Domain) -> None:
        self._domain = domain
        self._penalty = 0.0
        self._reasons: list[str] = []
        self._locked = False

    def hit(self, penalty: float, reason: str) -> None:
        if self._locked:
            return
        self._penalty = max(self._penalty, float(penalty))
        self._reasons.append(reason)

    def override(self, penalty: float, reason: str) -> None:
        """Replace every other rule for this cycle."""
        self._penalty = float(penalty)
        self._reasons = [reason]
        self._locked = True

    def result(self) -> DomainEvaluation:
        return DomainEvaluation(
            domain=self._domain,
            penalty=min(100.0, max(0.0, self._penalty)),
            reasons=tuple(self._reasons),
        )


def section(state: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = state.get(key)
    return value if isinstance(value, Mapping) else _EMPTY


def number(mapping: Mapping[str, Any], key: str) -> float | None:
    """Numeric field or None when missing or not a number."""
    value = mapping.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def baselines_of(state: Mapping[str, Any]) -> Mapping[str, Any]:
    return section(section(state, "user_profile"), "baselines")


def count_zones(soreness_map: Any, level: str) -> int:
    if not isinstance(soreness_map, Mapping):
        return 0
    return sum(1 for value in soreness_map.values() if value == level)


__all__ = [
    "DomainEvaluation",
    "DomainEvaluator",
    "PenaltyAccumulator",
    "baselines_of",
    "count_zones",
    "number",
    "section",
]
