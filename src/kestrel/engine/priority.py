"""Priority engine - readiness integration and action ranking.

Domain weights come from a first-match cascade over the current penalties.
Readiness is integrated either by the dominant-penalty rule (default: the
worst domain dominates, others add a fraction) or by the weighted average
of domain scores. Candidates are ranked by
``0.6 * urgency + 0.4 * enablement`` with a deterministic tie-break.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping

from kestrel.contracts import (
    DOMAIN_ORDER,
    DOMINANT_SECONDARY_FRACTION,
    ActionCandidate,
    ActiveCommand,
    Domain,
    enablement_for,
)
from kestrel.core.config import ReadinessIntegration
from kestrel.evaluators.base import DomainEvaluation

R, F, M, P = Domain.RECOVERY, Domain.FUEL, Domain.MINDSPACE, Domain.PERFORMANCE

RECOVERY_CRISIS_WEIGHTS = {R: 0.60, F: 0.20, M: 0.15, P: 0.05}
FUEL_CRISIS_WEIGHTS = {F: 0.50, R: 0.25, M: 0.15, P: 0.10}
MINDSPACE_CRISIS_WEIGHTS = {M: 0.55, R: 0.20, F: 0.15, P: 0.10}
LOAD_STRAIN_WEIGHTS = {R: 0.40, F: 0.30, M: 0.15, P: 0.15}
BALANCED_WEIGHTS = {R: 0.35, F: 0.25, M: 0.25, P: 0.15}


@dataclass
class CandidateThresholds:
    """Minimum penalty/urgency for a domain to propose an action."""

    recovery: float = 30.0
    mindspace: float = 30.0
    fuel: float = 20.0
    performance: float = 50.0


@dataclass(slots=True, frozen=True)
class PriorityDecision:
    readiness: int
    integration: ReadinessIntegration
    weights: dict[Domain, float]
    penalties: dict[Domain, float]
    candidates: tuple[ActionCandidate, ...] = ()
    active_command: ActiveCommand | None = None

    @property
    def top(self) -> ActionCandidate | None:
        return self.candidates[0] if self.candidates else None


def _penalty(penalties: Mapping[Domain, float], domain: Domain) -> float:
    return float(penalties.get(domain, 0.0))


def calculate_dynamic_weights(penalties: Mapping[Domain, float]) -> dict[Domain, float]:
    """Pick the weighting vector for the current crisis, first match wins."""
    recovery = _penalty(penalties, R)
    fuel = _penalty(penalties, F)
    mind = _penalty(penalties, M)
    perf = _penalty(penalties, P)

    if recovery > 70:
        chosen = RECOVERY_CRISIS_WEIGHTS
    elif fuel > 60:
        chosen = FUEL_CRISIS_WEIGHTS
    elif mind > 70 and recovery < 40 and fuel < 40:
        chosen = MINDSPACE_CRISIS_WEIGHTS
    elif perf > 50 and recovery > 30:
        chosen = LOAD_STRAIN_WEIGHTS
    else:
        chosen = BALANCED_WEIGHTS
    return {domain: chosen[domain] for domain in DOMAIN_ORDER}


def _clamp_readiness(value: float) -> int:
    return int(round(min(100.0, max(0.0, value))))


def weighted_readiness(
    penalties: Mapping[Domain, float], weights: Mapping[Domain, float]
) -> int:
    return _clamp_readiness(
        sum((100.0 - _penalty(penalties, d)) * weights.get(d, 0.0) for d in DOMAIN_ORDER)
    )


def dominant_readiness(penalties: Mapping[Domain, float]) -> int:
    """100 - min(100, worst + 0.2 * sum of the rest)."""
    values = sorted((_penalty(penalties, d) for d in DOMAIN_ORDER), reverse=True)
    worst, rest = values[0], values[1:]
    total = min(100.0, worst + DOMINANT_SECONDARY_FRACTION * sum(rest))
    return _clamp_readiness(100.0 - total)


def rank_candidates(candidates: Iterable[ActionCandidate]) -> list[ActionCandidate]:
    """Priority desc, then urgency desc, then fixed domain order."""
    return sorted(
        candidates,
        key=lambda c: (
            -round(c.priority, 6),
            -c.urgency,
            DOMAIN_ORDER.index(c.domain),
        ),
    )


class PriorityEngine:
    def __init__(
        self,
        integration: ReadinessIntegration = ReadinessIntegration.DOMINANT,
        thresholds: CandidateThresholds | None = None,
    ) -> None:
        self.integration = ReadinessIntegration(integration)
        self.thresholds = thresholds or CandidateThresholds()

    def readiness(
        self, penalties: Mapping[Domain, float], weights: Mapping[Domain, float]
    ) -> int:
        if self.integration is ReadinessIntegration.WEIGHTED:
            return weighted_readiness(penalties, weights)
        return dominant_readiness(penalties)

    def build_candidates(
        self, evaluations: Mapping[Domain, DomainEvaluation]
    ) -> list[ActionCandidate]:
        limits = self.thresholds
        out: list[ActionCandidate] = []

        def add(domain: Domain, limit: float, name: str, fallback: str, minutes: int) -> None:
            evaluation = evaluations.get(domain)
            if evaluation is None or evaluation.penalty <= limit:
                return
            reasons = evaluation.reasons
            out.append(
                ActionCandidate(
                    domain=domain,
                    name=name,
                    description=reasons[0] if reasons else fallback,
                    urgency=evaluation.penalty,
                    enablement=enablement_for(domain),
                    duration_minutes=minutes,
                    rationale="; ".join(reasons) or fallback,
                )
            )

        add(R, limits.recovery, "System Restoration", "Recovery Protocol", 30)
        add(F, limits.fuel, "Fuel Catch-up", "Refuel to targets", 5)
        add(M, limits.mindspace, "Neural Regulation", "Vagal Reset Protocol", 5)
        add(P, limits.performance, "Load Management", "Reduce training load", 20)
        return out

    def prioritize(self, evaluations: Mapping[Domain, DomainEvaluation]) -> PriorityDecision:
        penalties = {d: evaluations[d].penalty if d in evaluations else 0.0 for d in DOMAIN_ORDER}
        weights = calculate_dynamic_weights(penalties)
        ranked = rank_candidates(self.build_candidates(evaluations))
        return PriorityDecision(
            readiness=self.readiness(penalties, weights),
            integration=self.integration,
            weights=weights,
            penalties=penalties,
            candidates=tuple(ranked),
            active_command=ActiveCommand.from_candidate(ranked[0]) if ranked else None,
        )


__all__ = [
    "BALANCED_WEIGHTS",
    "CandidateThresholds",
    "PriorityDecision",
    "PriorityEngine",
    "calculate_dynamic_weights",
    "dominant_readiness",
    "rank_candidates",
    "weighted_readiness",
]
