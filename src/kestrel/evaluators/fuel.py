"""Fuel evaluator - energy availability and hydration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from kestrel.contracts import Domain
from kestrel.evaluators.base import DomainEvaluation, PenaltyAccumulator, number, section


@dataclass
class FuelRules:
    # fuel_score below this contributes (100 - score)
    score_floor: float = 70.0
    glycogen_floor: float = 30.0
    glycogen_penalty: float = 70
    hydration_floor: float = 40.0
    hydration_penalty: float = 60
    meal_gap_hours: float = 5.0
    meal_gap_penalty: float = 35


class FuelEvaluator:
    domain = Domain.FUEL

    def __init__(self, rules: FuelRules | None = None) -> None:
        self.rules = rules or FuelRules()

    def evaluate(
        self, state: Mapping[str, Any], baselines: Mapping[str, Any]
    ) -> DomainEvaluation:
        rules = self.rules
        acc = PenaltyAccumulator(self.domain)
        fuel = section(state, "fuel")

        score = number(fuel, "fuel_score")
        if score is not None and score < rules.score_floor:
            acc.hit(100 - score, f"Fuel score {score:g}")

        glycogen = number(fuel, "glycogen")
        if glycogen is not None and glycogen < rules.glycogen_floor:
            acc.hit(rules.glycogen_penalty, f"Glycogen {glycogen:g}%")

        hydration = number(fuel, "hydration")
        if hydration is not None and hydration < rules.hydration_floor:
            acc.hit(rules.hydration_penalty, f"Hydration {hydration:g}%")

        gap = number(fuel, "hours_since_meal")
        if gap is not None and gap > rules.meal_gap_hours:
            acc.hit(rules.meal_gap_penalty, f"{gap:g}h since last meal")

        return acc.result()


__all__ = ["FuelEvaluator", "FuelRules"]
