"""Load evaluator - training load (the performance domain)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from kestrel.contracts import Domain
from kestrel.evaluators.base import DomainEvaluation, PenaltyAccumulator, number, section


@dataclass
class LoadRules:
    acwr_overload: float = 1.5
    acwr_overload_penalty: float = 70
    acwr_elevated: float = 1.3
    acwr_elevated_penalty: float = 40
    acwr_detraining: float = 0.8
    acwr_detraining_penalty: float = 20
    high_day_streak: int = 3
    high_day_streak_penalty: float = 50


class LoadEvaluator:
    domain = Domain.PERFORMANCE

    def __init__(self, rules: LoadRules | None = None) -> None:
        self.rules = rules or LoadRules()

    def evaluate(
        self, state: Mapping[str, Any], baselines: Mapping[str, Any]
    ) -> DomainEvaluation:
        rules = self.rules
        acc = PenaltyAccumulator(self.domain)
        load = section(state, "physical_load")

        acwr = number(load, "acwr")
        if acwr is not None:
            if acwr > rules.acwr_overload:
                acc.hit(rules.acwr_overload_penalty, f"ACWR {acwr:.2f} (overload)")
            elif acwr > rules.acwr_elevated:
                acc.hit(rules.acwr_elevated_penalty, f"ACWR {acwr:.2f} (elevated)")
            elif acwr < rules.acwr_detraining:
                acc.hit(rules.acwr_detraining_penalty, f"ACWR {acwr:.2f} (detraining)")

        streak = number(load, "consecutive_high_days")
        if streak is not None and streak >= rules.high_day_streak:
            acc.hit(rules.high_day_streak_penalty, f"{int(streak)} consecutive high days")

        return acc.result()


__all__ = ["LoadEvaluator", "LoadRules"]
