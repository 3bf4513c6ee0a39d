"""Mindspace evaluator - perceived stress and mood."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from kestrel.contracts import Domain
from kestrel.evaluators.base import DomainEvaluation, PenaltyAccumulator, number, section


@dataclass
class MindspaceRules:
    # stress is reported 0-10; penalty scales linearly
    stress_scale: float = 10.0
    mood_very_low: float = 3.0
    mood_very_low_penalty: float = 75
    mood_low: float = 4.0
    mood_low_penalty: float = 60


class MindspaceEvaluator:
    domain = Domain.MINDSPACE

    def __init__(self, rules: MindspaceRules | None = None) -> None:
        self.rules = rules or MindspaceRules()

    def evaluate(
        self, state: Mapping[str, Any], baselines: Mapping[str, Any]
    ) -> DomainEvaluation:
        rules = self.rules
        acc = PenaltyAccumulator(self.domain)
        mind = section(state, "mindspace")

        stress = number(mind, "stress")
        if stress is not None and stress > 0:
            acc.hit(stress * rules.stress_scale, f"Stress {stress:g}/10")

        mood = number(mind, "mood")
        if mood is not None:
            if mood < rules.mood_very_low:
                acc.hit(rules.mood_very_low_penalty, f"Mood {mood:g}/10 (very low)")
            elif mood < rules.mood_low:
                acc.hit(rules.mood_low_penalty, f"Mood {mood:g}/10 (low)")

        return acc.result()


__all__ = ["MindspaceEvaluator", "MindspaceRules"]
