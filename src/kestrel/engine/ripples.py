"""Causal ripples - cross-domain overrides derived from the red-day verdict.

Ripples are output only. They describe what the fuel and mindspace domains
should present this cycle and are stored under ``orchestrator.ripples``;
they never write back into the input slices they were derived from, so
applying them twice to the same input yields the same overrides.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from kestrel.contracts import RedDayAssessment, thaw
from kestrel.evaluators.base import baselines_of, number, section

DEFAULT_STIMULANTS: tuple[str, ...] = (
    "caffeine",
    "pre-workout",
    "preworkout",
    "guarana",
    "synephrine",
)

CALMING_PROTOCOL: dict[str, str] = {
    "id": "box_breathing",
    "title": "Vagal Reset",
    "reason": "Systemic Overload",
    "priority": "urgent",
}

ANTIOXIDANT_COFACTORS: tuple[str, ...] = ("Curcumin", "Vitamin C")


@dataclass
class RippleConfig:
    stress_gate: float = 7.0
    hrv_buffer_ratio: float = 0.85
    stimulants: tuple[str, ...] = DEFAULT_STIMULANTS
    base_carbs_g: float = 40.0
    carb_bump_g: float = 10.0
    cofactors: tuple[str, ...] = ANTIOXIDANT_COFACTORS


def _supplement_name(entry: Any) -> str:
    if isinstance(entry, Mapping):
        return str(entry.get("name", ""))
    return str(entry)


class CausalRippleApplier:
    def __init__(self, config: RippleConfig | None = None) -> None:
        self.config = config or RippleConfig()

    def is_stimulant(self, name: str) -> bool:
        lowered = name.lower()
        return any(token in lowered for token in self.config.stimulants)

    def apply(
        self, state: Mapping[str, Any], assessment: RedDayAssessment
    ) -> dict[str, dict[str, Any]]:
        """Return ``{"mindspace": {...}, "fuel": {...}}`` overrides.

        Domains with no override are omitted.
        """
        mindspace: dict[str, Any] = {}
        fuel: dict[str, Any] = {}

        if assessment.is_red_day:
            mindspace["suggested_protocol"] = dict(CALMING_PROTOCOL)
            stress = number(section(state, "mindspace"), "stress")
            if stress is not None and stress > self.config.stress_gate:
                fuel.update(self._gate_stimulants(state))

        hrv = number(section(state, "sleep"), "hrv")
        baseline = number(baselines_of(state), "hrv_baseline")
        if hrv is not None and baseline and hrv < baseline * self.config.hrv_buffer_ratio:
            fuel["active_protocol"] = self._oxidative_buffer(state)

        overrides: dict[str, dict[str, Any]] = {}
        if fuel:
            overrides["fuel"] = fuel
        if mindspace:
            overrides["mindspace"] = mindspace
        return overrides

    def _gate_stimulants(self, state: Mapping[str, Any]) -> dict[str, Any]:
        supplements = thaw(section(state, "fuel").get("supplements") or [])
        gated: list[Any] = []
        suppressed: set[str] = set()
        for entry in supplements:
            name = _supplement_name(entry)
            if self.is_stimulant(name):
                suppressed.add(name)
                base = dict(entry) if isinstance(entry, dict) else {"name": name}
                gated.append({**base, "taken": False, "reason": "Stress Gating"})
            else:
                gated.append(entry)
        if not suppressed:
            return {}
        return {"supplements": gated, "suppressed_supplements": sorted(suppressed)}

    def _oxidative_buffer(self, state: Mapping[str, Any]) -> dict[str, Any]:
        current = thaw(section(state, "fuel").get("active_protocol") or {})
        if not isinstance(current, dict):
            current = {}
        focus = dict(current.get("macronutrient_focus") or {})
        carbs = focus.get("carbs_g")
        if isinstance(carbs, bool) or not isinstance(carbs, (int, float)):
            carbs = self.config.base_carbs_g
        focus["carbs_g"] = carbs + self.config.carb_bump_g

        supplements = [s for s in current.get("supplements") or [] if isinstance(s, str)]
        for cofactor in self.config.cofactors:
            if cofactor not in supplements:
                supplements.append(cofactor)

        return {
            **current,
            "name": "Oxidative Stress Buffer",
            "description": "Increasing antioxidant co-factors due to HRV suppression.",
            "macronutrient_focus": focus,
            "supplements": supplements,
            "timing_instruction": "With next meal",
        }


__all__ = [
    "ANTIOXIDANT_COFACTORS",
    "CALMING_PROTOCOL",
    "CausalRippleApplier",
    "DEFAULT_STIMULANTS",
    "RippleConfig",
]
