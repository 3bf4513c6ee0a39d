"""Recovery evaluator - autonomic, sleep and musculoskeletal state."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from kestrel.contracts import Domain
from kestrel.evaluators.base import (
    DomainEvaluation,
    PenaltyAccumulator,
    count_zones,
    number,
    section,
)


@dataclass
class RecoveryRules:
    """Thresholds for the recovery evaluator."""

    # HRV drop vs baseline (fraction) -> penalty, checked most severe first
    hrv_drop_severe: float = 0.30
    hrv_drop_severe_penalty: float = 90
    hrv_drop_major: float = 0.20
    hrv_drop_major_penalty: float = 75
    hrv_drop_minor: float = 0.10
    hrv_drop_minor_penalty: float = 40

    sleep_acute_hours: float = 5.0
    sleep_acute_penalty: float = 70
    sleep_short_hours: float = 6.0
    sleep_short_penalty: float = 50

    efficiency_floor: float = 80.0
    efficiency_penalty: float = 40

    sleep_debt_hours: float = 2.0
    sleep_debt_penalty: float = 45

    rhr_spike_bpm: float = 10.0
    rhr_spike_penalty: float = 65
    rhr_elevated_bpm: float = 6.0
    rhr_elevated_penalty: float = 45

    # Multiple painful zones override every other recovery rule
    pain_zone_count: int = 2
    pain_override_penalty: float = 90


class RecoveryEvaluator:
    domain = Domain.RECOVERY

    def __init__(self, rules: RecoveryRules | None = None) -> None:
        self.rules = rules or RecoveryRules()

    def evaluate(
        self, state: Mapping[str, Any], baselines: Mapping[str, Any]
    ) -> DomainEvaluation:
        rules = self.rules
        acc = PenaltyAccumulator(self.domain)
        sleep = section(state, "sleep")

        hrv = number(sleep, "hrv")
        hrv_baseline = number(baselines, "hrv_baseline")
        if hrv is not None and hrv_baseline:
            drop = 1.0 - hrv / hrv_baseline
            pct = round(drop * 100)
            if drop >= rules.hrv_drop_severe:
                acc.hit(rules.hrv_drop_severe_penalty, f"HRV down {pct}% vs baseline")
            elif drop >= rules.hrv_drop_major:
                acc.hit(rules.hrv_drop_major_penalty, f"HRV down {pct}% vs baseline")
            elif drop >= rules.hrv_drop_minor:
                acc.hit(rules.hrv_drop_minor_penalty, f"HRV down {pct}% vs baseline")

        duration = number(sleep, "duration")
        if duration is not None:
            if duration < rules.sleep_acute_hours:
                acc.hit(rules.sleep_acute_penalty, f"Sleep {duration:g}h (acute deficit)")
            elif duration < rules.sleep_short_hours:
                acc.hit(rules.sleep_short_penalty, f"Sleep {duration:g}h (short)")

        efficiency = number(sleep, "efficiency")
        if efficiency is not None and efficiency < rules.efficiency_floor:
            acc.hit(rules.efficiency_penalty, f"Sleep efficiency {efficiency:g}%")

        debt = number(sleep, "sleep_debt")
        if debt is not None and debt > rules.sleep_debt_hours:
            acc.hit(rules.sleep_debt_penalty, f"Sleep debt {debt:.1f}h")

        rhr = number(sleep, "resting_hr")
        rhr_baseline = number(baselines, "resting_hr")
        if rhr is not None and rhr_baseline is not None:
            delta = rhr - rhr_baseline
            if delta > rules.rhr_spike_bpm:
                acc.hit(rules.rhr_spike_penalty, f"RHR +{delta:g} bpm")
            elif delta > rules.rhr_elevated_bpm:
                acc.hit(rules.rhr_elevated_penalty, f"RHR +{delta:g} bpm")

        soreness = section(state, "recovery").get("soreness_map")
        pain_zones = count_zones(soreness, "pain")
        if pain_zones >= rules.pain_zone_count:
            acc.override(
                rules.pain_override_penalty, f"{pain_zones} zones reporting pain"
            )

        return acc.result()


__all__ = ["RecoveryEvaluator", "RecoveryRules"]
