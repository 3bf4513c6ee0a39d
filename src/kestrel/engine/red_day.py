"""Red-day detection - convergence of independent fatigue signals.

A fixed battery of detectors each emits at most one ``Signal``. The day is a
red day when three or more signals fire, or when any one of them is
critical. The verdict is recomputed from scratch every cycle; there is no
hysteresis between cycles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from kestrel.contracts import RedDayAssessment, Severity, Signal
from kestrel.evaluators.base import (
    DomainEvaluation,
    baselines_of,
    count_zones,
    number,
    section,
)

# training_level -> (limit, critical limit); unknown levels use "intermediate"
DEFAULT_ACWR_LIMITS: dict[str, tuple[float, float]] = {
    "beginner": (1.3, 1.5),
    "intermediate": (1.5, 1.8),
    "elite": (1.6, 2.0),
}

NOMINAL_NARRATIVE = "Systems nominal. Proceed with planned adaptation."

# (signal id fragment, action), in plan order
ACTION_PLAN_STEPS: tuple[tuple[str, str], ...] = (
    ("HRV", "Prioritize Parasympathetic Reset (Breathing/NSDR)."),
    ("SLEEP", "Sleep Extension Protocol (+90min)."),
    ("ACWR", "Zero-Impact Activity Only (Swim/Bike)."),
    ("PAIN", "Anti-Inflammatory Nutrition Protocol."),
    ("TRAVEL", "Hydration + Grounding immediately."),
    ("AQI", "Indoor training mandatory (HEPA)."),
)


@dataclass
class RedDayConfig:
    """Thresholds for the detector battery."""

    hrv_critical_ratio: float = 0.70
    hrv_depressed_ratio: float = 0.85
    sleep_acute_hours: float = 5.0
    sleep_debt_hours: float = 2.0
    acwr_limits: dict[str, tuple[float, float]] = field(
        default_factory=lambda: dict(DEFAULT_ACWR_LIMITS)
    )
    default_training_level: str = "intermediate"
    altitude_threshold_m: float = 1500.0
    altitude_acwr_reduction: float = 0.2
    rhr_spike_bpm: float = 10.0
    rhr_elevated_bpm: float = 6.0
    pain_zone_count: int = 2
    sore_zone_count: int = 4
    mood_floor: float = 4.0
    stress_ceiling: float = 7.0
    aqi_toxic: float = 150.0
    aqi_warn: float = 100.0
    # verdict
    red_day_signal_count: int = 3
    critical_multiplier: float = 0.2
    red_day_multiplier: float = 0.5


Detector = Callable[[Mapping[str, Any], Mapping[str, Any], RedDayConfig], "Signal | None"]


def acwr_limits(
    training_level: str | None, altitude: float | None, config: RedDayConfig
) -> tuple[float, float]:
    """(limit, critical) for a training level, lowered at altitude."""
    limits = config.acwr_limits.get(
        training_level or "", config.acwr_limits[config.default_training_level]
    )
    limit, critical = limits
    if altitude is not None and altitude > config.altitude_threshold_m:
        limit = round(limit - config.altitude_acwr_reduction, 2)
        critical = round(critical - config.altitude_acwr_reduction, 2)
    return limit, critical


def detect_hrv_depression(
    state: Mapping[str, Any], baselines: Mapping[str, Any], config: RedDayConfig
) -> Signal | None:
    baseline = number(baselines, "hrv_baseline")
    hrv = number(section(state, "sleep"), "hrv")
    if not baseline or hrv is None:
        return None
    ratio = hrv / baseline
    pct = round(ratio * 100)
    if ratio < config.hrv_critical_ratio:
        return Signal(
            "HRV_CRITICAL",
            "Autonomic Crash",
            Severity.CRITICAL,
            f"HRV is {pct}% of baseline. Severe sympathetic dominance.",
        )
    if ratio < config.hrv_depressed_ratio:
        return Signal(
            "HRV_DEPRESSION",
            "Low HRV",
            Severity.HIGH,
            f"HRV suppressed ({pct}% baseline). Recovery capacity limited.",
        )
    return None


def detect_sleep_debt(
    state: Mapping[str, Any], baselines: Mapping[str, Any], config: RedDayConfig
) -> Signal | None:
    sleep = section(state, "sleep")
    duration = number(sleep, "duration")
    debt = number(sleep, "sleep_debt") or 0.0
    if duration is not None and duration < config.sleep_acute_hours:
        return Signal(
            "SLEEP_ACUTE",
            "Acute Sleep Deprivation",
            Severity.CRITICAL,
            "Sleep < 5h. Cognitive & Motor failure risk.",
        )
    if debt > config.sleep_debt_hours:
        return Signal(
            "SLEEP_DEBT",
            "Accumulated Sleep Debt",
            Severity.HIGH,
            f"Sleep debt > 2h ({debt:.1f}h). Allostatic load high.",
        )
    return None


def detect_acwr_overload(
    state: Mapping[str, Any], baselines: Mapping[str, Any], config: RedDayConfig
) -> Signal | None:
    acwr = number(section(state, "physical_load"), "acwr")
    if acwr is None:
        return None
    level = section(state, "user_profile").get("training_level")
    altitude = number(section(state, "environment"), "altitude")
    limit, critical = acwr_limits(level, altitude, config)
    if acwr > critical:
        return Signal(
            "ACWR_CRITICAL",
            "Load Spike",
            Severity.CRITICAL,
            f"ACWR {acwr:.2f} (Dangerous). Injury risk > 300%.",
        )
    if acwr > limit:
        at_altitude = (
            " @ Altitude"
            if altitude is not None and altitude > config.altitude_threshold_m
            else ""
        )
        return Signal(
            "ACWR_HIGH",
            "Overreaching",
            Severity.HIGH,
            f"ACWR {acwr:.2f}. Exceeds {level or config.default_training_level} "
            f"capacity ({limit:.2f}){at_altitude}.",
        )
    return None


def detect_elevated_rhr(
    state: Mapping[str, Any], baselines: Mapping[str, Any], config: RedDayConfig
) -> Signal | None:
    rhr = number(section(state, "sleep"), "resting_hr")
    baseline = number(baselines, "resting_hr")
    if rhr is None or baseline is None:
        return None
    delta = rhr - baseline
    if delta > config.rhr_spike_bpm:
        return Signal(
            "RHR_SPIKE",
            "Metabolic Stress",
            Severity.CRITICAL,
            f"RHR +{delta:g}bpm. Potential infection or extreme fatigue.",
        )
    if delta > config.rhr_elevated_bpm:
        return Signal(
            "RHR_ELEVATED",
            "Elevated RHR",
            Severity.MODERATE,
            f"RHR +{delta:g}bpm. Incomplete recovery.",
        )
    return None


def detect_soreness_accumulation(
    state: Mapping[str, Any], baselines: Mapping[str, Any], config: RedDayConfig
) -> Signal | None:
    soreness = section(state, "recovery").get("soreness_map")
    if count_zones(soreness, "pain") >= config.pain_zone_count:
        return Signal(
            "PAIN_SYSTEMIC",
            "Systemic Pain",
            Severity.HIGH,
            "Multiple zones reporting pain (VAS > 5).",
        )
    if count_zones(soreness, "sore") >= config.sore_zone_count:
        return Signal(
            "DOMS_HIGH",
            "Heavy DOMS",
            Severity.MODERATE,
            "Widespread soreness limits mechanical efficiency.",
        )
    return None


def detect_mood_stress_convergence(
    state: Mapping[str, Any], baselines: Mapping[str, Any], config: RedDayConfig
) -> Signal | None:
    mind = section(state, "mindspace")
    mood = number(mind, "mood")
    stress = number(mind, "stress")
    if mood is None or stress is None:
        return None
    if mood < config.mood_floor and stress > config.stress_ceiling:
        return Signal(
            "PSYCH_FAIL",
            "Psychological Fatigue",
            Severity.HIGH,
            "Low Mood + High Stress. CNS burnout risk.",
        )
    return None


def detect_environmental_stress(
    state: Mapping[str, Any], baselines: Mapping[str, Any], config: RedDayConfig
) -> Signal | None:
    env = section(state, "environment")
    if env.get("travel_status") == "traveling":
        return Signal(
            "TRAVEL_FATIGUE",
            "Travel Strain",
            Severity.HIGH,
            "Circadian desynchronization & travel load.",
        )
    aqi = number(env, "aqi")
    if aqi is not None and aqi > config.aqi_toxic:
        return Signal(
            "AQI_TOXIC",
            "Toxic Air Load",
            Severity.HIGH,
            f"AQI {aqi:g}. Cardiovascular stress elevated.",
        )
    if aqi is not None and aqi > config.aqi_warn:
        return Signal(
            "AQI_WARN",
            "Respiratory Stress",
            Severity.MODERATE,
            f"AQI {aqi:g}. Performance dampening likely.",
        )
    return None


DEFAULT_DETECTORS: tuple[Detector, ...] = (
    detect_hrv_depression,
    detect_sleep_debt,
    detect_acwr_overload,
    detect_elevated_rhr,
    detect_soreness_accumulation,
    detect_mood_stress_convergence,
    detect_environmental_stress,
)


class RedDaySignalDetector:
    """Runs the detector battery and renders the verdict."""

    def __init__(
        self,
        config: RedDayConfig | None = None,
        detectors: tuple[Detector, ...] = DEFAULT_DETECTORS,
    ) -> None:
        self.config = config or RedDayConfig()
        self._detectors = detectors

    def assess(
        self,
        state: Mapping[str, Any],
        baselines: Mapping[str, Any] | None = None,
        evaluations: Mapping[Any, DomainEvaluation] | None = None,
    ) -> RedDayAssessment:
        """Assess one cycle.

        ``evaluations`` is accepted for callers that already ran the domain
        evaluators; detection itself reads only state and baselines.
        """
        if baselines is None:
            baselines = baselines_of(state)
        signals: list[Signal] = []
        for detector in self._detectors:
            signal = detector(state, baselines, self.config)
            if signal is not None:
                signals.append(signal)

        critical = sum(1 for s in signals if s.is_critical)
        is_red_day = len(signals) >= self.config.red_day_signal_count or critical >= 1
        return RedDayAssessment(
            is_red_day=is_red_day,
            signals=tuple(signals),
            load_multiplier=self._load_multiplier(is_red_day, critical),
            narrative=self._narrative(signals, is_red_day),
            action_plan=self._action_plan(signals, is_red_day),
        )

    def _load_multiplier(self, is_red_day: bool, critical: int) -> float:
        if critical:
            return self.config.critical_multiplier
        if is_red_day:
            return self.config.red_day_multiplier
        return 1.0

    @staticmethod
    def _narrative(signals: list[Signal], is_red_day: bool) -> str:
        if not is_red_day:
            return NOMINAL_NARRATIVE
        culprits = [s.label for s in signals if s.severity is Severity.CRITICAL]
        culprits += [s.label for s in signals if s.severity is Severity.HIGH]
        return (
            f"RED DAY DETECTED. Convergence of {len(signals)} fatigue vectors "
            f"({', '.join(culprits)}). Physiological capacity compromised."
        )

    @staticmethod
    def _action_plan(signals: list[Signal], is_red_day: bool) -> tuple[str, ...]:
        if not is_red_day:
            return ()
        actions = ["Reduce Training Volume by 50-80%."]
        for fragment, action in ACTION_PLAN_STEPS:
            if any(fragment in s.id for s in signals):
                actions.append(action)
        return tuple(actions)


__all__ = [
    "ACTION_PLAN_STEPS",
    "DEFAULT_ACWR_LIMITS",
    "DEFAULT_DETECTORS",
    "NOMINAL_NARRATIVE",
    "RedDayConfig",
    "RedDaySignalDetector",
    "acwr_limits",
]
