"""Tests for the red-day detector battery and verdict."""

import pytest

from kestrel.contracts import Severity, default_state
from kestrel.engine import RedDayConfig, RedDaySignalDetector, acwr_limits
from kestrel.engine.red_day import NOMINAL_NARRATIVE


def _state(**slices) -> dict:
    state = default_state()
    for key, values in slices.items():
        state[key].update(values)
    return state


@pytest.fixture
def detector() -> RedDaySignalDetector:
    return RedDaySignalDetector()


def _three_moderate() -> dict:
    return _state(
        sleep={"resting_hr": 58},
        recovery={
            "soreness_map": {
                "quads": "sore",
                "calves": "sore",
                "back": "sore",
                "hamstrings": "sore",
            }
        },
        environment={"aqi": 120},
    )


class TestVerdict:
    def test_three_moderate_signals_make_a_red_day(self, detector):
        assessment = detector.assess(_three_moderate(), {"resting_hr": 50})

        assert [s.severity for s in assessment.signals] == [Severity.MODERATE] * 3
        assert assessment.is_red_day
        assert assessment.critical_count == 0
        assert assessment.load_multiplier == 0.5

    def test_two_moderate_signals_do_not(self, detector):
        state = _three_moderate()
        state["environment"]["aqi"] = 40
        assessment = detector.assess(state, {"resting_hr": 50})

        assert len(assessment.signals) == 2
        assert not assessment.is_red_day
        assert assessment.load_multiplier == 1.0
        assert assessment.narrative == NOMINAL_NARRATIVE
        assert assessment.action_plan == ()

    def test_one_critical_signal_alone_is_enough(self, detector):
        assessment = detector.assess(_state(sleep={"duration": 4.2}), {})

        assert assessment.signal_ids == ("SLEEP_ACUTE",)
        assert assessment.is_red_day
        assert assessment.load_multiplier == 0.2

    def test_verdict_is_recomputed_each_cycle(self, detector):
        assert detector.assess(_state(sleep={"duration": 4.2}), {}).is_red_day
        assert not detector.assess(_state(sleep={"duration": 8}), {}).is_red_day


class TestHrvScenario:
    def test_baseline_65_current_45_is_critical(self, detector):
        assessment = detector.assess(_state(sleep={"hrv": 45}), {"hrv_baseline": 65})
        (signal,) = assessment.signals

        assert signal.id == "HRV_CRITICAL"
        assert signal.severity is Severity.CRITICAL
        assert signal.rationale == "HRV is 69% of baseline. Severe sympathetic dominance."
        assert assessment.is_red_day
        assert assessment.load_multiplier == 0.2

    def test_depressed_hrv_is_high(self, detector):
        assessment = detector.assess(_state(sleep={"hrv": 52}), {"hrv_baseline": 65})
        assert assessment.signals[0].id == "HRV_DEPRESSION"
        assert not assessment.is_red_day

    def test_missing_baseline_skips_rule(self, detector):
        assert detector.assess(_state(sleep={"hrv": 10}), {}).signals == ()


class TestAcwrScenario:
    def test_elite_limits_drop_at_altitude(self):
        assert acwr_limits("elite", 2000, RedDayConfig()) == (1.4, 1.8)
        assert acwr_limits("elite", 1000, RedDayConfig()) == (1.6, 2.0)

    def test_unknown_level_uses_intermediate(self):
        assert acwr_limits("weekend", None, RedDayConfig()) == (1.5, 1.8)

    def test_elite_at_altitude_with_1_5_is_high(self, detector):
        state = _state(
            physical_load={"acwr": 1.5},
            environment={"altitude": 2000},
        )
        state["user_profile"]["training_level"] = "elite"
        (signal,) = detector.assess(state, {}).signals

        assert signal.id == "ACWR_HIGH"
        assert signal.severity is Severity.HIGH
        assert signal.rationale == "ACWR 1.50. Exceeds elite capacity (1.40) @ Altitude."

    def test_above_critical_limit(self, detector):
        state = _state(physical_load={"acwr": 1.9})
        (signal,) = detector.assess(state, {}).signals
        assert signal.id == "ACWR_CRITICAL"


class TestNarrativeAndPlan:
    def test_narrative_lists_critical_then_high_labels(self, detector):
        state = _state(
            sleep={"hrv": 40, "duration": 4.5},
            environment={"travel_status": "traveling"},
        )
        assessment = detector.assess(state, {"hrv_baseline": 65})

        assert assessment.narrative.startswith(
            "RED DAY DETECTED. Convergence of 3 fatigue vectors "
            "(Autonomic Crash, Acute Sleep Deprivation, Travel Strain)."
        )
        assert assessment.action_plan == (
            "Reduce Training Volume by 50-80%.",
            "Prioritize Parasympathetic Reset (Breathing/NSDR).",
            "Sleep Extension Protocol (+90min).",
            "Hydration + Grounding immediately.",
        )

    def test_custom_detector_battery(self):
        detector = RedDaySignalDetector(detectors=())
        assert detector.assess(_state(sleep={"duration": 1}), {}).signals == ()
