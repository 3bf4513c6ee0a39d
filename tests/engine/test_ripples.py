"""Tests for cross-domain causal ripples."""

import copy
import json

import pytest

from kestrel.contracts import RedDayAssessment, default_state, freeze
from kestrel.engine import CausalRippleApplier, RippleConfig
from kestrel.engine.ripples import CALMING_PROTOCOL

RED = RedDayAssessment(is_red_day=True)
CLEAR = RedDayAssessment(is_red_day=False)


@pytest.fixture
def state() -> dict:
    state = default_state()
    state["user_profile"]["baselines"]["hrv_baseline"] = 70
    state["mindspace"]["stress"] = 8
    state["fuel"]["supplements"] = [
        "Caffeine",
        {"name": "Pre-Workout Blend", "dose": "1 scoop"},
        {"name": "Magnesium"},
    ]
    return state


class TestRedDayRipples:
    def test_calming_protocol_on_red_day(self, state):
        overrides = CausalRippleApplier().apply(state, RED)
        assert overrides["mindspace"]["suggested_protocol"] == CALMING_PROTOCOL

    def test_stimulants_are_gated_under_stress(self, state):
        fuel = CausalRippleApplier().apply(state, RED)["fuel"]

        assert fuel["suppressed_supplements"] == ["Caffeine", "Pre-Workout Blend"]
        assert fuel["supplements"] == [
            {"name": "Caffeine", "taken": False, "reason": "Stress Gating"},
            {
                "name": "Pre-Workout Blend",
                "dose": "1 scoop",
                "taken": False,
                "reason": "Stress Gating",
            },
            {"name": "Magnesium"},
        ]

    def test_no_gating_when_stress_is_moderate(self, state):
        state["mindspace"]["stress"] = 7
        overrides = CausalRippleApplier().apply(state, RED)
        assert "fuel" not in overrides

    def test_nothing_on_a_clear_day(self, state):
        assert CausalRippleApplier().apply(state, CLEAR) == {}


class TestOxidativeBuffer:
    def test_depressed_hrv_triggers_buffer(self, state):
        state["sleep"]["hrv"] = 50
        protocol = CausalRippleApplier().apply(state, CLEAR)["fuel"]["active_protocol"]

        assert protocol["name"] == "Oxidative Stress Buffer"
        assert protocol["macronutrient_focus"] == {"carbs_g": 50.0}
        assert protocol["supplements"] == ["Curcumin", "Vitamin C"]
        assert protocol["timing_instruction"] == "With next meal"

    def test_buffer_builds_on_the_current_protocol(self, state):
        state["sleep"]["hrv"] = 50
        state["fuel"]["active_protocol"] = {
            "name": "Carb Load",
            "macronutrient_focus": {"carbs_g": 80, "protein_g": 30},
            "supplements": ["Vitamin C", "Creatine"],
        }
        protocol = CausalRippleApplier().apply(state, CLEAR)["fuel"]["active_protocol"]

        assert protocol["macronutrient_focus"] == {"carbs_g": 90, "protein_g": 30}
        assert protocol["supplements"] == ["Vitamin C", "Creatine", "Curcumin"]

    def test_hrv_near_baseline_is_left_alone(self, state):
        state["sleep"]["hrv"] = 65
        assert CausalRippleApplier().apply(state, CLEAR) == {}

    def test_custom_threshold(self, state):
        state["sleep"]["hrv"] = 65
        applier = CausalRippleApplier(RippleConfig(hrv_buffer_ratio=0.95))
        assert "active_protocol" in applier.apply(state, CLEAR)["fuel"]


class TestIdempotence:
    def test_repeated_runs_are_byte_identical(self, state):
        state["sleep"]["hrv"] = 50
        applier = CausalRippleApplier()
        first = json.dumps(applier.apply(state, RED), sort_keys=True)
        second = json.dumps(applier.apply(state, RED), sort_keys=True)
        assert first == second

    def test_input_state_is_never_mutated(self, state):
        state["sleep"]["hrv"] = 50
        before = copy.deepcopy(state)
        CausalRippleApplier().apply(state, RED)
        assert state == before

    def test_works_on_frozen_snapshots(self, state):
        state["sleep"]["hrv"] = 50
        plain = CausalRippleApplier().apply(state, RED)
        frozen = CausalRippleApplier().apply(freeze(state), RED)
        assert json.dumps(plain, sort_keys=True) == json.dumps(frozen, sort_keys=True)
