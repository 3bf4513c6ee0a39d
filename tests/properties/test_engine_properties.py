"""Property-based tests for engine invariants.

Every property here must hold for any state the sync layer can produce,
not just the hand-picked scenarios in the unit tests.
"""

import json

import pytest
from hypothesis import given, settings

from kestrel.contracts import DOMAIN_ORDER
from kestrel.engine import (
    CausalRippleApplier,
    ReadinessPipeline,
    RedDaySignalDetector,
    TimelineAdapter,
    calculate_dynamic_weights,
    dominant_readiness,
    weighted_readiness,
)
from kestrel.evaluators import evaluate_all
from tests.strategies import penalties, reported_states, sessions

pytestmark = pytest.mark.property

PIPELINE = ReadinessPipeline()


class TestWeightProperties:
    @given(penalty_map=penalties())
    def test_weights_sum_to_one(self, penalty_map):
        weights = calculate_dynamic_weights(penalty_map)
        assert list(weights) == list(DOMAIN_ORDER)
        assert sum(weights.values()) == pytest.approx(1.0)

    @given(penalty_map=penalties())
    def test_readiness_stays_in_range(self, penalty_map):
        weights = calculate_dynamic_weights(penalty_map)
        assert 0 <= weighted_readiness(penalty_map, weights) <= 100
        assert 0 <= dominant_readiness(penalty_map) <= 100

    @given(penalty_map=penalties())
    def test_dominant_never_exceeds_worst_domain_score(self, penalty_map):
        worst = max(penalty_map.values())
        assert dominant_readiness(penalty_map) <= round(100 - worst) + 1


class TestStateProperties:
    @given(state=reported_states())
    @settings(deadline=None)
    def test_penalties_are_bounded(self, state):
        for evaluation in evaluate_all(state).values():
            assert 0 <= evaluation.penalty <= 100

    @given(state=reported_states())
    @settings(deadline=None)
    def test_red_day_verdict_matches_its_rule(self, state):
        assessment = RedDaySignalDetector().assess(state)
        expected = len(assessment.signals) >= 3 or assessment.critical_count >= 1
        assert assessment.is_red_day == expected

    @given(state=reported_states())
    @settings(deadline=None)
    def test_ripples_are_idempotent(self, state):
        assessment = RedDaySignalDetector().assess(state)
        applier = CausalRippleApplier()
        first = json.dumps(applier.apply(state, assessment), sort_keys=True)
        assert json.dumps(applier.apply(state, assessment), sort_keys=True) == first

    @given(state=reported_states())
    @settings(deadline=None)
    def test_pipeline_output_is_json_ready(self, state):
        output = PIPELINE.run(state)
        json.dumps(output.to_changes(state, timestamp=0.0))


class TestTimelineProperties:
    @given(items=sessions())
    def test_red_day_leaves_no_open_hard_sessions(self, items):
        result = TimelineAdapter().adapt(items, readiness=10, is_red_day=True)
        for session in result.sessions:
            if not session.completed:
                assert session.intensity.value == "low"

    @given(items=sessions())
    def test_no_session_is_ever_dropped(self, items):
        result = TimelineAdapter().adapt(items, readiness=50, is_red_day=False)
        assert sorted(s.id for s in result.sessions) == sorted(i["id"] for i in items)
