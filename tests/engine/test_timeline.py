"""Tests for session normalization, red-day downgrades and readiness gates."""

from kestrel.contracts import Intensity, SequenceBlock, Session
from kestrel.engine import TimelineAdapter

SESSIONS = [
    {"id": "s1", "title": "Intervals", "intensity": "high", "time_of_day": "17:30"},
    {"id": "s2", "title": "Mobility", "intensity": "low", "time_of_day": "08:00"},
    {"id": "s3", "title": "Tempo", "intensity": "medium", "time_of_day": "12:15"},
]


class TestNormalize:
    def test_sorted_by_time_with_missing_time_as_noon(self):
        sessions = SESSIONS + [{"id": "s4", "title": "Core", "intensity": "low"}]
        ordered = TimelineAdapter().normalize(sessions)
        assert [s.id for s in ordered] == ["s2", "s4", "s3", "s1"]

    def test_unpadded_times_sort_by_clock_value(self):
        sessions = [
            {"id": "late", "title": "Late", "intensity": "low", "time_of_day": "10:00"},
            {"id": "early", "title": "Early", "intensity": "low", "time_of_day": "9:30"},
        ]
        ordered = TimelineAdapter().normalize(sessions)

        assert [s.id for s in ordered] == ["early", "late"]
        assert ordered[0].sequence_block is SequenceBlock.MORNING

    def test_sort_is_stable_for_equal_times(self):
        sessions = [
            {"id": "a", "title": "A", "intensity": "low", "time_of_day": "09:00"},
            {"id": "b", "title": "B", "intensity": "low", "time_of_day": "09:00"},
        ]
        assert [s.id for s in TimelineAdapter().normalize(sessions)] == ["a", "b"]

    def test_sequence_block_is_derived_from_time(self):
        sessions = [dict(SESSIONS[0], sequence_block="morning")]
        (session,) = TimelineAdapter().normalize(sessions)
        assert session.sequence_block is SequenceBlock.AFTERNOON

    def test_unparseable_entries_are_kept(self):
        odd = {"id": "x", "title": "Mystery", "intensity": "extreme"}
        result = TimelineAdapter().normalize([odd])
        assert result == [odd]

    def test_missing_intensity_is_not_invented(self):
        bare = {"id": "x", "title": "Open slot", "time_of_day": "07:00"}
        result = TimelineAdapter().adapt([bare], readiness=10, is_red_day=True)

        assert result.sessions == (bare,)
        assert result.session_dicts() == [bare]
        assert result.adjustments == ()

    def test_unknown_fields_survive_serialisation(self):
        session = dict(
            SESSIONS[0],
            description="6x800m",
            type="run",
            mandatory=True,
            notes=["bring spikes"],
            rpe_planned=8,
            feedback={"rpe": 9},
        )
        result = TimelineAdapter().adapt([session], readiness=20, is_red_day=True)
        (written,) = result.session_dicts()

        assert written["intensity"] == "low"
        assert written["original_intensity"] == "high"
        for key in ("description", "type", "mandatory", "notes", "rpe_planned", "feedback"):
            assert written[key] == session[key]


class TestRedDay:
    def test_high_and_medium_become_low(self):
        result = TimelineAdapter().adapt(SESSIONS, readiness=20, is_red_day=True)
        by_id = {s.id: s for s in result.sessions}

        assert by_id["s1"].intensity is Intensity.LOW
        assert by_id["s1"].original_intensity is Intensity.HIGH
        assert by_id["s1"].mutation_source == "recovery"
        assert by_id["s3"].intensity is Intensity.LOW
        assert by_id["s2"].mutation_source is None
        assert result.adjustments == (
            "RED DAY OVERRIDE: 'Tempo' medium -> low (Zone 1)",
            "RED DAY OVERRIDE: 'Intervals' high -> low (Zone 1)",
        )

    def test_completed_sessions_are_untouched(self):
        sessions = [dict(SESSIONS[0], completed=True)]
        result = TimelineAdapter().adapt(sessions, readiness=20, is_red_day=True)
        assert result.sessions[0].intensity is Intensity.HIGH
        assert result.adjustments == ()

    def test_red_day_does_not_also_gate(self):
        result = TimelineAdapter().adapt(SESSIONS, readiness=20, is_red_day=True)
        assert not any(s.requires_gate for s in result.sessions)


class TestReadinessGate:
    def test_low_readiness_gates_high_sessions_only(self):
        result = TimelineAdapter().adapt(SESSIONS, readiness=55, is_red_day=False)
        by_id = {s.id: s for s in result.sessions}

        assert by_id["s1"].requires_gate
        assert by_id["s1"].intensity is Intensity.HIGH
        assert not by_id["s3"].requires_gate
        assert result.adjustments == ("READINESS GATE: CNS prep required for 'Intervals'",)

    def test_gate_clears_once_readiness_recovers(self):
        adapter = TimelineAdapter()
        gated = adapter.adapt(SESSIONS, readiness=10, is_red_day=False).session_dicts()
        assert any(s["requires_gate"] for s in gated)

        recovered = adapter.adapt(gated, readiness=90, is_red_day=False)

        assert recovered.adjustments == ()
        assert not any(s["requires_gate"] for s in recovered.session_dicts())

    def test_threshold_is_exclusive(self):
        result = TimelineAdapter().adapt(SESSIONS, readiness=60, is_red_day=False)
        assert result.adjustments == ()

    def test_session_dicts_serialise_sessions(self):
        result = TimelineAdapter().adapt(SESSIONS, readiness=55, is_red_day=False)
        dicts = result.session_dicts()

        assert dicts[-1]["requires_gate"] is True
        assert dicts[0]["sequence_block"] == "morning"
        assert Session.from_dict(dicts[-1]).title == "Intervals"
