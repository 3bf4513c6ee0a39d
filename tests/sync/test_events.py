"""Event translation and the sync layer."""

from __future__ import annotations

import json
import logging

import httpx
import pytest

from kestrel.contracts import EventSource, freeze
from kestrel.store import ConnectivitySignal
from kestrel.sync import (
    SORENESS_CYCLE,
    TRANSLATORS,
    EventPayloadError,
    HttpSyncUploader,
    SyncLayer,
    SyncUploaderConfig,
    UnknownEventError,
    translate_event,
)


@pytest.fixture
def frozen_state(athlete_state):
    return freeze(athlete_state)


class TestTranslators:
    def test_session_completed_marks_session(self, frozen_state):
        changes = translate_event(
            frozen_state, "session_completed", {"id": "s2", "feedback": {"rpe": 3}}
        )
        sessions = {s["id"]: s for s in changes["timeline"]["sessions"]}

        assert sessions["s2"]["completed"] is True
        assert sessions["s2"]["feedback"] == {"rpe": 3}
        assert "completed" not in sessions["s1"]
        assert list(changes) == ["timeline"]

    def test_session_completed_unknown_id_warns(self, frozen_state, caplog):
        with caplog.at_level(logging.WARNING, logger="kestrel.sync.events"):
            changes = translate_event(frozen_state, "session_completed", {"id": "nope"})
        assert "unknown session 'nope'" in caplog.text
        assert all("completed" not in s for s in changes["timeline"]["sessions"])

    def test_numeric_mindspace_events(self, frozen_state):
        stress = translate_event(frozen_state, "stress_updated", 6)
        mood = translate_event(frozen_state, "mood_updated", 4.5)

        assert stress["mindspace"]["stress"] == 6.0
        assert stress["mindspace"]["mood"] == 7
        assert mood["mindspace"]["mood"] == 4.5

    @pytest.mark.parametrize("payload", ["high", True, None, {"stress": 4}])
    def test_numeric_events_reject_other_payloads(self, frozen_state, payload):
        with pytest.raises(EventPayloadError):
            translate_event(frozen_state, "stress_updated", payload)

    def test_sleep_logged_keeps_unreported_fields(self, frozen_state):
        changes = translate_event(frozen_state, "sleep_logged", {"duration": 6.5})
        assert changes["sleep"]["duration"] == 6.5
        assert changes["sleep"]["hrv"] == 66

    def test_hrv_measured(self, frozen_state):
        assert translate_event(frozen_state, "hrv_measured", 41)["sleep"]["hrv"] == 41.0

    def test_soreness_reported(self, frozen_state):
        changes = translate_event(
            frozen_state, "soreness_reported", {"zone": "calves", "level": "sore"}
        )
        assert changes["recovery"]["soreness_map"] == {"calves": "sore"}

    @pytest.mark.parametrize(
        "payload", [{"zone": "calves", "level": "agony"}, {"level": "sore"}, "calves"]
    )
    def test_soreness_reported_rejects_bad_payloads(self, frozen_state, payload):
        with pytest.raises(EventPayloadError):
            translate_event(frozen_state, "soreness_reported", payload)

    def test_soreness_toggle_cycles_back_to_none(self, frozen_state):
        state = frozen_state
        seen = []
        for _ in range(len(SORENESS_CYCLE)):
            changes = translate_event(state, "soreness_toggled", {"zone": "quads"})
            seen.append(changes["recovery"]["soreness_map"]["quads"])
            state = freeze({**state, **changes})
        assert seen == ["tight", "sore", "pain", "none"]

    def test_environment_and_travel(self, frozen_state):
        env = translate_event(frozen_state, "environment_updated", {"aqi": 180})
        travel = translate_event(frozen_state, "travel_status_changed", "jetlagged")

        assert env["environment"]["aqi"] == 180
        assert env["environment"]["travel_status"] == "home"
        assert travel["environment"]["travel_status"] == "jetlagged"
        with pytest.raises(EventPayloadError):
            translate_event(frozen_state, "travel_status_changed", 3)

    def test_load_updated(self, frozen_state):
        changes = translate_event(frozen_state, "load_updated", {"acwr": 1.7})
        assert changes["physical_load"] == {"acwr": 1.7, "consecutive_high_days": 0}

    def test_meal_logged_prepends_and_resets_clock(self, frozen_state):
        first = translate_event(frozen_state, "meal_logged", {"name": "oats"})
        state = freeze({**frozen_state, **first})
        second = translate_event(state, "meal_logged", {"name": "rice"})

        assert [m["name"] for m in second["fuel"]["meals"]] == ["rice", "oats"]
        assert second["fuel"]["hours_since_meal"] == 0.0

    def test_translation_never_mutates_input(self, athlete_state):
        translate_event(athlete_state, "hrv_measured", 20)
        assert athlete_state["sleep"]["hrv"] == 66

    def test_unknown_event(self, frozen_state):
        with pytest.raises(UnknownEventError, match="teleported"):
            translate_event(frozen_state, "teleported", {})

    def test_registry_covers_every_event(self):
        assert set(TRANSLATORS) == {
            "session_completed",
            "stress_updated",
            "mood_updated",
            "sleep_logged",
            "hrv_measured",
            "soreness_reported",
            "soreness_toggled",
            "environment_updated",
            "travel_status_changed",
            "load_updated",
            "meal_logged",
        }


class TestSyncLayer:
    @pytest.mark.asyncio
    async def test_handle_publishes_as_sync(self, make_store, athlete_state):
        store = make_store(initial_state=athlete_state)
        sync = SyncLayer(store)

        changes = await sync.handle("hrv_measured", 42, urgent=True)

        assert changes["sleep"]["hrv"] == 42.0
        assert store.get_state()["sleep"]["hrv"] == 42.0
        user_entry = store.audit_log()[1]
        assert user_entry.event_type == "HRV_MEASURED"
        assert user_entry.source == EventSource.SYNC.value
        assert store.stats()["runs"] == 1
        await store.close()

    @pytest.mark.asyncio
    async def test_bad_payload_publishes_nothing(self, make_store):
        store = make_store()
        with pytest.raises(EventPayloadError):
            await SyncLayer(store).handle("hrv_measured", "fast")
        assert store.stats()["publishes"] == 0
        await store.close()

    @pytest.mark.asyncio
    async def test_offline_events_upload_without_reapplying(self, make_store, athlete_state):
        uploads: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            uploads.append(json.loads(request.content))
            return httpx.Response(202)

        connectivity = ConnectivitySignal(online=False)
        uploader = HttpSyncUploader(
            SyncUploaderConfig(url="https://sync.example/events"),
            client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )
        store = make_store(
            initial_state=athlete_state, connectivity=connectivity, replay_handler=uploader
        )
        sync = SyncLayer(store)

        await sync.handle("hrv_measured", 41)
        assert store.offline_queue_length == 1

        connectivity.set_online(True)
        await sync.handle("hrv_measured", 58)
        await store.flush()

        (body,) = uploads
        assert [e["event_type"] for e in body["events"]] == ["HRV_MEASURED"]
        assert body["events"][0]["changes"]["sleep"]["hrv"] == 41.0
        assert store.get_state()["sleep"]["hrv"] == 58.0
        assert store.offline_queue_length == 0
        await store.close()
