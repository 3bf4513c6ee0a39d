"""Translate named device and UI events into partial state changes.

Each translator receives a thawed copy of the current state and returns the
top-level slices it rewrote. Slices are always written whole, because
``publish`` replaces top-level keys rather than deep-merging them.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Mapping

from kestrel.contracts import EventMeta, EventSource, thaw

if TYPE_CHECKING:
    from kestrel.store import StateStore

_logger = logging.getLogger(__name__)

Changes = dict[str, Any]
Translator = Callable[[dict[str, Any], Any], Changes]

SORENESS_CYCLE = ("none", "tight", "sore", "pain")


class UnknownEventError(ValueError):
    """Raised for an event type with no registered translator."""


class EventPayloadError(ValueError):
    """Raised when an event payload has the wrong shape."""


def _require_mapping(event_type: str, payload: Any) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise EventPayloadError(
            f"{event_type} payload must be a mapping, got {type(payload).__name__}"
        )
    return payload


def _require_number(event_type: str, payload: Any) -> float:
    if isinstance(payload, bool) or not isinstance(payload, (int, float)):
        raise EventPayloadError(
            f"{event_type} payload must be a number, got {type(payload).__name__}"
        )
    return float(payload)


def _session_completed(state: dict[str, Any], payload: Any) -> Changes:
    data = _require_mapping("session_completed", payload)
    session_id = data.get("id")
    timeline = state["timeline"]
    sessions = []
    matched = False
    for session in timeline.get("sessions", []):
        if isinstance(session, dict) and session.get("id") == session_id:
            session = {**session, "completed": True}
            if "feedback" in data:
                session["feedback"] = data["feedback"]
            matched = True
        sessions.append(session)
    if not matched:
        _logger.warning("session_completed for unknown session %r", session_id)
    timeline["sessions"] = sessions
    return {"timeline": timeline}


def _stress_updated(state: dict[str, Any], payload: Any) -> Changes:
    state["mindspace"]["stress"] = _require_number("stress_updated", payload)
    return {"mindspace": state["mindspace"]}


def _mood_updated(state: dict[str, Any], payload: Any) -> Changes:
    state["mindspace"]["mood"] = _require_number("mood_updated", payload)
    return {"mindspace": state["mindspace"]}


def _sleep_logged(state: dict[str, Any], payload: Any) -> Changes:
    state["sleep"].update(_require_mapping("sleep_logged", payload))
    return {"sleep": state["sleep"]}


def _hrv_measured(state: dict[str, Any], payload: Any) -> Changes:
    state["sleep"]["hrv"] = _require_number("hrv_measured", payload)
    return {"sleep": state["sleep"]}


def _soreness_reported(state: dict[str, Any], payload: Any) -> Changes:
    data = _require_mapping("soreness_reported", payload)
    zone = data.get("zone")
    level = data.get("level")
    if not isinstance(zone, str) or level not in SORENESS_CYCLE:
        raise EventPayloadError(
            f"soreness_reported needs a zone and a level in {SORENESS_CYCLE}"
        )
    recovery = state["recovery"]
    recovery["soreness_map"] = {**recovery.get("soreness_map", {}), zone: level}
    return {"recovery": recovery}


def _soreness_toggled(state: dict[str, Any], payload: Any) -> Changes:
    """Advance a zone one step through none -> tight -> sore -> pain -> none."""
    zone = _require_mapping("soreness_toggled", payload).get("zone")
    if not isinstance(zone, str):
        raise EventPayloadError("soreness_toggled needs a zone")
    recovery = state["recovery"]
    soreness = dict(recovery.get("soreness_map", {}))
    current = soreness.get(zone, "none")
    index = SORENESS_CYCLE.index(current) if current in SORENESS_CYCLE else 0
    soreness[zone] = SORENESS_CYCLE[(index + 1) % len(SORENESS_CYCLE)]
    recovery["soreness_map"] = soreness
    return {"recovery": recovery}


def _environment_updated(state: dict[str, Any], payload: Any) -> Changes:
    state["environment"].update(_require_mapping("environment_updated", payload))
    return {"environment": state["environment"]}


def _travel_status_changed(state: dict[str, Any], payload: Any) -> Changes:
    if not isinstance(payload, str):
        raise EventPayloadError("travel_status_changed payload must be a string")
    state["environment"]["travel_status"] = payload
    return {"environment": state["environment"]}


def _load_updated(state: dict[str, Any], payload: Any) -> Changes:
    state["physical_load"].update(_require_mapping("load_updated", payload))
    return {"physical_load": state["physical_load"]}


def _meal_logged(state: dict[str, Any], payload: Any) -> Changes:
    meal = dict(_require_mapping("meal_logged", payload))
    fuel = state["fuel"]
    fuel["meals"] = [meal, *fuel.get("meals", [])]
    fuel["hours_since_meal"] = 0.0
    return {"fuel": fuel}


TRANSLATORS: dict[str, Translator] = {
    "session_completed": _session_completed,
    "stress_updated": _stress_updated,
    "mood_updated": _mood_updated,
    "sleep_logged": _sleep_logged,
    "hrv_measured": _hrv_measured,
    "soreness_reported": _soreness_reported,
    "soreness_toggled": _soreness_toggled,
    "environment_updated": _environment_updated,
    "travel_status_changed": _travel_status_changed,
    "load_updated": _load_updated,
    "meal_logged": _meal_logged,
}


def translate_event(
    state: Mapping[str, Any], event_type: str, payload: Any
) -> Changes:
    """Return the partial state change for ``event_type``.

    Raises:
        UnknownEventError: No translator is registered for ``event_type``.
        EventPayloadError: The payload does not fit the event.
    """
    try:
        translator = TRANSLATORS[event_type]
    except KeyError:
        raise UnknownEventError(f"Unknown sync event: {event_type!r}") from None
    return translator(thaw(state), payload)


class SyncLayer:
    """Feeds translated events into a store as ``source="sync"`` publishes."""

    def __init__(self, store: StateStore) -> None:
        self._store = store

    async def handle(
        self,
        event_type: str,
        payload: Any,
        *,
        urgent: bool = False,
        override_use_llm: bool = False,
    ) -> Changes:
        changes = translate_event(self._store.get_state(), event_type, payload)
        meta = EventMeta(
            event_type=event_type.upper(),
            source=EventSource.SYNC,
            urgent=urgent,
            override_use_llm=override_use_llm,
        )
        await self._store.publish(changes, meta)
        return changes


__all__ = [
    "EventPayloadError",
    "SORENESS_CYCLE",
    "SyncLayer",
    "TRANSLATORS",
    "UnknownEventError",
    "translate_event",
]
