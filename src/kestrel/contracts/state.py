"""Canonical state shape.

The store owns exactly one copy of this mapping. Measurements default to
``None`` (unknown) so that evaluators and detectors skip rules whose inputs
have not been reported yet.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Iterable, Mapping


def default_state() -> dict[str, Any]:
    """Return a fresh canonical state with every known top-level key."""
    return {
        "user_profile": {
            "name": None,
            "age": None,
            "sex": None,
            "training_level": "intermediate",
            "baselines": {
                "hrv_baseline": None,
                "resting_hr": None,
            },
        },
        "sleep": {
            "duration": None,
            "efficiency": None,
            "hrv": None,
            "resting_hr": None,
            "sleep_debt": 0.0,
            "wake_time": "07:00",
        },
        "recovery": {
            "soreness_map": {},
            "recovery_score": None,
        },
        "fuel": {
            "fuel_score": None,
            "hydration": None,
            "glycogen": None,
            "hours_since_meal": None,
            "supplements": [],
        },
        "mindspace": {
            "mood": None,
            "stress": None,
            "readiness_score": None,
        },
        "physical_load": {
            "acwr": None,
            "consecutive_high_days": 0,
        },
        "timeline": {
            "sessions": [],
            "adjustments": [],
        },
        "environment": {
            "altitude": None,
            "aqi": None,
            "travel_status": "home",
        },
        "medical": {
            "biomarkers": {},
            "ferritin": None,
        },
        "notifications": [],
        "orchestrator": {},
    }


KNOWN_KEYS: frozenset[str] = frozenset(default_state())


def unknown_keys(keys: Iterable[str]) -> list[str]:
    """Top-level keys not part of the canonical shape, in input order."""
    return [key for key in keys if key not in KNOWN_KEYS]


def freeze(value: Any) -> Any:
    """Deep read-only copy: mappings become ``MappingProxyType``, lists tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({key: freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(item) for item in value)
    return value


def thaw(value: Any) -> Any:
    """Inverse of :func:`freeze`; returns plain JSON-shaped data."""
    if isinstance(value, Mapping):
        return {key: thaw(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [thaw(item) for item in value]
    return value


__all__ = [
    "KNOWN_KEYS",
    "default_state",
    "freeze",
    "thaw",
    "unknown_keys",
]
