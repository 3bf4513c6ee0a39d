#!/usr/bin/env python3
"""Kestrel end-to-end demo.

This script drives a reactive store through a short, synthetic day:

1. Seeds an athlete profile and a training timeline.
2. Feeds sleep, HRV, stress and soreness events through the sync layer.
3. Lets the coalesced readiness pipeline run and prints its verdict.
4. Shows session downgrades, ripples and the audit trail.

Requirements:
- Optional: Redis at REDIS_URL when run with ``--redis``.
- The ``demo`` extra (rich) for table output.

Run with:
    python scripts/run_demo.py
    python scripts/run_demo.py --scenario red-day --redis
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Any, Mapping

from rich.console import Console
from rich.table import Table

from kestrel.contracts import EventMeta, EventSource
from kestrel.core import KestrelSettings, configure_logging
from kestrel.store import InMemoryPersistence, StateStore
from kestrel.sync import SyncLayer

logger = logging.getLogger(__name__)

SEED_STATE: dict[str, Any] = {
    "user_profile": {
        "name": "Demo Athlete",
        "age": 30,
        "sex": "female",
        "training_level": "intermediate",
        "baselines": {"hrv_baseline": 65, "resting_hr": 52},
    },
    "timeline": {
        "sessions": [
            {"id": "s1", "title": "Track Intervals", "intensity": "high", "time_of_day": "17:30"},
            {"id": "s2", "title": "Mobility", "intensity": "low", "time_of_day": "08:00"},
            {"id": "s3", "title": "Tempo Run", "intensity": "medium", "time_of_day": "12:15"},
        ],
        "adjustments": [],
    },
}

SCENARIOS: dict[str, list[tuple[str, Any]]] = {
    "nominal": [
        ("sleep_logged", {"duration": 8.1, "efficiency": 91, "resting_hr": 51}),
        ("hrv_measured", 66),
        ("stress_updated", 3),
        ("mood_updated", 7),
    ],
    "red-day": [
        ("sleep_logged", {"duration": 4.6, "efficiency": 74, "resting_hr": 61, "sleep_debt": 3}),
        ("hrv_measured", 45),
        ("stress_updated", 8),
        ("soreness_reported", {"zone": "quads", "level": "pain"}),
        ("soreness_reported", {"zone": "calves", "level": "pain"}),
        ("load_updated", {"acwr": 1.6, "consecutive_high_days": 3}),
    ],
}


def render(console: Console, state: Mapping[str, Any]) -> None:
    orchestrator = state["orchestrator"]
    console.rule(f"[bold]{orchestrator.get('summary', 'No run yet')}")

    verdict = Table(title="Verdict", show_header=False)
    verdict.add_row("Red day", str(orchestrator.get("is_red_day")))
    verdict.add_row("Load multiplier", f"{orchestrator.get('load_multiplier', 1.0):g}")
    verdict.add_row("Mode", str(orchestrator.get("mode")))
    verdict.add_row("Bedtime", str(orchestrator.get("sleep_plan", {}).get("recommended_bedtime")))
    console.print(verdict)

    signals = Table(title="Risk signals")
    signals.add_column("id")
    signals.add_column("severity")
    signals.add_column("rationale")
    for signal in orchestrator.get("risk_signals", ()):
        signals.add_row(signal["id"], signal["severity"], signal["rationale"])
    console.print(signals)

    actions = Table(title="Recommended actions")
    for column in ("domain", "name", "urgency", "priority"):
        actions.add_column(column)
    for action in orchestrator.get("recommended_actions", ()):
        actions.add_row(
            action["domain"], action["name"], f"{action['urgency']:g}", f"{action['priority']:.1f}"
        )
    console.print(actions)

    sessions = Table(title="Timeline")
    for column in ("time", "title", "intensity", "gate"):
        sessions.add_column(column)
    for session in state["timeline"]["sessions"]:
        sessions.add_row(
            str(session.get("time_of_day")),
            str(session.get("title")),
            str(session.get("intensity")),
            "yes" if session.get("requires_gate") else "",
        )
    console.print(sessions)
    for line in state["timeline"]["adjustments"]:
        console.print(f"  [yellow]{line}")
    if orchestrator.get("narrative"):
        console.print(orchestrator["narrative"])


async def run_demo(scenario: str, use_redis: bool) -> None:
    settings = KestrelSettings()
    configure_logging(settings)
    console = Console()

    if use_redis:
        store = StateStore.from_settings(settings)
    else:
        store = StateStore.from_settings(settings, persistence=InMemoryPersistence())
    if await store.hydrate():
        logger.info("Hydrated persisted state from %s", settings.persistence_key)

    await store.publish(
        SEED_STATE, EventMeta("PROFILE_SEEDED", source=EventSource.SYSTEM)
    )
    sync = SyncLayer(store)
    for event_type, payload in SCENARIOS[scenario]:
        await sync.handle(event_type, payload)
    await store.flush()

    render(console, store.get_state())

    audit = Table(title="Audit trail (newest first)")
    audit.add_column("event")
    audit.add_column("source")
    audit.add_column("keys")
    for entry in store.audit_log()[:10]:
        audit.add_row(entry.event_type, entry.source, ", ".join(entry.changed_keys))
    console.print(audit)
    console.print(store.stats())
    await store.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Kestrel readiness demo")
    parser.add_argument("--scenario", choices=sorted(SCENARIOS), default="nominal")
    parser.add_argument(
        "--redis", action="store_true", help="Persist the snapshot to REDIS_URL"
    )
    args = parser.parse_args()
    asyncio.run(run_demo(args.scenario, args.redis))


if __name__ == "__main__":
    main()
