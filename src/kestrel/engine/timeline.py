"""Timeline adaptation - downgrade or gate today's sessions."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Iterable, Mapping

from kestrel.contracts import (
    READINESS_GATE_THRESHOLD,
    Intensity,
    SequenceBlock,
    Session,
    minutes_of_day,
    thaw,
)

_logger = logging.getLogger(__name__)

RED_DAY_MUTATION_SOURCE = "recovery"
RED_DAY_MUTATION_REASON = "Red day load reduction"


@dataclass(slots=True, frozen=True)
class TimelineResult:
    sessions: tuple[Any, ...]
    adjustments: tuple[str, ...]

    def session_dicts(self) -> list[dict[str, Any]]:
        return [s.to_dict() if isinstance(s, Session) else thaw(s) for s in self.sessions]


def _sort_minutes(item: Any) -> int:
    if isinstance(item, Session):
        return item.sort_minutes
    value = item.get("time_of_day") if isinstance(item, Mapping) else None
    return minutes_of_day(value)


class TimelineAdapter:
    def __init__(self, gate_threshold: float = READINESS_GATE_THRESHOLD) -> None:
        self.gate_threshold = gate_threshold

    def normalize(self, sessions: Iterable[Any]) -> list[Any]:
        """Parse, stable-sort by time of day and derive each sequence block.

        The readiness gate is cleared here; ``adapt`` sets it again only
        while readiness is below the threshold.

        Entries that do not parse as sessions are kept verbatim so the
        adapter never drops a user's session.
        """
        parsed: list[Any] = []
        for raw in sessions:
            if isinstance(raw, Session):
                session = raw
            else:
                try:
                    session = Session.from_dict(raw)
                except (TypeError, ValueError, AttributeError) as exc:
                    _logger.warning("Keeping unparseable session %r untouched: %s", raw, exc)
                    parsed.append(raw)
                    continue
            parsed.append(
                replace(
                    session,
                    sequence_block=SequenceBlock.for_time(session.time_of_day),
                    requires_gate=False,
                )
            )
        return sorted(parsed, key=_sort_minutes)

    def adapt(
        self, sessions: Iterable[Any], readiness: float, is_red_day: bool
    ) -> TimelineResult:
        adjustments: list[str] = []
        adapted: list[Any] = []
        for item in self.normalize(sessions):
            if not isinstance(item, Session) or item.completed:
                adapted.append(item)
                continue
            if is_red_day and item.intensity in (Intensity.HIGH, Intensity.MEDIUM):
                previous = item.intensity.value
                item = item.downgraded(
                    source=RED_DAY_MUTATION_SOURCE, reason=RED_DAY_MUTATION_REASON
                )
                adjustments.append(
                    f"RED DAY OVERRIDE: '{item.title}' {previous} -> low (Zone 1)"
                )
            elif (
                not is_red_day
                and readiness < self.gate_threshold
                and item.intensity is Intensity.HIGH
            ):
                item = replace(item, requires_gate=True)
                adjustments.append(f"READINESS GATE: CNS prep required for '{item.title}'")
            adapted.append(item)
        return TimelineResult(sessions=tuple(adapted), adjustments=tuple(adjustments))


__all__ = [
    "RED_DAY_MUTATION_REASON",
    "RED_DAY_MUTATION_SOURCE",
    "TimelineAdapter",
    "TimelineResult",
]
