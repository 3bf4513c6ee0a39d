"""Training sessions on the day's timeline."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Mapping

from kestrel.contracts.state import thaw


class Intensity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


DEFAULT_TIME_OF_DAY = "12:00"
_NOON_MINUTES = 12 * 60


def minutes_of_day(time_of_day: Any) -> int:
    """Minutes after midnight for ``H:MM`` or ``HH:MM``; anything else is noon."""
    try:
        hours, minutes = (int(part) for part in str(time_of_day).split(":", 1))
    except ValueError:
        return _NOON_MINUTES
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        return _NOON_MINUTES
    return hours * 60 + minutes


class SequenceBlock(str, Enum):
    MORNING = "morning"
    MIDDAY = "midday"
    AFTERNOON = "afternoon"
    EVENING = "evening"

    @classmethod
    def for_time(cls, time_of_day: Any) -> SequenceBlock:
        """Bucket a time of day; unparseable times land in midday."""
        hour = minutes_of_day(time_of_day) // 60
        if hour < 10:
            return cls.MORNING
        if hour < 14:
            return cls.MIDDAY
        if hour < 18:
            return cls.AFTERNOON
        return cls.EVENING


_SESSION_KEYS = frozenset(
    {
        "id",
        "title",
        "intensity",
        "time_of_day",
        "completed",
        "sequence_block",
        "duration_minutes",
        "mutation_source",
        "mutation_reason",
        "original_intensity",
        "requires_gate",
    }
)


@dataclass(slots=True, frozen=True)
class Session:
    """A scheduled session. Only the timeline adapter mutates these.

    Keys the engine does not interpret (description, notes, feedback, ...)
    ride along in ``extra`` and are written back unchanged.
    """

    id: str
    title: str
    intensity: Intensity
    time_of_day: str | None = None
    completed: bool = False
    sequence_block: SequenceBlock | None = None
    duration_minutes: int | None = None
    mutation_source: str | None = None
    mutation_reason: str | None = None
    original_intensity: Intensity | None = None
    requires_gate: bool = False
    extra: Mapping[str, Any] = field(default_factory=dict)

    @property
    def sort_minutes(self) -> int:
        return minutes_of_day(self.time_of_day or DEFAULT_TIME_OF_DAY)

    def downgraded(self, *, source: str, reason: str) -> Session:
        return replace(
            self,
            intensity=Intensity.LOW,
            mutation_source=source,
            mutation_reason=reason,
            original_intensity=self.original_intensity or self.intensity,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Session:
        """Parse a stored session.

        Raises:
            ValueError: If the intensity is missing or not a known level.
        """
        if data.get("intensity") is None:
            raise ValueError(f"session {data.get('id')!r} has no intensity")
        block = data.get("sequence_block")
        original = data.get("original_intensity")
        duration = data.get("duration_minutes")
        return cls(
            id=str(data.get("id", "")),
            title=str(data.get("title", "")),
            intensity=Intensity(data["intensity"]),
            time_of_day=data.get("time_of_day"),
            completed=bool(data.get("completed", False)),
            sequence_block=SequenceBlock(block) if block else None,
            duration_minutes=int(duration) if duration is not None else None,
            mutation_source=data.get("mutation_source"),
            mutation_reason=data.get("mutation_reason"),
            original_intensity=Intensity(original) if original else None,
            requires_gate=bool(data.get("requires_gate", False)),
            extra={k: thaw(v) for k, v in data.items() if k not in _SESSION_KEYS},
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = thaw(self.extra)
        out.update(
            {
                "id": self.id,
                "title": self.title,
                "intensity": self.intensity.value,
                "completed": self.completed,
                "sequence_block": self.sequence_block.value if self.sequence_block else None,
                "requires_gate": self.requires_gate,
            }
        )
        if self.time_of_day is not None:
            out["time_of_day"] = self.time_of_day
        if self.duration_minutes is not None:
            out["duration_minutes"] = self.duration_minutes
        if self.mutation_source is not None:
            out["mutation_source"] = self.mutation_source
            out["mutation_reason"] = self.mutation_reason
        if self.original_intensity is not None:
            out["original_intensity"] = self.original_intensity.value
        return out


__all__ = [
    "DEFAULT_TIME_OF_DAY",
    "Intensity",
    "SequenceBlock",
    "Session",
    "minutes_of_day",
]
