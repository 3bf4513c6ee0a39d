"""Status classification for physiological metrics.

``StatusClassifier`` maps a raw metric value plus demographic context to a
status band using the reference tables in :mod:`kestrel.classify.tables`.
The classifier holds no state between calls: the same input always yields
the same result.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from numbers import Real
from typing import Any

from kestrel.classify.tables import (
    MetricTable,
    Sex,
    Status,
    TableRow,
    ThresholdTable,
)
from kestrel.core.config import KestrelSettings

_logger = logging.getLogger(__name__)

# Age assumed for age-bucketed metrics when the profile has none
DEFAULT_AGE = 30


@dataclass(slots=True, frozen=True)
class ClassificationContext:
    """Demographic context used to pick a table bucket."""

    age: float | None = None
    sex: str | None = None
    athlete: bool = False


@dataclass(slots=True, frozen=True)
class StatusResult:
    status: Status
    reason: str
    confidence: str
    threshold_description: str
    source: str

    def to_dict(self) -> dict[str, str]:
        return {
            "status": self.status.value,
            "reason": self.reason,
            "confidence": self.confidence,
            "threshold_description": self.threshold_description,
            "source": self.source,
        }


def _unknown(reason: str, source: str = "") -> StatusResult:
    return StatusResult(
        status=Status.UNKNOWN,
        reason=reason,
        confidence="none",
        threshold_description="",
        source=source,
    )


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, Real):
        return None
    number = float(value)
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _fmt(value: float) -> str:
    return f"{value:g}"


class StatusClassifier:
    """Pure metric → status lookup over a validated ``ThresholdTable``."""

    def __init__(self, table: ThresholdTable | None = None) -> None:
        self._table = table or ThresholdTable.default()

    @classmethod
    def from_settings(cls, settings: KestrelSettings | None = None) -> StatusClassifier:
        """Use ``KESTREL_THRESHOLD_TABLE`` when set, else the packaged tables."""
        settings = settings or KestrelSettings()
        if settings.threshold_table:
            return cls(ThresholdTable.from_yaml(settings.threshold_table))
        return cls()

    @property
    def version(self) -> int:
        return self._table.version

    @property
    def metrics(self) -> list[str]:
        return sorted(self._table.metrics)

    def classify(
        self,
        metric: str,
        value: Any,
        context: ClassificationContext | None = None,
    ) -> StatusResult:
        """Classify ``value`` for ``metric``.

        Unknown metrics and non-numeric values return ``Status.UNKNOWN``.
        Context that falls outside every bucket uses the nearest bucket and
        lowers the reported confidence.
        """
        table = self._table.metrics.get(metric)
        if table is None:
            return _unknown(f"Unknown metric '{metric}'")
        number = _as_number(value)
        if number is None:
            return _unknown(f"{table.label} value {value!r} is not numeric", table.source)

        context = context or ClassificationContext()
        row, exact = self._select_row(table, context)
        if row is None:
            return _unknown(
                f"{table.label} requires {', '.join(table.bucket_by)} context",
                table.source,
            )

        if table.kind == "threshold":
            status = self._threshold_status(row, number)
            description = self._describe_thresholds(table, row)
        else:
            status = self._band_status(row, number)
            description = self._describe_bands(table, row)

        bucket = row.describe_bucket()
        reason = f"{table.label} {_fmt(number)}{table.unit} is {status.value}"
        if bucket:
            reason = f"{reason} for {bucket}"
        return StatusResult(
            status=status,
            reason=reason,
            confidence="high" if exact else "medium",
            threshold_description=description,
            source=table.source,
        )

    @staticmethod
    def _select_row(
        table: MetricTable, context: ClassificationContext
    ) -> tuple[TableRow | None, bool]:
        rows = table.rows
        if "sex" in table.bucket_by:
            try:
                sex = Sex(str(context.sex).lower())
            except ValueError:
                return None, False
            rows = [r for r in rows if r.sex is sex]
        if "athlete" in table.bucket_by:
            rows = [r for r in rows if r.athlete is bool(context.athlete)]
        if not rows:
            return None, False
        if "age" not in table.bucket_by:
            return rows[0], True
        age = _as_number(context.age)
        exact = age is not None
        if age is None:
            age = DEFAULT_AGE
        for row in rows:
            if row.covers_age(age):
                return row, exact
        nearest = min(rows, key=lambda r: r.age_distance(age))
        _logger.debug(
            "Age %s outside %s buckets; using nearest (%s)",
            age,
            table.label,
            nearest.describe_bucket(),
        )
        return nearest, False

    @staticmethod
    def _threshold_status(row: TableRow, value: float) -> Status:
        assert row.optimal is not None and row.good is not None and row.fair is not None
        if value >= row.optimal:
            return Status.OPTIMAL
        if value >= row.good:
            return Status.GOOD
        if value >= row.fair:
            return Status.FAIR
        return Status.POOR

    @staticmethod
    def _band_status(row: TableRow, value: float) -> Status:
        for band in row.bands:
            if band.contains(value):
                return band.status
        return Status.UNKNOWN  # pragma: no cover - final band is open-ended

    @staticmethod
    def _describe_thresholds(table: MetricTable, row: TableRow) -> str:
        assert row.optimal is not None and row.good is not None and row.fair is not None
        unit = table.unit.strip()
        text = (
            f"≥{_fmt(row.optimal)}{unit} optimal, "
            f"≥{_fmt(row.good)}{unit} good, "
            f"≥{_fmt(row.fair)}{unit} fair"
        )
        bucket = row.describe_bucket()
        return f"{bucket}: {text}" if bucket else text

    @staticmethod
    def _describe_bands(table: MetricTable, row: TableRow) -> str:
        unit = table.unit.strip()
        parts: list[str] = []
        for band in row.bands:
            if band.upper is None:
                parts.append(f"above: {band.status.value}")
            else:
                op = "≤" if band.inclusive else "<"
                parts.append(f"{op}{_fmt(band.upper)}{unit} {band.status.value}")
        text = ", ".join(parts)
        bucket = row.describe_bucket()
        return f"{bucket}: {text}" if bucket else text


__all__ = ["DEFAULT_AGE", "ClassificationContext", "StatusClassifier", "StatusResult"]
