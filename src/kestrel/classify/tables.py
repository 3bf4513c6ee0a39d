"""Classifier threshold tables.

Pydantic models for the versioned, data-driven reference tables used by
``StatusClassifier``. Tables are validated mercilessly at load time so that a
mis-ordered threshold can never silently produce a wrong status.

Two table kinds exist:

- ``threshold``: higher is better. Each row carries ``optimal > good > fair``
  cut-offs; values below ``fair`` are poor.
- ``band``: an ordered list of contiguous bands. Each band covers everything
  above the previous band's ``upper`` up to its own ``upper`` (inclusive when
  ``inclusive`` is set); the final band is open-ended.

Rows can be bucketed by ``age`` (``min_age``/``max_age``), ``sex`` and
``athlete``.

Usage:
    table = ThresholdTable.default()
    table = ThresholdTable.from_yaml("my_tables.yaml")
"""

from __future__ import annotations

from collections import defaultdict
from enum import Enum
from pathlib import Path
from typing import Any, Literal

import yaml  # type: ignore[import-untyped]
from pydantic import BaseModel, Field, ValidationError, model_validator

DEFAULT_TABLE_PATH = Path(__file__).parent / "thresholds.yaml"

SUPPORTED_VERSIONS = frozenset({1})


class ThresholdTableError(ValueError):
    """Raised when a threshold table is malformed or violates ordering rules."""


class Status(str, Enum):
    OPTIMAL = "optimal"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    UNKNOWN = "unknown"


class Sex(str, Enum):
    MALE = "male"
    FEMALE = "female"


BucketField = Literal["age", "sex", "athlete"]


class Band(BaseModel):
    """One contiguous band of a ``band`` table."""

    status: Status
    upper: float | None = None
    inclusive: bool = False

    def contains(self, value: float) -> bool:
        if self.upper is None:
            return True
        if self.inclusive:
            return value <= self.upper
        return value < self.upper


class TableRow(BaseModel):
    """One bucket of a metric table."""

    min_age: int | None = Field(default=None, ge=0)
    max_age: int | None = Field(default=None, ge=0)
    sex: Sex | None = None
    athlete: bool | None = None

    optimal: float | None = None
    good: float | None = None
    fair: float | None = None

    bands: list[Band] = Field(default_factory=list)

    def covers_age(self, age: float) -> bool:
        assert self.min_age is not None and self.max_age is not None
        return self.min_age <= age <= self.max_age

    def age_distance(self, age: float) -> float:
        assert self.min_age is not None and self.max_age is not None
        if age < self.min_age:
            return self.min_age - age
        if age > self.max_age:
            return age - self.max_age
        return 0.0

    def describe_bucket(self) -> str:
        parts: list[str] = []
        if self.sex is not None:
            parts.append(self.sex.value)
        if self.athlete is not None:
            parts.append("athlete" if self.athlete else "general")
        if self.min_age is not None:
            parts.append(f"age {self.min_age}-{self.max_age}")
        return " ".join(parts)


class MetricTable(BaseModel):
    """Reference table for a single metric."""

    kind: Literal["threshold", "band"]
    label: str
    unit: str = ""
    source: str = ""
    bucket_by: list[BucketField] = Field(default_factory=list)
    rows: list[TableRow] = Field(min_length=1)

    @model_validator(mode="after")
    def validate_rows(self) -> MetricTable:
        for index, row in enumerate(self.rows):
            self._check_bucket_fields(index, row)
            if self.kind == "threshold":
                self._check_thresholds(index, row)
            else:
                self._check_bands(index, row)
        if "age" in self.bucket_by:
            self._check_age_buckets()
        return self

    def _check_bucket_fields(self, index: int, row: TableRow) -> None:
        if "age" in self.bucket_by:
            if row.min_age is None or row.max_age is None:
                raise ValueError(f"row {index}: age-bucketed rows need min_age and max_age")
            if row.min_age > row.max_age:
                raise ValueError(
                    f"row {index}: min_age {row.min_age} exceeds max_age {row.max_age}"
                )
        if "sex" in self.bucket_by and row.sex is None:
            raise ValueError(f"row {index}: sex-bucketed rows need sex")
        if "athlete" in self.bucket_by and row.athlete is None:
            raise ValueError(f"row {index}: athlete-bucketed rows need athlete")

    @staticmethod
    def _check_thresholds(index: int, row: TableRow) -> None:
        if row.optimal is None or row.good is None or row.fair is None:
            raise ValueError(f"row {index}: threshold rows need optimal, good and fair")
        if not row.optimal > row.good > row.fair:
            raise ValueError(
                f"row {index}: thresholds must strictly decrease optimal > good > fair, "
                f"got {row.optimal}/{row.good}/{row.fair}"
            )

    @staticmethod
    def _check_bands(index: int, row: TableRow) -> None:
        if not row.bands:
            raise ValueError(f"row {index}: band rows need at least one band")
        *bounded, last = row.bands
        if last.upper is not None:
            raise ValueError(f"row {index}: final band must be open-ended")
        previous: float | None = None
        for band in bounded:
            if band.upper is None:
                raise ValueError(f"row {index}: only the final band may be open-ended")
            if previous is not None and band.upper <= previous:
                raise ValueError(
                    f"row {index}: band bounds must strictly increase, "
                    f"got {band.upper} after {previous}"
                )
            previous = band.upper

    def _check_age_buckets(self) -> None:
        groups: dict[tuple[Any, Any], list[TableRow]] = defaultdict(list)
        for row in self.rows:
            groups[(row.sex, row.athlete)].append(row)
        for rows in groups.values():
            ordered = sorted(rows, key=lambda r: r.min_age or 0)
            for before, after in zip(ordered, ordered[1:]):
                assert before.max_age is not None and after.min_age is not None
                if after.min_age <= before.max_age:
                    raise ValueError(
                        f"age buckets overlap: {before.describe_bucket()} "
                        f"and {after.describe_bucket()}"
                    )


class ThresholdTable(BaseModel):
    """Versioned collection of metric tables."""

    version: int
    metrics: dict[str, MetricTable]

    @model_validator(mode="after")
    def validate_version(self) -> ThresholdTable:
        if self.version not in SUPPORTED_VERSIONS:
            raise ValueError(
                f"unsupported table version {self.version}; "
                f"supported: {sorted(SUPPORTED_VERSIONS)}"
            )
        return self

    @classmethod
    def from_mapping(cls, data: Any, *, origin: str = "<mapping>") -> ThresholdTable:
        if not isinstance(data, dict):
            raise ThresholdTableError(
                f"Threshold table must be a mapping, got {type(data).__name__}: {origin}"
            )
        try:
            return cls(**data)
        except ValidationError as exc:
            raise ThresholdTableError(f"Invalid threshold table {origin}: {exc}") from exc

    @classmethod
    def from_yaml(cls, path: Path | str) -> ThresholdTable:
        """Load and validate a table document.

        Raises:
            ThresholdTableError: If the YAML is empty, not a mapping, or any
                table violates ordering or bucketing rules.
        """
        path = Path(path)
        with open(path) as f:
            data = yaml.safe_load(f)
        return cls.from_mapping(data, origin=str(path))

    @classmethod
    def default(cls) -> ThresholdTable:
        """The packaged reference tables."""
        return cls.from_yaml(DEFAULT_TABLE_PATH)


__all__ = [
    "Band",
    "DEFAULT_TABLE_PATH",
    "MetricTable",
    "Sex",
    "Status",
    "TableRow",
    "ThresholdTable",
    "ThresholdTableError",
]
