"""Classify - Status bands for physiological metrics.

Reference tables ship as ``thresholds.yaml`` and are validated at load time.
"""

from kestrel.classify.tables import (
    Status,
    ThresholdTable,
    ThresholdTableError,
)
from kestrel.classify.classifier import (
    ClassificationContext,
    StatusClassifier,
    StatusResult,
)

__all__ = [
    "ClassificationContext",
    "Status",
    "StatusClassifier",
    "StatusResult",
    "ThresholdTable",
    "ThresholdTableError",
]
