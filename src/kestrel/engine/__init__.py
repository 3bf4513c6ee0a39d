"""Engine - Turns a state snapshot into readiness, actions and overrides.

## Key Components

- RedDaySignalDetector: detector battery and red-day verdict
- PriorityEngine: dynamic weights, readiness integration, action ranking
- CausalRippleApplier: cross-domain output overrides
- TimelineAdapter: session downgrades and readiness gates
- ReadinessPipeline: the ordered stage list tying them together
"""

from kestrel.engine.red_day import RedDayConfig, RedDaySignalDetector, acwr_limits
from kestrel.engine.priority import (
    CandidateThresholds,
    PriorityDecision,
    PriorityEngine,
    calculate_dynamic_weights,
    dominant_readiness,
    rank_candidates,
    weighted_readiness,
)
from kestrel.engine.ripples import CausalRippleApplier, RippleConfig
from kestrel.engine.timeline import TimelineAdapter, TimelineResult
from kestrel.engine.pipeline import PipelineContext, PipelineOutput, ReadinessPipeline

__all__ = [
    "CandidateThresholds",
    "CausalRippleApplier",
    "PipelineContext",
    "PipelineOutput",
    "PriorityDecision",
    "PriorityEngine",
    "ReadinessPipeline",
    "RedDayConfig",
    "RedDaySignalDetector",
    "RippleConfig",
    "TimelineAdapter",
    "TimelineResult",
    "acwr_limits",
    "calculate_dynamic_weights",
    "dominant_readiness",
    "rank_candidates",
    "weighted_readiness",
]
