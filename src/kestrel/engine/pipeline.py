"""Readiness pipeline - the ordered engine stages.

A run is a fixed sequence of named stages over an immutable
``PipelineContext``:

    evaluate -> detect -> prioritize -> ripple -> timeline -> summarize

Each stage is a pure function of the context it receives and returns a new
context, so any stage can be exercised on its own. ``PipelineOutput``
renders the partial state that the store merges back with
``trigger_orchestrator=False``.

Usage:
    pipeline = ReadinessPipeline()
    output = pipeline.run(state)
    changes = output.to_changes(state, generation=3)
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Mapping

from kestrel.classify import ClassificationContext, StatusClassifier
from kestrel.contracts import Domain, RedDayAssessment, thaw
from kestrel.core.config import ReadinessIntegration
from kestrel.evaluators import DomainEvaluation, DomainEvaluator, evaluate_all
from kestrel.evaluators.base import baselines_of, number, section
from kestrel.engine.priority import PriorityDecision, PriorityEngine
from kestrel.engine.red_day import RedDaySignalDetector
from kestrel.engine.ripples import CausalRippleApplier
from kestrel.engine.timeline import TimelineAdapter, TimelineResult

DEFAULT_WAKE_TIME = "07:00"
SLEEP_NEED_HOURS = 8.5
RED_DAY_SLEEP_NEED_HOURS = 10.0
FERRITIN_FLOOR = 30.0
AQI_POOR = 150.0

# metric -> (state slice, key, scale applied before classification)
STATUS_METRICS: tuple[tuple[str, str, str, float], ...] = (
    ("hrv", "sleep", "hrv", 1.0),
    ("resting_hr", "sleep", "resting_hr", 1.0),
    ("sleep_duration", "sleep", "duration", 1.0),
    ("sleep_efficiency", "sleep", "efficiency", 1.0),
    ("acwr", "physical_load", "acwr", 1.0),
    ("stress", "mindspace", "stress", 10.0),
    ("fuel_score", "fuel", "fuel_score", 1.0),
)
ATHLETE_LEVELS = frozenset({"elite"})


@dataclass(slots=True, frozen=True)
class PipelineContext:
    state: Mapping[str, Any]
    evaluations: Mapping[Domain, DomainEvaluation] = field(default_factory=dict)
    assessment: RedDayAssessment | None = None
    decision: PriorityDecision | None = None
    ripples: Mapping[str, Any] = field(default_factory=dict)
    timeline: TimelineResult | None = None
    output: PipelineOutput | None = None


@dataclass(slots=True, frozen=True)
class PipelineOutput:
    readiness: int
    summary: str
    explanation: tuple[str, ...]
    evaluations: Mapping[Domain, DomainEvaluation]
    assessment: RedDayAssessment
    decision: PriorityDecision
    ripples: Mapping[str, Any]
    timeline: TimelineResult
    sleep_plan: Mapping[str, Any]
    environment_flags: tuple[str, ...]
    supplement_plan: tuple[Mapping[str, str], ...]
    metric_statuses: Mapping[str, str] = field(default_factory=dict)

    @property
    def has_risk_signals(self) -> bool:
        return bool(self.assessment.signals)

    def domain_score(self, domain: Domain) -> float:
        evaluation = self.evaluations.get(domain)
        return evaluation.score if evaluation is not None else 100.0

    def orchestrator_view(
        self, *, generation: int = 0, timestamp: float | None = None
    ) -> dict[str, Any]:
        top = self.decision.top
        return {
            "readiness": self.readiness,
            "summary": self.summary,
            "explanation": list(self.explanation),
            "mode": top.name.upper() if top else "OPERATIONAL",
            "tags": ["RED_DAY", "RESTORE"] if self.assessment.is_red_day else ["OPTIMAL"],
            "is_red_day": self.assessment.is_red_day,
            "load_multiplier": self.assessment.load_multiplier,
            "narrative": self.assessment.narrative,
            "action_plan": list(self.assessment.action_plan),
            "risk_signals": [s.to_dict() for s in self.assessment.signals],
            "penalties": {d.value: p for d, p in self.decision.penalties.items()},
            "weights": {d.value: w for d, w in self.decision.weights.items()},
            "integration": self.decision.integration.value,
            "recommended_actions": [c.to_dict() for c in self.decision.candidates],
            "active_command": (
                self.decision.active_command.to_dict()
                if self.decision.active_command
                else None
            ),
            "ripples": thaw(self.ripples),
            "sleep_plan": dict(self.sleep_plan),
            "environment_flags": list(self.environment_flags),
            "supplement_plan": [dict(item) for item in self.supplement_plan],
            "metric_statuses": dict(self.metric_statuses),
            "generation": generation,
            "last_sync": timestamp if timestamp is not None else time.time(),
        }

    def to_changes(
        self,
        state: Mapping[str, Any],
        *,
        generation: int = 0,
        timestamp: float | None = None,
    ) -> dict[str, Any]:
        """Partial state for the store; each touched slice is written whole."""
        recovery = thaw(section(state, "recovery"))
        recovery["recovery_score"] = round(self.domain_score(Domain.RECOVERY))
        mindspace = thaw(section(state, "mindspace"))
        mindspace["readiness_score"] = round(self.domain_score(Domain.MINDSPACE))
        timeline = thaw(section(state, "timeline"))
        timeline["sessions"] = self.timeline.session_dicts()
        timeline["adjustments"] = list(self.timeline.adjustments)
        return {
            "orchestrator": self.orchestrator_view(
                generation=generation, timestamp=timestamp
            ),
            "recovery": recovery,
            "mindspace": mindspace,
            "timeline": timeline,
        }


Stage = Callable[[PipelineContext], PipelineContext]


def recommended_bedtime(wake_time: Any, is_red_day: bool) -> str:
    """Wake time minus the sleep need, as ``HH:MM``."""
    try:
        hours, minutes = (int(part) for part in str(wake_time).split(":", 1))
    except ValueError:
        hours, minutes = (int(part) for part in DEFAULT_WAKE_TIME.split(":"))
    need = RED_DAY_SLEEP_NEED_HOURS if is_red_day else SLEEP_NEED_HOURS
    bedtime = (hours * 60 + minutes - int(need * 60)) % (24 * 60)
    return f"{bedtime // 60:02d}:{bedtime % 60:02d}"


def environment_flags(state: Mapping[str, Any]) -> tuple[str, ...]:
    env = section(state, "environment")
    flags: list[str] = []
    aqi = number(env, "aqi")
    if aqi is not None and aqi > AQI_POOR:
        flags.append("env_aqi_poor")
    if env.get("travel_status") == "traveling":
        flags.append("travel_fatigue")
    return tuple(flags)


def supplement_plan(state: Mapping[str, Any]) -> tuple[dict[str, str], ...]:
    ferritin = number(section(state, "medical"), "ferritin")
    if ferritin is not None and ferritin < FERRITIN_FLOOR:
        return ({"name": "iron_foods", "reason": "low_ferritin"},)
    return ()


def metric_statuses(
    state: Mapping[str, Any], classifier: StatusClassifier
) -> dict[str, str]:
    """Status band for every reported metric; unreported metrics are skipped."""
    profile = section(state, "user_profile")
    age = number(profile, "age")
    context = ClassificationContext(
        age=age,
        sex=profile.get("sex"),
        athlete=profile.get("training_level") in ATHLETE_LEVELS,
    )
    statuses: dict[str, str] = {}
    for metric, key, field_name, scale in STATUS_METRICS:
        value = number(section(state, key), field_name)
        if value is None:
            continue
        statuses[metric] = classifier.classify(metric, value * scale, context).status.value
    return statuses


class ReadinessPipeline:
    """Runs the engine stages in order over one state snapshot."""

    def __init__(
        self,
        *,
        evaluators: tuple[DomainEvaluator, ...] | None = None,
        detector: RedDaySignalDetector | None = None,
        priority: PriorityEngine | None = None,
        ripples: CausalRippleApplier | None = None,
        timeline: TimelineAdapter | None = None,
        classifier: StatusClassifier | None = None,
        integration: ReadinessIntegration = ReadinessIntegration.DOMINANT,
    ) -> None:
        self._evaluators = evaluators
        self.classifier = classifier or StatusClassifier()
        self.detector = detector or RedDaySignalDetector()
        self.priority = priority or PriorityEngine(integration=integration)
        self.ripples = ripples or CausalRippleApplier()
        self.timeline = timeline or TimelineAdapter()
        self.stages: tuple[tuple[str, Stage], ...] = (
            ("evaluate", self.evaluate),
            ("detect", self.detect),
            ("prioritize", self.prioritize),
            ("ripple", self.ripple),
            ("timeline", self.adapt_timeline),
            ("summarize", self.summarize),
        )

    def run(self, state: Mapping[str, Any]) -> PipelineOutput:
        ctx = PipelineContext(state=state)
        for _name, stage in self.stages:
            ctx = stage(ctx)
        assert ctx.output is not None
        return ctx.output

    def evaluate(self, ctx: PipelineContext) -> PipelineContext:
        return replace(ctx, evaluations=evaluate_all(ctx.state, self._evaluators))

    def detect(self, ctx: PipelineContext) -> PipelineContext:
        assessment = self.detector.assess(
            ctx.state, baselines_of(ctx.state), ctx.evaluations
        )
        return replace(ctx, assessment=assessment)

    def prioritize(self, ctx: PipelineContext) -> PipelineContext:
        return replace(ctx, decision=self.priority.prioritize(ctx.evaluations))

    def ripple(self, ctx: PipelineContext) -> PipelineContext:
        assert ctx.assessment is not None
        return replace(ctx, ripples=self.ripples.apply(ctx.state, ctx.assessment))

    def adapt_timeline(self, ctx: PipelineContext) -> PipelineContext:
        assert ctx.assessment is not None and ctx.decision is not None
        sessions = section(ctx.state, "timeline").get("sessions") or ()
        result = self.timeline.adapt(
            sessions, ctx.decision.readiness, ctx.assessment.is_red_day
        )
        return replace(ctx, timeline=result)

    def summarize(self, ctx: PipelineContext) -> PipelineContext:
        assessment, decision, timeline = ctx.assessment, ctx.decision, ctx.timeline
        assert assessment is not None and decision is not None and timeline is not None
        weights = " ".join(
            f"{d.value[0].upper()}:{round(w * 100)}" for d, w in decision.weights.items()
        )
        top = decision.top
        explanation = (
            f"Readiness {decision.readiness}% "
            f"({decision.integration.value} integration; weights {weights})",
            f"Top Priority: {top.name} (Urgency: {top.urgency:g})"
            if top
            else "All systems balanced.",
        )
        is_red_day = assessment.is_red_day
        wake_time = section(ctx.state, "sleep").get("wake_time") or DEFAULT_WAKE_TIME
        output = PipelineOutput(
            readiness=decision.readiness,
            summary=f"Composite Readiness: {decision.readiness}%",
            explanation=explanation,
            evaluations=ctx.evaluations,
            assessment=assessment,
            decision=decision,
            ripples=ctx.ripples,
            timeline=timeline,
            sleep_plan={
                "recommended_bedtime": recommended_bedtime(wake_time, is_red_day),
                "hygiene_action": (
                    "90 min warm shower, then 18°C bedroom" if is_red_day else None
                ),
            },
            environment_flags=environment_flags(ctx.state),
            supplement_plan=supplement_plan(ctx.state),
            metric_statuses=metric_statuses(ctx.state, self.classifier),
        )
        return replace(ctx, output=output)


__all__ = [
    "PipelineContext",
    "PipelineOutput",
    "ReadinessPipeline",
    "STATUS_METRICS",
    "environment_flags",
    "metric_statuses",
    "recommended_bedtime",
    "supplement_plan",
]
