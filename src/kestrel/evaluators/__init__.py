"""Evaluators - Per-domain penalty rules.

Each evaluator is pure over ``(state, baselines)`` and reports a 0-100
penalty plus the reasons behind it.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from kestrel.contracts import Domain
from kestrel.evaluators.base import (
    DomainEvaluation,
    DomainEvaluator,
    baselines_of,
)
from kestrel.evaluators.fuel import FuelEvaluator, FuelRules
from kestrel.evaluators.load import LoadEvaluator, LoadRules
from kestrel.evaluators.mindspace import MindspaceEvaluator, MindspaceRules
from kestrel.evaluators.recovery import RecoveryEvaluator, RecoveryRules


def default_evaluators() -> tuple[DomainEvaluator, ...]:
    return (
        RecoveryEvaluator(),
        FuelEvaluator(),
        MindspaceEvaluator(),
        LoadEvaluator(),
    )


def evaluate_all(
    state: Mapping[str, Any],
    evaluators: Iterable[DomainEvaluator] | None = None,
) -> dict[Domain, DomainEvaluation]:
    """Run every evaluator; domains without an evaluator get a zero penalty."""
    baselines = baselines_of(state)
    results = {domain: DomainEvaluation(domain=domain) for domain in Domain}
    for evaluator in evaluators if evaluators is not None else default_evaluators():
        results[evaluator.domain] = evaluator.evaluate(state, baselines)
    return results


__all__ = [
    "DomainEvaluation",
    "DomainEvaluator",
    "FuelEvaluator",
    "FuelRules",
    "LoadEvaluator",
    "LoadRules",
    "MindspaceEvaluator",
    "MindspaceRules",
    "RecoveryEvaluator",
    "RecoveryRules",
    "default_evaluators",
    "evaluate_all",
]
