# pert_estimator/tools/aggregator.py

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, List, Sequence, Tuple

from pert_estimator.tools.pert_calculator import calculate

if TYPE_CHECKING:
    from pert_estimator.task_store import Task


@dataclass(frozen=True)
class ConfidenceLevel:
    """A named z-multiple, e.g. ConfidenceLevel("95%", 2.0)."""
    label: str
    multiplier: float


DEFAULT_CONFIDENCE_LEVELS: Tuple[ConfidenceLevel, ...] = (
    ConfidenceLevel("68%", 1.0),
    ConfidenceLevel("95%", 2.0),
)


@dataclass(frozen=True)
class ConfidenceInterval:
    label: str
    multiplier: float
    low: float
    high: float


@dataclass(frozen=True)
class ProjectSummary:
    total_tasks: int
    estimated_tasks: int
    total_expected: float
    total_variance: float
    total_std_dev: float
    intervals: Tuple[ConfidenceInterval, ...]

    def interval(self, label: str) -> ConfidenceInterval:
        for ci in self.intervals:
            if ci.label == label:
                return ci
        raise KeyError(label)

    @property
    def ci68(self) -> ConfidenceInterval:
        return self.interval("68%")

    @property
    def ci95(self) -> ConfidenceInterval:
        return self.interval("95%")


def confidence_interval(
    total_expected: float,
    total_std_dev: float,
    level: ConfidenceLevel,
) -> ConfidenceInterval:
    if level.multiplier < 0:
        raise ValueError(
            f"Confidence multiplier must be non-negative, got {level.multiplier} "
            f"for level {level.label!r}"
        )
    spread = level.multiplier * total_std_dev
    return ConfidenceInterval(
        label=level.label,
        multiplier=level.multiplier,
        low=total_expected - spread,
        high=total_expected + spread,
    )


def _total(values: List[float]) -> float:
    try:
        return math.fsum(values)
    except OverflowError:
        # fsum raises on intermediate overflow; plain sum saturates to inf.
        return sum(values)


def summarize(
    tasks: Iterable["Task"],
    confidence_levels: Sequence[ConfidenceLevel] = DEFAULT_CONFIDENCE_LEVELS,
) -> ProjectSummary:
    """
    Roll per-task PERT estimates up into project totals.

    Tasks with incomplete inputs are counted in total_tasks but add nothing
    to the expected duration or variance. Variances are summed assuming the
    tasks are independent, so the project σ is sqrt(Σ σ_i²).

    fsum keeps the totals exact-rounded, which also makes them independent
    of task order.
    """
    total_tasks = 0
    expected_values: List[float] = []
    variances: List[float] = []

    for task in tasks:
        total_tasks += 1
        result = calculate(task.optimistic, task.most_likely, task.pessimistic)
        if not result.is_defined:
            continue
        expected_values.append(result.expected)
        variances.append(result.variance)

    total_expected = _total(expected_values)
    total_variance = _total(variances)
    total_std_dev = math.sqrt(total_variance)

    intervals = tuple(
        confidence_interval(total_expected, total_std_dev, level)
        for level in confidence_levels
    )

    return ProjectSummary(
        total_tasks=total_tasks,
        estimated_tasks=len(expected_values),
        total_expected=total_expected,
        total_variance=total_variance,
        total_std_dev=total_std_dev,
        intervals=intervals,
    )
