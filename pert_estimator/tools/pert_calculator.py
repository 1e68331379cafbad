# pert_estimator/tools/pert_calculator.py

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Union

RawHours = Union[str, int, float, None]


@dataclass(frozen=True)
class ThreePointEstimate:
    """Numeric optimistic / most-likely / pessimistic hours for one task."""
    optimistic: float
    most_likely: float
    pessimistic: float


@dataclass(frozen=True)
class EstimateResult:
    """
    Expected duration and standard deviation of a single task.

    Both fields are None when any of the three inputs is missing or
    non-numeric. std_dev is negative when pessimistic < optimistic; that
    is passed through untouched.
    """
    expected: Optional[float]
    std_dev: Optional[float]

    @property
    def is_defined(self) -> bool:
        return self.expected is not None and self.std_dev is not None

    @property
    def variance(self) -> Optional[float]:
        if self.std_dev is None:
            return None
        return self.std_dev * self.std_dev


UNDEFINED = EstimateResult(expected=None, std_dev=None)


def parse_hours(raw: RawHours) -> Optional[float]:
    """Edit-time text (or a number) -> float, or None if it is not usable."""
    if raw is None or isinstance(raw, bool):
        return None

    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        text = str(raw).strip()
        if not text:
            return None
        try:
            value = float(text)
        except ValueError:
            return None

    if not math.isfinite(value):
        return None
    return value


def parse_estimate(
    optimistic: RawHours,
    most_likely: RawHours,
    pessimistic: RawHours,
) -> Optional[ThreePointEstimate]:
    o = parse_hours(optimistic)
    m = parse_hours(most_likely)
    p = parse_hours(pessimistic)
    if o is None or m is None or p is None:
        return None
    return ThreePointEstimate(optimistic=o, most_likely=m, pessimistic=p)


def calculate(
    optimistic: RawHours,
    most_likely: RawHours,
    pessimistic: RawHours,
) -> EstimateResult:
    """
    PERT three-point estimate.

        E = (O + 4M + P) / 6
        σ = (P - O) / 6

    Values are kept at full precision; rounding belongs to format_hours().
    """
    estimate = parse_estimate(optimistic, most_likely, pessimistic)
    if estimate is None:
        return UNDEFINED

    o = estimate.optimistic
    m = estimate.most_likely
    p = estimate.pessimistic

    expected = (o + 4 * m + p) / 6
    std_dev = (p - o) / 6

    # Huge but finite inputs can overflow; such a task is not estimable.
    if not all(math.isfinite(v) for v in (expected, std_dev, std_dev * std_dev)):
        return UNDEFINED

    return EstimateResult(expected=expected, std_dev=std_dev)


def format_hours(value: Optional[float], decimals: int = 2) -> str:
    """Render hours for display / export; None becomes '-'."""
    if value is None:
        return "-"
    return f"{value:.{decimals}f}"


def validate_new_estimate(
    name: str,
    optimistic: RawHours,
    most_likely: RawHours,
    pessimistic: RawHours,
) -> List[str]:
    """
    Sanity checks applied before a story is added from the entry form.

    Returns a list of problems (empty when the story can be added).
    """
    problems: List[str] = []

    if not (name or "").strip():
        problems.append("Story title is required.")

    fields = (
        ("Optimistic (O)", optimistic),
        ("Most Likely (M)", most_likely),
        ("Pessimistic (P)", pessimistic),
    )
    for label, raw in fields:
        value = parse_hours(raw)
        if value is None:
            problems.append(f"{label} must be a number.")
        elif value < 0:
            problems.append(f"{label} cannot be negative.")

    return problems
