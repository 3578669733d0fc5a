"""
Score Distribution Module
=========================
Solves aggregate edits: given a target value for a set of criteria (one
category), recompute per-criterion values that reproduce it.

Both strategies share the same contract:
- the target is clamped to [0, Σ capacity]
- every value lies in [0, capacity] and sits on the group step grid
- values keep the proportions of the current scores, or of the
  capacities when every current score is 0
- the result is best-effort; a residual of half a step or more is
  reported (converged=False) and logged, never raised

Strategies:
1. RoundRobinDistribution - proportional split rounded to the step, then
   one-step nudges walked in criterion order (bounded number of passes)
2. LargestRemainderDistribution - proportional split floored to whole
   steps, leftover steps handed to the largest fractional remainders
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .calculator import criterion_score
from ..config import get_config
from ..logging_config import log_distribution
from ..models import Criterion, Note

DISTRIBUTION_DECIMALS = 3


def group_step(criteria: Sequence[Criterion], default: Optional[float] = None) -> float:
    """Smallest positive step among the criteria, else the configured default."""
    steps = [
        float(c.step) for c in criteria
        if c.step is not None and math.isfinite(c.step) and c.step > 0
    ]
    if steps:
        return min(steps)
    return default if default is not None else get_config().scoring.default_step


def round_to_step(value: float, step: float) -> float:
    if not math.isfinite(step) or step <= 0:
        return value
    return math.floor(value / step + 0.5) * step


@dataclass
class DistributionProblem:
    """
    Normalized input shared by every strategy.

    Attributes:
        criteria: Criteria to fill, in order
        capacities: Upper bound per criterion (0 for non-positive maxima)
        current: Current numeric score per criterion
        target: Target clamped to [0, Σ capacity]
        step: Group quantization step
        max_iterations: Pass guard for iterative strategies
    """
    criteria: List[Criterion]
    capacities: List[float]
    current: List[float]
    target: float
    step: float
    max_iterations: int

    @property
    def total_capacity(self) -> float:
        return sum(self.capacities)

    def proportional_values(self) -> List[float]:
        """Unrounded proportional split of the target, clamped to capacities."""
        current_total = sum(self.current)
        total_capacity = self.total_capacity
        values = []
        for current, capacity in zip(self.current, self.capacities):
            if capacity <= 0:
                values.append(0.0)
                continue
            if current_total > 0:
                raw = current / current_total * self.target
            else:
                raw = capacity / total_capacity * self.target
            values.append(min(max(raw, 0.0), capacity))
        return values


@dataclass
class DistributionResult:
    """
    Outcome of a redistribution.

    Attributes:
        values: New value per criterion id (3 decimals)
        target: Clamped target
        residual: target minus the sum of values
        step: Group step used
        passes: Correction passes performed
        converged: |residual| < step / 2
        strategy: Strategy name
    """
    values: Dict[str, float] = field(default_factory=dict)
    target: float = 0.0
    residual: float = 0.0
    step: float = 0.5
    passes: int = 0
    converged: bool = True
    strategy: str = "round_robin"


class DistributionStrategy(ABC):
    """Abstract base class for redistribution strategies."""

    name: str = "base"

    @abstractmethod
    def allocate(self, problem: DistributionProblem) -> "tuple[List[float], int]":
        """
        Allocate the target across criteria.

        Returns:
            (values in criterion order, correction passes performed)
        """
        pass


class RoundRobinDistribution(DistributionStrategy):
    """
    Proportional split, step rounding and round-robin correction.

    After rounding, the remaining delta is absorbed one step at a time:
    each pass walks the criteria in order and nudges every criterion that
    stays inside [0, capacity], stopping as soon as |delta| < step / 2.
    A pass that changes nothing ends the loop with the residual accepted.
    """

    name = "round_robin"

    def allocate(self, problem: DistributionProblem):
        step = problem.step
        values = [
            min(max(round_to_step(value, step), 0.0), capacity)
            for value, capacity in zip(problem.proportional_values(), problem.capacities)
        ]

        delta = problem.target - sum(values)
        passes = 0
        while abs(delta) >= step / 2 and passes < problem.max_iterations:
            adjusted = False
            direction = 1 if delta > 0 else -1

            for index, capacity in enumerate(problem.capacities):
                nudged = values[index] + direction * step
                if nudged < 0 or nudged > capacity:
                    continue
                values[index] = round_to_step(nudged, step)
                delta -= direction * step
                adjusted = True
                if abs(delta) < step / 2:
                    break

            if not adjusted:
                break
            passes += 1

        return values, passes


class LargestRemainderDistribution(DistributionStrategy):
    """
    Exact allocation of whole steps by largest remainder.

    The target is expressed in steps; every criterion first receives the
    floor of its proportional share, then leftover steps go to the
    criteria with the largest fractional parts (criterion order breaks
    ties), skipping criteria already at capacity.
    """

    name = "largest_remainder"

    def allocate(self, problem: DistributionProblem):
        step = problem.step
        target_units = int(math.floor(problem.target / step + 0.5))
        caps = [int(math.floor(capacity / step + 1e-9)) for capacity in problem.capacities]
        shares = [value / step for value in problem.proportional_values()]

        units = [min(cap, int(math.floor(share + 1e-9))) for share, cap in zip(shares, caps)]
        remaining = target_units - sum(units)

        order = sorted(
            range(len(units)),
            key=lambda i: (-(shares[i] - math.floor(shares[i] + 1e-9)), i)
        )
        passes = 0
        while remaining > 0:
            handed = False
            for index in order:
                if remaining == 0:
                    break
                if units[index] < caps[index]:
                    units[index] += 1
                    remaining -= 1
                    handed = True
            if not handed:
                break
            passes += 1

        return [u * step for u in units], passes


STRATEGY_REGISTRY = {
    'round_robin': RoundRobinDistribution,
    'largest_remainder': LargestRemainderDistribution,
}


def get_distribution_strategy(name: Optional[str] = None) -> DistributionStrategy:
    """Get a redistribution strategy by name (defaults to the configured one)."""
    name = name or get_config().scoring.distribution_strategy
    if name not in STRATEGY_REGISTRY:
        raise ValueError(f"Unknown distribution strategy: {name}")
    return STRATEGY_REGISTRY[name]()


# =============================================================================
# PUBLIC API
# =============================================================================

def solve_distribution(
    criteria: Sequence[Criterion],
    note: Optional[Note],
    target: float,
    strategy: Optional[str] = None,
    label: str = "criteria",
) -> DistributionResult:
    """
    Recompute per-criterion values so that they sum to a target.

    Args:
        criteria: Criteria to fill (usually one category group)
        note: Note holding the current values (may be None)
        target: Requested aggregate
        strategy: Strategy name; defaults to config.scoring.distribution_strategy
        label: Name used when logging (category label)

    Returns:
        DistributionResult with values and convergence details
    """
    criteria = list(criteria or ())
    allocator = get_distribution_strategy(strategy)
    capacities = [max(c.capacity, 0.0) for c in criteria]
    total_capacity = sum(c.capacity for c in criteria)

    if total_capacity <= 0:
        return DistributionResult(
            values={c.id: 0.0 for c in criteria},
            step=group_step(criteria),
            strategy=allocator.name,
        )

    try:
        requested = float(target)
    except (TypeError, ValueError):
        requested = 0.0
    if not math.isfinite(requested):
        requested = 0.0
    clamped = min(max(requested, 0.0), total_capacity)

    problem = DistributionProblem(
        criteria=criteria,
        capacities=capacities,
        current=[criterion_score(note, c) for c in criteria],
        target=clamped,
        step=group_step(criteria),
        max_iterations=get_config().scoring.max_iterations,
    )

    values, passes = allocator.allocate(problem)
    rounded = {
        c.id: round(value, DISTRIBUTION_DECIMALS)
        for c, value in zip(criteria, values)
    }
    residual = round(clamped - sum(values), DISTRIBUTION_DECIMALS)
    converged = abs(clamped - sum(values)) < problem.step / 2

    log_distribution(
        category=label,
        target=clamped,
        values=rounded,
        residual=residual,
        converged=converged,
        strategy=allocator.name,
        passes=passes,
    )

    return DistributionResult(
        values=rounded,
        target=clamped,
        residual=residual,
        step=problem.step,
        passes=passes,
        converged=converged,
        strategy=allocator.name,
    )


def distribute_category_score(
    criteria: Sequence[Criterion],
    note: Optional[Note],
    target: float,
    strategy: Optional[str] = None,
) -> Dict[str, float]:
    """
    Per-criterion values reproducing a category target.

    Args:
        criteria: Members of one category group
        note: Note holding the current values
        target: Requested category total

    Returns:
        Mapping of criterion id to new value
    """
    return solve_distribution(criteria, note, target, strategy=strategy).values
