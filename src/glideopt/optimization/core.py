"""Core abstractions shared by the genetic search and its evaluators.

These types stay small. The search evaluates tens of thousands of candidates,
so validation happens once at construction boundaries.
"""

from __future__ import annotations

import math
import threading
from dataclasses import dataclass
from typing import Any, Callable, Protocol, runtime_checkable

from deap import base, tools

from glideopt.physics.types import ConfigurationError, Trajectory
from glideopt.policy.genome import ControlPolicy


@runtime_checkable
class ScoringMethod(Protocol):
    """Object form of the scoring contract: higher scores are better."""

    def score(self, trajectory: Trajectory) -> float: ...


ScoringFunction = Callable[[Trajectory], float]


def resolve_scoring_function(scoring: ScoringFunction | ScoringMethod) -> ScoringFunction:
    """Return a plain callable for either form of the scoring contract."""
    if isinstance(scoring, ScoringMethod):
        return scoring.score
    if callable(scoring):
        return scoring
    raise TypeError(f"scoring must be callable or expose score(trajectory), got {type(scoring).__name__}.")


class ScoreFitness(base.Fitness):
    """Single-objective maximizing fitness."""

    weights = (1.0,)


class Individual:
    """A scored control policy.

    The score is held in a DEAP fitness so ``tools.selBest`` and
    ``tools.Statistics`` operate on populations directly.
    """

    __slots__ = ("policy", "fitness")

    def __init__(self, policy: ControlPolicy, score: float) -> None:
        self.policy = policy
        self.fitness = ScoreFitness((float(score),))

    @property
    def score(self) -> float:
        return float(self.fitness.values[0])

    def __repr__(self) -> str:
        return f"Individual(score={self.score:.6g}, policy={self.policy!r})"


def individual_score(individual: Individual) -> float:
    return individual.score


def sort_population(population: list[Individual]) -> list[Individual]:
    """Return ``population`` ordered by descending score (stable)."""
    return tools.selBest(population, k=len(population))


class CancellationToken:
    """Cooperative, thread-safe cancellation flag."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def __bool__(self) -> bool:
        return self._event.is_set()


@dataclass(frozen=True)
class ProgressEvent:
    """Discrete progress notification.

    ``completed`` counts produced individuals against the scheduled ``total``;
    both it and ``best_score`` are non-decreasing within one run.
    """

    completed: int
    total: int
    best_score: float
    level: int
    generation: int

    @property
    def fraction(self) -> float:
        if self.total <= 0:
            return 1.0
        return min(1.0, self.completed / self.total)


ProgressCallback = Callable[[ProgressEvent], None]


@dataclass(frozen=True)
class LevelSchedule:
    """Level-of-detail schedule derived from the step and horizon.

    ``max_level`` is the smallest ``L`` with ``time_step * 2**L >= horizon``;
    the search refines from ``coarse_level`` to ``fine_level``.
    """

    max_level: int
    coarse_level: int
    fine_level: int

    @classmethod
    def from_horizon(
        cls,
        time_step: float,
        horizon: float,
        *,
        coarse_offset: int = 4,
        fine_offset: int = 2,
    ) -> "LevelSchedule":
        if not (time_step > 0.0 and horizon > 0.0):
            raise ConfigurationError("time_step and horizon must be positive.")
        k_lim = 0
        while time_step * (1 << k_lim) < horizon:
            k_lim += 1
        schedule = cls(max_level=k_lim, coarse_level=k_lim - coarse_offset, fine_level=k_lim - fine_offset)
        if schedule.coarse_level < 0:
            raise ConfigurationError(
                f"Horizon {horizon} s at step {time_step} s gives {1 << k_lim} steps; "
                f"at least {1 << coarse_offset} are needed for the coarsest level."
            )
        if schedule.fine_level < schedule.coarse_level:
            raise ConfigurationError("fine level must not be coarser than the coarse level.")
        return schedule

    @property
    def genome_length(self) -> int:
        return (1 << self.max_level) + 1

    @property
    def levels(self) -> range:
        return range(self.coarse_level, self.fine_level + 1)


@dataclass(frozen=True)
class OptimizationResult:
    """Optimization result bundle."""

    best_policy: ControlPolicy
    best_score: float
    trajectory: Trajectory
    logbook: tools.Logbook
    evaluations: int
    cancelled: bool = False

    @property
    def history(self) -> list[dict[str, Any]]:
        return [dict(record) for record in self.logbook]


def finite_or_worst(score: float) -> float:
    """Map NaN and +/-inf onto ``-inf`` so broken candidates never win."""
    score = float(score)
    if math.isnan(score) or score == math.inf:
        return -math.inf
    return score
