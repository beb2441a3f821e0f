"""Multi-resolution genetic search over lift-coefficient schedules.

The search starts with smooth policies addressed through a few coarse
breakpoints and refines level by level, so early generations make large
structural changes and later generations make small local ones. DEAP supplies
the fitness, toolbox, statistics and hall-of-fame plumbing; the variation
operators are the level-aware ones on :class:`ControlPolicy`.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, fields
from typing import Mapping, Sequence

import numpy as np
from deap import base, tools

from glideopt.physics.types import ConfigurationError, PhysicalParameters, SimulationState, Trajectory
from glideopt.policy.genome import ControlPolicy

from .core import (
    CancellationToken,
    Individual,
    LevelSchedule,
    OptimizationResult,
    ProgressCallback,
    ProgressEvent,
    ScoringFunction,
    ScoringMethod,
    individual_score,
    sort_population,
)
from .evaluator import PolicyEvaluator
from .parallel import BACKENDS, EvaluationBackend, make_backend

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OptimizerConfig:
    """Genetic search configuration.

    Defaults reproduce the reference search: 100 individuals, 10 elites, 10
    fresh random policies per generation at the coarsest level, 250
    generations per level, tournaments of 5, mutation on every offspring and
    truncation on one in ten.
    """

    population_size: int = 100
    elite_count: int = 10
    new_random_count: int = 10
    generations_per_level: int = 250
    tournament_size: int = 5
    mutation_probability: float = 1.0
    truncation_probability: float = 0.1
    coarse_level_offset: int = 4
    fine_level_offset: int = 2
    n_jobs: int = 1
    backend: str = "thread"
    seed: int | None = None

    def __post_init__(self) -> None:
        if self.population_size < 1:
            raise ConfigurationError("population_size must be at least 1.")
        if not 0 <= self.elite_count < self.population_size:
            raise ConfigurationError("elite_count must be in [0, population_size).")
        if self.new_random_count < 0:
            raise ConfigurationError("new_random_count must not be negative.")
        if self.generations_per_level < 0:
            raise ConfigurationError("generations_per_level must not be negative.")
        if self.tournament_size < 1:
            raise ConfigurationError("tournament_size must be at least 1.")
        for name in ("mutation_probability", "truncation_probability"):
            p = getattr(self, name)
            if not 0.0 <= p <= 1.0:
                raise ConfigurationError(f"{name} must be in [0, 1], got {p}.")
        if self.fine_level_offset < 0 or self.coarse_level_offset < self.fine_level_offset:
            raise ConfigurationError("Level offsets must satisfy 0 <= fine_level_offset <= coarse_level_offset.")
        if self.n_jobs < 0:
            raise ConfigurationError("n_jobs must not be negative.")
        if self.backend.strip().lower() not in BACKENDS:
            raise ConfigurationError(f"backend must be one of {BACKENDS}, got '{self.backend}'.")

    @classmethod
    def from_mapping(cls, values: Mapping[str, object] | None) -> "OptimizerConfig":
        """Build a configuration from a partial mapping. Unknown keys are ignored."""
        if values is None:
            return cls()
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in values.items() if k in known})

    def schedule_for(self, params: PhysicalParameters) -> LevelSchedule:
        return LevelSchedule.from_horizon(
            params.time_step,
            params.simulation_time,
            coarse_offset=self.coarse_level_offset,
            fine_offset=self.fine_level_offset,
        )

    def total_work(self, schedule: LevelSchedule) -> int:
        """Number of individuals produced by an uninterrupted run."""
        return self.population_size * (1 + len(schedule.levels) * self.generations_per_level)


def select_tournament(
    population: Sequence[Individual],
    tournament_size: int,
    rng: np.random.Generator,
) -> Individual:
    """Return the best of ``tournament_size`` uniformly drawn individuals.

    Draws are with replacement; ties keep the earliest draw. DEAP's
    ``selTournament`` draws from the global ``random`` module, so the same rule
    is written here against an explicit generator.
    """
    if not population:
        raise ValueError("Cannot select from an empty population.")
    picks = rng.integers(len(population), size=tournament_size)
    best = population[int(picks[0])]
    for j in picks[1:]:
        candidate = population[int(j)]
        if candidate.fitness > best.fitness:
            best = candidate
    return best


class GeneticOptimizer:
    """Search driver for control policies.

    Parameters
    ----------
    config
        Search configuration; defaults to :class:`OptimizerConfig`.
    """

    def __init__(self, config: OptimizerConfig | None = None) -> None:
        self.config = OptimizerConfig() if config is None else config

    def _build_toolbox(
        self,
        schedule: LevelSchedule,
        params: PhysicalParameters,
        rng: np.random.Generator,
    ) -> base.Toolbox:
        toolbox = base.Toolbox()
        toolbox.register(
            "random_policy",
            ControlPolicy.random,
            schedule.genome_length,
            schedule.coarse_level,
            params.min_lift,
            params.max_lift,
            rng,
        )
        toolbox.register("mate", ControlPolicy.crossover, rng=rng)
        toolbox.register(
            "mutate",
            ControlPolicy.mutate,
            min_level=schedule.coarse_level,
            min_lift=params.min_lift,
            max_lift=params.max_lift,
            rng=rng,
        )
        toolbox.register("truncate", ControlPolicy.truncate)
        toolbox.register("select", select_tournament, tournament_size=self.config.tournament_size, rng=rng)
        return toolbox

    @staticmethod
    def _build_statistics() -> tools.Statistics:
        stats = tools.Statistics(key=individual_score)
        stats.register("max", np.max)
        stats.register("avg", np.mean)
        stats.register("min", np.min)
        return stats

    def optimize(
        self,
        scoring: ScoringFunction | ScoringMethod,
        params: PhysicalParameters,
        initial_state: SimulationState,
        *,
        rng: np.random.Generator | int | None = None,
        progress: ProgressCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> OptimizationResult:
        """Search for the lift schedule that maximizes ``scoring``.

        Parameters
        ----------
        scoring
            ``score(trajectory) -> float`` callable or object with a ``score``
            method. Higher is better.
        params
            Physical parameters, fixed for the whole run.
        initial_state
            State the simulation of every candidate starts from.
        rng
            Random generator or seed. Falls back to ``config.seed``.
        progress
            Called after the initial population, after every generation and
            once at the end.
        cancel
            Cooperative cancellation token. A cancelled run still returns the
            best individual evaluated so far.

        Returns
        -------
        OptimizationResult
            Best policy, its score and re-simulated trajectory, per-generation
            statistics and the evaluation count.

        Raises
        ------
        ConfigurationError
            If the horizon is too short for the configured level schedule, or
            the initial state is non-finite or above the atmosphere model ceiling.
        """
        cfg = self.config
        schedule = cfg.schedule_for(params)
        params.check_initial_state(initial_state)
        rng = np.random.default_rng(cfg.seed if rng is None else rng)
        cancel = CancellationToken() if cancel is None else cancel
        evaluator = PolicyEvaluator(scoring, params, initial_state)
        toolbox = self._build_toolbox(schedule, params, rng)
        stats = self._build_statistics()

        logbook = tools.Logbook()
        logbook.header = ("level", "gen", "nevals", "max", "avg", "min")
        hall_of_fame = tools.HallOfFame(1)

        total = cfg.total_work(schedule)
        logger.info(
            "Optimizing %d-sample policies over levels %d..%d (%d individuals scheduled).",
            schedule.genome_length,
            schedule.coarse_level,
            schedule.fine_level,
            total,
        )

        def report(completed: int, level: int, generation: int) -> None:
            if progress is not None:
                progress(
                    ProgressEvent(
                        completed=completed,
                        total=total,
                        best_score=hall_of_fame[0].score,
                        level=level,
                        generation=generation,
                    )
                )

        with make_backend(cfg.backend, cfg.n_jobs) as backend:
            # The first individual is always evaluated so a result exists even
            # when cancellation was requested before the call.
            first = toolbox.random_policy()
            population = [Individual(first, evaluator(first))]
            policies = self._produce(toolbox.random_policy, cfg.population_size - 1, cancel)
            population += self._evaluate(backend, evaluator, policies, cancel)
            hall_of_fame.update(population)
            evaluations = len(population)
            completed = len(population)
            self._record(logbook, stats, population, schedule.coarse_level, 0, len(population))
            report(completed, schedule.coarse_level, 0)

            generation = 0
            level = schedule.coarse_level
            for level in schedule.levels:
                if cancel.cancelled:
                    break
                for _ in range(cfg.generations_per_level):
                    if cancel.cancelled:
                        break
                    generation += 1
                    population = sort_population(population)

                    # Elitism
                    next_gen: list[Individual] = []
                    for elite in population[: cfg.elite_count]:
                        if cancel.cancelled:
                            break
                        next_gen.append(elite)

                    fresh: list[ControlPolicy] = []
                    if level == schedule.coarse_level:
                        room = cfg.population_size - len(next_gen)
                        fresh += self._produce(toolbox.random_policy, min(cfg.new_random_count, room), cancel)
                    room = cfg.population_size - len(next_gen) - len(fresh)
                    fresh += self._produce(lambda: self._breed(toolbox, population, level, rng), room, cancel)

                    offspring = self._evaluate(backend, evaluator, fresh, cancel)
                    hall_of_fame.update(offspring)
                    evaluations += len(offspring)
                    completed += len(next_gen) + len(offspring)

                    if len(next_gen) + len(offspring) < cfg.population_size:
                        # Interrupted mid-generation: keep every evaluated
                        # candidate for the final selection.
                        population = population + offspring
                        break

                    population = next_gen + offspring
                    self._record(logbook, stats, population, level, generation, len(offspring))
                    logger.debug(
                        "Level %d generation %d: best %.6g", level, generation, logbook[-1]["max"]
                    )
                    report(completed, level, generation)
                else:
                    logger.info("Level %d complete, best score %.6g.", level, hall_of_fame[0].score)

        cancelled = cancel.cancelled and completed < total
        if cancelled:
            logger.info("Optimization cancelled after %d evaluations.", evaluations)

        population = sort_population(population)
        best = population[0]
        if hall_of_fame[0].fitness > best.fitness:
            best = hall_of_fame[0]
        try:
            trajectory = evaluator.simulate(best.policy)
        except ArithmeticError as exc:
            # Only reachable when no candidate could be integrated.
            logger.warning("Best policy could not be re-simulated: %s", exc)
            cl0 = float(best.policy.values[0])
            trajectory = Trajectory([initial_state.with_coefficients(cl0, params.drag(cl0))])
        report(completed, level, generation)
        logger.info("Best score %.6g after %d evaluations.", best.score, evaluations)

        return OptimizationResult(
            best_policy=best.policy,
            best_score=best.score,
            trajectory=trajectory,
            logbook=logbook,
            evaluations=evaluations,
            cancelled=cancelled,
        )

    def submit(
        self,
        scoring: ScoringFunction | ScoringMethod,
        params: PhysicalParameters,
        initial_state: SimulationState,
        *,
        rng: np.random.Generator | int | None = None,
        progress: ProgressCallback | None = None,
    ) -> "OptimizationTask":
        """Run :meth:`optimize` on a background thread.

        Configuration is validated before the task starts, so setup errors
        raise here rather than from :meth:`OptimizationTask.result`.
        """
        self.config.schedule_for(params)
        params.check_initial_state(initial_state)
        token = CancellationToken()
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="glideopt")
        future = executor.submit(
            self.optimize, scoring, params, initial_state, rng=rng, progress=progress, cancel=token
        )
        executor.shutdown(wait=False)
        return OptimizationTask(future, token)

    def _breed(
        self,
        toolbox: base.Toolbox,
        population: Sequence[Individual],
        level: int,
        rng: np.random.Generator,
    ) -> ControlPolicy:
        parent_a = toolbox.select(population)
        parent_b = toolbox.select(population)
        child = toolbox.mate(parent_a.policy, parent_b.policy, level)
        if rng.random() < self.config.truncation_probability:
            child = toolbox.truncate(child, level)
        if rng.random() < self.config.mutation_probability:
            child = toolbox.mutate(child, level)
        return child

    @staticmethod
    def _produce(factory, count: int, cancel: CancellationToken) -> list[ControlPolicy]:
        produced: list[ControlPolicy] = []
        for _ in range(max(0, count)):
            if cancel.cancelled:
                break
            produced.append(factory())
        return produced

    @staticmethod
    def _evaluate(
        backend: EvaluationBackend,
        evaluator: PolicyEvaluator,
        policies: list[ControlPolicy],
        cancel: CancellationToken,
    ) -> list[Individual]:
        scores = backend.map(evaluator, policies, cancel=cancel)
        return [Individual(p, s) for p, s in zip(policies, scores) if s is not None]

    @staticmethod
    def _record(
        logbook: tools.Logbook,
        stats: tools.Statistics,
        population: list[Individual],
        level: int,
        generation: int,
        nevals: int,
    ) -> None:
        logbook.record(level=level, gen=generation, nevals=nevals, **stats.compile(population))


class OptimizationTask:
    """Handle for an optimization running in the background."""

    def __init__(self, future: Future, token: CancellationToken) -> None:
        self._future = future
        self.token = token

    def cancel(self) -> None:
        """Request cancellation; :meth:`result` still returns the best so far."""
        self.token.cancel()

    def done(self) -> bool:
        return self._future.done()

    def result(self, timeout: float | None = None) -> OptimizationResult:
        return self._future.result(timeout=timeout)


def optimize(
    scoring: ScoringFunction | ScoringMethod,
    params: PhysicalParameters,
    initial_state: SimulationState,
    *,
    config: OptimizerConfig | None = None,
    rng: np.random.Generator | int | None = None,
    progress: ProgressCallback | None = None,
    cancel: CancellationToken | None = None,
) -> OptimizationResult:
    """Convenience wrapper around :meth:`GeneticOptimizer.optimize`."""
    return GeneticOptimizer(config).optimize(
        scoring, params, initial_state, rng=rng, progress=progress, cancel=cancel
    )
