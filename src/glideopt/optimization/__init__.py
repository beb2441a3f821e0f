"""Genetic trajectory optimization APIs."""

from .core import (
    CancellationToken,
    Individual,
    LevelSchedule,
    OptimizationResult,
    ProgressEvent,
    ScoreFitness,
    ScoringFunction,
    ScoringMethod,
    resolve_scoring_function,
    sort_population,
)
from .evaluator import EvaluationResult, PolicyEvaluator
from .genetic import GeneticOptimizer, OptimizationTask, OptimizerConfig, optimize, select_tournament
from .parallel import EvaluationBackend, ProcessPoolBackend, SequentialBackend, ThreadPoolBackend, make_backend

__all__ = [
    "CancellationToken",
    "EvaluationBackend",
    "EvaluationResult",
    "GeneticOptimizer",
    "Individual",
    "LevelSchedule",
    "OptimizationResult",
    "OptimizationTask",
    "OptimizerConfig",
    "PolicyEvaluator",
    "ProcessPoolBackend",
    "ProgressEvent",
    "ScoreFitness",
    "ScoringFunction",
    "ScoringMethod",
    "SequentialBackend",
    "ThreadPoolBackend",
    "make_backend",
    "optimize",
    "resolve_scoring_function",
    "select_tournament",
    "sort_population",
]
