"""Objective evaluation for control policies.

This module isolates simulation and scoring from the search operators, so the
genetic driver only ever sees ``policy -> score``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from glideopt.physics.types import PhysicalParameters, SimulationState, Trajectory
from glideopt.policy.genome import ControlPolicy

from .core import ScoringFunction, ScoringMethod, finite_or_worst, resolve_scoring_function

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EvaluationResult:
    """Result for one policy evaluation."""

    score: float
    completed_steps: int


class PolicyEvaluator:
    """Simulate a policy and score the resulting trajectory.

    Instances hold only immutable inputs, so one evaluator can be shared by
    every worker thread of a backend.

    Design notes
    ------------
    1. Non-finite scores are mapped to ``-inf`` so they rank last.
    2. A candidate whose integration reaches zero speed raises inside the
       dynamics; it is rejected with a ``-inf`` score rather than aborting the
       search. Exceptions from the scoring function itself propagate.
    """

    def __init__(
        self,
        scoring: ScoringFunction | ScoringMethod,
        params: PhysicalParameters,
        initial_state: SimulationState,
    ) -> None:
        self.scoring = resolve_scoring_function(scoring)
        self.params = params
        self.initial_state = initial_state

    def simulate(self, policy: ControlPolicy) -> Trajectory:
        return policy.simulate(self.params, self.initial_state)

    def evaluate(self, policy: ControlPolicy) -> EvaluationResult:
        try:
            trajectory = self.simulate(policy)
        except ArithmeticError as exc:
            logger.debug("Rejecting policy after integration failure: %s", exc)
            return EvaluationResult(score=float("-inf"), completed_steps=0)
        score = finite_or_worst(self.scoring(trajectory))
        return EvaluationResult(score=score, completed_steps=len(trajectory) - 1)

    def __call__(self, policy: ControlPolicy) -> float:
        return self.evaluate(policy).score
