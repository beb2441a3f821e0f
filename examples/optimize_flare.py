"""Example: optimize a lift schedule for horizontal distance in an altitude window.

The score is the horizontal distance covered between the top and bottom of the
window, the way competition performance tasks are judged. Candidates that never
reach the bottom of the window within the horizon are scored by how far down
they got.
"""

from __future__ import annotations

import argparse
import logging
import math

from glideopt.optimization import GeneticOptimizer, OptimizerConfig, ProgressEvent
from glideopt.physics import PhysicalParameters, SimulationState, Trajectory


def window_distance_score(top: float, bottom: float):
    def score(trajectory: Trajectory) -> float:
        entry = trajectory.altitude_crossing(top)
        exit_ = trajectory.altitude_crossing(bottom)
        if entry is None:
            return -math.inf
        if exit_ is None:
            # Still inside the window at the end of the horizon.
            return -(trajectory.final.y - bottom)
        return exit_.x - entry.x

    return score


def main(
    *,
    altitude: float,
    speed: float,
    dive_deg: float,
    horizon: float,
    generations: int,
    n_jobs: int,
    seed: int | None,
) -> None:
    params = PhysicalParameters(simulation_time=horizon)
    initial = SimulationState(theta=math.radians(-dive_deg), v=speed, x=0.0, y=altitude)
    config = OptimizerConfig(generations_per_level=generations, n_jobs=n_jobs, seed=seed)

    def on_progress(event: ProgressEvent) -> None:
        print(
            f"[{event.fraction:6.1%}] level {event.level} gen {event.generation:4d} "
            f"best {event.best_score:10.2f} m"
        )

    scoring = window_distance_score(top=altitude - 500.0, bottom=altitude - 1500.0)
    result = GeneticOptimizer(config).optimize(scoring, params, initial, progress=on_progress)

    print("Optimization completed." if not result.cancelled else "Optimization cancelled.")
    print(f"Evaluations: {result.evaluations}")
    print(f"Best window distance: {result.best_score:.2f} m")
    print(f"Final state: t={result.trajectory.final.t:.2f}s x={result.trajectory.final.x:.1f}m "
          f"y={result.trajectory.final.y:.1f}m v={result.trajectory.final.v:.1f}m/s")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    parser = argparse.ArgumentParser(description="Optimize a glide lift schedule for window distance.")
    parser.add_argument("--altitude", type=float, default=3000.0, help="Initial altitude [m].")
    parser.add_argument("--speed", type=float, default=50.0, help="Initial airspeed [m/s].")
    parser.add_argument("--dive-deg", type=float, default=45.0, help="Initial dive angle [deg].")
    parser.add_argument("--horizon", type=float, default=60.0, help="Simulated time [s].")
    parser.add_argument("--generations", type=int, default=50, help="Generations per level.")
    parser.add_argument("--n-jobs", type=int, default=1, help="Evaluation workers; 0 uses all CPUs but one.")
    parser.add_argument("--seed", type=int, default=None)
    args = parser.parse_args()
    main(
        altitude=args.altitude,
        speed=args.speed,
        dive_deg=args.dive_deg,
        horizon=args.horizon,
        generations=args.generations,
        n_jobs=args.n_jobs,
        seed=args.seed,
    )
