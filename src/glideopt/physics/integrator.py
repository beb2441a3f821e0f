"""Fixed-step glide integration of a lift-coefficient schedule."""

from __future__ import annotations

import math
from typing import Sequence

from .dynamics import compute_derivatives
from .ode_solvers import rk4
from .types import PhysicalParameters, SimulationState, Trajectory


def integrate(
    lift_coefficients: Sequence[float],
    params: PhysicalParameters,
    initial_state: SimulationState,
) -> Trajectory:
    """Integrate the glide model along a sampled lift schedule.

    Parameters
    ----------
    lift_coefficients
        Lift coefficient at each sample; consecutive samples are ``params.time_step``
        seconds apart and the coefficient is linear in between.
    params
        Physical parameters (mass, area, drag polar, step, altitude floor).
    initial_state
        State at the first sample. Its coefficients are replaced by the
        schedule's first value.

    Returns
    -------
    Trajectory
        Initial state followed by one state per completed step. The first state
        below ``params.altitude_floor`` is kept and integration stops there.
    """
    cls = [float(cl) for cl in lift_coefficients]
    if not cls:
        raise ValueError("lift_coefficients must not be empty.")
    h = params.time_step
    floor = params.altitude_floor

    current = initial_state.with_coefficients(cls[0], params.drag(cls[0]))
    states = [current]
    if current.y < floor:
        return Trajectory(states)

    for cl0, cl1 in zip(cls, cls[1:]):
        cd0 = params.drag(cl0)
        cd1 = params.drag(cl1)

        def derivatives(y, fraction, cl0=cl0, cl1=cl1, cd0=cd0, cd1=cd1):
            # Midpoint stages use the mean of the interval's end coefficients.
            cl = cl0 + fraction * (cl1 - cl0)
            cd = cd0 + fraction * (cd1 - cd0)
            return compute_derivatives(y, cl, cd, params)

        theta, v, x, y = rk4([current.theta, current.v, current.x, current.y], derivatives, h)
        dx = x - current.x
        dy = y - current.y
        current = SimulationState(
            theta=theta,
            v=v,
            x=x,
            y=y,
            t=current.t + h,
            dist2d=current.dist2d + abs(dx),
            dist3d=current.dist3d + math.hypot(dx, dy),
            lift_coefficient=cl1,
            drag_coefficient=cd1,
        )
        states.append(current)
        if y < floor:
            break

    return Trajectory(states)
