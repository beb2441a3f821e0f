"""Pure point-mass glide dynamics."""

from __future__ import annotations

import math

from .atmosphere import A_GRAVITY, dynamic_pressure
from .types import PhysicalParameters


def aero_accelerations(
    altitude: float,
    speed: float,
    lift_coefficient: float,
    drag_coefficient: float,
    planform_area: float,
    mass: float,
) -> tuple[float, float]:
    """Return ``(lift_accel, drag_accel)`` in m/s^2."""
    k = dynamic_pressure(altitude, speed) * planform_area / mass
    return k * lift_coefficient, k * drag_coefficient


def compute_derivatives(
    state: list[float],
    lift_coefficient: float,
    drag_coefficient: float,
    params: PhysicalParameters,
) -> list[float]:
    """Compute glide state derivatives.

    Parameters
    ----------
    state
        ``[theta, v, x, y]``.
    lift_coefficient, drag_coefficient
        Aerodynamic coefficients applied over the evaluation.
    params
        Mass and planform area source.

    Returns
    -------
    list[float]
        ``[dtheta_dt, dv_dt, dx_dt, dy_dt]``.

    Notes
    -----
    ``v`` is not guarded. A speed of exactly zero raises
    ``ZeroDivisionError``; a negative speed gives a non-physical turn rate.
    """
    theta, v, _, y = state
    lift_accel, drag_accel = aero_accelerations(
        y, v, lift_coefficient, drag_coefficient, params.planform_area, params.mass
    )
    cos_theta = math.cos(theta)
    sin_theta = math.sin(theta)
    return [
        (lift_accel - A_GRAVITY * cos_theta) / v,
        -drag_accel - A_GRAVITY * sin_theta,
        v * cos_theta,
        v * sin_theta,
    ]
