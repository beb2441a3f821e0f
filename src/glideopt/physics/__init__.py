"""Glide-flight physics: atmosphere, dynamics and fixed-step integration."""

from .atmosphere import MODEL_CEILING, density, dynamic_pressure, pressure, temperature
from .dynamics import aero_accelerations, compute_derivatives
from .integrator import integrate
from .ode_solvers import rk4
from .types import ConfigurationError, DragPolar, PhysicalParameters, SimulationState, Trajectory

__all__ = [
    "MODEL_CEILING",
    "ConfigurationError",
    "DragPolar",
    "PhysicalParameters",
    "SimulationState",
    "Trajectory",
    "aero_accelerations",
    "compute_derivatives",
    "density",
    "dynamic_pressure",
    "integrate",
    "pressure",
    "rk4",
    "temperature",
]
