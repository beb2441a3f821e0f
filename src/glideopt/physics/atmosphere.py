"""Troposphere model used by the glide dynamics.

Standard-atmosphere pressure and temperature with a constant lapse rate. Valid
below the tropopause, which covers every altitude a glide trajectory reaches.
"""

from __future__ import annotations

# Sea level conditions
SL_PRESSURE = 101325.0  # Pressure [Pa]
SL_TEMP = 288.15  # Temperature [K]
LAPSE_RATE = 0.0065  # Temperature lapse rate [K/m]

# Physical constants
A_GRAVITY = 9.80665  # Standard gravity [m/s^2]
MM_AIR = 0.0289644  # Molar mass of dry air [kg/mol]
GAS_CONST = 8.31447  # Universal gas constant [J/(mol·K)]

# Altitude where the lapse-rate temperature reaches absolute zero
MODEL_CEILING = SL_TEMP / LAPSE_RATE  # [m]

_PRESSURE_EXPONENT = A_GRAVITY * MM_AIR / (GAS_CONST * LAPSE_RATE)


def temperature(altitude: float) -> float:
    """Air temperature in K at ``altitude`` meters."""
    return SL_TEMP - LAPSE_RATE * altitude


def pressure(altitude: float) -> float:
    """Static pressure in Pa at ``altitude`` meters.

    Raises ``FloatingPointError`` at or above :data:`MODEL_CEILING`, where the
    troposphere model has no real solution.
    """
    if altitude >= MODEL_CEILING:
        raise FloatingPointError(f"Altitude {altitude} m is above the atmosphere model ceiling.")
    return SL_PRESSURE * (1.0 - LAPSE_RATE * altitude / SL_TEMP) ** _PRESSURE_EXPONENT


def density(altitude: float) -> float:
    """Air density in kg/m^3 at ``altitude`` meters."""
    return pressure(altitude) / (GAS_CONST / MM_AIR * temperature(altitude))


def dynamic_pressure(altitude: float, speed: float) -> float:
    """Dynamic pressure in Pa for ``speed`` m/s at ``altitude`` meters."""
    return 0.5 * density(altitude) * speed * speed
