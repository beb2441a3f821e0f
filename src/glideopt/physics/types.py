"""Core dataclasses and validation utilities for the glide model."""

from __future__ import annotations

import math
from dataclasses import dataclass, fields, replace
from typing import ClassVar, Iterator, Mapping, Sequence, overload

import numpy as np

from .atmosphere import MODEL_CEILING


class ConfigurationError(ValueError):
    """Raised when physical or search parameters cannot produce a valid run."""


def _require_positive(value: float, name: str) -> float:
    value = float(value)
    if not value > 0.0:
        raise ConfigurationError(f"{name} must be positive, got {value}.")
    return value


@dataclass(frozen=True)
class SimulationState:
    """One integration step of the 2D glide model.

    Attributes
    ----------
    theta
        Flight-path angle in radians (positive climbing).
    v
        Speed along the flight path in m/s.
    x
        Horizontal position in meters.
    y
        Altitude in meters.
    t
        Elapsed time in seconds.
    dist2d
        Cumulative horizontal distance in meters.
    dist3d
        Cumulative path length in meters.
    lift_coefficient
        Lift coefficient in force at this step.
    drag_coefficient
        Drag coefficient in force at this step.
    """

    theta: float
    v: float
    x: float = 0.0
    y: float = 0.0
    t: float = 0.0
    dist2d: float = 0.0
    dist3d: float = 0.0
    lift_coefficient: float = 0.0
    drag_coefficient: float = 0.0

    FIELDS: ClassVar[tuple[str, ...]] = (
        "theta",
        "v",
        "x",
        "y",
        "t",
        "dist2d",
        "dist3d",
        "lift_coefficient",
        "drag_coefficient",
    )

    @classmethod
    def from_velocity(
        cls,
        vel_north: float,
        vel_east: float,
        vel_down: float,
        *,
        x: float = 0.0,
        y: float = 0.0,
        t: float = 0.0,
    ) -> "SimulationState":
        """Build an initial state from a 3D velocity vector.

        Parameters
        ----------
        vel_north, vel_east, vel_down
            Velocity components in m/s (NED convention).
        x, y, t
            Initial horizontal position, altitude and time.

        Returns
        -------
        SimulationState
            State with flight-path angle and speed derived from the velocity
            and zeroed distance accumulators.
        """
        horizontal = math.hypot(float(vel_north), float(vel_east))
        return cls(
            theta=math.atan2(-float(vel_down), horizontal),
            v=math.hypot(horizontal, float(vel_down)),
            x=float(x),
            y=float(y),
            t=float(t),
        )

    @property
    def horizontal_speed(self) -> float:
        """Horizontal speed in m/s along +x."""
        return self.v * math.cos(self.theta)

    @property
    def vertical_speed(self) -> float:
        """Vertical speed in m/s, positive climbing."""
        return self.v * math.sin(self.theta)

    def with_coefficients(self, lift_coefficient: float, drag_coefficient: float) -> "SimulationState":
        return replace(self, lift_coefficient=float(lift_coefficient), drag_coefficient=float(drag_coefficient))


def _lerp_state(s1: SimulationState, s2: SimulationState, a: float) -> SimulationState:
    return SimulationState(
        **{name: getattr(s1, name) + a * (getattr(s2, name) - getattr(s1, name)) for name in SimulationState.FIELDS}
    )


class Trajectory(Sequence[SimulationState]):
    """Time-ordered, immutable sequence of simulated states.

    Scoring functions receive one of these per candidate. Besides the sequence
    protocol it offers column access and the interpolation helpers scoring
    windows are usually written with.
    """

    __slots__ = ("_states",)

    def __init__(self, states: Sequence[SimulationState]) -> None:
        self._states = tuple(states)
        for prev, nxt in zip(self._states, self._states[1:]):
            if nxt.t <= prev.t:
                raise ValueError("Trajectory states must be strictly increasing in time.")

    @overload
    def __getitem__(self, index: int) -> SimulationState: ...

    @overload
    def __getitem__(self, index: slice) -> "Trajectory": ...

    def __getitem__(self, index):
        if isinstance(index, slice):
            return Trajectory(self._states[index])
        return self._states[index]

    def __len__(self) -> int:
        return len(self._states)

    def __iter__(self) -> Iterator[SimulationState]:
        return iter(self._states)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Trajectory):
            return NotImplemented
        return self._states == other._states

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        if not self._states:
            return "Trajectory([])"
        return f"Trajectory(n={len(self._states)}, t=[{self._states[0].t:.3g}, {self._states[-1].t:.3g}])"

    @property
    def initial(self) -> SimulationState:
        return self._states[0]

    @property
    def final(self) -> SimulationState:
        return self._states[-1]

    def as_arrays(self) -> dict[str, np.ndarray]:
        """Return one float array per :class:`SimulationState` field."""
        return {
            name: np.asarray([getattr(s, name) for s in self._states], dtype=float)
            for name in SimulationState.FIELDS
        }

    def interpolate(self, t: float) -> SimulationState:
        """Linearly interpolate every state field at time ``t``.

        Times outside the trajectory are clamped to the first/last state.
        """
        if not self._states:
            raise ValueError("Cannot interpolate an empty trajectory.")
        if t <= self._states[0].t:
            return self._states[0]
        if t >= self._states[-1].t:
            return self._states[-1]
        times = [s.t for s in self._states]
        i2 = int(np.searchsorted(times, t, side="right"))
        s1, s2 = self._states[i2 - 1], self._states[i2]
        return _lerp_state(s1, s2, (t - s1.t) / (s2.t - s1.t))

    def altitude_crossing(self, altitude: float) -> SimulationState | None:
        """Return the first interpolated state descending through ``altitude``.

        Returns ``None`` when the trajectory never passes downward through it.
        """
        for s1, s2 in zip(self._states, self._states[1:]):
            if s1.y >= altitude > s2.y:
                return _lerp_state(s1, s2, (s1.y - altitude) / (s1.y - s2.y))
        return None


@dataclass(frozen=True)
class DragPolar:
    """Parabolic drag polar ``CD = a * CL**2 + c``."""

    a: float
    c: float

    def __post_init__(self) -> None:
        if not (math.isfinite(self.a) and math.isfinite(self.c)):
            raise ConfigurationError("Drag polar coefficients must be finite.")
        if self.c <= 0.0:
            raise ConfigurationError(f"Minimum drag c must be positive, got {self.c}.")
        if self.a < 0.0:
            raise ConfigurationError(f"Induced drag factor a must not be negative, got {self.a}.")

    @classmethod
    def from_performance(cls, min_drag: float, max_lift_drag: float) -> "DragPolar":
        """Derive polar coefficients from minimum drag and best glide ratio.

        The polar's tangent through the origin has slope ``1 / max_lift_drag``
        so ``a = m**2 / (4 * min_drag)``.
        """
        min_drag = _require_positive(min_drag, "min_drag")
        max_lift_drag = _require_positive(max_lift_drag, "max_lift_drag")
        m = 1.0 / max_lift_drag
        return cls(a=m * m / (4.0 * min_drag), c=min_drag)

    def drag(self, lift_coefficient: float) -> float:
        return self.a * lift_coefficient * lift_coefficient + self.c

    @property
    def max_lift_drag(self) -> float:
        if self.a == 0.0:
            return math.inf
        return 1.0 / (2.0 * math.sqrt(self.a * self.c))


@dataclass(frozen=True)
class PhysicalParameters:
    """Physical constants, lift bounds and integration settings.

    Notes
    -----
    Defaults correspond to a typical wingsuit pilot. All fields are validated
    on construction so invalid setups fail before any search work starts.
    """

    mass: float = 70.0
    planform_area: float = 2.0
    polar: DragPolar = DragPolar.from_performance(0.05, 3.0)
    min_lift: float = 0.0
    max_lift: float = 0.5
    simulation_time: float = 120.0
    time_step: float = 0.25
    altitude_floor: float = -math.inf

    def __post_init__(self) -> None:
        _require_positive(self.mass, "mass")
        _require_positive(self.planform_area, "planform_area")
        _require_positive(self.simulation_time, "simulation_time")
        _require_positive(self.time_step, "time_step")
        if not isinstance(self.polar, DragPolar):
            raise ConfigurationError("polar must be a DragPolar instance.")
        if not float(self.min_lift) < float(self.max_lift):
            raise ConfigurationError(
                f"min_lift must be below max_lift, got [{self.min_lift}, {self.max_lift}]."
            )
        if math.isnan(float(self.altitude_floor)):
            raise ConfigurationError("altitude_floor must not be NaN.")

    @classmethod
    def from_mapping(cls, values: Mapping[str, object] | None) -> "PhysicalParameters":
        """Construct parameters from a partially specified mapping.

        ``min_drag`` and ``max_lift_drag`` keys are accepted in place of an
        explicit ``polar``. Unknown keys are ignored.
        """
        if values is None:
            return cls()
        values = dict(values)
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in values.items() if k in known}
        if "polar" not in kwargs and ("min_drag" in values or "max_lift_drag" in values):
            kwargs["polar"] = DragPolar.from_performance(
                float(values.get("min_drag", 0.05)),  # type: ignore[arg-type]
                float(values.get("max_lift_drag", 3.0)),  # type: ignore[arg-type]
            )
        return cls(**kwargs)

    def drag(self, lift_coefficient: float) -> float:
        return self.polar.drag(lift_coefficient)

    def check_initial_state(self, state: SimulationState) -> None:
        """Raise :class:`ConfigurationError` if ``state`` cannot start a simulation."""
        for name in ("theta", "v", "x", "y"):
            if not math.isfinite(getattr(state, name)):
                raise ConfigurationError(f"Initial {name} must be finite, got {getattr(state, name)}.")
        if state.y >= MODEL_CEILING:
            raise ConfigurationError(
                f"Initial altitude {state.y} m is at or above the atmosphere model ceiling ({MODEL_CEILING:.0f} m)."
            )
