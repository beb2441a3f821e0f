"""Evolvable lift-coefficient schedules.

A :class:`ControlPolicy` stores ``2**L + 1`` lift coefficients sampled on the
integration grid. Genetic operators address it at a coarser level ``k`` through
``2**k`` equal segments whose ends are the level-``k`` breakpoints, so the same
genome can be searched coarse-to-fine without changing its storage.

Policies are immutable values: every operator returns a new instance.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from glideopt.physics.integrator import integrate
from glideopt.physics.types import PhysicalParameters, SimulationState, Trajectory


def _is_power_of_two(n: int) -> bool:
    return n > 0 and (n & (n - 1)) == 0


def _freeze(values: np.ndarray) -> np.ndarray:
    values.flags.writeable = False
    return values


class ControlPolicy:
    """Piecewise-linear lift-coefficient schedule with genetic operators.

    Parameters
    ----------
    values
        Lift coefficients. Length minus one must be a power of two.
    """

    __slots__ = ("_values",)

    def __init__(self, values: Sequence[float] | np.ndarray) -> None:
        arr = np.array(values, dtype=float).reshape(-1)
        if not _is_power_of_two(arr.size - 1):
            raise ValueError(f"Policy length must be 2**L + 1, got {arr.size}.")
        self._values = _freeze(arr)

    # Construction

    @classmethod
    def random(
        cls,
        length: int,
        level: int,
        min_lift: float,
        max_lift: float,
        rng: np.random.Generator,
    ) -> "ControlPolicy":
        """Draw a policy that is linear between random level-``k`` breakpoints.

        Parameters
        ----------
        length
            Genome length ``2**L + 1``.
        level
            Resolution ``k <= L`` of the random breakpoints.
        min_lift, max_lift
            Uniform sampling bounds for each breakpoint.
        rng
            Random source.
        """
        part = _segment_size(int(length) - 1, level)
        parts = 1 << level
        breakpoints = rng.uniform(min_lift, max_lift, size=parts + 1)
        values = np.interp(np.arange(length), np.arange(parts + 1) * part, breakpoints)
        return cls(values)

    @classmethod
    def constant(cls, length: int, value: float) -> "ControlPolicy":
        return cls(np.full(int(length), float(value)))

    @classmethod
    def crossover(
        cls,
        parent_a: "ControlPolicy",
        parent_b: "ControlPolicy",
        level: int,
        rng: np.random.Generator,
    ) -> "ControlPolicy":
        """Splice two parents at a random level-``k`` segment.

        The child copies ``parent_a`` up to the pivot segment, ramps linearly
        from ``parent_a`` at the segment start to ``parent_b`` at its end, and
        copies ``parent_b`` from there on.
        """
        if len(parent_a) != len(parent_b):
            raise ValueError(f"Parents must have equal length, got {len(parent_a)} and {len(parent_b)}.")
        a = parent_a.values
        b = parent_b.values
        part = _segment_size(a.size - 1, level)
        pivot = int(rng.integers(1 << level))
        j1 = pivot * part
        j2 = j1 + part
        ramp = a[j1] + np.arange(part) / part * (b[j2] - a[j1])
        return cls(np.concatenate((a[:j1], ramp, b[j2:])))

    # Variation

    def mutate(
        self,
        level: int,
        min_level: int,
        min_lift: float,
        max_lift: float,
        rng: np.random.Generator,
    ) -> "ControlPolicy":
        """Return a copy with one level-``k`` breakpoint perturbed.

        The perturbation bound halves with every level above ``min_level``, so
        coarse levels make large moves and fine levels small ones. The offset
        tapers linearly to zero across both neighbouring segments and every
        touched sample is clamped to ``[min_lift, max_lift]``.
        Every breakpoint, the last one included, can be chosen.
        """
        if level < min_level:
            raise ValueError(f"level ({level}) must not be below min_level ({min_level}).")
        values = self._values.copy()
        part = _segment_size(values.size - 1, level)
        center = int(rng.integers((1 << level) + 1)) * part
        cl = values[center]

        bound = abs(max_lift) / (1 << (level - min_level))
        lo = max(min_lift - cl, -bound)
        hi = min(max_lift - cl, bound)
        r = rng.uniform(min(lo, hi), max(lo, hi))

        idx = np.arange(max(0, center - part + 1), min(values.size, center + part))
        weight = 1.0 - np.abs(idx - center) / part
        values[idx] = np.clip(values[idx] + r * weight, min_lift, max_lift)
        return ControlPolicy(values)

    def truncate(self, level: int) -> "ControlPolicy":
        """Drop the first level-``k`` segment and hold the final value."""
        part = _segment_size(self._values.size - 1, level)
        tail = np.full(part, self._values[-1])
        return ControlPolicy(np.concatenate((self._values[part:], tail)))

    # Evaluation

    def simulate(self, params: PhysicalParameters, initial_state: SimulationState) -> Trajectory:
        """Integrate this schedule from ``initial_state``."""
        return integrate(self._values, params, initial_state)

    # Value protocol

    @property
    def values(self) -> np.ndarray:
        """Read-only view of the lift coefficients."""
        return self._values

    @property
    def max_level(self) -> int:
        """Finest addressable level ``L``."""
        return int(self._values.size - 1).bit_length() - 1

    def segment_size(self, level: int) -> int:
        return _segment_size(self._values.size - 1, level)

    def __len__(self) -> int:
        return int(self._values.size)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ControlPolicy):
            return NotImplemented
        return bool(np.array_equal(self._values, other._values))

    __hash__ = None  # type: ignore[assignment]

    def __copy__(self) -> "ControlPolicy":
        return self

    def __deepcopy__(self, memo: dict) -> "ControlPolicy":
        return self

    def __reduce__(self):
        return (ControlPolicy, (self._values,))

    def __repr__(self) -> str:
        return f"ControlPolicy(n={self._values.size}, range=[{self._values.min():.3g}, {self._values.max():.3g}])"


def _segment_size(intervals: int, level: int) -> int:
    if level < 0 or (1 << level) > intervals:
        raise ValueError(f"level must be in [0, log2({intervals})], got {level}.")
    return intervals >> level
