"""Tests for control-policy genetic operators."""

from __future__ import annotations

import copy
import math
import pickle
import unittest

import numpy as np

from glideopt.physics import PhysicalParameters, SimulationState
from glideopt.policy import ControlPolicy

MIN_LIFT = 0.0
MAX_LIFT = 0.5


class TestConstruction(unittest.TestCase):
    def test_rejects_bad_length(self) -> None:
        for n in (0, 1, 4, 10, 18):
            with self.subTest(n=n), self.assertRaises(ValueError):
                ControlPolicy(np.zeros(n))

    def test_values_are_read_only(self) -> None:
        policy = ControlPolicy.constant(9, 0.2)
        with self.assertRaises(ValueError):
            policy.values[0] = 1.0

    def test_levels(self) -> None:
        policy = ControlPolicy.constant(65, 0.2)
        self.assertEqual(policy.max_level, 6)
        self.assertEqual(policy.segment_size(0), 64)
        self.assertEqual(policy.segment_size(6), 1)
        with self.assertRaises(ValueError):
            policy.segment_size(7)
        with self.assertRaises(ValueError):
            policy.segment_size(-1)

    def test_random_is_linear_between_breakpoints(self) -> None:
        rng = np.random.default_rng(3)
        policy = ControlPolicy.random(65, 2, MIN_LIFT, MAX_LIFT, rng)
        self.assertEqual(len(policy), 65)
        self.assertTrue(np.all(policy.values >= MIN_LIFT))
        self.assertTrue(np.all(policy.values <= MAX_LIFT))
        second_diff = np.diff(policy.values, 2)
        # Kinks are only allowed at the interior breakpoints (16, 32, 48).
        for i, d in enumerate(second_diff, start=1):
            if i % 16:
                self.assertAlmostEqual(d, 0.0, places=12)

    def test_copy_and_pickle_keep_value(self) -> None:
        policy = ControlPolicy.random(17, 1, MIN_LIFT, MAX_LIFT, np.random.default_rng(0))
        self.assertIs(copy.deepcopy(policy), policy)
        restored = pickle.loads(pickle.dumps(policy))
        self.assertEqual(restored, policy)
        self.assertFalse(restored.values.flags.writeable)


class TestOperators(unittest.TestCase):
    def setUp(self) -> None:
        self.rng = np.random.default_rng(12345)

    def _random(self, length: int, level: int) -> ControlPolicy:
        return ControlPolicy.random(length, level, MIN_LIFT, MAX_LIFT, self.rng)

    def test_crossover_and_mutate_preserve_length(self) -> None:
        for big_l in range(1, 9):
            n = (1 << big_l) + 1
            for k in range(big_l + 1):
                with self.subTest(n=n, k=k):
                    a = self._random(n, 0)
                    b = self._random(n, k)
                    child = ControlPolicy.crossover(a, b, k, self.rng)
                    self.assertEqual(len(child), n)
                    mutated = child.mutate(k, 0, MIN_LIFT, MAX_LIFT, self.rng)
                    self.assertEqual(len(mutated), n)

    def test_mutate_stays_in_bounds(self) -> None:
        policy = self._random(65, 0)
        for trial in range(500):
            k = trial % 7
            policy = policy.mutate(k, 0, MIN_LIFT, MAX_LIFT, self.rng)
            self.assertGreaterEqual(policy.values.min(), MIN_LIFT)
            self.assertLessEqual(policy.values.max(), MAX_LIFT)

    def test_mutate_is_local(self) -> None:
        policy = ControlPolicy.constant(65, 0.25)
        for _ in range(50):
            mutated = policy.mutate(3, 1, MIN_LIFT, MAX_LIFT, self.rng)
            changed = np.flatnonzero(mutated.values != policy.values)
            if changed.size == 0:
                continue
            # One breakpoint and at most its two neighbouring segments.
            self.assertLess(changed.max() - changed.min(), 2 * 8)
            # Perturbation bound halves twice from level 1 to level 3.
            self.assertLessEqual(np.abs(mutated.values - 0.25).max(), MAX_LIFT / 4 + 1e-12)

    def test_mutate_reaches_both_end_samples(self) -> None:
        policy = ControlPolicy.constant(17, 0.25)
        first_changed = last_changed = False
        for _ in range(200):
            mutated = policy.mutate(0, 0, MIN_LIFT, MAX_LIFT, self.rng)
            changed = mutated.values != policy.values
            # At level 0 the taper around one end never reaches the other.
            self.assertFalse(changed[0] and changed[-1])
            first_changed |= bool(changed[0])
            last_changed |= bool(changed[-1])
        self.assertTrue(first_changed)
        self.assertTrue(last_changed)

    def test_mutate_does_not_modify_original(self) -> None:
        policy = ControlPolicy.constant(17, 0.25)
        policy.mutate(2, 0, MIN_LIFT, MAX_LIFT, self.rng)
        self.assertTrue(np.all(policy.values == 0.25))

    def test_mutate_rejects_level_below_min(self) -> None:
        with self.assertRaises(ValueError):
            ControlPolicy.constant(17, 0.25).mutate(1, 2, MIN_LIFT, MAX_LIFT, self.rng)

    def test_crossover_blends_through_pivot(self) -> None:
        a = ControlPolicy.constant(33, 0.1)
        b = ControlPolicy.constant(33, 0.4)
        for _ in range(20):
            child = ControlPolicy.crossover(a, b, 2, self.rng)
            values = child.values
            self.assertAlmostEqual(values[0], 0.1)
            self.assertAlmostEqual(values[-1], 0.4)
            self.assertTrue(np.all(np.diff(values) >= -1e-12))
            ramp = np.flatnonzero((values > 0.1 + 1e-12) & (values < 0.4 - 1e-12))
            self.assertEqual(ramp.size, 7)

    def test_crossover_requires_equal_lengths(self) -> None:
        with self.assertRaises(ValueError):
            ControlPolicy.crossover(self._random(17, 0), self._random(33, 0), 1, self.rng)

    def test_truncate_holds_final_value(self) -> None:
        policy = self._random(33, 3)
        truncated = policy.truncate(2)
        self.assertEqual(len(truncated), 33)
        np.testing.assert_array_equal(truncated.values[:25], policy.values[8:])
        np.testing.assert_array_equal(truncated.values[25:], np.full(8, policy.values[-1]))


class TestSimulate(unittest.TestCase):
    def test_simulate_is_pure(self) -> None:
        params = PhysicalParameters(simulation_time=4.0)
        initial = SimulationState(theta=math.radians(-10.0), v=40.0, y=2000.0)
        policy = ControlPolicy.random(17, 2, MIN_LIFT, MAX_LIFT, np.random.default_rng(1))
        first = policy.simulate(params, initial)
        second = policy.simulate(params, initial)
        self.assertEqual(first, second)
        self.assertEqual(len(first), 17)
        np.testing.assert_allclose(first.as_arrays()["lift_coefficient"], policy.values)


if __name__ == "__main__":
    unittest.main()
