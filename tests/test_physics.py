"""Tests for the atmosphere, glide dynamics and data types."""

from __future__ import annotations

import math
import unittest

from glideopt.physics import (
    MODEL_CEILING,
    ConfigurationError,
    DragPolar,
    PhysicalParameters,
    SimulationState,
    Trajectory,
    compute_derivatives,
    density,
    dynamic_pressure,
    pressure,
    temperature,
)


class TestAtmosphere(unittest.TestCase):
    def test_sea_level_values(self) -> None:
        self.assertAlmostEqual(temperature(0.0), 288.15)
        self.assertAlmostEqual(density(0.0), 1.225, places=3)

    def test_density_decreases_with_altitude(self) -> None:
        self.assertAlmostEqual(temperature(1000.0), 281.65)
        self.assertLess(density(3000.0), density(1000.0))
        self.assertLess(density(1000.0), density(0.0))

    def test_pressure_above_ceiling_raises(self) -> None:
        self.assertAlmostEqual(MODEL_CEILING, 288.15 / 0.0065)
        self.assertGreater(pressure(MODEL_CEILING - 1.0), 0.0)
        for altitude in (MODEL_CEILING, 45000.0):
            with self.subTest(altitude=altitude), self.assertRaises(ArithmeticError):
                density(altitude)

    def test_dynamic_pressure_scales_with_speed_squared(self) -> None:
        q1 = dynamic_pressure(500.0, 10.0)
        q2 = dynamic_pressure(500.0, 20.0)
        self.assertAlmostEqual(q2 / q1, 4.0)


class TestDynamics(unittest.TestCase):
    def test_kinematics_follow_flight_path(self) -> None:
        params = PhysicalParameters()
        theta = math.radians(-30.0)
        d = compute_derivatives([theta, 40.0, 0.0, 1000.0], 0.3, params.drag(0.3), params)
        self.assertAlmostEqual(d[2], 40.0 * math.cos(theta))
        self.assertAlmostEqual(d[3], 40.0 * math.sin(theta))

    def test_zero_lift_curves_downward(self) -> None:
        params = PhysicalParameters()
        d = compute_derivatives([0.0, 30.0, 0.0, 1000.0], 0.0, params.drag(0.0), params)
        self.assertAlmostEqual(d[0], -9.80665 / 30.0)
        self.assertLess(d[1], 0.0)

    def test_zero_speed_is_not_clamped(self) -> None:
        params = PhysicalParameters()
        with self.assertRaises(ZeroDivisionError):
            compute_derivatives([0.0, 0.0, 0.0, 1000.0], 0.3, params.drag(0.3), params)


class TestDragPolar(unittest.TestCase):
    def test_from_performance(self) -> None:
        polar = DragPolar.from_performance(0.07, 2.5)
        self.assertAlmostEqual(polar.a, 0.16 / 0.28)
        self.assertAlmostEqual(polar.c, 0.07)
        self.assertAlmostEqual(polar.max_lift_drag, 2.5)
        self.assertAlmostEqual(polar.drag(0.3), polar.a * 0.09 + 0.07)

    def test_rejects_non_positive_inputs(self) -> None:
        with self.assertRaises(ConfigurationError):
            DragPolar.from_performance(0.0, 2.5)
        with self.assertRaises(ConfigurationError):
            DragPolar.from_performance(0.05, -1.0)


class TestPhysicalParameters(unittest.TestCase):
    def test_invalid_values_fail_fast(self) -> None:
        for kwargs in (
            {"mass": 0.0},
            {"mass": -5.0},
            {"planform_area": 0.0},
            {"simulation_time": 0.0},
            {"time_step": 0.0},
            {"min_lift": 0.5, "max_lift": 0.5},
            {"min_lift": 0.6, "max_lift": 0.5},
        ):
            with self.subTest(**kwargs), self.assertRaises(ConfigurationError):
                PhysicalParameters(**kwargs)
        for a, c in ((0.5, -0.1), (0.5, 0.0), (-0.1, 0.05), (math.nan, 0.05)):
            with self.subTest(a=a, c=c), self.assertRaises(ConfigurationError):
                PhysicalParameters(polar=DragPolar(a=a, c=c))

    def test_configuration_error_is_value_error(self) -> None:
        self.assertTrue(issubclass(ConfigurationError, ValueError))

    def test_from_mapping_builds_polar(self) -> None:
        params = PhysicalParameters.from_mapping(
            {"mass": 100.0, "min_drag": 0.07, "max_lift_drag": 2.5, "unknown": 1}
        )
        self.assertEqual(params.mass, 100.0)
        self.assertAlmostEqual(params.polar.a, 0.16 / 0.28)
        self.assertEqual(params.planform_area, 2.0)

    def test_initial_state_checks(self) -> None:
        params = PhysicalParameters()
        params.check_initial_state(SimulationState(theta=0.0, v=40.0, y=3000.0))
        for state in (
            SimulationState(theta=0.0, v=40.0, y=45000.0),
            SimulationState(theta=0.0, v=40.0, y=MODEL_CEILING),
            SimulationState(theta=math.nan, v=40.0, y=3000.0),
            SimulationState(theta=0.0, v=math.inf, y=3000.0),
        ):
            with self.subTest(state=state), self.assertRaises(ConfigurationError):
                params.check_initial_state(state)

    def test_zero_induced_drag(self) -> None:
        self.assertEqual(DragPolar(a=0.0, c=0.05).max_lift_drag, math.inf)

    def test_from_mapping_rejects_bad_drag(self) -> None:
        with self.assertRaises(ConfigurationError):
            PhysicalParameters.from_mapping({"min_drag": 0.0})


class TestSimulationState(unittest.TestCase):
    def test_from_velocity(self) -> None:
        s = SimulationState.from_velocity(6.0, 8.0, 10.0, y=1500.0)
        self.assertAlmostEqual(s.v, math.sqrt(200.0))
        self.assertAlmostEqual(s.theta, -math.pi / 4.0)
        self.assertAlmostEqual(s.horizontal_speed, 10.0)
        self.assertAlmostEqual(s.vertical_speed, -10.0)
        self.assertEqual(s.y, 1500.0)
        self.assertEqual(s.dist3d, 0.0)


class TestTrajectory(unittest.TestCase):
    def setUp(self) -> None:
        self.traj = Trajectory(
            [
                SimulationState(theta=0.0, v=10.0, x=0.0, y=100.0, t=0.0),
                SimulationState(theta=0.0, v=20.0, x=10.0, y=80.0, t=1.0),
                SimulationState(theta=0.0, v=30.0, x=30.0, y=40.0, t=2.0),
            ]
        )

    def test_sequence_protocol(self) -> None:
        self.assertEqual(len(self.traj), 3)
        self.assertEqual(self.traj.final.x, 30.0)
        self.assertEqual(len(self.traj[1:]), 2)
        self.assertEqual([s.t for s in self.traj], [0.0, 1.0, 2.0])

    def test_rejects_non_increasing_time(self) -> None:
        s = SimulationState(theta=0.0, v=1.0, t=1.0)
        with self.assertRaises(ValueError):
            Trajectory([s, s])

    def test_interpolate(self) -> None:
        mid = self.traj.interpolate(1.5)
        self.assertAlmostEqual(mid.x, 20.0)
        self.assertAlmostEqual(mid.y, 60.0)
        self.assertAlmostEqual(mid.v, 25.0)
        self.assertEqual(self.traj.interpolate(-1.0).t, 0.0)
        self.assertEqual(self.traj.interpolate(9.0).t, 2.0)

    def test_altitude_crossing(self) -> None:
        crossing = self.traj.altitude_crossing(60.0)
        self.assertIsNotNone(crossing)
        self.assertAlmostEqual(crossing.t, 1.5)
        self.assertAlmostEqual(crossing.x, 20.0)
        self.assertIsNone(self.traj.altitude_crossing(10.0))

    def test_as_arrays(self) -> None:
        cols = self.traj.as_arrays()
        self.assertEqual(cols["y"].tolist(), [100.0, 80.0, 40.0])
        self.assertIn("lift_coefficient", cols)


if __name__ == "__main__":
    unittest.main()
