import unittest
from dataclasses import replace

import numpy as np

from config import MPCConfig
from models import ReferencePolynomial, tracking_errors
from solvers import (
    InvalidProblemError,
    KinematicMPCSolver,
    MPCEvaluator,
    SolveFailedError,
    SolveStatus,
    status_from_ipopt,
)

# Budget generous enough for slow CI machines; the timeout test shrinks it.
TEST_CONFIG = MPCConfig(N=10, dt=0.1, ref_v=20.0, max_solve_time=10.0)

COEFFS = (1.0, 0.1, 0.01, -0.0005)


def offset_state(coeffs=COEFFS, v=10.0):
    cte, epsi = tracking_errors(ReferencePolynomial(coeffs))
    return np.array([0.0, 0.0, 0.0, v, cte, epsi])


class ValidationTests(unittest.TestCase):
    def test_short_horizon_rejected(self):
        with self.assertRaises(InvalidProblemError):
            KinematicMPCSolver(MPCConfig(N=2))

    def test_zero_lf_rejected(self):
        with self.assertRaises(InvalidProblemError):
            KinematicMPCSolver(MPCConfig(Lf=0.0))

    def test_non_positive_budget_rejected(self):
        with self.assertRaises(InvalidProblemError):
            KinematicMPCSolver(MPCConfig(max_solve_time=0.0))

    def test_invalid_problem_is_a_value_error(self):
        self.assertTrue(issubclass(InvalidProblemError, ValueError))


class SolveTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.solver = KinematicMPCSolver(TEST_CONFIG)
        cls.state = offset_state()
        cls.solution = cls.solver.solve(cls.state, COEFFS)

    def test_solve_succeeds(self):
        self.assertEqual(self.solution.status, SolveStatus.SUCCESS, self.solution.return_status)
        self.assertTrue(np.isfinite(self.solution.objective))
        self.assertEqual(len(self.solution.x), 10 * 6 + 9 * 2)

    def test_actuator_bounds_respected(self):
        controls = self.solution.controls
        self.assertTrue(np.all(np.abs(controls[:, 0]) <= 0.436332))
        self.assertTrue(np.all(np.abs(controls[:, 1]) <= 1.0))

    def test_initial_state_pinned(self):
        np.testing.assert_allclose(self.solution.predicted_states[0], self.state, atol=1e-6)

    def test_dynamics_consistent(self):
        residuals = MPCEvaluator(TEST_CONFIG).residuals(self.solution.x, COEFFS)
        np.testing.assert_allclose(residuals, 0.0, atol=1e-5)

    def test_steers_towards_path(self):
        # Path is to the left (cte > 0): first steering command turns left
        delta, a = self.solution.command
        self.assertGreater(delta, 0.0)
        # Below ref_v: accelerate
        self.assertGreater(a, 0.0)

    def test_trajectory_shape(self):
        self.assertEqual(self.solution.trajectory.shape, (10, 2))
        self.assertAlmostEqual(self.solution.trajectory[0, 0], 0.0, places=6)

    def test_solves_are_independent(self):
        # A failing solve in between must not disturb the next one
        self.solver.solve([np.nan] * 6, COEFFS)
        again = self.solver.solve(self.state, COEFFS)

        self.assertTrue(again.success)
        np.testing.assert_allclose(again.x, self.solution.x, atol=1e-6)

    def test_to_dict_summary(self):
        summary = self.solution.to_dict()
        self.assertEqual(summary['status'], 'success')
        self.assertIn('command', summary)
        self.assertEqual(len(summary['trajectory']['cte']), 10)


class SaturatedCommandTests(unittest.TestCase):
    """Far below ref_v and well off the path, both actuators sit on their limits"""

    def test_saturated_command_stays_inside_box(self):
        config = MPCConfig(max_solve_time=10.0)
        solution = KinematicMPCSolver(config).solve([0.0, 0.0, 0.0, 10.0, 1.0, -0.1], COEFFS)

        self.assertTrue(solution.success, solution.return_status)
        delta, a = solution.command
        self.assertLessEqual(abs(delta), config.delta_max)
        self.assertLessEqual(abs(a), config.a_max)
        controls = solution.controls
        self.assertTrue(np.all(np.abs(controls[:, 0]) <= config.delta_max))
        self.assertTrue(np.all(np.abs(controls[:, 1]) <= config.a_max))

    def test_ipopt_keeps_original_bounds(self):
        self.assertEqual(MPCConfig().ipopt_options()["ipopt.honor_original_bounds"], "yes")


class ZeroCaseTests(unittest.TestCase):
    def test_zero_state_and_path_gives_zero_solution(self):
        solver = KinematicMPCSolver(replace(TEST_CONFIG, ref_v=0.0))
        solution = solver.solve([0.0] * 6, [0.0] * 4)

        self.assertTrue(solution.success, solution.return_status)
        self.assertAlmostEqual(solution.objective, 0.0, places=6)
        np.testing.assert_allclose(solution.x, 0.0, atol=1e-6)


class WeightSensitivityTests(unittest.TestCase):
    def test_higher_tracking_weight_does_not_increase_tracking_error(self):
        state = offset_state(v=15.0)
        low = KinematicMPCSolver(TEST_CONFIG).solve(state, COEFFS)
        high = KinematicMPCSolver(
            replace(TEST_CONFIG, w_cte=10 * TEST_CONFIG.w_cte, w_epsi=10 * TEST_CONFIG.w_epsi)
        ).solve(state, COEFFS)

        self.assertTrue(low.success and high.success)

        def tracking(sol):
            states = sol.predicted_states
            return float(np.sum(states[:, 4]**2) + np.sum(states[:, 5]**2))

        self.assertLessEqual(tracking(high), tracking(low) * (1 + 1e-3) + 1e-9)


class FailureTests(unittest.TestCase):
    def test_tiny_time_budget_reports_timeout(self):
        solver = KinematicMPCSolver(replace(TEST_CONFIG, max_solve_time=1e-6))
        solution = solver.solve(offset_state(v=15.0), COEFFS)

        self.assertFalse(solution.success)
        self.assertEqual(solution.status, SolveStatus.TIMEOUT)
        self.assertEqual(solution.return_status, 'Maximum_WallTime_Exceeded')
        self.assertEqual(len(solution.x), solver.layout.n_vars)

    def test_failed_solve_withholds_command_and_trajectory(self):
        solver = KinematicMPCSolver(replace(TEST_CONFIG, max_solve_time=1e-6))
        solution = solver.solve(offset_state(v=15.0), COEFFS)

        with self.assertRaises(SolveFailedError):
            solution.command
        with self.assertRaises(SolveFailedError):
            solution.trajectory
        # Raw values stay available for inspection
        self.assertEqual(len(solution.raw_command()), 2)
        self.assertNotIn('command', solution.to_dict())

    def test_non_finite_state_is_numerical_error(self):
        solver = KinematicMPCSolver(TEST_CONFIG)
        state = offset_state()
        state[3] = np.nan

        solution = solver.solve(state, COEFFS)

        self.assertEqual(solution.status, SolveStatus.NUMERICAL_ERROR)
        self.assertFalse(solution.success)

    def test_non_finite_coefficients_are_numerical_error(self):
        solver = KinematicMPCSolver(TEST_CONFIG)
        solution = solver.solve(offset_state(), (0.0, np.inf, 0.0, 0.0))
        self.assertEqual(solution.status, SolveStatus.NUMERICAL_ERROR)

    def test_wrong_coefficient_count_rejected(self):
        solver = KinematicMPCSolver(TEST_CONFIG)
        with self.assertRaises(InvalidProblemError):
            solver.solve(offset_state(), (0.0, 1.0, 2.0))
        with self.assertRaises(InvalidProblemError):
            solver.solve(offset_state(), (0.0, 1.0, 2.0, 3.0, 4.0))

    def test_wrong_state_length_rejected(self):
        solver = KinematicMPCSolver(TEST_CONFIG)
        with self.assertRaises(InvalidProblemError):
            solver.solve([0.0] * 5, COEFFS)


class StatusMappingTests(unittest.TestCase):
    def test_ipopt_statuses(self):
        self.assertEqual(status_from_ipopt('Solve_Succeeded'), SolveStatus.SUCCESS)
        self.assertEqual(status_from_ipopt('Maximum_CpuTime_Exceeded'), SolveStatus.TIMEOUT)
        self.assertEqual(status_from_ipopt('Infeasible_Problem_Detected'), SolveStatus.INFEASIBLE)
        self.assertEqual(status_from_ipopt('Invalid_Number_Detected'), SolveStatus.NUMERICAL_ERROR)
        self.assertEqual(status_from_ipopt('Something_New'), SolveStatus.FAILED)

    def test_only_full_success_is_ok(self):
        ok = [status for status in SolveStatus if status.ok]
        self.assertEqual(ok, [SolveStatus.SUCCESS])


if __name__ == "__main__":
    unittest.main()
