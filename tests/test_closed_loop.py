import unittest

import numpy as np

from config import MPCConfig
from controllers import KinematicMPCController, PathTrackingController
from models import KinematicBicycleModel, ReferencePath
from simulation import ClosedLoopSimulator


class _ProportionalController(PathTrackingController):
    """Fast deterministic stand-in for the MPC"""

    def __init__(self, config: MPCConfig, fail_every: int = 0):
        self.config = config
        self.fail_every = fail_every
        self.calls = []

    def solve_step(self, state, coeffs):
        self.calls.append((np.array(state), np.array(coeffs)))
        _, _, _, v, cte, epsi = state
        delta = float(np.clip(0.3 * cte - 1.0 * epsi, -self.config.delta_max, self.config.delta_max))
        a = float(np.clip(0.5 * (self.config.ref_v - v), -1.0, 1.0))
        failed = self.fail_every and len(self.calls) % self.fail_every == 0
        if failed:
            return np.array([0.0, -1.0]), {'success': False, 'status': 'timeout', 'trajectory': None}
        trajectory = np.column_stack([np.linspace(0, 10, self.config.N), np.zeros(self.config.N)])
        return np.array([delta, a]), {'success': True, 'status': 'success', 'trajectory': trajectory}


class ClosedLoopTests(unittest.TestCase):
    def setUp(self):
        self.config = MPCConfig(N=5, ref_v=10.0)
        self.path = ReferencePath(np.arange(0.0, 200.0, 5.0), np.zeros(40))

    def test_vehicle_frame_inputs(self):
        controller = _ProportionalController(self.config)
        sim = ClosedLoopSimulator(controller, self.path, sim_dt=0.1)

        sim.simulate(np.array([0.0, 2.0, 0.0, 5.0]), n_steps=1)

        state, coeffs = controller.calls[0]
        np.testing.assert_allclose(state[:3], 0.0)
        self.assertAlmostEqual(state[3], 5.0)
        # Path is 2m to the right of the vehicle
        self.assertAlmostEqual(state[4], -2.0, places=6)
        self.assertAlmostEqual(state[5], 0.0, places=6)
        self.assertEqual(coeffs.shape, (4,))

    def test_history_shapes_and_completion(self):
        controller = _ProportionalController(self.config)
        sim = ClosedLoopSimulator(controller, self.path, sim_dt=0.2)

        result = sim.simulate(np.array([0.0, 1.0, 0.0, 10.0]), n_steps=500)

        self.assertTrue(result.completed)
        self.assertEqual(result.states.shape, (result.n_cycles + 1, 4))
        self.assertEqual(result.commands.shape, (result.n_cycles, 2))
        self.assertEqual(len(result.cte), result.n_cycles)
        self.assertEqual(len(result.predicted_paths), result.n_cycles)
        self.assertLess(abs(result.cte[-1]), abs(result.cte[0]))

    def test_failures_are_recorded(self):
        controller = _ProportionalController(self.config, fail_every=3)
        sim = ClosedLoopSimulator(controller, self.path)

        result = sim.simulate(np.array([0.0, 0.0, 0.0, 8.0]), n_steps=9)

        self.assertEqual(result.n_cycles, 9)
        self.assertEqual(int(np.sum(~result.solve_success)), 3)
        self.assertIsNone(result.predicted_paths[2])
        self.assertAlmostEqual(result.success_rate, 6 / 9)

    def test_plant_uses_kinematic_step(self):
        controller = _ProportionalController(self.config)
        sim = ClosedLoopSimulator(controller, self.path, sim_dt=0.2)

        result = sim.simulate(np.array([0.0, 1.0, 0.1, 6.0]), n_steps=2)

        model = KinematicBicycleModel(self.config)
        for k in range(2):
            full = np.concatenate([result.states[k], [0.0, 0.0]])
            expected = model.step(full, result.commands[k], (0.0, 0.0, 0.0, 0.0), dt=0.2)[:4]
            np.testing.assert_allclose(result.states[k + 1], expected)

    def test_speed_never_negative(self):
        controller = _ProportionalController(self.config, fail_every=1)
        sim = ClosedLoopSimulator(controller, self.path, sim_dt=0.5)

        result = sim.simulate(np.array([0.0, 0.0, 0.0, 1.0]), n_steps=10)

        self.assertTrue(np.all(result.states[:, 3] >= 0.0))

    def test_rejects_bad_initial_state(self):
        sim = ClosedLoopSimulator(_ProportionalController(self.config), self.path)
        with self.assertRaises(ValueError):
            sim.simulate(np.zeros(6))


class ClosedLoopMPCTests(unittest.TestCase):
    def test_mpc_pulls_vehicle_onto_path(self):
        config = MPCConfig(N=10, dt=0.1, ref_v=10.0, max_solve_time=10.0)
        controller = KinematicMPCController(config)
        path = ReferencePath.sine_road(length=300.0, amplitude=3.0, wavelength=150.0)
        sim = ClosedLoopSimulator(controller, path, sim_dt=0.1)

        result = sim.simulate(np.array([0.0, 1.5, 0.0, 8.0]), n_steps=40)

        self.assertGreaterEqual(result.success_rate, 0.9)
        stats = controller.get_statistics()
        self.assertEqual(stats['solve_count'] + stats['fail_count'], result.n_cycles)
        self.assertLess(abs(result.cte[-1]), abs(result.cte[0]))
        self.assertTrue(np.all(np.abs(result.commands[:, 0]) <= config.delta_max + 1e-7))


if __name__ == "__main__":
    unittest.main()
