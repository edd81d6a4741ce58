import dataclasses
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest.mock import patch

from typer.testing import CliRunner

from config import MPCConfig, available_tunings, get_mpc_config
from config.app_config import AppConfig, app
from solvers import InvalidProblemError, validate_config


class MPCConfigTests(unittest.TestCase):
    def test_defaults(self):
        cfg = MPCConfig()
        self.assertEqual(cfg.N, 10)
        self.assertEqual(cfg.n_actuations, 9)
        self.assertAlmostEqual(cfg.delta_max_deg, 25.0, places=3)

    def test_frozen(self):
        cfg = MPCConfig()
        with self.assertRaises(dataclasses.FrozenInstanceError):
            cfg.N = 20

    def test_presets(self):
        self.assertEqual(set(available_tunings()), {"default", "smooth", "aggressive"})
        self.assertEqual(get_mpc_config("default"), MPCConfig())
        smooth = get_mpc_config("smooth")
        self.assertEqual(smooth.N, 15)
        self.assertGreater(smooth.w_delta, MPCConfig().w_delta)

    def test_overrides_win_over_preset(self):
        cfg = get_mpc_config("smooth", N=8, ref_v=12.0)
        self.assertEqual(cfg.N, 8)
        self.assertEqual(cfg.ref_v, 12.0)
        self.assertEqual(cfg.w_delta, get_mpc_config("smooth").w_delta)

    def test_unknown_preset(self):
        with self.assertRaises(ValueError):
            get_mpc_config("sporty")

    def test_ipopt_options_carry_time_budget(self):
        opts = MPCConfig(max_solve_time=0.25).ipopt_options()
        self.assertEqual(opts["ipopt.max_wall_time"], 0.25)
        self.assertFalse(opts["error_on_fail"])
        self.assertEqual(opts["ipopt.print_level"], 0)
        self.assertEqual(MPCConfig().ipopt_options(verbose=True)["ipopt.print_level"], 5)

    def test_validate_config(self):
        validate_config(MPCConfig())
        for bad in (
            MPCConfig(N=2),
            MPCConfig(Lf=0.0),
            MPCConfig(dt=0.0),
            MPCConfig(max_solve_time=0.0),
            MPCConfig(delta_max=0.0),
            MPCConfig(hessian="bfgs"),
        ):
            with self.assertRaises(InvalidProblemError):
                validate_config(bad)


class CLITests(unittest.TestCase):
    def setUp(self):
        self.runner = CliRunner()

    def test_defaults_reach_main(self):
        with patch("main.main") as run_main:
            result = self.runner.invoke(app, ["--no-plot"])

        self.assertEqual(result.exit_code, 0, result.output)
        args = run_main.call_args.args[0]
        self.assertIsInstance(args, AppConfig)
        self.assertFalse(args.plot)
        self.assertEqual(args.tuning, "default")

    def test_yaml_defaults_and_cli_override(self):
        with TemporaryDirectory() as tmp:
            path = Path(tmp) / "run.yaml"
            path.write_text("tuning: smooth\nn_steps: 50\nref_v: 15.0\n")
            with patch("main.main") as run_main:
                result = self.runner.invoke(app, ["--config", str(path), "--n-steps", "5"])

        self.assertEqual(result.exit_code, 0, result.output)
        args = run_main.call_args.args[0]
        self.assertEqual(args.tuning, "smooth")
        self.assertEqual(args.ref_v, 15.0)
        self.assertEqual(args.n_steps, 5)

    def test_simulator_follows_verbose_flag(self):
        import main

        class _Stop(Exception):
            pass

        with TemporaryDirectory() as tmp, \
                patch.object(main, "ClosedLoopSimulator", side_effect=_Stop) as simulator:
            with self.assertRaises(_Stop):
                main.main(AppConfig(results_dir=tmp, verbose=False, plot=False))

        self.assertFalse(simulator.call_args.kwargs["verbose"])


if __name__ == "__main__":
    unittest.main()
