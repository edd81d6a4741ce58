import sys
import numpy as np
import matplotlib.pyplot as plt
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from config import get_mpc_config
from controllers import KinematicMPCController
from models import ReferencePath
from simulation import ClosedLoopSimulator
from utils import RunManager, export_results
from visualization import plot_closed_loop, plot_prediction


def build_mpc_config(args):
    """Tuning preset plus any explicit CLI overrides"""
    overrides = {
        'N': args.horizon,
        'dt': args.dt,
        'ref_v': args.ref_v,
        'max_solve_time': args.max_solve_time,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    return get_mpc_config(args.tuning, hessian=args.hessian, **overrides)


def main(args):
    """Main execution function."""

    print("="*70)
    print("  KINEMATIC MPC PATH TRACKING")
    print("="*70)

    run_manager = RunManager(args.name, base_dir=args.results_dir)

    # =========================================================================
    print("\n" + "="*70)
    print("CONFIGURATION")
    print("="*70)

    mpc_config = build_mpc_config(args)

    print(f"\nTuning: {args.tuning}")
    print(f"Horizon: N={mpc_config.N}, dt={mpc_config.dt}s "
          f"({mpc_config.N * mpc_config.dt:.1f}s look-ahead)")
    print(f"Target speed: {mpc_config.ref_v} m/s, Lf={mpc_config.Lf} m")
    print(f"Limits: |delta| <= {mpc_config.delta_max_deg:.1f} deg, |a| <= {mpc_config.a_max}")
    print(f"Solver budget: {mpc_config.max_solve_time * 1000:.0f} ms ({mpc_config.hessian} Hessian)")

    # =========================================================================
    print("\n" + "="*70)
    print("LOAD REFERENCE PATH")
    print("="*70)

    if args.waypoints:
        print(f"   Loading waypoints: {args.waypoints}")
        path = ReferencePath.from_csv(args.waypoints)
    else:
        print(f"   Generating sine road: amplitude {args.road_amplitude}m, "
              f"wavelength {args.road_wavelength}m, length {args.road_length}m")
        path = ReferencePath.sine_road(
            length=args.road_length,
            amplitude=args.road_amplitude,
            wavelength=args.road_wavelength,
        )
    print(f"   Path loaded: {len(path)} waypoints")

    # =========================================================================
    print("\n" + "="*70)
    print("CLOSED-LOOP SIMULATION")
    print("="*70)

    controller = KinematicMPCController(mpc_config, fallback=args.fallback, verbose=args.verbose)
    print("   ✓ MPC controller ready")

    simulator = ClosedLoopSimulator(
        controller,
        path,
        sim_dt=args.sim_dt,
        lookahead=args.lookahead,
        verbose=args.verbose,
    )

    x0 = path.xs[0]
    y0 = path.ys[0] + args.initial_y
    initial_state = np.array([x0, y0, args.initial_psi, args.initial_v])

    result = simulator.simulate(initial_state, n_steps=args.n_steps)
    result.print_summary(title=f"{args.name} ({args.tuning})")

    stats = controller.get_statistics()
    print(f"   Controller: {stats['solve_count']} solved, {stats['fail_count']} failed "
          f"({stats['success_rate']:.1f}% success)")

    # =========================================================================
    print("\n" + "="*70)
    print("SAVE RESULTS")
    print("="*70)

    run_manager.save_json(export_results(result, mpc_config, args, stats), "results")
    run_manager.save_history(result)

    summary = result.summary()
    run_manager.save_summary(
        f"Run: {args.name}\n"
        f"Tuning: {args.tuning}\n"
        f"Cycles: {summary['cycles']} (completed={summary['completed']})\n"
        f"Solve success: {summary['success_rate']*100:.1f}%\n"
        f"Mean |cte|: {summary['mean_abs_cte']:.3f} m\n"
        f"Max |cte|: {summary['max_abs_cte']:.3f} m\n"
        f"Avg solve time: {summary['avg_solve_time']*1000:.1f} ms\n"
    )

    if args.plot:
        print("\n   Generating plots...")
        fig = plot_closed_loop(result, path, mpc_config, title=f"Kinematic MPC - {args.name}")
        run_manager.save_plot(fig, "closed_loop")
        plt.close(fig)

        last = controller.last_solution
        if last is not None and last.success:
            fig = plot_prediction(last, title="Final MPC Prediction")
            run_manager.save_plot(fig, "final_prediction")
            plt.close(fig)

        print("\n✓ All plots saved!")

    print("\n" + "="*70)
    print("  COMPLETE")
    print("="*70)
    print(f"\n📁 All results saved to: {run_manager.run_dir}")

    return result, run_manager


if __name__ == "__main__":
    from config.app_config import app

    app()
