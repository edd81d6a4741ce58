import numpy as np
import matplotlib.pyplot as plt
from typing import Optional

from .plot_config import DEFAULT_COLORS, apply_plot_style, get_steering_bounds_deg


def plot_closed_loop(result, path, mpc_config=None, title: str = "Kinematic MPC",
                     prediction_every: int = 10, save_path: Optional[str] = None):
    """Path, errors and commands of a closed-loop run"""
    apply_plot_style()
    fig, axes = plt.subplots(2, 2, figsize=(14, 9))

    # --- Plot 1: Path layout with predicted horizons ---
    ax = axes[0, 0]
    ax.plot(path.xs, path.ys, '--', color=DEFAULT_COLORS['path_reference'], label='Reference')
    ax.plot(result.states[:, 0], result.states[:, 1], color=DEFAULT_COLORS['path_driven'], label='Driven')
    labelled = False
    for i, pred in enumerate(result.predicted_paths):
        if pred is None or i % prediction_every:
            continue
        ax.plot(pred[:, 0], pred[:, 1], color=DEFAULT_COLORS['prediction'], alpha=0.6,
                linewidth=1.2, label=None if labelled else 'MPC prediction')
        labelled = True
    failed = ~result.solve_success
    if np.any(failed):
        ax.scatter(result.states[:-1][failed, 0], result.states[:-1][failed, 1],
                   color=DEFAULT_COLORS['failure'], s=12, zorder=3, label='Failed solve')
    ax.set_xlabel('X (m)')
    ax.set_ylabel('Y (m)')
    ax.set_title('Path')
    ax.set_aspect('equal', adjustable='datalim')
    ax.legend()

    t = result.times[:-1]

    # --- Plot 2: Tracking errors ---
    ax = axes[0, 1]
    ax.plot(t, result.cte, color=DEFAULT_COLORS['cte'], label='cte (m)')
    ax.plot(t, np.degrees(result.epsi), color=DEFAULT_COLORS['epsi'], label='epsi (deg)')
    ax.axhline(y=0, color='k', linestyle='-', alpha=0.3)
    ax.set_xlabel('Time (s)')
    ax.set_title('Tracking Errors')
    ax.legend()

    # --- Plot 3: Steering ---
    ax = axes[1, 0]
    ax.plot(t, np.degrees(result.commands[:, 0]), color=DEFAULT_COLORS['steering'])
    lo, hi = get_steering_bounds_deg(mpc_config)
    ax.axhline(y=lo, color=DEFAULT_COLORS['constraint'], linestyle='--', alpha=0.5)
    ax.axhline(y=hi, color=DEFAULT_COLORS['constraint'], linestyle='--', alpha=0.5, label='Limit')
    ax.set_xlabel('Time (s)')
    ax.set_ylabel('Steering (deg)')
    ax.set_title('Steering Command')
    ax.legend()

    # --- Plot 4: Speed and throttle/brake ---
    ax = axes[1, 1]
    accel = result.commands[:, 1]
    ax.fill_between(t, 0, accel, where=(accel > 0), alpha=0.3, color=DEFAULT_COLORS['accel'], label='Throttle')
    ax.fill_between(t, 0, accel, where=(accel < 0), alpha=0.3, color=DEFAULT_COLORS['brake'], label='Brake')
    ax.set_xlabel('Time (s)')
    ax.set_ylabel('Throttle / brake (-)')
    ax.set_ylim([-1.1, 1.1])
    ax2 = ax.twinx()
    ax2.plot(result.times, result.states[:, 3], color=DEFAULT_COLORS['path_driven'], label='Speed')
    if mpc_config is not None:
        ax2.axhline(y=mpc_config.ref_v, color=DEFAULT_COLORS['path_driven'], linestyle=':', alpha=0.6)
    ax2.set_ylabel('Speed (m/s)')
    ax2.grid(False)
    ax.set_title('Longitudinal')
    ax.legend(loc='lower right')

    plt.suptitle(title, fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        print(f"Closed-loop plot saved to {save_path}")

    return fig


def plot_prediction(solution, poly=None, title: str = "MPC Prediction"):
    """Predicted horizon of one successful solve, in the vehicle frame"""
    apply_plot_style()
    states = solution.predicted_states
    controls = solution.controls

    fig, axes = plt.subplots(1, 2, figsize=(12, 4.5))

    ax = axes[0]
    if poly is not None:
        xs = np.linspace(min(0.0, states[:, 0].min()), max(states[:, 0].max(), 1.0), 100)
        ax.plot(xs, poly(xs), '--', color=DEFAULT_COLORS['path_reference'], label='Reference cubic')
    ax.plot(states[:, 0], states[:, 1], 'o-', color=DEFAULT_COLORS['prediction'], label='Predicted')
    ax.set_xlabel('x (m)')
    ax.set_ylabel('y (m)')
    ax.set_title('Predicted Path')
    ax.legend()

    ax = axes[1]
    steps = np.arange(len(controls))
    ax.step(steps, np.degrees(controls[:, 0]), where='post', color=DEFAULT_COLORS['steering'], label='delta (deg)')
    ax.step(steps, controls[:, 1], where='post', color=DEFAULT_COLORS['accel'], label='a (-)')
    ax.set_xlabel('Step')
    ax.set_title('Planned Actuation')
    ax.legend()

    plt.suptitle(title, fontsize=13, fontweight='bold')
    plt.tight_layout()
    return fig
