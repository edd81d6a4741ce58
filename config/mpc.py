"""
Kinematic MPC Configuration

Horizon, vehicle geometry, cost weights, actuator limits and IPOPT settings
for the path-tracking MPC. One instance is built at start-up and shared
read-only by every component for the lifetime of the process.
"""

from dataclasses import dataclass, replace
from typing import Dict, Mapping, Optional


@dataclass(frozen=True)
class MPCConfig:
    """Configuration parameters for the kinematic MPC"""

    # ==================== Horizon ====================
    N: int = 10                      # Number of timesteps (N-1 actuations)
    dt: float = 0.1                  # [s] Time per step

    # ==================== Vehicle ====================
    # Distance from the front axle to the CoG. Fixes the turning radius
    # of the simulator vehicle (tuned on a constant steering/velocity run).
    Lf: float = 2.67                 # [m]
    ref_v: float = 40.0              # [m/s] Target cruising speed

    # ==================== Cost Weights ====================
    w_cte: float = 1000.0            # Cross-track error
    w_epsi: float = 1000.0           # Heading error
    w_v: float = 10.0                # Speed error
    w_delta: float = 3.0             # Steering magnitude
    w_a: float = 3.0                 # Acceleration magnitude
    w_delta_rate: float = 1000.0     # Steering rate
    w_a_rate: float = 1.0            # Acceleration rate

    # ==================== Bounds ====================
    delta_max: float = 0.436332      # [rad] 25 deg steering limit
    a_max: float = 1.0               # [-] Normalised throttle/brake
    state_bound: float = 1.0e19      # IPOPT treats >= 1e19 as infinite

    # ==================== Solver ====================
    max_solve_time: float = 0.5      # [s] Wall-clock budget per solve
    max_iter: int = 3000
    tol: float = 1e-8
    print_level: int = 0
    linear_solver: str = "mumps"
    hessian: str = "exact"           # "exact" or "limited-memory"

    @property
    def n_actuations(self) -> int:
        return self.N - 1

    @property
    def delta_max_deg(self) -> float:
        """Steering limit in degrees (for display)"""
        return self.delta_max * 180.0 / 3.141592653589793

    def ipopt_options(self, verbose: bool = False) -> Dict:
        """CasADi nlpsol options for IPOPT"""
        return {
            "ipopt.print_level": self.print_level if not verbose else max(self.print_level, 5),
            "ipopt.max_wall_time": self.max_solve_time,
            "ipopt.max_iter": self.max_iter,
            "ipopt.tol": self.tol,
            "ipopt.linear_solver": self.linear_solver,
            "ipopt.hessian_approximation": self.hessian,
            # Project the final point back into the unrelaxed bounds
            "ipopt.honor_original_bounds": "yes",
            "ipopt.sb": "yes",
            "print_time": 0,
            "error_on_fail": False,
        }


# ==================== Tuning presets ====================

_TUNING_OVERRIDES: Mapping[str, Dict[str, float]] = {
    "default": {},
    # Slower and gentler: longer horizon, heavier actuator penalties
    "smooth": {
        "N": 15,
        "ref_v": 25.0,
        "w_delta": 10.0,
        "w_a": 10.0,
        "w_delta_rate": 2000.0,
        "w_a_rate": 10.0,
    },
    # Faster, reacts harder to tracking error
    "aggressive": {
        "ref_v": 55.0,
        "w_cte": 2000.0,
        "w_epsi": 2000.0,
        "w_delta_rate": 500.0,
    },
}


def get_mpc_config(tuning: str = "default", *, base: Optional[MPCConfig] = None, **overrides) -> MPCConfig:
    """Return an MPCConfig for a named tuning preset.

    The preset only overrides the fields that differ from ``base`` (defaults
    to MPCConfig()); keyword ``overrides`` are applied last.
    """
    cfg = base or MPCConfig()
    try:
        preset = _TUNING_OVERRIDES[tuning]
    except KeyError as e:
        raise ValueError(f"Unknown tuning preset: {tuning}") from e
    return replace(cfg, **{**preset, **overrides})


def available_tunings() -> tuple:
    return tuple(_TUNING_OVERRIDES)
