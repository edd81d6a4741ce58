"""
Kinematic MPC NLP Solver

One receding-horizon solve per control cycle:

    state + reference cubic
        -> seed / variable bounds / constraint bounds
        -> IPOPT (CasADi nlpsol, exact derivatives from SX)
        -> MPCSolution (status, objective, full decision vector)

The NLP is built symbolically once per configuration with the cubic
coefficients as parameters, so each cycle only re-runs IPOPT. Nothing else is
carried between calls.
"""

import time

import casadi as ca
import numpy as np

from config import MPCConfig
from models import CASADI_OPS, ReferencePolynomial, VehicleState
from solvers.base import (
    BaseSolver,
    InvalidProblemError,
    MPCSolution,
    SolveStatus,
    status_from_ipopt,
)
from solvers.encoding import constraint_bounds, initial_guess, variable_bounds
from solvers.evaluator import MPCEvaluator


class KinematicMPCSolver(BaseSolver):
    """
    Tracks a cubic reference with the kinematic bicycle model over N steps.
    The wall-clock budget is enforced by IPOPT (max_wall_time); a solve that
    runs out of time, diverges or hits non-finite numbers comes back with a
    non-success status instead of raising.
    """

    def __init__(self, config: MPCConfig = None, verbose: bool = False):
        super().__init__(config or MPCConfig(), verbose)
        self.evaluator = MPCEvaluator(self.config, self.layout)
        self.lbx, self.ubx = variable_bounds(self.config, self.layout)
        self._build_nlp()

    @property
    def name(self) -> str:
        return "KinematicMPC"

    def _build_nlp(self):
        """Build the CasADi problem and IPOPT instance"""
        X = ca.SX.sym('X', self.layout.n_vars)
        C = ca.SX.sym('coeffs', 4)

        cost, g = self.evaluator(X, [C[i] for i in range(4)], CASADI_OPS)

        nlp = {'x': X, 'f': cost, 'g': g, 'p': C}
        self.solver = ca.nlpsol('kinematic_mpc', 'ipopt', nlp, self.config.ipopt_options(self.verbose))

        self._log(f"NLP ready: {self.layout.n_vars} variables, "
                  f"{self.layout.n_constraints} constraints (N={self.config.N}, dt={self.config.dt})")

    def solve(self, state, coeffs) -> MPCSolution:
        """
        Solve one MPC step.

        Args:
            state: VehicleState or [x, y, psi, v, cte, epsi]
            coeffs: ReferencePolynomial or 4 cubic coefficients, constant first

        Returns:
            MPCSolution; read `command` / `trajectory` only when `success`

        Raises:
            InvalidProblemError: malformed state or coefficients
        """
        try:
            state = VehicleState.from_sequence(state)
            poly = ReferencePolynomial.from_sequence(coeffs)
        except (TypeError, ValueError) as e:
            raise InvalidProblemError(str(e)) from e

        x0 = initial_guess(state, self.layout)
        lbg, ubg = constraint_bounds(state, self.layout)
        p = poly.as_array()

        if not (state.is_finite() and np.all(np.isfinite(p))):
            self._log("⚠ Non-finite state or coefficients, skipping solve")
            return self._failed(SolveStatus.NUMERICAL_ERROR, 'Non_Finite_Input', x0)

        start_time = time.time()
        try:
            res = self.solver(x0=x0, p=p, lbx=self.lbx, ubx=self.ubx, lbg=lbg, ubg=ubg)
        except RuntimeError as e:
            # Evaluation errors surface as exceptions from CasADi
            self._log(f"❌ Solver raised: {e}")
            return self._failed(SolveStatus.NUMERICAL_ERROR, 'Evaluation_Error', x0,
                                time.time() - start_time)
        solve_time = time.time() - start_time

        stats = self.solver.stats()
        return_status = stats.get('return_status', 'unknown')
        status = status_from_ipopt(return_status)

        x = np.asarray(res['x'].full()).flatten()
        objective = float(res['f'])

        if status.ok and not (np.isfinite(objective) and np.all(np.isfinite(x))):
            status = SolveStatus.NUMERICAL_ERROR

        solution = MPCSolution(
            status=status,
            return_status=return_status,
            objective=objective,
            x=x,
            layout=self.layout,
            solve_time=solve_time,
            iterations=int(stats.get('iter_count', 0)),
        )

        if solution.success:
            delta, a = solution.command
            self._log(f"✓ Cost {objective:.4f} in {solve_time * 1000:.1f}ms "
                      f"(delta={delta:+.4f}, a={a:+.3f})")
        else:
            self._log(f"⚠ {status.value} ({return_status}) after {solve_time * 1000:.1f}ms")

        return solution

    def _failed(self, status: SolveStatus, return_status: str, x: np.ndarray,
                solve_time: float = 0.0) -> MPCSolution:
        return MPCSolution(
            status=status,
            return_status=return_status,
            objective=float('nan'),
            x=x,
            layout=self.layout,
            solve_time=solve_time,
        )
