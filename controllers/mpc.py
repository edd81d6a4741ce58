"""
Receding-horizon controller around the kinematic MPC solver.

The solver only reports what happened; this is where a failed cycle is turned
into something the vehicle can act on:

    'hold'  - repeat the last successfully applied command
    'brake' - zero steering, full brake (a = -a_max)
"""
import time
from typing import Dict, Optional, Tuple

import numpy as np

from config import MPCConfig
from controllers.base import PathTrackingController
from solvers import KinematicMPCSolver, MPCSolution

FALLBACK_POLICIES = ('hold', 'brake')


class KinematicMPCController(PathTrackingController):
    """
    Runs one MPC solve per control cycle and returns the first actuation.

    Key features:
    - Only the first step of each plan is applied
    - Explicit fallback command when the solve does not succeed
    - Solve statistics for the run
    """

    def __init__(self,
                 config: Optional[MPCConfig] = None,
                 fallback: str = 'brake',
                 verbose: bool = False):
        if fallback not in FALLBACK_POLICIES:
            raise ValueError(f"fallback must be one of {FALLBACK_POLICIES}, got '{fallback}'")

        self.solver = KinematicMPCSolver(config, verbose=verbose)
        self.config = self.solver.config
        self.fallback = fallback
        self.verbose = verbose

        # Last command that came from a successful solve
        self._last_command = np.zeros(2)

        # Performance tracking
        self.solve_count = 0
        self.fail_count = 0
        self.total_solve_time = 0.0

        self.last_solution: Optional[MPCSolution] = None

    def reset(self):
        self._last_command = np.zeros(2)
        self.solve_count = 0
        self.fail_count = 0
        self.total_solve_time = 0.0
        self.last_solution = None

    def solve_step(self, state: np.ndarray, coeffs: np.ndarray) -> Tuple[np.ndarray, Dict]:
        """
        Solve one MPC iteration.

        Args:
            state: [x, y, psi, v, cte, epsi] in the frame of the polynomial
            coeffs: cubic reference coefficients, constant first

        Returns:
            control: [delta, a]
            info: Solve information dictionary
        """
        start_time = time.time()
        solution = self.solver.solve(state, coeffs)
        self.last_solution = solution

        if solution.success:
            control = np.array(solution.command)
            self._last_command = control
            self.solve_count += 1
            info = {
                'success': True,
                'status': solution.status.value,
                'objective': solution.objective,
                'trajectory': solution.trajectory,
                'fallback': False,
            }
        else:
            control = self._fallback_control()
            self.fail_count += 1
            info = {
                'success': False,
                'status': solution.status.value,
                'return_status': solution.return_status,
                'trajectory': None,
                'fallback': True,
            }
            if self.verbose:
                print(f"   MPC warning: {solution.return_status}, applying '{self.fallback}'")

        info['solve_time'] = time.time() - start_time
        self.total_solve_time += info['solve_time']

        return control, info

    def _fallback_control(self) -> np.ndarray:
        """Command used when the solve failed"""
        if self.fallback == 'hold':
            return self._last_command.copy()
        return np.array([0.0, -self.config.a_max])

    def get_statistics(self) -> Dict:
        """Get performance statistics."""
        total = self.solve_count + self.fail_count
        return {
            'solve_count': self.solve_count,
            'fail_count': self.fail_count,
            'success_rate': 100 * self.solve_count / max(total, 1),
            'avg_solve_time': self.total_solve_time / max(total, 1),
        }
