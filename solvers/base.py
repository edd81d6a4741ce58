import numpy as np
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from config import MPCConfig
from models import DecisionLayout, InvalidProblemError, MIN_HORIZON, STATE_CHANNELS


class SolveFailedError(RuntimeError):
    """Raised when a command/trajectory is requested from a failed solve"""

    def __init__(self, status: 'SolveStatus', return_status: str = ''):
        self.status = status
        self.return_status = return_status
        detail = f" ({return_status})" if return_status else ""
        super().__init__(f"MPC solve did not succeed: {status.value}{detail}")


class SolveStatus(Enum):
    SUCCESS = 'success'
    ACCEPTABLE = 'acceptable'       # Converged to relaxed tolerances only
    TIMEOUT = 'timeout'
    ITERATION_LIMIT = 'iteration_limit'
    INFEASIBLE = 'infeasible'
    NUMERICAL_ERROR = 'numerical_error'
    FAILED = 'failed'

    @property
    def ok(self) -> bool:
        return self is SolveStatus.SUCCESS


# IPOPT return_status -> SolveStatus. Anything missing maps to FAILED.
IPOPT_STATUS_MAP: Dict[str, SolveStatus] = {
    'Solve_Succeeded': SolveStatus.SUCCESS,
    'Solved_To_Acceptable_Level': SolveStatus.ACCEPTABLE,
    'Feasible_Point_Found': SolveStatus.ACCEPTABLE,
    'Maximum_WallTime_Exceeded': SolveStatus.TIMEOUT,
    'Maximum_CpuTime_Exceeded': SolveStatus.TIMEOUT,
    'Maximum_Iterations_Exceeded': SolveStatus.ITERATION_LIMIT,
    'Infeasible_Problem_Detected': SolveStatus.INFEASIBLE,
    'Restoration_Failed': SolveStatus.INFEASIBLE,
    'Invalid_Number_Detected': SolveStatus.NUMERICAL_ERROR,
    'Diverging_Iterates': SolveStatus.NUMERICAL_ERROR,
    'Error_In_Step_Computation': SolveStatus.NUMERICAL_ERROR,
    'NonIpopt_Exception_Thrown': SolveStatus.NUMERICAL_ERROR,
}


def status_from_ipopt(return_status: str) -> SolveStatus:
    return IPOPT_STATUS_MAP.get(return_status, SolveStatus.FAILED)


@dataclass
class MPCSolution:
    # Outcome
    status: SolveStatus
    return_status: str         # Raw solver status string
    objective: float
    x: np.ndarray              # Full decision vector (last primal values)

    # Layout used to read x
    layout: DecisionLayout

    # Solver metadata
    solve_time: float = 0.0    # Wall-clock (s)
    iterations: int = 0

    @property
    def success(self) -> bool:
        return self.status.ok

    def _require_success(self):
        if not self.success:
            raise SolveFailedError(self.status, self.return_status)

    @property
    def command(self) -> Tuple[float, float]:
        """(delta, a) to actuate now"""
        self._require_success()
        return self.raw_command()

    def raw_command(self) -> Tuple[float, float]:
        """First actuation pair regardless of status (inspection only)"""
        return (float(self.x[self.layout.start('delta')]),
                float(self.x[self.layout.start('a')]))

    @property
    def trajectory(self) -> np.ndarray:
        """(N, 2) predicted x/y path"""
        self._require_success()
        return np.column_stack([self.x[self.layout.slice('x')], self.x[self.layout.slice('y')]])

    @property
    def predicted_states(self) -> np.ndarray:
        """(N, 6) predicted states"""
        self._require_success()
        return self.layout.states(self.x)

    @property
    def controls(self) -> np.ndarray:
        """(N-1, 2) planned actuations"""
        self._require_success()
        return self.layout.controls(self.x)

    def to_dict(self) -> Dict:
        """Summary for logging/export"""
        result = {
            'status': self.status.value,
            'return_status': self.return_status,
            'objective': float(self.objective),
            'solve_time': float(self.solve_time),
            'iterations': int(self.iterations),
        }
        if self.success:
            result['command'] = {'delta': self.command[0], 'a': self.command[1]}
            states = self.predicted_states
            result['trajectory'] = {name: states[:, k] for k, name in enumerate(STATE_CHANNELS)}
        return result


def validate_config(config: MPCConfig):
    """Fail fast on tunings the formulation cannot represent"""
    if config.N < MIN_HORIZON:
        raise InvalidProblemError(f"horizon N must be >= {MIN_HORIZON}, got {config.N}")
    if config.Lf == 0:
        raise InvalidProblemError("Lf must be non-zero")
    if not config.dt > 0:
        raise InvalidProblemError(f"dt must be > 0, got {config.dt}")
    if not config.max_solve_time > 0:
        raise InvalidProblemError(f"max_solve_time must be > 0, got {config.max_solve_time}")
    if config.delta_max <= 0 or config.a_max <= 0:
        raise InvalidProblemError("actuator limits must be > 0")
    if config.hessian not in ('exact', 'limited-memory'):
        raise InvalidProblemError(f"unknown hessian mode: {config.hessian}")


class BaseSolver(ABC):

    def __init__(self, config: MPCConfig, verbose: bool = False):
        validate_config(config)
        self.config = config
        self.layout = DecisionLayout(config.N)
        self.verbose = verbose

    @property
    @abstractmethod
    def name(self) -> str:
        """Solver name for logging and identification."""
        pass

    @abstractmethod
    def solve(self, state, coeffs) -> MPCSolution:
        pass

    def _log(self, message: str):
        """Print message if verbose mode is on"""
        if self.verbose:
            print(f"   [{self.name}] {message}")
