"""
Discrete kinematic bicycle model

State:   [x, y, psi, v, cte, epsi]
Control: [delta, a]

The transition is written once against a small numeric-ops interface so the
same equations serve the plant (NumPy floats) and the NLP (CasADi SX, which
gives the solver exact derivatives).
"""
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

import casadi as ca
import numpy as np

from config import MPCConfig


@dataclass(frozen=True)
class NumericOps:
    """Elementary functions for one numeric type"""
    name: str
    sin: Callable
    cos: Callable
    atan: Callable
    stack: Callable      # list of scalars -> column vector


NUMPY_OPS = NumericOps(
    name='numpy',
    sin=np.sin,
    cos=np.cos,
    atan=np.arctan,
    stack=lambda items: np.array([float(item) for item in items]),
)

CASADI_OPS = NumericOps(
    name='casadi',
    sin=ca.sin,
    cos=ca.cos,
    atan=ca.atan,
    stack=lambda items: ca.vertcat(*items),
)


@dataclass(frozen=True)
class VehicleState:
    """Observed state at the start of a control cycle"""
    x: float
    y: float
    psi: float       # Heading (rad)
    v: float         # Speed (m/s)
    cte: float       # Cross-track error (m)
    epsi: float      # Heading error (rad)

    @classmethod
    def from_sequence(cls, values: Sequence[float]) -> 'VehicleState':
        if isinstance(values, VehicleState):
            return values
        values = [float(v) for v in np.ravel(values)]
        if len(values) != 6:
            raise ValueError(f"vehicle state needs 6 values, got {len(values)}")
        return cls(*values)

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.psi, self.v, self.cte, self.epsi])

    def is_finite(self) -> bool:
        return bool(np.all(np.isfinite(self.as_array())))


def polyeval(coeffs: Sequence, x):
    """c0 + c1*x + c2*x^2 + c3*x^3"""
    return coeffs[0] + coeffs[1] * x + coeffs[2] * x**2 + coeffs[3] * x**3


def desired_heading(coeffs: Sequence, x, ops: NumericOps):
    """Tangent angle of the reference cubic at x"""
    return ops.atan(3 * coeffs[3] * x**2 + 2 * coeffs[2] * x + coeffs[1])


class KinematicBicycleModel:
    """Kinematic bicycle model discretised with forward Euler over dt"""

    def __init__(self, config: MPCConfig):
        self.config = config
        self.Lf = config.Lf
        self.dt = config.dt


    def predict(self, state: Sequence, control: Sequence, coeffs: Sequence,
                ops: NumericOps = NUMPY_OPS, dt: Optional[float] = None) -> Tuple:
        """
        Predict the next state from the previous state and actuation.

        cte and epsi are propagated against the reference cubic: the error at
        the next step is the current offset from the path plus the drift the
        current speed/steering adds over one step.
        """
        dt = self.dt if dt is None else dt
        Lf = self.Lf

        x0, y0, psi0, v0, cte0, epsi0 = state
        delta0, a0 = control

        f0 = polyeval(coeffs, x0)
        psides0 = desired_heading(coeffs, x0, ops)

        x1 = x0 + v0 * ops.cos(psi0) * dt
        y1 = y0 + v0 * ops.sin(psi0) * dt
        psi1 = psi0 + (v0 / Lf) * delta0 * dt
        v1 = v0 + a0 * dt
        cte1 = (f0 - y0) + v0 * ops.sin(epsi0) * dt
        epsi1 = (psi0 - psides0) + v0 * delta0 / Lf * dt

        return x1, y1, psi1, v1, cte1, epsi1

    def step(self, state: np.ndarray, control: np.ndarray, coeffs: Sequence,
             dt: Optional[float] = None) -> np.ndarray:
        """Plant update for simulation (NumPy)"""
        return NUMPY_OPS.stack(self.predict(state, control, coeffs, NUMPY_OPS, dt))
