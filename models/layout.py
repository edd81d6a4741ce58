"""
Index layout of the flat MPC decision and constraint vectors.

Decision vector (channel-major, one block per channel):

    [ x_0 .. x_{N-1} | y | psi | v | cte | epsi | delta_0 .. delta_{N-2} | a ]

Constraint vector (time-major): row ``t * 6 + k`` belongs to state channel
``k`` at step ``t``.
"""
from dataclasses import dataclass, field
from typing import Dict, Tuple

import numpy as np

STATE_CHANNELS: Tuple[str, ...] = ('x', 'y', 'psi', 'v', 'cte', 'epsi')
CONTROL_CHANNELS: Tuple[str, ...] = ('delta', 'a')

N_STATES = len(STATE_CHANNELS)
N_CONTROLS = len(CONTROL_CHANNELS)

MIN_HORIZON = 3


class InvalidProblemError(ValueError):
    """Configuration or input that cannot form a valid MPC problem"""


@dataclass(frozen=True)
class DecisionLayout:
    """Named channel -> [start, end) table for a horizon of N steps"""
    N: int
    ranges: Dict[str, Tuple[int, int]] = field(init=False, repr=False)

    def __post_init__(self):
        if self.N < MIN_HORIZON:
            raise InvalidProblemError(f"horizon N must be >= {MIN_HORIZON}, got {self.N}")

        ranges = {}
        offset = 0
        for name in STATE_CHANNELS:
            ranges[name] = (offset, offset + self.N)
            offset += self.N
        for name in CONTROL_CHANNELS:
            ranges[name] = (offset, offset + self.N - 1)
            offset += self.N - 1
        object.__setattr__(self, 'ranges', ranges)

    @property
    def n_vars(self) -> int:
        return self.N * N_STATES + (self.N - 1) * N_CONTROLS

    @property
    def n_constraints(self) -> int:
        return self.N * N_STATES

    @property
    def control_start(self) -> int:
        """First actuator index; everything before is a state"""
        return self.ranges[CONTROL_CHANNELS[0]][0]

    def start(self, channel: str) -> int:
        return self.ranges[channel][0]

    def slice(self, channel: str) -> slice:
        start, end = self.ranges[channel]
        return slice(start, end)

    def index(self, channel: str, t: int) -> int:
        start, end = self.ranges[channel]
        if not 0 <= t < end - start:
            raise IndexError(f"step {t} out of range for channel '{channel}'")
        return start + t

    def constraint_row(self, t: int, k: int) -> int:
        """Row of state channel k at step t in the constraint vector"""
        return t * N_STATES + k

    def channel(self, vars_, channel: str):
        """View of one channel across the horizon"""
        return vars_[self.slice(channel)]

    def states(self, vars_) -> np.ndarray:
        """(N, 6) array of predicted states, columns in STATE_CHANNELS order"""
        vars_ = np.asarray(vars_, dtype=float)
        return np.column_stack([vars_[self.slice(name)] for name in STATE_CHANNELS])

    def controls(self, vars_) -> np.ndarray:
        """(N-1, 2) array of actuations, columns [delta, a]"""
        vars_ = np.asarray(vars_, dtype=float)
        return np.column_stack([vars_[self.slice(name)] for name in CONTROL_CHANNELS])
