"""
Decision-vector seed and bounds, and constraint bounds, for one solve.
"""
from typing import Tuple

import numpy as np

from config import MPCConfig
from models import DecisionLayout, STATE_CHANNELS, VehicleState


def initial_guess(state: VehicleState, layout: DecisionLayout) -> np.ndarray:
    """Zeros everywhere except the first step of each state channel"""
    vars_ = np.zeros(layout.n_vars)
    for name, value in zip(STATE_CHANNELS, state.as_array()):
        vars_[layout.start(name)] = value
    return vars_


def variable_bounds(config: MPCConfig, layout: DecisionLayout) -> Tuple[np.ndarray, np.ndarray]:
    """
    States are left free (+/- solver infinity); steering and acceleration
    are boxed by the actuator limits. The initial state is pinned through the
    constraint bounds, not here.
    """
    lbx = np.empty(layout.n_vars)
    ubx = np.empty(layout.n_vars)

    states = slice(0, layout.control_start)
    lbx[states] = -config.state_bound
    ubx[states] = config.state_bound

    lbx[layout.slice('delta')] = -config.delta_max
    ubx[layout.slice('delta')] = config.delta_max

    lbx[layout.slice('a')] = -config.a_max
    ubx[layout.slice('a')] = config.a_max

    return lbx, ubx


def constraint_bounds(state: VehicleState, layout: DecisionLayout) -> Tuple[np.ndarray, np.ndarray]:
    """
    Dynamics residuals must be exactly zero; the t = 0 rows carry the raw
    initial state and are fixed to the observed values.
    """
    lbg = np.zeros(layout.n_constraints)
    ubg = np.zeros(layout.n_constraints)

    for k, value in enumerate(state.as_array()):
        row = layout.constraint_row(0, k)
        lbg[row] = value
        ubg[row] = value

    return lbg, ubg
