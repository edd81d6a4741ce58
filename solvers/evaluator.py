"""
Objective and constraint evaluation for the kinematic MPC NLP.

    minimize   Σ w_cte·cte² + w_epsi·epsi²                 (tracking)
             + Σ w_v·(v - ref_v)²                         (speed)
             + Σ w_delta·δ² + w_a·a²                      (actuator use)
             + Σ w_delta_rate·Δδ² + w_a_rate·Δa²          (actuator rate)
    subject to x[t] - f(x[t-1], u[t-1]) = 0,  t = 1..N-1
               x[0] = observed state

The evaluator never branches on values, so running it on CasADi symbols yields
an expression graph the solver can differentiate.
"""
from typing import Sequence, Tuple

from config import MPCConfig
from models import (
    DecisionLayout,
    KinematicBicycleModel,
    NumericOps,
    NUMPY_OPS,
    STATE_CHANNELS,
)


class MPCEvaluator:
    """Computes (cost, g) for any candidate decision vector"""

    def __init__(self, config: MPCConfig, layout: DecisionLayout = None):
        self.config = config
        self.layout = layout or DecisionLayout(config.N)
        self.model = KinematicBicycleModel(config)

    def __call__(self, vars_, coeffs: Sequence, ops: NumericOps = NUMPY_OPS) -> Tuple:
        return self.cost(vars_), self.constraints(vars_, coeffs, ops)

    def cost(self, vars_):
        cfg = self.config
        lay = self.layout
        N = cfg.N

        cte = lay.start('cte')
        epsi = lay.start('epsi')
        v = lay.start('v')
        delta = lay.start('delta')
        a = lay.start('a')

        cost = 0.0

        # Stay on the path
        for t in range(N):
            cost += cfg.w_cte * vars_[cte + t]**2
            cost += cfg.w_epsi * vars_[epsi + t]**2

        # Hold the cruising speed (v_0 is fixed by the measurement)
        for t in range(1, N):
            cost += cfg.w_v * (vars_[v + t] - cfg.ref_v)**2

        # Use the actuators sparingly
        for t in range(N - 1):
            cost += cfg.w_delta * vars_[delta + t]**2
            cost += cfg.w_a * vars_[a + t]**2

        # Smooth consecutive actuations
        for t in range(N - 2):
            cost += cfg.w_delta_rate * (vars_[delta + t + 1] - vars_[delta + t])**2
            cost += cfg.w_a_rate * (vars_[a + t + 1] - vars_[a + t])**2

        return cost

    def constraints(self, vars_, coeffs: Sequence, ops: NumericOps = NUMPY_OPS):
        """Time-major residual vector; rows 0..5 hold the raw initial state"""
        lay = self.layout
        starts = [lay.start(name) for name in STATE_CHANNELS]
        delta = lay.start('delta')
        a = lay.start('a')

        g = [vars_[s] for s in starts]

        for t in range(1, self.config.N):
            previous = [vars_[s + t - 1] for s in starts]
            control = (vars_[delta + t - 1], vars_[a + t - 1])
            predicted = self.model.predict(previous, control, coeffs, ops)

            for s, pred in zip(starts, predicted):
                g.append(vars_[s + t] - pred)

        return ops.stack(g)

    def residuals(self, vars_, coeffs: Sequence):
        """Dynamics residuals only (N-1, 6), NumPy"""
        g = self.constraints(vars_, coeffs, NUMPY_OPS)
        return g[len(STATE_CHANNELS):].reshape(self.config.N - 1, len(STATE_CHANNELS))
