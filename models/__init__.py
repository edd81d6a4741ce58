from .layout import (
    DecisionLayout,
    InvalidProblemError,
    STATE_CHANNELS,
    CONTROL_CHANNELS,
    N_STATES,
    N_CONTROLS,
    MIN_HORIZON,
)
from .reference import (
    ReferencePolynomial,
    ReferencePath,
    fit_reference_polynomial,
    to_vehicle_frame,
    tracking_errors,
)
from .vehicle_dynamics import KinematicBicycleModel, VehicleState, NumericOps, NUMPY_OPS, CASADI_OPS

__all__ = [
    'DecisionLayout',
    'InvalidProblemError',
    'MIN_HORIZON',
    'STATE_CHANNELS',
    'CONTROL_CHANNELS',
    'N_STATES',
    'N_CONTROLS',
    'ReferencePolynomial',
    'ReferencePath',
    'fit_reference_polynomial',
    'to_vehicle_frame',
    'tracking_errors',
    'KinematicBicycleModel',
    'VehicleState',
    'NumericOps',
    'NUMPY_OPS',
    'CASADI_OPS',
]
