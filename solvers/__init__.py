from .base import (
    BaseSolver,
    MPCSolution,
    SolveStatus,
    InvalidProblemError,
    SolveFailedError,
    status_from_ipopt,
    validate_config,
)

from .encoding import (
    initial_guess,
    variable_bounds,
    constraint_bounds,
)

from .evaluator import (
    MPCEvaluator,
)

from .kinematic_nlp import (
    KinematicMPCSolver,
)

__all__ = [
    # Base classes
    'BaseSolver',
    'MPCSolution',
    'SolveStatus',
    'InvalidProblemError',
    'SolveFailedError',
    'status_from_ipopt',
    'validate_config',

    # Problem encoding
    'initial_guess',
    'variable_bounds',
    'constraint_bounds',
    'MPCEvaluator',

    # Solve orchestration
    'KinematicMPCSolver',
]
