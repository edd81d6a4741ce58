from .base import PathTrackingController
from .mpc import (
    KinematicMPCController,
    FALLBACK_POLICIES,
)

__all__ = [
    'PathTrackingController',
    'KinematicMPCController',
    'FALLBACK_POLICIES',
]
