import numpy as np
from abc import ABC, abstractmethod
from typing import Dict, Tuple


class PathTrackingController(ABC):
    """Base class for controllers driven by the closed-loop simulator"""

    @abstractmethod
    def solve_step(self, state: np.ndarray, coeffs: np.ndarray) -> Tuple[np.ndarray, Dict]:
        """Return control [delta, a] and an info dict for one cycle"""
        raise NotImplementedError

    def reset(self):
        """Clear per-run bookkeeping"""
        pass
