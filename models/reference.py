"""
Reference path handling: the cubic polynomial the MPC tracks, and the
waypoint-side helpers the control loop uses to produce it.

The polynomial is expressed in the vehicle frame (x forward, y left), so the
cross-track error at the vehicle is f(0) and the heading error is
-atan(f'(0)).
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence, Tuple

import numpy as np

POLY_DEGREE = 3


@dataclass(frozen=True)
class ReferencePolynomial:
    """Cubic coefficients, constant term first"""
    coeffs: Tuple[float, float, float, float]

    def __post_init__(self):
        coeffs = tuple(float(c) for c in np.ravel(self.coeffs))
        if len(coeffs) != POLY_DEGREE + 1:
            raise ValueError(
                f"reference polynomial needs {POLY_DEGREE + 1} coefficients, got {len(coeffs)}"
            )
        object.__setattr__(self, 'coeffs', coeffs)

    @classmethod
    def from_sequence(cls, coeffs: Sequence[float]) -> 'ReferencePolynomial':
        if isinstance(coeffs, ReferencePolynomial):
            return coeffs
        return cls(tuple(np.ravel(coeffs)))

    def __call__(self, x):
        c0, c1, c2, c3 = self.coeffs
        return c0 + c1 * x + c2 * x**2 + c3 * x**3

    def derivative(self, x):
        _, c1, c2, c3 = self.coeffs
        return 3 * c3 * x**2 + 2 * c2 * x + c1

    def heading(self, x):
        """Target heading (tangent angle) at x"""
        return np.arctan(self.derivative(x))

    def as_array(self) -> np.ndarray:
        return np.array(self.coeffs)


def fit_reference_polynomial(xs: np.ndarray, ys: np.ndarray) -> ReferencePolynomial:
    """Least-squares cubic through vehicle-frame waypoints"""
    xs = np.asarray(xs, dtype=float)
    ys = np.asarray(ys, dtype=float)
    if len(xs) != len(ys):
        raise ValueError("waypoint x and y must have the same length")
    if len(xs) < POLY_DEGREE + 1:
        raise ValueError(f"need at least {POLY_DEGREE + 1} waypoints for a cubic fit")
    # np.polyfit returns highest power first
    return ReferencePolynomial(tuple(np.polyfit(xs, ys, POLY_DEGREE)[::-1]))


def to_vehicle_frame(px: float, py: float, psi: float,
                     xs: np.ndarray, ys: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Rotate/translate world waypoints into the frame of a vehicle at (px, py, psi)"""
    dx = np.asarray(xs, dtype=float) - px
    dy = np.asarray(ys, dtype=float) - py
    cos_psi = np.cos(psi)
    sin_psi = np.sin(psi)
    return dx * cos_psi + dy * sin_psi, -dx * sin_psi + dy * cos_psi


def tracking_errors(poly: ReferencePolynomial) -> Tuple[float, float]:
    """(cte, epsi) of a vehicle sitting at the origin of the polynomial's frame"""
    return float(poly(0.0)), float(-np.arctan(poly.derivative(0.0)))


class ReferencePath:
    """Ordered world-frame waypoints the vehicle should follow"""

    def __init__(self, xs: np.ndarray, ys: np.ndarray):
        self.xs = np.asarray(xs, dtype=float)
        self.ys = np.asarray(ys, dtype=float)
        if self.xs.shape != self.ys.shape or self.xs.ndim != 1:
            raise ValueError("waypoints must be two 1-D arrays of equal length")
        if len(self.xs) < POLY_DEGREE + 1:
            raise ValueError(f"need at least {POLY_DEGREE + 1} waypoints")

    def __len__(self) -> int:
        return len(self.xs)

    @classmethod
    def sine_road(cls, length: float = 600.0, amplitude: float = 8.0,
                  wavelength: float = 120.0, spacing: float = 5.0) -> 'ReferencePath':
        """Gently winding road along +x"""
        xs = np.arange(0.0, length + spacing, spacing)
        ys = amplitude * np.sin(2 * np.pi * xs / wavelength)
        return cls(xs, ys)

    @classmethod
    def from_csv(cls, path: str) -> 'ReferencePath':
        """Load `x,y` rows (header optional)"""
        path = Path(path)
        data = np.atleast_2d(np.genfromtxt(path, delimiter=',', dtype=float))
        # A header row parses as NaN
        data = data[~np.isnan(data).any(axis=1)]
        if data.ndim != 2 or data.shape[1] < 2:
            raise ValueError(f"{path} must contain at least two columns (x, y)")
        return cls(data[:, 0], data[:, 1])

    def closest_index(self, px: float, py: float) -> int:
        return int(np.argmin((self.xs - px)**2 + (self.ys - py)**2))

    def local_waypoints(self, px: float, py: float, psi: float,
                        count: int = 8) -> Tuple[np.ndarray, np.ndarray]:
        """Next `count` waypoints from the closest one, in the vehicle frame"""
        count = max(count, POLY_DEGREE + 1)
        start = self.closest_index(px, py)
        # Keep one point behind the vehicle so the fit covers x = 0
        start = max(0, min(start - 1, len(self) - count))
        idx = slice(start, start + count)
        return to_vehicle_frame(px, py, psi, self.xs[idx], self.ys[idx])

    def fit_local(self, px: float, py: float, psi: float,
                  count: int = 8) -> ReferencePolynomial:
        local_x, local_y = self.local_waypoints(px, py, psi, count)
        return fit_reference_polynomial(local_x, local_y)

    def is_finished(self, px: float, py: float, count: int = 8) -> bool:
        """True once fewer than `count` waypoints remain ahead"""
        return self.closest_index(px, py) >= len(self) - max(count, POLY_DEGREE + 1) + 1
