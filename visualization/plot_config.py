"""Shared plotting defaults for visualization modules."""

from __future__ import annotations

from typing import Dict, Optional, Tuple

import matplotlib.pyplot as plt

DEFAULT_COLORS: Dict[str, str] = {
    "path_reference": "#7f7f7f",
    "path_driven": "#1f77b4",
    "prediction": "#2ca02c",
    "steering": "#9467bd",
    "accel": "#2ca02c",
    "brake": "#d62728",
    "cte": "#d62728",
    "epsi": "#ff7f0e",
    "constraint": "#7f7f7f",
    "failure": "#e31a1c",
}


PLOT_STYLE: Dict[str, object] = {
    "font.family": "DejaVu Sans",
    "font.size": 10,
    "axes.titlesize": 12,
    "axes.labelsize": 10,
    "axes.grid": True,
    "axes.axisbelow": True,
    "grid.alpha": 0.3,
    "grid.linestyle": ":",
    "lines.linewidth": 1.6,
    "legend.fontsize": 9,
    "legend.framealpha": 0.85,
    "figure.dpi": 110,
}


def apply_plot_style(overrides: Optional[Dict[str, object]] = None) -> None:
    """Set rcParams for run plots, with optional rcParams overrides on top."""
    plt.rcParams.update({**PLOT_STYLE, **(overrides or {})})


def get_steering_bounds_deg(mpc_config=None) -> Tuple[float, float]:
    """Return steering bounds in degrees."""
    if mpc_config is None:
        return -25.0, 25.0
    return -float(mpc_config.delta_max_deg), float(mpc_config.delta_max_deg)
