from .trajectory_viz import plot_closed_loop, plot_prediction
from .plot_config import DEFAULT_COLORS, apply_plot_style

__all__ = [
    'plot_closed_loop',
    'plot_prediction',
    'DEFAULT_COLORS',
    'apply_plot_style',
    ]
