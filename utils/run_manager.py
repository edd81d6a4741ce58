from pathlib import Path
from datetime import datetime
from dataclasses import asdict
import json
from typing import Dict
import numpy as np
import matplotlib.pyplot as plt

from config import MPCConfig
from simulation import LoopResult


def convert_numpy(obj):
    """Make numpy containers JSON serialisable"""
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    elif isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, np.floating):
        return float(obj)
    elif isinstance(obj, np.bool_):
        return bool(obj)
    elif isinstance(obj, dict):
        return {k: convert_numpy(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [convert_numpy(item) for item in obj]
    return obj


class RunManager:
    """
    One directory per run: results/<run_name>/<timestamp>/ with the summary
    at the top, figures under plots/ and machine-readable output under data/.
    """

    def __init__(self, run_name: str, base_dir: str = "results"):
        self.run_name = run_name
        self.timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        self.run_dir = Path(base_dir) / run_name.lower() / self.timestamp
        self.plots_dir = self.run_dir / "plots"
        self.data_dir = self.run_dir / "data"

        for directory in (self.plots_dir, self.data_dir):
            directory.mkdir(parents=True, exist_ok=True)

        print(f"\n📁 Results directory: {self.run_dir}")

    def _saved(self, path: Path) -> Path:
        print(f"   ✓ Saved {path.name}")
        return path

    def save_plot(self, fig: plt.Figure, name: str) -> Path:
        path = self.plots_dir / f"{name}.png"
        fig.savefig(path, dpi=150, bbox_inches='tight')
        return self._saved(path)

    def save_json(self, data: Dict, name: str) -> Path:
        path = self.data_dir / f"{name}.json"
        path.write_text(json.dumps(convert_numpy(data), indent=2))
        return self._saved(path)

    def save_history(self, result: LoopResult, name: str = "history") -> Path:
        """Time series of a closed-loop run as a single .npz archive"""
        path = self.data_dir / f"{name}.npz"
        np.savez_compressed(
            path,
            times=result.times,
            states=result.states,
            commands=result.commands,
            cte=result.cte,
            epsi=result.epsi,
            solve_times=result.solve_times,
            solve_success=result.solve_success,
        )
        return self._saved(path)

    def save_summary(self, summary: str) -> Path:
        path = self.run_dir / "summary.txt"
        path.write_text(summary)
        return self._saved(path)


def export_results(result: LoopResult, mpc_config: MPCConfig, args, controller_stats: Dict = None) -> Dict:
    """Collect a closed-loop run into a JSON-ready dict"""
    summary = result.summary()

    status_counts = {}
    for status in result.statuses:
        status_counts[status] = status_counts.get(status, 0) + 1

    return {
        'metadata': {
            'name': args.name,
            'timestamp': datetime.now().isoformat(),
            'tuning': args.tuning,
            'fallback': args.fallback,
            'sim_dt': args.sim_dt,
            'lookahead': args.lookahead,
        },
        'mpc_config': asdict(mpc_config),
        'performance': {
            'cycles': summary['cycles'],
            'completed': summary['completed'],
            'success_rate': summary['success_rate'],
            'status_counts': status_counts,
            'avg_solve_time': summary['avg_solve_time'],
            'max_solve_time': summary['max_solve_time'],
        },
        'tracking': {
            'mean_abs_cte': summary['mean_abs_cte'],
            'max_abs_cte': summary['max_abs_cte'],
            'mean_abs_epsi': summary['mean_abs_epsi'],
            'final_speed': summary['final_speed'],
        },
        'controller': controller_stats or {},
    }
