from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Literal, Optional

import typer
import yaml


@dataclass
class AppConfig:
    name: str = "sine_road"
    tuning: Literal["default", "smooth", "aggressive"] = "default"
    waypoints: str | None = None
    n_steps: int = 200
    sim_dt: float = 0.1
    initial_v: float = 10.0
    initial_y: float = 1.0
    initial_psi: float = 0.0
    road_amplitude: float = 8.0
    road_wavelength: float = 120.0
    road_length: float = 600.0
    lookahead: int = 8
    fallback: Literal["hold", "brake"] = "brake"
    horizon: int | None = None
    dt: float | None = None
    ref_v: float | None = None
    max_solve_time: float | None = None
    hessian: Literal["exact", "limited-memory"] = "exact"
    verbose: bool = False
    plot: bool = True
    results_dir: str = "results"


def _load_yaml_defaults(path: Path) -> dict:
    """Load a YAML config file and return its contents as a dict."""
    with open(path) as f:
        data = yaml.safe_load(f)
    return data if isinstance(data, dict) else {}


app = typer.Typer(add_completion=False)


@app.command(help="Kinematic MPC path tracking")
def cli(
    # ── Reference path ────────────────────────────────────────────
    name: Annotated[str, typer.Option(help="Run name (results sub-directory)")] = "sine_road",
    waypoints: Annotated[Optional[str], typer.Option(help="CSV of x,y waypoints (default: generated sine road)")] = None,
    road_amplitude: Annotated[float, typer.Option(help="Sine road lateral amplitude [m]")] = 8.0,
    road_wavelength: Annotated[float, typer.Option(help="Sine road wavelength [m]")] = 120.0,
    road_length: Annotated[float, typer.Option(help="Sine road length [m]")] = 600.0,
    lookahead: Annotated[int, typer.Option(help="Waypoints used for each cubic fit")] = 8,

    # ── Simulation ────────────────────────────────────────────────
    n_steps: Annotated[int, typer.Option(help="Number of control cycles")] = 200,
    sim_dt: Annotated[float, typer.Option(help="Plant integration step per cycle [s]")] = 0.1,
    initial_v: Annotated[float, typer.Option(help="Initial speed [m/s]")] = 10.0,
    initial_y: Annotated[float, typer.Option(help="Initial lateral offset [m]")] = 1.0,
    initial_psi: Annotated[float, typer.Option(help="Initial heading [rad]")] = 0.0,
    fallback: Annotated[str, typer.Option(help="Command on failed solve: hold or brake")] = "brake",

    # ── MPC ───────────────────────────────────────────────────────
    tuning: Annotated[str, typer.Option(help="Tuning preset: default, smooth, aggressive")] = "default",
    horizon: Annotated[Optional[int], typer.Option(help="Override horizon length N")] = None,
    dt: Annotated[Optional[float], typer.Option(help="Override horizon step dt [s]")] = None,
    ref_v: Annotated[Optional[float], typer.Option(help="Override target speed [m/s]")] = None,
    max_solve_time: Annotated[Optional[float], typer.Option(help="Override solver wall-clock budget [s]")] = None,
    hessian: Annotated[str, typer.Option(help="Ipopt Hessian: exact or limited-memory")] = "exact",
    verbose: Annotated[bool, typer.Option("--verbose/--quiet", help="Print per-solve solver messages")] = False,

    # ── Output ────────────────────────────────────────────────────
    plot: Annotated[bool, typer.Option("--plot/--no-plot", help="Generate visualisation plots")] = True,
    results_dir: Annotated[str, typer.Option(help="Base directory for run results")] = "results",

    # ── Config file ───────────────────────────────────────────────
    config: Annotated[Optional[Path], typer.Option(help="Path to YAML config file")] = None,
):
    """Entry point: build AppConfig from CLI args (with optional YAML defaults) and run."""
    from main import main as run_main

    cli_values = {
        "name": name, "waypoints": waypoints, "road_amplitude": road_amplitude,
        "road_wavelength": road_wavelength, "road_length": road_length,
        "lookahead": lookahead, "n_steps": n_steps, "sim_dt": sim_dt,
        "initial_v": initial_v, "initial_y": initial_y, "initial_psi": initial_psi,
        "fallback": fallback, "tuning": tuning, "horizon": horizon, "dt": dt,
        "ref_v": ref_v, "max_solve_time": max_solve_time, "hessian": hessian,
        "verbose": verbose, "plot": plot, "results_dir": results_dir,
    }

    if config is not None:
        yaml_defaults = _load_yaml_defaults(config)
        # YAML provides defaults; CLI args override only when set away from
        # their defaults (typer passes defaults through for unset options)
        defaults = AppConfig()
        explicit = {k: v for k, v in cli_values.items() if v != getattr(defaults, k)}
        merged = {**cli_values, **yaml_defaults, **explicit}
    else:
        merged = cli_values

    args = AppConfig(**merged)
    run_main(args)
