import numpy as np
from typing import Dict, List, Optional
from dataclasses import dataclass, field
import time

from models import KinematicBicycleModel, ReferencePath, tracking_errors


@dataclass
class LoopResult:
    """Container for closed-loop simulation results"""

    # Time series data
    times: np.ndarray          # Time stamps (s)
    states: np.ndarray         # World-frame [x, y, psi, v], one row per cycle + final
    commands: np.ndarray       # Applied [delta, a], one row per cycle
    cte: np.ndarray            # Cross-track error seen by the controller (m)
    epsi: np.ndarray           # Heading error seen by the controller (rad)

    # Solver performance
    solve_times: np.ndarray
    solve_success: np.ndarray
    statuses: List[str]

    completed: bool            # Reached the end of the path

    # World-frame predicted x/y per cycle (None where the solve failed)
    predicted_paths: List[Optional[np.ndarray]] = field(default_factory=list)

    @property
    def n_cycles(self) -> int:
        return len(self.commands)

    @property
    def success_rate(self) -> float:
        if len(self.solve_success) == 0:
            return 0.0
        return float(np.mean(self.solve_success))

    @property
    def mean_abs_cte(self) -> float:
        return float(np.mean(np.abs(self.cte))) if len(self.cte) else 0.0

    @property
    def max_abs_cte(self) -> float:
        return float(np.max(np.abs(self.cte))) if len(self.cte) else 0.0

    def summary(self) -> Dict:
        return {
            'cycles': self.n_cycles,
            'completed': self.completed,
            'success_rate': self.success_rate,
            'mean_abs_cte': self.mean_abs_cte,
            'max_abs_cte': self.max_abs_cte,
            'mean_abs_epsi': float(np.mean(np.abs(self.epsi))) if len(self.epsi) else 0.0,
            'final_speed': float(self.states[-1, 3]),
            'avg_solve_time': float(np.mean(self.solve_times)) if len(self.solve_times) else 0.0,
            'max_solve_time': float(np.max(self.solve_times)) if len(self.solve_times) else 0.0,
        }

    def print_summary(self, title: str = "MPC"):
        """Print run summary"""
        s = self.summary()
        print(f"\n{'='*60}")
        print(f"CLOSED-LOOP RESULTS: {title}")
        print(f"{'='*60}")
        print(f"Cycles:        {s['cycles']} ({'completed' if s['completed'] else 'stopped early'})")
        print(f"Solve success: {s['success_rate']*100:.1f}%")
        print(f"|cte| mean:    {s['mean_abs_cte']:.3f} m (max {s['max_abs_cte']:.3f} m)")
        print(f"|epsi| mean:   {np.degrees(s['mean_abs_epsi']):.2f} deg")
        print(f"Final speed:   {s['final_speed']:.2f} m/s")
        print(f"Solve time:    {s['avg_solve_time']*1000:.1f} ms avg, {s['max_solve_time']*1000:.1f} ms max")
        print(f"{'='*60}\n")


class ClosedLoopSimulator:
    """
    Drive a kinematic-bicycle plant along a reference path with an MPC
    controller in the loop.

    Each cycle:
        1. Fit the cubic to the next waypoints in the vehicle frame
        2. cte = f(0), epsi = -atan(f'(0))
        3. controller.solve_step([0, 0, 0, v, cte, epsi], coeffs)
        4. Advance the plant by sim_dt with the returned command
    """

    def __init__(self,
                 controller,
                 path: ReferencePath,
                 model: Optional[KinematicBicycleModel] = None,
                 sim_dt: float = 0.1,
                 lookahead: int = 8,
                 verbose: bool = False):
        self.controller = controller
        self.path = path
        self.model = model or KinematicBicycleModel(controller.config)
        self.sim_dt = sim_dt
        self.lookahead = lookahead
        self.verbose = verbose

    def simulate(self,
                 initial_state: np.ndarray,
                 n_steps: int = 200) -> LoopResult:
        """Simulate up to n_steps control cycles

        Args:
            initial_state: World-frame [x, y, psi, v]
            n_steps: Maximum number of control cycles

        Returns:
            LoopResult with complete history
        """
        state = np.asarray(initial_state, dtype=float).copy()
        if state.shape != (4,):
            raise ValueError("initial_state must be [x, y, psi, v]")

        self.controller.reset()

        times = [0.0]
        states = [state.copy()]
        commands = []
        ctes = []
        epsis = []
        solve_times = []
        solve_success = []
        statuses = []
        predicted_paths = []

        t = 0.0
        completed = False

        for step in range(n_steps):
            px, py, psi, v = state

            if self.path.is_finished(px, py, self.lookahead):
                completed = True
                break

            poly = self.path.fit_local(px, py, psi, self.lookahead)
            cte, epsi = tracking_errors(poly)

            start_solve = time.time()
            control, info = self.controller.solve_step(
                np.array([0.0, 0.0, 0.0, v, cte, epsi]), poly.as_array()
            )
            solve_times.append(time.time() - start_solve)
            solve_success.append(info.get('success', False))
            statuses.append(info.get('status', 'unknown'))

            trajectory = info.get('trajectory')
            predicted_paths.append(
                self._to_world(trajectory, px, py, psi) if trajectory is not None else None
            )

            ctes.append(cte)
            epsis.append(epsi)
            commands.append(np.asarray(control, dtype=float))

            state = self._advance(state, control)

            t += self.sim_dt
            times.append(t)
            states.append(state.copy())

            if self.verbose and step % 20 == 0:
                print(f"   [t={t:6.2f}s] v={state[3]:5.2f} cte={cte:+.3f} "
                      f"delta={control[0]:+.3f} a={control[1]:+.3f} ({statuses[-1]})")
        else:
            completed = self.path.is_finished(state[0], state[1], self.lookahead)

        return LoopResult(
            times=np.array(times),
            states=np.array(states),
            commands=np.array(commands).reshape(-1, 2),
            cte=np.array(ctes),
            epsi=np.array(epsis),
            solve_times=np.array(solve_times),
            solve_success=np.array(solve_success, dtype=bool),
            statuses=statuses,
            completed=completed,
            predicted_paths=predicted_paths,
        )

    def _advance(self, state: np.ndarray, control: np.ndarray) -> np.ndarray:
        """Plant step; cte/epsi are recomputed from the path each cycle"""
        full = np.concatenate([state, [0.0, 0.0]])
        next_state = self.model.step(full, control, (0.0, 0.0, 0.0, 0.0), dt=self.sim_dt)[:4]
        # No reversing
        next_state[3] = max(next_state[3], 0.0)
        return next_state

    @staticmethod
    def _to_world(trajectory: np.ndarray, px: float, py: float, psi: float) -> np.ndarray:
        xs, ys = trajectory[:, 0], trajectory[:, 1]
        cos_psi, sin_psi = np.cos(psi), np.sin(psi)
        return np.column_stack([px + xs * cos_psi - ys * sin_psi,
                                py + xs * sin_psi + ys * cos_psi])
