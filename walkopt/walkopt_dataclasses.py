from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple
import numpy as np

from .helpers import get_eval_times


def _vec3(v):
    if v is None:
        return np.zeros(3)
    return np.asarray(v, dtype=float).reshape(-1)

@dataclass
class StateLin3d:
    p: np.ndarray = None  # Position
    v: np.ndarray = None  # Velocity
    a: np.ndarray = None  # Acceleration

    def __post_init__(self):
        self.p = _vec3(self.p)
        self.v = _vec3(self.v)
        self.a = _vec3(self.a)

@dataclass
class BaseState:
    lin: StateLin3d = field(default_factory=StateLin3d)  # Base position in world frame
    ang: StateLin3d = field(default_factory=StateLin3d)  # Euler angles [x, y, z] and their rates

@dataclass
class RobotState:
    base: BaseState = field(default_factory=BaseState)
    ee: List[StateLin3d] = field(default_factory=list)  # One state per end-effector, world frame

@dataclass
class MotionParameters:
    ee_phase_durations: Sequence[Sequence[float]]  # Contact/swing phase durations per end-effector [s]
    ee_in_contact_at_start: Sequence[bool]         # First phase of each end-effector is stance
    duration_base_polynomial: float = 0.1          # Length of one base spline segment [s]
    ee_polynomials_per_swing_phase: int = 2        # Motion segments in a swing phase
    force_polynomials_per_stance_phase: int = 3    # Force segments in a stance phase
    dt_constraint_dynamic: float = 0.1             # Sampling of the dynamic constraint [s]
    dt_constraint_range_of_motion: float = 0.08    # Sampling of the kinematic constraint [s]
    dt_constraint_force: float = 0.1               # Sampling of the friction cone [s]
    dt_cost: float = 0.05                          # Sampling of integrated costs [s]
    max_normal_force: float = 1000.0               # Upper bound on normal contact force [N]
    friction_coeff: float = 0.5
    bound_phase_duration: Tuple[float, float] = (0.2, 1.0)  # Min/max phase duration if optimized [s]
    optimize_phase_durations: bool = False
    constraints: Sequence[str] = (
        "initial", "final", "junction", "dynamic",
        "range_of_motion", "terrain", "force", "total_time",
    )
    costs: Sequence[Tuple[str, float]] = ()        # (cost name, weight) pairs
    obstacles: Sequence[Tuple[Sequence[float], float]] = ()  # (center, radius) the base avoids

    def get_ee_count(self) -> int:
        return len(self.ee_phase_durations)

    def get_total_time(self) -> float:
        return float(np.sum(self.ee_phase_durations[0]))

    def get_base_poly_durations(self) -> np.ndarray:
        """
        Segment durations of the base splines, the last one absorbing the remainder.
        """
        T = self.get_total_time()
        dt = self.duration_base_polynomial
        n = max(int(np.floor(T / dt + 1e-9)), 1)
        durations = np.full(n, dt)
        durations[-1] = T - dt * (n - 1)
        return durations

    def get_eval_times(self, dt: Optional[float]) -> np.ndarray:
        return get_eval_times(self.get_total_time(), dt)
