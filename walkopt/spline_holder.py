from typing import List, Sequence
import numpy as np

from .errors import ConfigurationError
from .node_spline import NodeSpline, PhaseDurationSpline
from .variables import NodesVariablesAll, NodesVariablesPhaseBased, PhaseDurations


class SplineHolder:
    """
    Non-owning bundle of every spline of the motion, built from the variable
    sets so that the splines always read the solver's latest values.
    """

    def __init__(self, base_lin: NodeSpline, base_ang: NodeSpline,
                 ee_motion: Sequence[NodeSpline], ee_force: Sequence[NodeSpline],
                 phase_durations: Sequence[PhaseDurations] = ()):
        if len(ee_motion) != len(ee_force):
            raise ConfigurationError(
                f"{len(ee_motion)} motion splines but {len(ee_force)} force splines")
        if phase_durations and len(phase_durations) != len(ee_motion):
            raise ConfigurationError(
                f"{len(phase_durations)} contact schedules for {len(ee_motion)} end-effectors")

        self.base_linear = base_lin
        self.base_angular = base_ang
        self.ee_motion = list(ee_motion)
        self.ee_force = list(ee_force)
        self.phase_durations = list(phase_durations)

        t_total = base_lin.get_total_time()
        for spline in [base_ang] + self.ee_motion + self.ee_force:
            if abs(spline.get_total_time() - t_total) > 1e-6:
                raise ConfigurationError(
                    f"{spline.nodes.name} spans {spline.get_total_time():.4f}s, "
                    f"base spans {t_total:.4f}s")

    @classmethod
    def from_variables(cls, base_lin_nodes: NodesVariablesAll, base_ang_nodes: NodesVariablesAll,
                       base_poly_durations, ee_motion_nodes: List[NodesVariablesPhaseBased],
                       ee_force_nodes: List[NodesVariablesPhaseBased],
                       phase_durations: List[PhaseDurations]):
        if not (len(ee_motion_nodes) == len(ee_force_nodes) == len(phase_durations)):
            raise ConfigurationError("end-effector variable sets differ in count")
        return cls(
            NodeSpline(base_lin_nodes, base_poly_durations),
            NodeSpline(base_ang_nodes, base_poly_durations),
            [PhaseDurationSpline(n, d) for n, d in zip(ee_motion_nodes, phase_durations)],
            [PhaseDurationSpline(n, d) for n, d in zip(ee_force_nodes, phase_durations)],
            phase_durations,
        )

    def get_base_linear(self) -> NodeSpline:
        return self.base_linear

    def get_base_angular(self) -> NodeSpline:
        return self.base_angular

    def get_ee_motion(self, ee=None):
        return self.ee_motion if ee is None else self.ee_motion[ee]

    def get_ee_force(self, ee=None):
        return self.ee_force if ee is None else self.ee_force[ee]

    def get_phase_durations(self, ee=None):
        return self.phase_durations if ee is None else self.phase_durations[ee]

    def get_ee_count(self) -> int:
        return len(self.ee_motion)

    def get_total_time(self) -> float:
        return self.base_linear.get_total_time()

    def is_in_contact(self, ee, t) -> bool:
        """
        Contact state of one end-effector; without a schedule an end-effector
        is in contact whenever its force is non-zero.
        """
        if self.phase_durations:
            return self.phase_durations[ee].is_contact_at(t)
        return bool(np.any(self.ee_force[ee].get_point(t).p != 0.0))
