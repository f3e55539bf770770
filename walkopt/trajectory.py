import numpy as np

from .euler_converter import EulerConverter
from .spline_holder import SplineHolder


def get_trajectory_function(spline_holder: SplineHolder):
    """
    Builds a trajectory object that can be sampled at a uniform timestep.
    Returns a function trajectory(dt) -> (times, base_pos, base_rot, feet_pos, feet_force, contact)
        times:      (N,)
        base_pos:   (N, 3)
        base_rot:   (N, 3) Euler angles [x, y, z]
        feet_pos:   (N, n_ee, 3)
        feet_force: (N, n_ee, 3)
        contact:    (N, n_ee) bool
    The splines are read at call time, so a function built before solving
    samples the solved motion.
    """
    n_ee = spline_holder.get_ee_count()
    base_angular = EulerConverter(spline_holder.get_base_angular())

    def motion_trajectory(dt: float, include_endpoint: bool = True):
        if dt <= 0:
            raise ValueError("dt must be positive")
        total_time = spline_holder.get_total_time()

        end = total_time + (1e-12 if include_endpoint else 0.0)
        times = np.arange(0.0, end, dt, dtype=float)
        if include_endpoint and (total_time - times[-1]) > 1e-9:
            times = np.append(times, total_time)

        base_pos = np.stack([spline_holder.get_base_linear().get_point(t).p for t in times])
        base_rot = np.stack([base_angular.get_euler_angles(t) for t in times])
        feet_pos = np.zeros((len(times), n_ee, 3))
        feet_force = np.zeros((len(times), n_ee, 3))
        contact = np.zeros((len(times), n_ee), dtype=bool)
        for i, t in enumerate(times):
            for ee in range(n_ee):
                feet_pos[i, ee] = spline_holder.get_ee_motion(ee).get_point(t).p
                feet_force[i, ee] = spline_holder.get_ee_force(ee).get_point(t).p
                contact[i, ee] = spline_holder.is_in_contact(ee, t)
        return times, base_pos, base_rot, feet_pos, feet_force, contact

    # Metadata
    motion_trajectory.total_time = spline_holder.get_total_time()
    motion_trajectory.ee_count = n_ee

    return motion_trajectory
