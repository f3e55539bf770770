"""
Kinematic, contact, terrain and boundary requirements of the motion.
"""
import numpy as np
from scipy import sparse

from .dynamic_model import k3D
from .errors import ConfigurationError
from .euler_converter import EulerConverter
from .height_map import HeightMap, X_, Y_, NORMAL, TANGENT1, TANGENT2
from .nlp import ConstraintSet, VarKind, INF, BOUND_ZERO
from .node_spline import NodeSpline, kPos, kVel, kAcc
from .robot_model import KinematicModel
from .spline_holder import SplineHolder
from .time_discretization_constraint import TimeDiscretizationConstraint
from .variables import NodesVariablesEEMotion, PhaseDurations, POS


def _check_ee(ee, spline_holder, n_model=None):
    n_splines = spline_holder.get_ee_count()
    if n_model is not None and n_model != n_splines:
        raise ConfigurationError(
            f"model expects {n_model} end-effectors, splines hold {n_splines}")
    if not 0 <= ee < n_splines:
        raise ConfigurationError(f"end-effector {ee} out of range for {n_splines} end-effectors")


class RangeOfMotionConstraint(TimeDiscretizationConstraint):
    """
    Keeps the foot, expressed in base frame, inside a box around its nominal
    stance position.
    """

    def __init__(self, kinematic_model: KinematicModel, evaluation_times,
                 spline_holder: SplineHolder, ee: int):
        _check_ee(ee, spline_holder, kinematic_model.get_ee_count())
        super().__init__(evaluation_times, k3D, f"range-of-motion_{ee}")
        self.ee = ee
        self.base_linear = spline_holder.get_base_linear()
        self.base_angular = EulerConverter(spline_holder.get_base_angular())
        self.ee_motion = spline_holder.get_ee_motion(ee)
        self.nominal = kinematic_model.nominal_stance[ee]
        self.max_deviation = kinematic_model.max_deviation

    def _pos_ee_to_base_world(self, t):
        return self.ee_motion.get_point(t).p - self.base_linear.get_point(t).p

    def update_constraint_at_instance(self, t, k):
        R = self.base_angular.get_rotation_matrix_base_to_world(t)
        return R.T @ self._pos_ee_to_base_world(t)

    def update_bounds_at_instance(self, t, k):
        return np.column_stack([self.nominal - self.max_deviation,
                                self.nominal + self.max_deviation])

    def update_jacobian_at_instance(self, t, k, var_set):
        kind, ee = var_set.id.kind, var_set.id.ee
        R_T = sparse.csr_matrix(self.base_angular.get_rotation_matrix_base_to_world(t).T)

        if kind is VarKind.BASE_LIN:
            return -(R_T @ self.base_linear.get_jacobian_wrt_nodes(t, kPos))
        if kind is VarKind.BASE_ANG:
            return self.base_angular.get_deriv_of_rot_vec_mult(
                t, self._pos_ee_to_base_world(t), inverse=True)
        if ee != self.ee:
            return None
        if kind is VarKind.EE_MOTION:
            return R_T @ self.ee_motion.get_jacobian_wrt_nodes(t, kPos)
        if kind is VarKind.EE_SCHEDULE:
            return R_T @ self.ee_motion.get_jacobian_of_pos_wrt_durations(t)
        return None


class ForceConstraint(TimeDiscretizationConstraint):
    """
    Unilateral normal force below f_max and a four-sided friction pyramid
    around the terrain normal under the foot. A swinging foot carries zero
    force and satisfies every row.
    """

    def __init__(self, terrain: HeightMap, friction_coeff, max_normal_force,
                 evaluation_times, spline_holder: SplineHolder, ee: int):
        _check_ee(ee, spline_holder)
        super().__init__(evaluation_times, 5, f"force_{ee}")
        self.ee = ee
        self.terrain = terrain
        self.mu = float(friction_coeff)
        self.f_max = float(max_normal_force)
        self.ee_force = spline_holder.get_ee_force(ee)
        self.ee_motion = spline_holder.get_ee_motion(ee)

    def _cone_rows(self, basis):
        n, t1, t2 = basis[NORMAL], basis[TANGENT1], basis[TANGENT2]
        return np.vstack([n, t1 - self.mu*n, t1 + self.mu*n, t2 - self.mu*n, t2 + self.mu*n])

    def update_constraint_at_instance(self, t, k):
        p = self.ee_motion.get_point(t).p
        f = self.ee_force.get_point(t).p
        return self._cone_rows(self.terrain.get_basis(p[X_], p[Y_])) @ f

    def update_bounds_at_instance(self, t, k):
        return np.array([
            (0.0, self.f_max),
            (-INF, 0.0),
            (0.0, INF),
            (-INF, 0.0),
            (0.0, INF),
        ])

    def _jac_wrt_foot_xy(self, t, jac_pos):
        """Rows change with the foot position only through the terrain basis."""
        p = self.ee_motion.get_point(t).p
        f = self.ee_force.get_point(t).p
        C = np.column_stack([
            self._cone_rows(self.terrain.get_basis_derivative(dim, p[X_], p[Y_])) @ f
            for dim in (X_, Y_)
        ])
        return sparse.csr_matrix(C) @ sparse.csr_matrix(jac_pos)[[X_, Y_], :]

    def update_jacobian_at_instance(self, t, k, var_set):
        kind, ee = var_set.id.kind, var_set.id.ee
        if ee != self.ee:
            return None
        p = self.ee_motion.get_point(t).p
        A = sparse.csr_matrix(self._cone_rows(self.terrain.get_basis(p[X_], p[Y_])))

        if kind is VarKind.EE_FORCE:
            return A @ self.ee_force.get_jacobian_wrt_nodes(t, kPos)
        if kind is VarKind.EE_MOTION:
            return self._jac_wrt_foot_xy(t, self.ee_motion.get_jacobian_wrt_nodes(t, kPos))
        if kind is VarKind.EE_SCHEDULE:
            return (A @ self.ee_force.get_jacobian_of_pos_wrt_durations(t)
                    + self._jac_wrt_foot_xy(t, self.ee_motion.get_jacobian_of_pos_wrt_durations(t)))
        return None


class TerrainConstraint(ConstraintSet):
    """
    One row per foot position variable: on the ground during stance, above it
    otherwise. Works on the nodes, so it is unaffected by changing durations.
    """

    def __init__(self, terrain: HeightMap, ee_motion: NodesVariablesEEMotion):
        super().__init__(f"terrain_{ee_motion.id.ee}")
        self.terrain = terrain
        self.ee_motion = ee_motion

        self._nodes = []
        seen = set()
        for node_id in range(ee_motion.n_nodes):
            idx = ee_motion.get_opt_index(node_id, POS, 2)
            if idx >= 0 and idx not in seen:
                seen.add(idx)
                self._nodes.append(node_id)
        self.set_rows(len(self._nodes))

    def get_values(self):
        p = self.ee_motion.nodes[self._nodes, POS, :]
        return np.array([z - self.terrain.get_height(x, y) for x, y, z in p])

    def get_bounds(self):
        return np.array([BOUND_ZERO if self.ee_motion.is_constant_node(n) else (0.0, INF)
                         for n in self._nodes]).reshape(-1, 2)

    def get_jacobian(self, var_set):
        if var_set.id != self.ee_motion.id:
            return super().get_jacobian(var_set)
        rows, cols, vals = [], [], []
        for row, node_id in enumerate(self._nodes):
            x, y, _ = self.ee_motion.nodes[node_id, POS, :]
            for dim, value in ((X_, -self.terrain.get_height_derivative(X_, x, y)),
                               (Y_, -self.terrain.get_height_derivative(Y_, x, y)),
                               (2, 1.0)):
                idx = self.ee_motion.get_opt_index(node_id, POS, dim)
                if idx >= 0:
                    rows.append(row)
                    cols.append(idx)
                    vals.append(value)
        return sparse.csr_matrix((vals, (rows, cols)), shape=(self.n_rows, var_set.n_vars))


class BaseBoundaryConstraint(TimeDiscretizationConstraint):
    """
    Position and velocity of a base spline at one instant (start or end of
    the motion) equal a given state.
    """

    def __init__(self, spline: NodeSpline, t, target_p, target_v, name):
        super().__init__([t], 2 * spline.n_dim, name)
        self.spline = spline
        self.target = np.concatenate([np.asarray(target_p, dtype=float),
                                      np.asarray(target_v, dtype=float)])

    def update_constraint_at_instance(self, t, k):
        s = self.spline.get_point(t)
        return np.concatenate([s.p, s.v])

    def update_bounds_at_instance(self, t, k):
        return np.column_stack([self.target, self.target])

    def update_jacobian_at_instance(self, t, k, var_set):
        if var_set.id != self.spline.var_id:
            return None
        return sparse.vstack([self.spline.get_jacobian_wrt_nodes(t, kPos),
                              self.spline.get_jacobian_wrt_nodes(t, kVel)], format="csr")


class SplineAccConstraint(TimeDiscretizationConstraint):
    """
    Continuous acceleration across the junctions of a Hermite spline, whose
    nodes only make position and velocity continuous.
    """

    def __init__(self, spline: NodeSpline, name):
        junctions = np.cumsum(spline.get_polynomial_durations())[:-1]
        super().__init__(junctions, spline.n_dim, name)
        self.spline = spline

    def _sides(self, k):
        T = self.spline.get_polynomial_durations()[k]
        return (k, T), (k + 1, 0.0)

    def update_constraint_at_instance(self, t, k):
        left, right = self._sides(k)
        return self.spline.get_segment_point(*left).a - self.spline.get_segment_point(*right).a

    def update_bounds_at_instance(self, t, k):
        return np.zeros((self.spline.n_dim, 2))

    def update_jacobian_at_instance(self, t, k, var_set):
        if var_set.id != self.spline.var_id:
            return None
        left, right = self._sides(k)
        return (self.spline.get_segment_jacobian_wrt_nodes(*left, kAcc)
                - self.spline.get_segment_jacobian_wrt_nodes(*right, kAcc))


class ObstacleConstraint(TimeDiscretizationConstraint):
    """Base position stays outside a sphere."""

    def __init__(self, spline_holder: SplineHolder, evaluation_times, center, radius, name):
        super().__init__(evaluation_times, 1, name)
        self.base_linear = spline_holder.get_base_linear()
        self.center = np.asarray(center, dtype=float)
        self.radius = float(radius)

    def update_constraint_at_instance(self, t, k):
        d = self.base_linear.get_point(t).p - self.center
        return np.array([d @ d])

    def update_bounds_at_instance(self, t, k):
        return np.array([[self.radius**2, INF]])

    def update_jacobian_at_instance(self, t, k, var_set):
        if var_set.id.kind is not VarKind.BASE_LIN:
            return None
        d = self.base_linear.get_point(t).p - self.center
        return sparse.csr_matrix(2.0 * d) @ self.base_linear.get_jacobian_wrt_nodes(t, kPos)


class TotalDurationConstraint(ConstraintSet):
    """The last phase, total time minus the optimized ones, stays above the minimum."""

    def __init__(self, phase_durations: PhaseDurations):
        super().__init__(f"total-duration_{phase_durations.id.ee}", 1)
        self.phase_durations = phase_durations

    def get_values(self):
        return np.array([self.phase_durations.get_values().sum()])

    def get_bounds(self):
        d = self.phase_durations
        return np.array([[0.0, d.t_total - d.min_duration]])

    def get_jacobian(self, var_set):
        if var_set.id != self.phase_durations.id:
            return super().get_jacobian(var_set)
        return sparse.csr_matrix(np.ones((1, var_set.n_vars)))
