"""
Ties the base acceleration of the splines to the acceleration the rigid-body
model predicts from the contact forces, at discrete time instants.
"""
import numpy as np
from scipy import sparse

from .dynamic_model import DynamicModel, DynamicState, AX, LX, LZ, k3D, k6D
from .errors import ConfigurationError
from .euler_converter import EulerConverter
from .nlp import VarKind
from .node_spline import kPos, kAcc
from .spline_holder import SplineHolder
from .time_discretization_constraint import TimeDiscretizationConstraint


class DynamicConstraint(TimeDiscretizationConstraint):
    """
    Six rows per instant: g = acc_model - acc_spline, ordered [AX..AZ, LX..LZ].
    The model leaves gravity out of its linear acceleration, so the LZ row is
    bounded to [g, g] and every other row to zero.
    """

    def __init__(self, model: DynamicModel, evaluation_times, spline_holder: SplineHolder):
        if spline_holder.get_ee_count() != model.get_ee_count():
            raise ConfigurationError(
                f"model expects {model.get_ee_count()} end-effectors, "
                f"splines hold {spline_holder.get_ee_count()}")
        super().__init__(evaluation_times, k6D, "dynamic")
        self.model = model
        self.base_linear = spline_holder.get_base_linear()
        self.base_angular = EulerConverter(spline_holder.get_base_angular())
        self.ee_forces = spline_holder.get_ee_force()
        self.ee_motion = spline_holder.get_ee_motion()

    def update_model(self, t) -> DynamicState:
        com_pos = self.base_linear.get_point(t).p
        omega = self.base_angular.get_angular_velocity_in_world(t)
        ee_force = [f.get_point(t).p for f in self.ee_forces]
        ee_pos = [m.get_point(t).p for m in self.ee_motion]
        return self.model.make_state(com_pos, omega, ee_force, ee_pos)

    def update_constraint_at_instance(self, t, k):
        acc_model = self.model.get_base_acceleration_in_world(self.update_model(t))

        acc_parametrization = np.zeros(k6D)
        acc_parametrization[AX:AX+k3D] = self.base_angular.get_angular_acceleration_in_world(t)
        acc_parametrization[LX:LX+k3D] = self.base_linear.get_point(t).a
        return acc_model - acc_parametrization

    def update_bounds_at_instance(self, t, k):
        bounds = np.zeros((k6D, 2))
        bounds[LZ] = (self.model.g(), self.model.g())
        return bounds

    def update_jacobian_at_instance(self, t, k, var_set):
        kind, ee = var_set.id.kind, var_set.id.ee
        n = var_set.n_vars
        zero3 = sparse.csr_matrix((k3D, n))
        state = self.update_model(t)

        if kind is VarKind.BASE_LIN:
            jac_model = self.model.get_jacobian_of_acc_wrt_base_lin(
                state, self.base_linear.get_jacobian_wrt_nodes(t, kPos))
            jac_param = sparse.vstack([zero3, self.base_linear.get_jacobian_wrt_nodes(t, kAcc)])
            return jac_model - jac_param

        if kind is VarKind.BASE_ANG:
            jac_model = self.model.get_jacobian_of_acc_wrt_base_ang(
                state, self.base_angular.get_deriv_of_ang_vel_wrt_euler_nodes(t))
            jac_param = sparse.vstack([self.base_angular.get_deriv_of_ang_acc_wrt_euler_nodes(t), zero3])
            return jac_model - jac_param

        if not 0 <= ee < self.model.get_ee_count():
            return None

        if kind is VarKind.EE_FORCE:
            jac_force = self.ee_forces[ee].get_jacobian_wrt_nodes(t, kPos)
            return self.model.get_jacobian_of_acc_wrt_force(state, jac_force, ee)

        if kind is VarKind.EE_MOTION:
            jac_ee_pos = self.ee_motion[ee].get_jacobian_wrt_nodes(t, kPos)
            return self.model.get_jacobian_of_acc_wrt_ee_pos(state, jac_ee_pos, ee)

        if kind is VarKind.EE_SCHEDULE:
            # one duration moves both the force profile and the foot position
            jac_f_dT = self.ee_forces[ee].get_jacobian_of_pos_wrt_durations(t)
            jac_x_dT = self.ee_motion[ee].get_jacobian_of_pos_wrt_durations(t)
            return (self.model.get_jacobian_of_acc_wrt_force(state, jac_f_dT, ee)
                    + self.model.get_jacobian_of_acc_wrt_ee_pos(state, jac_x_dT, ee))

        return None
