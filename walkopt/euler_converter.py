"""
Angular quantities of a base orientation spline parameterized by Euler angles.

Convention (shared by the whole package): the spline holds [x, y, z], the
rotations about the world X, Y and Z axes, composed as
R = Rz(z) @ Ry(y) @ Rx(x) which maps base to world coordinates.
Then

    omega_W = M(phi) @ phi_dot
    alpha_W = M(phi) @ phi_ddot + M_dot(phi, phi_dot) @ phi_dot

with M_dot = sum_i dM/dphi_i * phi_dot_i.
"""
import numpy as np
from scipy import sparse

from .helpers import (
    euler_zyx_to_matrix,
    euler_zyx_matrix_derivatives,
    euler_rates_to_omega_matrix,
    euler_rates_to_omega_matrix_derivatives,
    euler_rates_to_omega_matrix_second_derivatives,
)
from .node_spline import NodeSpline, kPos, kVel, kAcc


def _dense_times(A, J):
    return sparse.csr_matrix(A) @ J


class EulerConverter:
    def __init__(self, euler_spline: NodeSpline):
        self.euler = euler_spline

    def get_euler_angles(self, t):
        return self.euler.get_point(t).p

    def get_rotation_matrix_base_to_world(self, t):
        return euler_zyx_to_matrix(self.euler.get_point(t).p)

    def get_angular_velocity_in_world(self, t):
        s = self.euler.get_point(t)
        return euler_rates_to_omega_matrix(s.p) @ s.v

    def get_angular_acceleration_in_world(self, t):
        s = self.euler.get_point(t)
        dM = euler_rates_to_omega_matrix_derivatives(s.p)
        M_dot = sum(dM[i] * s.v[i] for i in range(3))
        return euler_rates_to_omega_matrix(s.p) @ s.a + M_dot @ s.v

    def _jacobians(self, t):
        return (self.euler.get_jacobian_wrt_nodes(t, kPos),
                self.euler.get_jacobian_wrt_nodes(t, kVel),
                self.euler.get_jacobian_wrt_nodes(t, kAcc))

    def get_deriv_of_ang_vel_wrt_euler_nodes(self, t) -> sparse.csr_matrix:
        """
        d omega_W / d nodes = M @ J_vel + C @ J_pos, with column i of C being
        dM/dphi_i @ phi_dot.
        """
        s = self.euler.get_point(t)
        J_pos, J_vel, _ = self._jacobians(t)
        dM = euler_rates_to_omega_matrix_derivatives(s.p)
        C = np.column_stack([dM[i] @ s.v for i in range(3)])
        M = euler_rates_to_omega_matrix(s.p)
        return _dense_times(M, J_vel) + _dense_times(C, J_pos)

    def get_deriv_of_ang_acc_wrt_euler_nodes(self, t) -> sparse.csr_matrix:
        """
        Product rule over both terms of alpha_W:
            d(M phi_ddot)      = M J_acc + [dM_i phi_ddot]_i J_pos
            d(M_dot phi_dot)   = (M_dot + [dM_j phi_dot]_j) J_vel
                               + [sum_j d2M_ij phi_dot_j phi_dot]_i J_pos
        """
        s = self.euler.get_point(t)
        J_pos, J_vel, J_acc = self._jacobians(t)
        M = euler_rates_to_omega_matrix(s.p)
        dM = euler_rates_to_omega_matrix_derivatives(s.p)
        d2M = euler_rates_to_omega_matrix_second_derivatives(s.p)

        M_dot = sum(dM[j] * s.v[j] for j in range(3))
        C_acc = np.column_stack([dM[i] @ s.a for i in range(3)])
        C_vel = np.column_stack([dM[j] @ s.v for j in range(3)])
        C_dd = np.column_stack([
            sum(d2M[i][j] * s.v[j] for j in range(3)) @ s.v for i in range(3)
        ])

        return (_dense_times(M, J_acc)
                + _dense_times(M_dot + C_vel, J_vel)
                + _dense_times(C_acc + C_dd, J_pos))

    def get_deriv_of_rot_vec_mult(self, t, v, inverse=False) -> sparse.csr_matrix:
        """
        Derivative of R @ v (or R.T @ v if inverse) w.r.t. the Euler nodes,
        with v held constant.
        """
        s = self.euler.get_point(t)
        J_pos = self.euler.get_jacobian_wrt_nodes(t, kPos)
        dR = euler_zyx_matrix_derivatives(s.p)
        if inverse:
            C = np.column_stack([dR[i].T @ v for i in range(3)])
        else:
            C = np.column_stack([dR[i] @ v for i in range(3)])
        return _dense_times(C, J_pos)
