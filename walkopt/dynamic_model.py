"""
Rigid-body models predicting the base acceleration produced by the contact
forces. The models hold parameters only; the state at one instant travels in
a DynamicState created per evaluation, so one model can serve any number of
constraints and time instants.

The 6-D acceleration is ordered [AX, AY, AZ, LX, LY, LZ] (angular first).
The linear part is the contact-force contribution sum(f)/m; gravity is left
out and enters the dynamic constraint through g().
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List
import numpy as np
from scipy import sparse

from .errors import ConfigurationError
from .helpers import skew

AX, AY, AZ, LX, LY, LZ = range(6)
k3D, k6D = 3, 6
GRAVITY = 9.81


@dataclass
class DynamicState:
    com_pos: np.ndarray
    omega: np.ndarray         # Base angular velocity in world frame
    ee_force: List[np.ndarray]
    ee_pos: List[np.ndarray]


class DynamicModel(ABC):
    def __init__(self, mass: float, ee_count: int, gravity: float = GRAVITY):
        if mass <= 0.0:
            raise ConfigurationError(f"mass must be positive, got {mass}")
        self.mass = float(mass)
        self._ee_count = int(ee_count)
        self._gravity = float(gravity)

    def g(self) -> float:
        return self._gravity

    def get_ee_count(self) -> int:
        return self._ee_count

    def make_state(self, com_pos, omega, ee_force, ee_pos) -> DynamicState:
        if len(ee_force) != self._ee_count or len(ee_pos) != self._ee_count:
            raise ConfigurationError(
                f"model expects {self._ee_count} end-effectors, got "
                f"{len(ee_force)} forces and {len(ee_pos)} positions")
        return DynamicState(np.asarray(com_pos, dtype=float), np.asarray(omega, dtype=float),
                            [np.asarray(f, dtype=float) for f in ee_force],
                            [np.asarray(p, dtype=float) for p in ee_pos])

    @abstractmethod
    def get_base_acceleration_in_world(self, state: DynamicState) -> np.ndarray:
        ...

    @abstractmethod
    def get_jacobian_of_acc_wrt_base_lin(self, state: DynamicState, jac_base_lin_pos):
        ...

    @abstractmethod
    def get_jacobian_of_acc_wrt_base_ang(self, state: DynamicState, jac_ang_vel):
        ...

    @abstractmethod
    def get_jacobian_of_acc_wrt_force(self, state: DynamicState, jac_force, ee: int):
        ...

    @abstractmethod
    def get_jacobian_of_acc_wrt_ee_pos(self, state: DynamicState, jac_ee_pos, ee: int):
        ...


def _stack(ang, lin):
    return sparse.vstack([ang, lin], format="csr")


class SingleRigidBodyDynamics(DynamicModel):
    """
    Newton-Euler equations of one rigid body with a world-fixed inertia:

        acc_lin = sum_i f_i / m
        acc_ang = I^-1 (sum_i (p_i - c) x f_i - omega x I omega)
    """

    def __init__(self, mass, inertia, ee_count, gravity=GRAVITY):
        super().__init__(mass, ee_count, gravity)
        inertia = np.asarray(inertia, dtype=float)
        if inertia.shape != (3, 3):
            raise ConfigurationError(f"inertia must be 3x3, got shape {inertia.shape}")
        self.inertia = inertia
        self.inertia_inv = np.linalg.inv(inertia)

    @classmethod
    def from_inertia_entries(cls, mass, Ixx, Iyy, Izz, Ixy, Ixz, Iyz, ee_count):
        return cls(mass, _inertia(Ixx, Iyy, Izz, Ixy, Ixz, Iyz), ee_count)

    def get_base_acceleration_in_world(self, state):
        torque = np.zeros(3)
        force = np.zeros(3)
        for f, p in zip(state.ee_force, state.ee_pos):
            torque += np.cross(p - state.com_pos, f)
            force += f
        w = state.omega
        acc = np.zeros(k6D)
        acc[AX:AX+k3D] = self.inertia_inv @ (torque - np.cross(w, self.inertia @ w))
        acc[LX:LX+k3D] = force / self.mass
        return acc

    def _zero(self, jac):
        return sparse.csr_matrix((k3D, jac.shape[1]))

    def get_jacobian_of_acc_wrt_base_lin(self, state, jac_base_lin_pos):
        # d((p - c) x f)/dc = skew(f)
        A = sum(skew(f) for f in state.ee_force)
        ang = sparse.csr_matrix(self.inertia_inv @ A) @ jac_base_lin_pos
        return _stack(ang, self._zero(jac_base_lin_pos))

    def get_jacobian_of_acc_wrt_base_ang(self, state, jac_ang_vel):
        w = state.omega
        dgyro = skew(w) @ self.inertia - skew(self.inertia @ w)
        ang = sparse.csr_matrix(-self.inertia_inv @ dgyro) @ jac_ang_vel
        return _stack(ang, self._zero(jac_ang_vel))

    def get_jacobian_of_acc_wrt_force(self, state, jac_force, ee):
        r = state.ee_pos[ee] - state.com_pos
        ang = sparse.csr_matrix(self.inertia_inv @ skew(r)) @ jac_force
        lin = sparse.csr_matrix(jac_force) / self.mass
        return _stack(ang, lin)

    def get_jacobian_of_acc_wrt_ee_pos(self, state, jac_ee_pos, ee):
        f = state.ee_force[ee]
        ang = sparse.csr_matrix(-self.inertia_inv @ skew(f)) @ jac_ee_pos
        return _stack(ang, self._zero(jac_ee_pos))


class MonopedDynamicModel(SingleRigidBodyDynamics):
    def __init__(self):
        super().__init__(20.0, _inertia(1.209488, 5.5837, 6.056973, 0.005, -0.190812, -0.012668), 1)


class BipedDynamicModel(SingleRigidBodyDynamics):
    def __init__(self):
        super().__init__(20.0, _inertia(1.209488, 5.5837, 6.056973, 0.005, -0.190812, -0.012668), 2)


class HyqDynamicModel(SingleRigidBodyDynamics):
    def __init__(self):
        super().__init__(83.0, _inertia(4.26, 8.97, 9.88, -0.0063, 0.193, 0.0126), 4)


class AnymalDynamicModel(SingleRigidBodyDynamics):
    def __init__(self):
        super().__init__(29.5, _inertia(0.946438, 1.94478, 2.01835,
                                        0.000938112, -0.00595386, -0.00146328), 4)


def _inertia(Ixx, Iyy, Izz, Ixy, Ixz, Iyz):
    return np.array([
        [Ixx, Ixy, Ixz],
        [Ixy, Iyy, Iyz],
        [Ixz, Iyz, Izz],
    ])
