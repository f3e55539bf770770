"""Tests for the single-rigid-body model and its partial derivatives."""

import numpy as np
import pytest
from scipy import sparse

from walkopt.dynamic_model import (
    SingleRigidBodyDynamics,
    MonopedDynamicModel,
    HyqDynamicModel,
    AX,
    LX,
    LZ,
)
from walkopt.errors import ConfigurationError
from walkopt.robot_model import get_robot_model

I3 = sparse.identity(3, format="csr")


@pytest.fixture
def model():
    inertia = np.array([[1.2, 0.01, -0.2], [0.01, 5.6, -0.01], [-0.2, -0.01, 6.1]])
    return SingleRigidBodyDynamics(20.0, inertia, 2)


@pytest.fixture
def state(model):
    return model.make_state(
        com_pos=[0.1, -0.05, 0.6],
        omega=[0.3, -0.7, 0.2],
        ee_force=[[10.0, -4.0, 90.0], [-3.0, 6.0, 110.0]],
        ee_pos=[[0.2, 0.2, 0.0], [0.1, -0.2, 0.05]],
    )


def fd_wrt(model, state, attr, index=None, h=1e-6):
    cols = []
    for i in range(3):
        values = []
        for sign in (1.0, -1.0):
            field = getattr(state, attr)
            target = field if index is None else field[index]
            saved = target[i]
            target[i] = saved + sign * h
            values.append(model.get_base_acceleration_in_world(state))
            target[i] = saved
        cols.append((values[0] - values[1]) / (2 * h))
    return np.column_stack(cols)


def test_standing_on_one_foot(model):
    m = model.mass
    state = model.make_state([0.0, 0.0, 0.5], np.zeros(3),
                             [[0.0, 0.0, m * model.g()], np.zeros(3)],
                             [[0.0, 0.0, 0.0], [0.3, 0.0, 0.0]])
    acc = model.get_base_acceleration_in_world(state)
    np.testing.assert_allclose(acc[AX:AX+3], np.zeros(3), atol=1e-12)
    np.testing.assert_allclose(acc[LX:LX+3], [0.0, 0.0, model.g()])


def test_gravity_constant():
    assert MonopedDynamicModel().g() == pytest.approx(9.81)


def test_jacobian_wrt_base_position(model, state):
    jac = model.get_jacobian_of_acc_wrt_base_lin(state, I3).toarray()
    np.testing.assert_allclose(jac, fd_wrt(model, state, "com_pos"), atol=1e-6)


def test_jacobian_wrt_angular_velocity(model, state):
    jac = model.get_jacobian_of_acc_wrt_base_ang(state, I3).toarray()
    np.testing.assert_allclose(jac, fd_wrt(model, state, "omega"), atol=1e-6)


@pytest.mark.parametrize("ee", [0, 1])
def test_jacobian_wrt_force(model, state, ee):
    jac = model.get_jacobian_of_acc_wrt_force(state, I3, ee).toarray()
    np.testing.assert_allclose(jac, fd_wrt(model, state, "ee_force", ee), atol=1e-6)


@pytest.mark.parametrize("ee", [0, 1])
def test_jacobian_wrt_foot_position(model, state, ee):
    jac = model.get_jacobian_of_acc_wrt_ee_pos(state, I3, ee).toarray()
    np.testing.assert_allclose(jac, fd_wrt(model, state, "ee_pos", ee), atol=1e-6)


def test_jacobians_compose_with_spline_jacobians(model, state):
    J = sparse.csr_matrix(np.arange(12.0).reshape(3, 4))
    jac = model.get_jacobian_of_acc_wrt_force(state, J, 0)
    assert jac.shape == (6, 4)
    np.testing.assert_allclose(jac.toarray()[LX:LX+3], J.toarray() / model.mass)


def test_state_with_wrong_ee_count_raises(model):
    with pytest.raises(ConfigurationError):
        model.make_state(np.zeros(3), np.zeros(3), [np.zeros(3)], [np.zeros(3)])


def test_invalid_parameters_raise():
    with pytest.raises(ConfigurationError):
        SingleRigidBodyDynamics(0.0, np.eye(3), 1)
    with pytest.raises(ConfigurationError):
        SingleRigidBodyDynamics(1.0, np.eye(2), 1)


def test_robot_variants():
    assert HyqDynamicModel().get_ee_count() == 4
    assert get_robot_model("anymal").get_ee_count() == 4
    assert get_robot_model("biped").get_ee_count() == 2
    assert get_robot_model("monoped").dynamic_model.mass == pytest.approx(20.0)
    with pytest.raises(ConfigurationError):
        get_robot_model("hexapod")


def test_linear_row_order():
    assert (AX, LX, LZ) == (0, 3, 5)
