"""
The dynamic constraint is satisfied exactly by motions generated from the
rigid-body model itself.
"""

import numpy as np
import pytest

from walkopt import CostConstraintFactory, ConfigurationError, get_robot_model
from walkopt.constraints import RangeOfMotionConstraint, ForceConstraint
from walkopt.dynamic_constraint import DynamicConstraint
from walkopt.dynamic_model import SingleRigidBodyDynamics, MonopedDynamicModel
from walkopt.height_map import FlatGround
from walkopt.nlp import VarId, VarKind
from walkopt.spline_holder import SplineHolder
from walkopt.variables import (
    NodesVariablesAll,
    NodesVariablesEEMotion,
    NodesVariablesEEForce,
    PhaseDurations,
    POS,
    VEL,
)
from walkopt.walkopt_dataclasses import StateLin3d, BaseState, RobotState, MotionParameters

T = 1.0
N_POLYS = 5


def base_nodes(kind, pos, vel):
    """Nodes sampled from an analytic trajectory at evenly spaced times."""
    nodes = NodesVariablesAll(VarId(kind), N_POLYS + 1, 3)
    for k, t in enumerate(np.linspace(0.0, T, N_POLYS + 1)):
        nodes.nodes[k, POS] = pos(t)
        nodes.nodes[k, VEL] = vel(t)
    return nodes


def stance_holder(base_lin, base_ang, feet, forces):
    motion, force, durations = [], [], []
    for ee, (p, f) in enumerate(zip(feet, forces)):
        m = NodesVariablesEEMotion(ee, 1, True, 2)
        m.set_constant_position(p)
        motion.append(m)
        fn = NodesVariablesEEForce(ee, 1, True, 3)
        fn.set_stance_force(f)
        force.append(fn)
        durations.append(PhaseDurations(ee, [T], True, 0.1, 2.0))
    return SplineHolder.from_variables(base_lin, base_ang, np.full(N_POLYS, T / N_POLYS),
                                       motion, force, durations)


def assert_satisfied(constraint):
    g = constraint.get_values()
    bounds = constraint.get_bounds()
    np.testing.assert_allclose(bounds[:, 0], bounds[:, 1])
    np.testing.assert_allclose(g, bounds[:, 0], atol=1e-9)


def test_vertically_accelerating_monoped():
    model = MonopedDynamicModel()
    acc = 1.0
    base_lin = base_nodes(VarKind.BASE_LIN,
                          lambda t: [0.0, 0.0, 0.6 + 0.5 * acc * t**2],
                          lambda t: [0.0, 0.0, acc * t])
    base_ang = base_nodes(VarKind.BASE_ANG, lambda t: np.zeros(3), lambda t: np.zeros(3))
    force = [0.0, 0.0, model.mass * (acc + model.g())]
    holder = stance_holder(base_lin, base_ang, [np.zeros(3)], [force])

    constraint = DynamicConstraint(model, np.linspace(0.0, T, 11), holder)
    assert constraint.n_rows == 66
    assert_satisfied(constraint)


def test_biped_yawing_in_place():
    mass, d, h, F = 20.0, 0.2, 0.6, 5.0
    model = SingleRigidBodyDynamics(mass, np.diag([1.0, 2.0, 3.0]), 2)
    # the two horizontal forces form a couple about the vertical axis
    alpha = 2 * d * F / 3.0
    base_lin = base_nodes(VarKind.BASE_LIN, lambda t: [0.0, 0.0, h], lambda t: np.zeros(3))
    base_ang = base_nodes(VarKind.BASE_ANG,
                          lambda t: [0.0, 0.0, 0.5 * alpha * t**2],
                          lambda t: [0.0, 0.0, alpha * t])
    fz = mass * model.g() / 2
    holder = stance_holder(base_lin, base_ang,
                           [[0.0, d, 0.0], [0.0, -d, 0.0]],
                           [[-F, 0.0, fz], [F, 0.0, fz]])

    constraint = DynamicConstraint(model, np.linspace(0.0, T, 11), holder)
    assert_satisfied(constraint)

    # any other yaw acceleration violates the angular rows only
    base_ang.nodes[:, VEL, 2] *= 2.0
    base_ang.nodes[:, POS, 2] *= 2.0
    g = constraint.get_values().reshape(-1, 6)
    assert np.all(np.abs(g[1:, 2]) > 1e-3)
    np.testing.assert_allclose(g[:, 3:5], 0.0, atol=1e-9)


def test_standing_quadruped_from_factory():
    robot = get_robot_model("anymal")
    z = 0.42
    params = MotionParameters(ee_phase_durations=[[T]] * 4, ee_in_contact_at_start=[True] * 4)
    feet = [StateLin3d(p=p + np.array([0.0, 0.0, z])) for p in robot.kinematic_model.nominal_stance]
    initial = RobotState(base=BaseState(lin=StateLin3d(p=[0.0, 0.0, z])), ee=feet)
    final = RobotState(base=BaseState(lin=StateLin3d(p=[0.0, 0.0, z])))
    factory = CostConstraintFactory(robot, params, initial, final)

    problem = factory.build_problem()
    assert problem.get_constraint_violation() == pytest.approx(0.0, abs=1e-9)
    assert_satisfied(factory.get_constraint("dynamic")[0])


def test_evaluation_times_are_deduplicated():
    model = MonopedDynamicModel()
    base_lin = base_nodes(VarKind.BASE_LIN, lambda t: [0.0, 0.0, 0.6], lambda t: np.zeros(3))
    base_ang = base_nodes(VarKind.BASE_ANG, lambda t: np.zeros(3), lambda t: np.zeros(3))
    holder = stance_holder(base_lin, base_ang, [np.zeros(3)], [np.zeros(3)])
    constraint = DynamicConstraint(model, [0.5, 0.0, 0.5, 1.0], holder)
    assert constraint.get_number_of_nodes() == 3
    assert constraint.n_rows == 18
    np.testing.assert_allclose(constraint.times, [0.0, 0.5, 1.0])


def standing_biped_holder():
    base_lin = base_nodes(VarKind.BASE_LIN, lambda t: [0.0, 0.0, 0.6], lambda t: np.zeros(3))
    base_ang = base_nodes(VarKind.BASE_ANG, lambda t: np.zeros(3), lambda t: np.zeros(3))
    return stance_holder(base_lin, base_ang,
                         [[0.0, 0.2, 0.0], [0.0, -0.2, 0.0]], [np.zeros(3), np.zeros(3)])


def test_end_effector_count_mismatch_fails_at_construction():
    holder = standing_biped_holder()
    with pytest.raises(ConfigurationError):
        DynamicConstraint(MonopedDynamicModel(), [0.0, 0.5], holder)

    monoped = get_robot_model("monoped").kinematic_model
    with pytest.raises(ConfigurationError):
        RangeOfMotionConstraint(monoped, [0.0, 0.5], holder, 0)


def test_end_effector_index_out_of_range():
    holder = standing_biped_holder()
    biped = get_robot_model("biped").kinematic_model
    with pytest.raises(ConfigurationError):
        RangeOfMotionConstraint(biped, [0.0, 0.5], holder, 2)
    with pytest.raises(ConfigurationError):
        ForceConstraint(FlatGround(), 0.5, 1000.0, [0.0, 0.5], holder, -1)
    assert ForceConstraint(FlatGround(), 0.5, 1000.0, [0.0, 0.5], holder, 1).name == "force_1"
