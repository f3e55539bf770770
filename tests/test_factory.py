"""Problem assembly and configuration errors."""

import numpy as np
import pytest

from walkopt import CostConstraintFactory, ConfigurationError, get_robot_model
from walkopt.cost_constraint_factory import ConstraintName
from walkopt.nlp import VarKind
from walkopt.problem_class import NlpProblem
from walkopt.walkopt_dataclasses import StateLin3d, BaseState, RobotState, MotionParameters


def monoped_setup(**overrides):
    robot = get_robot_model("monoped")
    kwargs = dict(ee_phase_durations=[[0.4, 0.2, 0.4]], ee_in_contact_at_start=[True])
    kwargs.update(overrides)
    params = MotionParameters(**kwargs)
    initial = RobotState(base=BaseState(lin=StateLin3d(p=[0.0, 0.0, 0.58])),
                         ee=[StateLin3d(p=[0.0, 0.0, 0.0])])
    final = RobotState(base=BaseState(lin=StateLin3d(p=[0.2, 0.0, 0.58])))
    return robot, params, initial, final


def test_builds_default_problem():
    factory = CostConstraintFactory(*monoped_setup(costs=[("forces", 1e-3)]))
    problem = factory.build_problem()
    assert problem.n == problem.get_variable_values().size
    assert problem.m == problem.evaluate_constraints().size
    assert problem.get_jacobian_of_constraints().shape == (problem.m, problem.n)
    lb, ub = problem.get_bounds_on_variables()
    assert lb.shape == ub.shape == (problem.n,)
    assert len(problem.costs) == 1


def test_unknown_constraint_name_is_fatal():
    with pytest.raises(ConfigurationError):
        CostConstraintFactory(*monoped_setup(constraints=["dynamic", "teleport"]))

    factory = CostConstraintFactory(*monoped_setup())
    with pytest.raises(ConfigurationError):
        factory.get_constraint("teleport")
    with pytest.raises(ConfigurationError):
        factory.get_cost("teleport", 1.0)


def test_constraint_lookup_accepts_enum():
    factory = CostConstraintFactory(*monoped_setup())
    by_name = factory.get_constraint("range_of_motion")
    by_enum = factory.get_constraint(ConstraintName.RANGE_OF_MOTION)
    assert [c.name for c in by_name] == [c.name for c in by_enum] == ["range-of-motion_0"]


def test_mismatched_end_effector_counts():
    robot, params, initial, final = monoped_setup()
    two_feet = RobotState(base=initial.base, ee=[StateLin3d(), StateLin3d()])
    with pytest.raises(ConfigurationError):
        CostConstraintFactory(robot, params, two_feet, final)
    with pytest.raises(ConfigurationError):
        CostConstraintFactory(robot, params, initial, two_feet)
    with pytest.raises(ConfigurationError):
        CostConstraintFactory(get_robot_model("biped"), params, initial, final)


def test_phase_durations_must_share_total_time():
    robot = get_robot_model("biped")
    params = MotionParameters(ee_phase_durations=[[0.5, 0.5], [0.5, 0.4]],
                              ee_in_contact_at_start=[True, True])
    initial = RobotState(ee=[StateLin3d(), StateLin3d()])
    with pytest.raises(ConfigurationError):
        CostConstraintFactory(robot, params, initial, RobotState())


def test_non_positive_phase_is_fatal():
    with pytest.raises(ConfigurationError):
        CostConstraintFactory(*monoped_setup(ee_phase_durations=[[0.6, 0.0, 0.4]]))


def test_schedule_variables_only_when_optimized():
    fixed = CostConstraintFactory(*monoped_setup())
    kinds = [v.id.kind for v in fixed.get_variable_sets()]
    assert VarKind.EE_SCHEDULE not in kinds
    assert fixed.get_constraint("total_time") == []

    free = CostConstraintFactory(*monoped_setup(optimize_phase_durations=True))
    schedules = [v for v in free.get_variable_sets() if v.id.kind is VarKind.EE_SCHEDULE]
    assert len(schedules) == 1
    assert schedules[0].n_vars == 2
    lb, ub = free.build_problem().get_bounds_on_variables()
    np.testing.assert_allclose(lb[-2:], 0.2)
    np.testing.assert_allclose(ub[-2:], 1.0)


def test_initial_guess():
    factory = CostConstraintFactory(*monoped_setup())
    base = factory.spline_holder.get_base_linear()
    np.testing.assert_allclose(base.get_point(0.0).p, [0.0, 0.0, 0.58])
    np.testing.assert_allclose(base.get_point(1.0).p, [0.2, 0.0, 0.58])
    force = factory.spline_holder.get_ee_force(0)
    robot = get_robot_model("monoped")
    np.testing.assert_allclose(force.get_point(0.2).p,
                               [0.0, 0.0, robot.dynamic_model.mass * 9.81])
    np.testing.assert_allclose(force.get_point(0.5).p, np.zeros(3))
    # the initial foot position is fixed in x and y only
    motion = factory.ee_motion_nodes[0]
    bounds = motion.get_bounds()
    np.testing.assert_allclose(bounds[:2], 0.0)
    assert np.all(np.isinf(bounds[2]))


def test_base_polynomials():
    params = MotionParameters(ee_phase_durations=[[0.35, 0.3]], ee_in_contact_at_start=[True],
                              duration_base_polynomial=0.1)
    durations = params.get_base_poly_durations()
    assert len(durations) == 6
    assert durations.sum() == pytest.approx(0.65)
    np.testing.assert_allclose(params.get_eval_times(0.2), [0.0, 0.2, 0.4, 0.6, 0.65])


def test_duplicate_variable_set_rejected():
    factory = CostConstraintFactory(*monoped_setup())
    problem = NlpProblem()
    problem.add_variable_set(factory.base_lin_nodes)
    with pytest.raises(ConfigurationError):
        problem.add_variable_set(factory.base_lin_nodes)


@pytest.mark.parametrize("constraints", [None, ["initial", "final", "dynamic", "force"]])
def test_optimized_durations_keep_last_phase_bounded(constraints):
    overrides = dict(optimize_phase_durations=True)
    if constraints is not None:
        overrides["constraints"] = constraints
    factory = CostConstraintFactory(*monoped_setup(**overrides))
    problem = factory.build_problem()
    names = [c.name for c in problem.constraint_sets]
    assert names.count("total-duration_0") == 1

    # both free phases at their upper bound leave a negative last phase
    schedule = factory.phase_durations[0]
    schedule.set_variables(np.array([1.0, 1.0]))
    total = next(c for c in problem.constraint_sets if c.name == "total-duration_0")
    assert total.get_values()[0] > total.get_bounds()[0, 1]


def test_fixed_durations_ignore_total_time_request():
    factory = CostConstraintFactory(*monoped_setup(constraints=["dynamic", "total_time"]))
    names = [c.name for c in factory.build_problem().constraint_sets]
    assert not any(n.startswith("total-duration") for n in names)
