"""Effort costs over fixed and phase-based splines, and jax precision."""

import numpy as np
import jax.numpy as jnp

import walkopt
from walkopt.cost_parts import EffortCost
from walkopt.node_spline import NodeSpline, PhaseDurationSpline, kPos
from walkopt.variables import NodesVariablesEEForce, PhaseDurations

from fd_check import numerical_jacobian, assert_jacobian_close

TIMES = np.linspace(0.01, 0.99, 25)


def force_nodes(seed=3):
    rng = np.random.default_rng(seed)
    nodes = NodesVariablesEEForce(0, 3, True, 3)
    nodes.set_variables(rng.uniform(0.0, 50.0, nodes.n_vars))
    return nodes


def test_effort_on_phase_spline_depends_on_schedule():
    nodes = force_nodes()
    durations = PhaseDurations(0, [0.3, 0.4, 0.3], True, 0.1, 1.0)
    cost = EffortCost(PhaseDurationSpline(nodes, durations), TIMES, kPos, 1.0, "force-effort_0")
    grad = cost.get_gradient(durations)
    assert np.any(grad != 0.0)
    assert_jacobian_close(grad[None, :], numerical_jacobian(durations, cost.get_cost))


def test_effort_on_fixed_spline_ignores_schedule():
    nodes = force_nodes()
    durations = PhaseDurations(0, [0.3, 0.4, 0.3], True, 0.1, 1.0)
    fixed = NodeSpline(nodes, PhaseDurationSpline(nodes, durations).get_polynomial_durations())
    cost = EffortCost(fixed, TIMES, kPos, 1.0, "force-effort_0")
    np.testing.assert_array_equal(cost.get_gradient(durations), np.zeros(durations.n_vars))


def test_package_import_enables_float64():
    assert walkopt.cost_parts is not None
    assert jnp.zeros(1).dtype == jnp.float64
