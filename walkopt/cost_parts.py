"""
Cost terms of the motion problem. Quadratic penalties are evaluated with
jitted jax `value_and_grad`.

Importing this module (and so `walkopt`) switches jax to 64-bit floats for
the whole process, so that penalty gradients match the float64 numpy
Jacobians they are summed with.
"""
import numpy as np
import jax
import jax.numpy as jnp
from jax import jit, value_and_grad

from .nlp import CostTerm, ConstraintSet, VarKind
from .node_spline import NodeSpline, PhaseDurationSpline, kPos
from .variables import NodesVariables

jax.config.update("jax_enable_x64", True)


def weighted_sum_of_squares(values, weights):
    """
        values: samples, any shape
        weights: broadcastable to values

        return: sum of weights * values^2
    """
    return jnp.sum(weights * jnp.square(values))

def bound_violation_cost(g, lower, upper, weight):
    """
        g: constraint values
        lower, upper: bounds (may be infinite)
        weight: penalty weight

        return: 0.5 * weight * squared distance of g to its bounds
    """
    below = jnp.maximum(lower - g, 0.0)
    above = jnp.maximum(g - upper, 0.0)
    return 0.5 * weight * jnp.sum(jnp.square(below) + jnp.square(above))

_sum_of_squares_valgrad = jit(value_and_grad(weighted_sum_of_squares))
_bound_violation_valgrad = jit(value_and_grad(bound_violation_cost))


class NodeCost(CostTerm):
    """
    Weighted sum of squares of one derivative/dimension over all nodes,
    e.g. foot velocities to discourage unnecessary motion.
    """

    def __init__(self, nodes: NodesVariables, deriv: int, dim: int, weight: float, name=None):
        super().__init__(name or f"node-cost-{nodes.name}")
        self.nodes = nodes
        self.deriv = deriv
        self.dim = dim
        self.weight = float(weight)

    def _valgrad(self):
        values = jnp.asarray(self.nodes.nodes[:, self.deriv, self.dim])
        return _sum_of_squares_valgrad(values, self.weight)

    def get_cost(self):
        value, _ = self._valgrad()
        return float(value)

    def get_gradient(self, var_set):
        grad = np.zeros(var_set.n_vars)
        if var_set.id != self.nodes.id:
            return grad
        _, g_nodes = self._valgrad()
        for node_id, g in enumerate(np.asarray(g_nodes)):
            idx = self.nodes.get_opt_index(node_id, self.deriv, self.dim)
            if idx >= 0:
                grad[idx] += g
        return grad


class EffortCost(CostTerm):
    """
    Time integral of the squared norm of a spline quantity (forces, base
    acceleration), approximated on a grid of evaluation times.
    """

    def __init__(self, spline: NodeSpline, evaluation_times, dxdt: int, weight: float, name):
        super().__init__(name)
        self.spline = spline
        self.times = np.asarray(evaluation_times, dtype=float)
        self.dxdt = dxdt
        dt = np.diff(self.times)
        self._dt = np.append(dt, dt[-1]) if dt.size else np.ones(1)
        self.weight = float(weight)

    def _samples(self):
        return np.array([self.spline.get_point(t)[self.dxdt] for t in self.times])

    def _valgrad(self):
        weights = jnp.asarray(self.weight * self._dt)[:, None]
        return _sum_of_squares_valgrad(jnp.asarray(self._samples()), weights)

    def get_cost(self):
        value, _ = self._valgrad()
        return float(value)

    def _sample_jacobian(self, t, var_set):
        if var_set.id == self.spline.var_id:
            return self.spline.get_jacobian_wrt_nodes(t, self.dxdt)
        if (var_set.id.kind is VarKind.EE_SCHEDULE and self.dxdt == kPos
                and var_set.id.ee == self.spline.var_id.ee
                and isinstance(self.spline, PhaseDurationSpline)):
            return self.spline.get_jacobian_of_pos_wrt_durations(t)
        return None

    def get_gradient(self, var_set):
        grad = np.zeros(var_set.n_vars)
        _, g_samples = self._valgrad()
        g_samples = np.asarray(g_samples)
        for t, g in zip(self.times, g_samples):
            jac = self._sample_jacobian(t, var_set)
            if jac is None:
                return grad
            grad += jac.T @ g
        return grad


class SoftConstraint(CostTerm):
    """Turns a constraint set into a quadratic penalty on its bound violation."""

    def __init__(self, constraint: ConstraintSet, weight: float):
        super().__init__(f"soft-{constraint.name}")
        self.constraint = constraint
        self.weight = float(weight)

    def _valgrad(self):
        bounds = self.constraint.get_bounds()
        return _bound_violation_valgrad(jnp.asarray(self.constraint.get_values()),
                                        jnp.asarray(bounds[:, 0]), jnp.asarray(bounds[:, 1]),
                                        self.weight)

    def get_cost(self):
        value, _ = self._valgrad()
        return float(value)

    def get_gradient(self, var_set):
        _, g = self._valgrad()
        return self.constraint.get_jacobian(var_set).T @ np.asarray(g)
