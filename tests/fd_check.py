"""Finite-difference utilities shared by the Jacobian tests."""

import numpy as np

from walkopt.height_map import HeightMap


def numerical_jacobian(var_set, func, eps=1e-6):
    """Central-difference Jacobian of func() w.r.t. the values of var_set."""
    x0 = var_set.get_values().copy()
    n_out = np.atleast_1d(np.asarray(func(), dtype=float)).size
    jac = np.zeros((n_out, x0.size))
    for i in range(x0.size):
        x = x0.copy()
        x[i] += eps
        var_set.set_variables(x)
        f_plus = np.atleast_1d(np.asarray(func(), dtype=float)).copy()
        x[i] -= 2 * eps
        var_set.set_variables(x)
        f_minus = np.atleast_1d(np.asarray(func(), dtype=float)).copy()
        jac[:, i] = (f_plus - f_minus) / (2 * eps)
    var_set.set_variables(x0)
    return jac


def forward_jacobian(var_set, func, eps=1e-7):
    """One-sided Jacobian, for points where func switches formula."""
    x0 = var_set.get_values().copy()
    f0 = np.atleast_1d(np.asarray(func(), dtype=float)).copy()
    jac = np.zeros((f0.size, x0.size))
    for i in range(x0.size):
        x = x0.copy()
        x[i] += eps
        var_set.set_variables(x)
        jac[:, i] = (np.atleast_1d(np.asarray(func(), dtype=float)) - f0) / eps
    var_set.set_variables(x0)
    return jac


def assert_jacobian_close(analytic, numeric, rtol=1e-4, atol=1e-5):
    if hasattr(analytic, "toarray"):
        analytic = analytic.toarray()
    analytic = np.asarray(analytic, dtype=float)
    scale = max(1.0, float(np.abs(numeric).max(initial=0.0)))
    np.testing.assert_allclose(analytic, numeric, rtol=rtol, atol=atol * scale)


class WavyGround(HeightMap):
    """Smooth terrain h = a sin(2x) cos(3y) with analytic derivatives."""

    def __init__(self, amplitude=0.05):
        self.a = amplitude

    def get_height(self, x, y):
        return self.a * np.sin(2 * x) * np.cos(3 * y)

    def get_height_derivative(self, dim, x, y):
        if dim == 0:
            return 2 * self.a * np.cos(2 * x) * np.cos(3 * y)
        return -3 * self.a * np.sin(2 * x) * np.sin(3 * y)

    def get_height_second_derivative(self, dim1, dim2, x, y):
        if dim1 == dim2 == 0:
            return -4 * self.a * np.sin(2 * x) * np.cos(3 * y)
        if dim1 == dim2 == 1:
            return -9 * self.a * np.sin(2 * x) * np.cos(3 * y)
        return -6 * self.a * np.cos(2 * x) * np.sin(3 * y)
