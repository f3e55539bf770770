import numpy as np
from scipy import sparse

from .helpers import sparse_rows
from .nlp import ConstraintSet, VariableSet


class TimeDiscretizationConstraint(ConstraintSet):
    """
    Evaluates a constraint at a fixed list of time instants. Subclasses supply
    the rows of one instant; this class places them in the row range
    [rows_per_instant*k, rows_per_instant*(k+1)) of instant k.
    """

    def __init__(self, evaluation_times, rows_per_instant: int, name: str):
        super().__init__(name)
        self.times = np.unique(np.asarray(evaluation_times, dtype=float))
        self.rows_per_instant = int(rows_per_instant)
        self.set_rows(self.rows_per_instant * len(self.times))

    def get_number_of_nodes(self) -> int:
        return len(self.times)

    def get_row(self, k, dim) -> int:
        return self.rows_per_instant * k + dim

    def get_values(self):
        g = np.zeros(self.n_rows)
        for k, t in enumerate(self.times):
            g[self.get_row(k, 0):self.get_row(k + 1, 0)] = self.update_constraint_at_instance(t, k)
        return g

    def get_bounds(self):
        bounds = np.zeros((self.n_rows, 2))
        for k, t in enumerate(self.times):
            bounds[self.get_row(k, 0):self.get_row(k + 1, 0)] = self.update_bounds_at_instance(t, k)
        return bounds

    def get_jacobian(self, var_set: VariableSet) -> sparse.csr_matrix:
        blocks = [(self.rows_per_instant, self.update_jacobian_at_instance(t, k, var_set))
                  for k, t in enumerate(self.times)]
        return sparse_rows(blocks, var_set.n_vars)

    def update_constraint_at_instance(self, t, k) -> np.ndarray:
        raise NotImplementedError

    def update_bounds_at_instance(self, t, k) -> np.ndarray:
        raise NotImplementedError

    def update_jacobian_at_instance(self, t, k, var_set: VariableSet):
        """
        Rows of instant k w.r.t. var_set, or None if they do not depend on it.
        """
        raise NotImplementedError
