from logging import getLogger
import time
import numpy as np
from scipy import sparse

from .errors import ConfigurationError
from .nlp import VariableSet, ConstraintSet, CostTerm

logger = getLogger(__name__)


class NlpProblem:
    """
    Stacks variable sets, constraint sets and cost terms into the flat
    x / g(x) / dg/dx triple a gradient-based NLP solver works on. Implements
    the cyipopt callback protocol.
    """

    def __init__(self):
        self.variable_sets = []
        self.constraint_sets = []
        self.costs = []

    # -------- assembly --------
    def add_variable_set(self, var_set: VariableSet):
        if any(v.id == var_set.id for v in self.variable_sets):
            raise ConfigurationError(f"variable set {var_set.name} added twice")
        self.variable_sets.append(var_set)

    def add_constraint_set(self, constraint: ConstraintSet):
        self.constraint_sets.append(constraint)

    def add_cost_set(self, cost: CostTerm):
        self.costs.append(cost)

    @property
    def n(self) -> int:
        return int(sum(v.n_vars for v in self.variable_sets))

    @property
    def m(self) -> int:
        return int(sum(c.n_rows for c in self.constraint_sets))

    def get_variable_values(self) -> np.ndarray:
        if not self.variable_sets:
            return np.zeros(0)
        return np.concatenate([v.get_values() for v in self.variable_sets])

    def set_variables(self, x):
        x = np.asarray(x, dtype=float)
        start = 0
        for v in self.variable_sets:
            v.set_variables(x[start:start + v.n_vars])
            start += v.n_vars

    def get_bounds_on_variables(self):
        if not self.variable_sets:
            return np.zeros(0), np.zeros(0)
        b = np.vstack([v.get_bounds() for v in self.variable_sets])
        return b[:, 0], b[:, 1]

    def get_bounds_on_constraints(self):
        if not self.constraint_sets:
            return np.zeros(0), np.zeros(0)
        b = np.vstack([c.get_bounds() for c in self.constraint_sets])
        return b[:, 0], b[:, 1]

    # -------- evaluation at the current variable values --------
    def evaluate_cost(self) -> float:
        return float(sum(c.get_cost() for c in self.costs))

    def evaluate_cost_gradient(self) -> np.ndarray:
        if not self.variable_sets:
            return np.zeros(0)
        return np.concatenate([
            sum((c.get_gradient(v) for c in self.costs), np.zeros(v.n_vars))
            for v in self.variable_sets
        ])

    def evaluate_constraints(self) -> np.ndarray:
        if not self.constraint_sets:
            return np.zeros(0)
        return np.concatenate([c.get_values() for c in self.constraint_sets])

    def get_jacobian_of_constraints(self) -> sparse.csr_matrix:
        """
        Row blocks follow constraint set order, column blocks variable set order.
        """
        row_blocks = []
        for c in self.constraint_sets:
            if c.n_rows == 0:
                continue
            blocks = [sparse.csr_matrix(c.get_jacobian(v)) for v in self.variable_sets if v.n_vars > 0]
            row_blocks.append(sparse.hstack(blocks, format="csr") if blocks
                              else sparse.csr_matrix((c.n_rows, 0)))
        if not row_blocks:
            return sparse.csr_matrix((0, self.n))
        return sparse.vstack(row_blocks, format="csr")

    def get_constraint_violation(self) -> float:
        g = self.evaluate_constraints()
        if g.size == 0:
            return 0.0
        lb, ub = self.get_bounds_on_constraints()
        return float(np.max(np.maximum(lb - g, 0.0) + np.maximum(g - ub, 0.0)))

    # ============== Ipopt callbacks ==============
    def objective(self, x):
        self.set_variables(x)
        return self.evaluate_cost()

    def gradient(self, x):
        self.set_variables(x)
        return self.evaluate_cost_gradient()

    def constraints(self, x):
        self.set_variables(x)
        return self.evaluate_constraints()

    def jacobian(self, x):
        self.set_variables(x)
        if self.m == 0:
            return np.array([], dtype=float)
        # dense structure: which columns a row touches moves with the phase durations
        return self.get_jacobian_of_constraints().toarray().ravel(order="C")

    def jacobianstructure(self):
        if self.m == 0:
            return (np.array([], dtype=np.int64), np.array([], dtype=np.int64))
        rows = np.repeat(np.arange(self.m), self.n).astype(np.int64)
        cols = np.tile(np.arange(self.n), self.m).astype(np.int64)
        return rows, cols

    # Solve helper
    def solve(self, options: dict | None = None):
        """
        Runs Ipopt from the current variable values and writes the solution back.

        Returns:
            (x_sol, info) as returned by cyipopt
        """
        import cyipopt

        x0 = self.get_variable_values()
        lb, ub = self.get_bounds_on_variables()
        cl, cu = self.get_bounds_on_constraints()
        nlp = cyipopt.Problem(
            n=self.n, m=self.m, problem_obj=self,
            lb=lb, ub=ub, cl=cl, cu=cu
        )
        ipopt_opts = {
            "hessian_approximation": "limited-memory",
            "print_level": 0,
            "sb": "yes",
            "max_iter": 300,
            "tol": 1e-6,
            "acceptable_tol": 1e-4,
            "print_timing_statistics": "no"
        }
        if options:
            ipopt_opts.update(options)
        for k, v in ipopt_opts.items():
            nlp.add_option(k, v)

        logger.info("solving NLP with %d variables and %d constraints", self.n, self.m)
        t0 = time.perf_counter()
        x_sol, info = nlp.solve(x0)
        self.set_variables(x_sol)
        logger.info("Ipopt finished in %.3f s: %s (objective %.6f, violation %.2e)",
                    time.perf_counter() - t0, info.get("status_msg", info.get("status")),
                    self.evaluate_cost(), self.get_constraint_violation())
        return x_sol, info
