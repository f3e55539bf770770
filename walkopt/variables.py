from dataclasses import dataclass
from typing import Sequence
import numpy as np

from .errors import ConfigurationError
from .nlp import VariableSet, VarId, VarKind, NO_BOUND

POS, VEL = 0, 1


class NodesVariables(VariableSet):
    """
    Position/velocity nodes of a Hermite spline, stored as (n_nodes, 2, n_dim).
    _index maps every node value to its optimization variable (-1 if fixed).
    Several node values may share one variable.
    """

    def __init__(self, var_id: VarId, n_nodes: int, n_dim: int):
        super().__init__(var_id)
        if n_nodes < 2:
            raise ConfigurationError(f"{var_id.name}: a spline needs at least two nodes")
        self.n_dim = n_dim
        self.nodes = np.zeros((n_nodes, 2, n_dim))
        self._index = np.full((n_nodes, 2, n_dim), -1, dtype=int)
        self._bounds = np.zeros((0, 2))

    def _finalize_index(self):
        self.n_vars = int(self._index.max()) + 1 if np.any(self._index >= 0) else 0
        self._bounds = np.tile(NO_BOUND, (self.n_vars, 1))

    @property
    def n_nodes(self) -> int:
        return self.nodes.shape[0]

    def get_polynomial_count(self) -> int:
        return self.n_nodes - 1

    def get_opt_index(self, node_id, deriv, dim) -> int:
        return int(self._index[node_id, deriv, dim])

    def get_values(self):
        x = np.zeros(self.n_vars)
        mask = self._index >= 0
        x[self._index[mask]] = self.nodes[mask]
        return x

    def set_variables(self, x):
        mask = self._index >= 0
        self.nodes[mask] = np.asarray(x, dtype=float)[self._index[mask]]

    def get_bounds(self):
        return self._bounds.copy()

    def add_bounds(self, node_id, deriv, dims, values):
        """
        Fix node values by giving their variables equal lower and upper bounds.
        The node values are moved onto the bound as well.
        """
        for dim, value in zip(dims, values):
            idx = self._index[node_id, deriv, dim]
            if idx >= 0:
                self._bounds[idx] = (value, value)
                self.nodes[self._index == idx] = value

    def add_start_bound(self, deriv, dims, values):
        self.add_bounds(0, deriv, dims, values)


class NodesVariablesAll(NodesVariables):
    """Every node position and velocity is an independent variable."""

    def __init__(self, var_id: VarId, n_nodes: int, n_dim: int):
        super().__init__(var_id, n_nodes, n_dim)
        self._index = np.arange(n_nodes * 2 * n_dim).reshape(n_nodes, 2, n_dim)
        self._finalize_index()

    def set_by_linear_interpolation(self, initial_val, final_val, total_time):
        initial_val = np.asarray(initial_val, dtype=float)
        final_val = np.asarray(final_val, dtype=float)
        ratios = np.linspace(0.0, 1.0, self.n_nodes)
        self.nodes[:, POS, :] = initial_val + ratios[:, None] * (final_val - initial_val)
        self.nodes[:, VEL, :] = (final_val - initial_val) / total_time


@dataclass(frozen=True)
class PolyInfo:
    phase: int
    poly_in_phase: int
    n_polys_in_phase: int
    is_constant: bool


class NodesVariablesPhaseBased(NodesVariables):
    """
    Nodes of an end-effector spline laid out along alternating phases.

    In a constant phase the quantity does not change: the phase is one
    polynomial whose two nodes share the same position and have zero velocity.
    A changing phase is split into n polynomials of equal duration with free
    interior nodes.
    """

    def __init__(self, var_id: VarId, phase_count: int, first_phase_constant: bool,
                 n_polys_in_changing_phase: int, optimize_constant_value: bool):
        if phase_count < 1:
            raise ConfigurationError(f"{var_id.name}: at least one phase is required")
        if n_polys_in_changing_phase < 1:
            raise ConfigurationError(f"{var_id.name}: changing phases need at least one polynomial")

        self.polynomial_info = []
        for phase in range(phase_count):
            constant = (phase % 2 == 0) == bool(first_phase_constant)
            n = 1 if constant else n_polys_in_changing_phase
            for i in range(n):
                self.polynomial_info.append(PolyInfo(phase, i, n, constant))

        n_polys = len(self.polynomial_info)
        super().__init__(var_id, n_polys + 1, 3)
        self.phase_count = phase_count
        self.first_phase_constant = bool(first_phase_constant)

        idx = 0
        node = 0
        while node <= n_polys:
            if node < n_polys and self.polynomial_info[node].is_constant:
                if optimize_constant_value:
                    for dim in range(self.n_dim):
                        self._index[node, POS, dim] = idx
                        self._index[node + 1, POS, dim] = idx
                        idx += 1
                node += 2
            else:
                for deriv in (POS, VEL):
                    for dim in range(self.n_dim):
                        self._index[node, deriv, dim] = idx
                        idx += 1
                node += 1
        self._finalize_index()

    def is_constant_phase(self, phase) -> bool:
        return (phase % 2 == 0) == self.first_phase_constant

    def is_constant_node(self, node_id) -> bool:
        n_polys = self.get_polynomial_count()
        if node_id < n_polys and self.polynomial_info[node_id].is_constant:
            return True
        return node_id > 0 and self.polynomial_info[node_id - 1].is_constant

    def get_phase_structure(self):
        """
        Returns:
            (phase of each polynomial, polynomial count of each phase)
        """
        phase_of_poly = np.array([info.phase for info in self.polynomial_info], dtype=int)
        polys_per_phase = np.bincount(phase_of_poly, minlength=self.phase_count)
        return phase_of_poly, polys_per_phase


class NodesVariablesEEMotion(NodesVariablesPhaseBased):
    """Foot position: constant (but optimized) while in contact."""

    def __init__(self, ee: int, phase_count: int, is_in_contact_at_start: bool,
                 n_polys_in_swing: int):
        super().__init__(VarId(VarKind.EE_MOTION, ee), phase_count,
                         first_phase_constant=is_in_contact_at_start,
                         n_polys_in_changing_phase=n_polys_in_swing,
                         optimize_constant_value=True)

    def is_contact_phase(self, phase) -> bool:
        return self.is_constant_phase(phase)

    def set_constant_position(self, pos):
        self.nodes[:, POS, :] = np.asarray(pos, dtype=float)
        self.nodes[:, VEL, :] = 0.0


class NodesVariablesEEForce(NodesVariablesPhaseBased):
    """Contact force: fixed at zero while in swing."""

    def __init__(self, ee: int, phase_count: int, is_in_contact_at_start: bool,
                 n_polys_in_stance: int):
        super().__init__(VarId(VarKind.EE_FORCE, ee), phase_count,
                         first_phase_constant=not is_in_contact_at_start,
                         n_polys_in_changing_phase=n_polys_in_stance,
                         optimize_constant_value=False)

    def is_contact_phase(self, phase) -> bool:
        return not self.is_constant_phase(phase)

    def set_stance_force(self, force):
        force = np.asarray(force, dtype=float)
        free = self._index[:, POS, 0] >= 0
        self.nodes[free, POS, :] = force
        self.nodes[:, VEL, :] = 0.0


class PhaseDurations(VariableSet):
    """
    Contact and swing phase durations of one end-effector. The variables are
    the durations of all but the last phase; the last one takes up the rest of
    the fixed total time.
    """

    def __init__(self, ee: int, timings: Sequence[float], is_first_phase_contact: bool,
                 min_duration: float, max_duration: float):
        durations = np.asarray(timings, dtype=float).reshape(-1)
        if durations.size == 0 or np.any(durations <= 0.0):
            raise ConfigurationError(f"ee {ee}: phase durations must be positive, got {durations}")
        super().__init__(VarId(VarKind.EE_SCHEDULE, ee), durations.size - 1)
        self._durations = durations
        self.t_total = float(durations.sum())
        self.is_first_phase_contact = bool(is_first_phase_contact)
        self.min_duration = float(min_duration)
        self.max_duration = float(max_duration)

    def get_phase_durations(self) -> np.ndarray:
        return self._durations.copy()

    def get_values(self):
        return self._durations[:-1].copy()

    def set_variables(self, x):
        x = np.asarray(x, dtype=float)
        self._durations[:-1] = x
        self._durations[-1] = self.t_total - x.sum()

    def get_bounds(self):
        return np.tile((self.min_duration, self.max_duration), (self.n_vars, 1))

    def is_contact_phase(self, phase) -> bool:
        return (phase % 2 == 0) == self.is_first_phase_contact

    def get_phase_id(self, t) -> int:
        # a time exactly on a phase switch belongs to the earlier phase
        ends = np.cumsum(self._durations)
        return int(min(np.searchsorted(ends, t, side="left"), len(ends) - 1))

    def is_contact_at(self, t) -> bool:
        return self.is_contact_phase(self.get_phase_id(t))
