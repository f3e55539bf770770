"""
Piecewise cubic Hermite splines spanned by optimization nodes.

Adjacent segments share their boundary node, so position and velocity are
continuous by construction. Coefficients are never cached: every query
evaluates the current node values and durations.
"""
from collections import namedtuple
import numpy as np
from scipy import sparse

from .errors import ConfigurationError
from .helpers import hermite_node_weights, hermite_value, hermite_value_wrt_duration
from .variables import NodesVariables, NodesVariablesPhaseBased, PhaseDurations, POS, VEL

State = namedtuple("State", ["p", "v", "a"])

kPos, kVel, kAcc = 0, 1, 2


class NodeSpline:
    def __init__(self, nodes: NodesVariables, polynomial_durations=None):
        self.nodes = nodes
        self._durations = None
        if polynomial_durations is not None:
            durations = np.asarray(polynomial_durations, dtype=float).reshape(-1)
            if durations.size != nodes.get_polynomial_count():
                raise ConfigurationError(
                    f"{nodes.name}: {durations.size} durations for "
                    f"{nodes.get_polynomial_count()} polynomials")
            if np.any(durations <= 0.0):
                raise ConfigurationError(f"{nodes.name}: segment durations must be positive")
            self._durations = durations

    @property
    def var_id(self):
        return self.nodes.id

    @property
    def n_dim(self) -> int:
        return self.nodes.n_dim

    def get_polynomial_durations(self) -> np.ndarray:
        return self._durations

    def get_total_time(self) -> float:
        return float(np.sum(self.get_polynomial_durations()))

    def get_segment_id(self, t):
        """
        Segment containing global time t and the time local to it.
        Times on a junction belong to the earlier segment; t is clamped to [0, T].
        """
        durations = self.get_polynomial_durations()
        ends = np.cumsum(durations)
        t = min(max(float(t), 0.0), float(ends[-1]))
        seg = int(min(np.searchsorted(ends, t, side="left"), len(ends) - 1))
        t_start = ends[seg] - durations[seg]
        return seg, max(t - t_start, 0.0)

    def _segment_nodes(self, seg):
        n = self.nodes.nodes
        return n[seg, POS], n[seg, VEL], n[seg + 1, POS], n[seg + 1, VEL]

    def get_segment_point(self, seg, t_local) -> State:
        T = self.get_polynomial_durations()[seg]
        p0, v0, p1, v1 = self._segment_nodes(seg)
        return State(*(hermite_value(p0, v0, p1, v1, t_local, T, d) for d in (kPos, kVel, kAcc)))

    def get_point(self, t) -> State:
        seg, t_local = self.get_segment_id(t)
        return self.get_segment_point(seg, t_local)

    def get_segment_jacobian_wrt_nodes(self, seg, t_local, dxdt) -> sparse.csr_matrix:
        T = self.get_polynomial_durations()[seg]
        w = hermite_node_weights(t_local, T, dxdt)
        rows, cols, vals = [], [], []
        for weight, (node, deriv) in zip(w, ((seg, POS), (seg, VEL), (seg + 1, POS), (seg + 1, VEL))):
            if weight == 0.0:
                continue
            for dim in range(self.n_dim):
                idx = self.nodes.get_opt_index(node, deriv, dim)
                if idx >= 0:
                    rows.append(dim)
                    cols.append(idx)
                    vals.append(weight)
        # shared variables (constant phases) are summed on construction
        return sparse.csr_matrix((vals, (rows, cols)), shape=(self.n_dim, self.nodes.n_vars))

    def get_jacobian_wrt_nodes(self, t, dxdt) -> sparse.csr_matrix:
        """
        Derivative of the dxdt-th time derivative at t w.r.t. the node variables.

        Returns:
            csr_matrix of shape (n_dim, n_vars)
        """
        seg, t_local = self.get_segment_id(t)
        return self.get_segment_jacobian_wrt_nodes(seg, t_local, dxdt)


class PhaseDurationSpline(NodeSpline):
    """
    End-effector spline whose segment durations follow the phase durations:
    each phase is split evenly among its polynomials.
    """

    def __init__(self, nodes: NodesVariablesPhaseBased, phase_durations: PhaseDurations):
        super().__init__(nodes)
        self.phase_durations = phase_durations
        self._phase_of_poly, self._polys_per_phase = nodes.get_phase_structure()
        n_phases = phase_durations.get_phase_durations().size
        if n_phases != nodes.phase_count:
            raise ConfigurationError(
                f"{nodes.name}: {nodes.phase_count} phases in nodes, {n_phases} phase durations")

    def get_polynomial_durations(self):
        D = self.phase_durations.get_phase_durations()
        return D[self._phase_of_poly] / self._polys_per_phase[self._phase_of_poly]

    def is_contact_at(self, t) -> bool:
        return self.phase_durations.is_contact_at(t)

    def get_jacobian_of_pos_wrt_durations(self, t) -> sparse.csr_matrix:
        """
        Derivative of the position at fixed global time t w.r.t. the phase
        duration variables. A duration changes both the length of the segments
        of its phase and the start time of every later segment.

        Returns:
            csr_matrix of shape (n_dim, n_phases - 1)
        """
        durations = self.get_polynomial_durations()
        seg, t_local = self.get_segment_id(t)
        p0, v0, p1, v1 = self._segment_nodes(seg)
        T = durations[seg]

        dp_dT = hermite_value_wrt_duration(p0, v0, p1, v1, t_local, T, kPos)
        vel = hermite_value(p0, v0, p1, v1, t_local, T, kVel)

        n_phases = len(self._polys_per_phase)
        dp_dD = np.zeros((self.n_dim, n_phases))
        q = self._phase_of_poly[seg]
        dp_dD[:, q] += dp_dT / self._polys_per_phase[q]
        for i in range(seg):
            q = self._phase_of_poly[i]
            dp_dD[:, q] -= vel / self._polys_per_phase[q]

        # last phase duration = total - sum(others)
        jac = dp_dD[:, :-1] - dp_dD[:, [-1]]
        return sparse.csr_matrix(jac)
