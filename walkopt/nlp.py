"""
Building blocks handed to the NLP solver: variable sets, constraint sets and
cost terms. Every set exposes flat numpy vectors and sparse Jacobian blocks
keyed by the variable set they are taken against.
"""
from dataclasses import dataclass
from enum import Enum
import numpy as np
from scipy import sparse

INF = np.inf
BOUND_ZERO = (0.0, 0.0)
NO_BOUND = (-INF, INF)


class VarKind(Enum):
    BASE_LIN = "base-lin"
    BASE_ANG = "base-ang"
    EE_MOTION = "ee-motion"
    EE_FORCE = "ee-force"
    EE_SCHEDULE = "ee-schedule"


@dataclass(frozen=True)
class VarId:
    kind: VarKind
    ee: int = -1  # End-effector index, -1 for base variables

    @property
    def name(self) -> str:
        if self.ee < 0:
            return self.kind.value
        return f"{self.kind.value}_{self.ee}"


class VariableSet:
    """A named block of the solver's variable vector."""

    def __init__(self, var_id: VarId, n_vars: int = 0):
        self.id = var_id
        self.n_vars = n_vars

    @property
    def name(self) -> str:
        return self.id.name

    def get_values(self) -> np.ndarray:
        raise NotImplementedError

    def set_variables(self, x: np.ndarray):
        raise NotImplementedError

    def get_bounds(self) -> np.ndarray:
        return np.tile(NO_BOUND, (self.n_vars, 1))


class ConstraintSet:
    """A block of constraint rows g(x) with lower/upper bounds."""

    def __init__(self, name: str, n_rows: int = 0):
        self.name = name
        self.n_rows = n_rows

    def set_rows(self, n_rows: int):
        self.n_rows = int(n_rows)

    def get_values(self) -> np.ndarray:
        raise NotImplementedError

    def get_bounds(self) -> np.ndarray:
        raise NotImplementedError

    def get_jacobian(self, var_set: VariableSet) -> sparse.csr_matrix:
        """
        Jacobian of get_values() w.r.t. one variable set, shape (n_rows, var_set.n_vars).
        Sets the constraint does not depend on produce an all-zero block.
        """
        return sparse.csr_matrix((self.n_rows, var_set.n_vars))


class CostTerm:
    """A scalar objective contribution."""

    def __init__(self, name: str):
        self.name = name

    def get_cost(self) -> float:
        raise NotImplementedError

    def get_gradient(self, var_set: VariableSet) -> np.ndarray:
        return np.zeros(var_set.n_vars)
