"""
Builds the variables, constraints and costs of a motion from the robot
description, the motion parameters and the initial/final states.
"""
from enum import Enum
from logging import getLogger
from typing import List, Optional, Union
import numpy as np

from .constraints import (
    RangeOfMotionConstraint,
    ForceConstraint,
    TerrainConstraint,
    BaseBoundaryConstraint,
    SplineAccConstraint,
    ObstacleConstraint,
    TotalDurationConstraint,
)
from .cost_parts import NodeCost, EffortCost, SoftConstraint
from .dynamic_constraint import DynamicConstraint
from .errors import ConfigurationError
from .height_map import HeightMap, FlatGround
from .nlp import ConstraintSet, CostTerm, VarId, VarKind
from .node_spline import kPos, kAcc
from .problem_class import NlpProblem
from .robot_model import RobotModel
from .spline_holder import SplineHolder
from .variables import (
    NodesVariablesAll,
    NodesVariablesEEMotion,
    NodesVariablesEEForce,
    PhaseDurations,
    POS,
    VEL,
)
from .walkopt_dataclasses import MotionParameters, RobotState

logger = getLogger(__name__)


class ConstraintName(Enum):
    INITIAL = "initial"
    FINAL = "final"
    JUNCTION = "junction"
    DYNAMIC = "dynamic"
    RANGE_OF_MOTION = "range_of_motion"
    TERRAIN = "terrain"
    FORCE = "force"
    OBSTACLE = "obstacle"
    TOTAL_TIME = "total_time"


class CostName(Enum):
    FORCES = "forces"
    BASE_ACC = "base_acc"
    EE_MOTION = "ee_motion"
    FINAL_STATE = "final_state"


def _resolve(enum_cls, name):
    if isinstance(name, enum_cls):
        return name
    try:
        return enum_cls(name)
    except ValueError:
        logger.error("no factory method for %s %r", enum_cls.__name__, name)
        raise ConfigurationError(f"unknown {enum_cls.__name__} '{name}'") from None


class CostConstraintFactory:
    def __init__(self, robot_model: RobotModel, params: MotionParameters,
                 initial_state: RobotState, final_state: RobotState,
                 terrain: Optional[HeightMap] = None):
        self.model = robot_model
        self.params = params
        self.initial_state = initial_state
        self.final_state = final_state
        self.terrain = terrain if terrain is not None else FlatGround()

        self._check_dimensions()
        self._requested_constraints = [_resolve(ConstraintName, c) for c in params.constraints]
        if params.optimize_phase_durations and ConstraintName.TOTAL_TIME not in self._requested_constraints:
            # the derived last phase of each end-effector is otherwise unbounded
            logger.info("adding %s constraint for optimized phase durations",
                        ConstraintName.TOTAL_TIME.value)
            self._requested_constraints.append(ConstraintName.TOTAL_TIME)
        self._requested_costs = [(_resolve(CostName, c), w) for c, w in params.costs]

        self._constraint_makers = {
            ConstraintName.INITIAL: self._make_initial_constraint,
            ConstraintName.FINAL: self._make_final_constraint,
            ConstraintName.JUNCTION: self._make_junction_constraint,
            ConstraintName.DYNAMIC: self._make_dynamic_constraint,
            ConstraintName.RANGE_OF_MOTION: self._make_range_of_motion_constraint,
            ConstraintName.TERRAIN: self._make_terrain_constraint,
            ConstraintName.FORCE: self._make_force_constraint,
            ConstraintName.OBSTACLE: self._make_obstacle_constraint,
            ConstraintName.TOTAL_TIME: self._make_total_time_constraint,
        }
        self._cost_makers = {
            CostName.FORCES: self._make_forces_cost,
            CostName.BASE_ACC: self._make_base_acc_cost,
            CostName.EE_MOTION: self._make_ee_motion_cost,
            CostName.FINAL_STATE: self._make_final_state_cost,
        }

        self._make_variables()
        self.spline_holder = SplineHolder.from_variables(
            self.base_lin_nodes, self.base_ang_nodes, self.params.get_base_poly_durations(),
            self.ee_motion_nodes, self.ee_force_nodes, self.phase_durations)

    def _fail(self, msg):
        logger.error(msg)
        raise ConfigurationError(msg)

    def _check_dimensions(self):
        n_ee = self.model.get_ee_count()
        p = self.params
        if p.get_ee_count() != n_ee:
            self._fail(f"{p.get_ee_count()} phase schedules for a robot with {n_ee} end-effectors")
        if len(p.ee_in_contact_at_start) != n_ee:
            self._fail(f"{len(p.ee_in_contact_at_start)} initial contact flags for {n_ee} end-effectors")
        if len(self.initial_state.ee) != n_ee:
            self._fail(f"initial state has {len(self.initial_state.ee)} end-effectors, robot has {n_ee}")
        if self.final_state.ee and len(self.final_state.ee) != n_ee:
            self._fail(f"final state has {len(self.final_state.ee)} end-effectors, robot has {n_ee}")
        for state in [self.initial_state, self.final_state]:
            for s in [state.base.lin, state.base.ang] + list(state.ee):
                if s.p.size != 3 or s.v.size != 3:
                    self._fail("states must be 3-dimensional")
        t_total = p.get_total_time()
        for ee, durations in enumerate(p.ee_phase_durations):
            durations = np.asarray(durations, dtype=float)
            if durations.size == 0 or np.any(durations <= 0.0):
                self._fail(f"ee {ee}: phase durations must be positive, got {durations}")
            if abs(durations.sum() - t_total) > 1e-6:
                self._fail(f"ee {ee}: phases last {durations.sum():.4f}s instead of {t_total:.4f}s")
        if p.duration_base_polynomial <= 0.0:
            self._fail("base polynomial duration must be positive")

    # -------- variables --------
    def _make_variables(self):
        p = self.params
        T = p.get_total_time()
        n_base_nodes = len(p.get_base_poly_durations()) + 1
        base = self.initial_state.base
        final = self.final_state.base

        self.base_lin_nodes = NodesVariablesAll(VarId(VarKind.BASE_LIN), n_base_nodes, 3)
        self.base_lin_nodes.set_by_linear_interpolation(base.lin.p, final.lin.p, T)
        self.base_ang_nodes = NodesVariablesAll(VarId(VarKind.BASE_ANG), n_base_nodes, 3)
        self.base_ang_nodes.set_by_linear_interpolation(base.ang.p, final.ang.p, T)

        stance_force = np.array([0.0, 0.0, self.model.dynamic_model.mass
                                 * self.model.dynamic_model.g() / self.model.get_ee_count()])
        self.ee_motion_nodes = []
        self.ee_force_nodes = []
        self.phase_durations = []
        for ee in range(self.model.get_ee_count()):
            n_phases = len(p.ee_phase_durations[ee])
            in_contact = bool(p.ee_in_contact_at_start[ee])

            motion = NodesVariablesEEMotion(ee, n_phases, in_contact, p.ee_polynomials_per_swing_phase)
            p0 = self.initial_state.ee[ee].p
            motion.set_constant_position(p0)
            motion.add_start_bound(POS, (0, 1), p0[:2])
            self.ee_motion_nodes.append(motion)

            force = NodesVariablesEEForce(ee, n_phases, in_contact, p.force_polynomials_per_stance_phase)
            force.set_stance_force(stance_force)
            self.ee_force_nodes.append(force)

            self.phase_durations.append(PhaseDurations(
                ee, p.ee_phase_durations[ee], in_contact, *p.bound_phase_duration))

    def get_variable_sets(self) -> list:
        var_sets = [self.base_lin_nodes, self.base_ang_nodes]
        var_sets += self.ee_motion_nodes + self.ee_force_nodes
        if self.params.optimize_phase_durations:
            var_sets += [d for d in self.phase_durations if d.n_vars > 0]
        return var_sets

    # -------- lookups --------
    def get_constraint(self, name: Union[str, ConstraintName]) -> List[ConstraintSet]:
        name = _resolve(ConstraintName, name)
        maker = self._constraint_makers.get(name)
        if maker is None:
            self._fail(f"no factory method for constraint '{name.value}'")
        constraints = maker()
        logger.debug("built %d constraint set(s) for %s", len(constraints), name.value)
        return constraints

    def get_cost(self, name: Union[str, CostName], weight: float = 1.0) -> List[CostTerm]:
        name = _resolve(CostName, name)
        maker = self._cost_makers.get(name)
        if maker is None:
            self._fail(f"no factory method for cost '{name.value}'")
        costs = maker(weight)
        logger.debug("built %d cost term(s) for %s", len(costs), name.value)
        return costs

    def build_problem(self) -> NlpProblem:
        problem = NlpProblem()
        for var_set in self.get_variable_sets():
            problem.add_variable_set(var_set)
        for name in self._requested_constraints:
            for c in self.get_constraint(name):
                problem.add_constraint_set(c)
        for name, weight in self._requested_costs:
            for c in self.get_cost(name, weight):
                problem.add_cost_set(c)
        logger.info("assembled problem: %d variables, %d constraints, %d cost terms",
                    problem.n, problem.m, len(problem.costs))
        return problem

    # -------- constraints --------
    def _make_initial_constraint(self):
        base = self.initial_state.base
        h = self.spline_holder
        return [
            BaseBoundaryConstraint(h.get_base_linear(), 0.0, base.lin.p, base.lin.v, "initial-base-lin"),
            BaseBoundaryConstraint(h.get_base_angular(), 0.0, base.ang.p, base.ang.v, "initial-base-ang"),
        ]

    def _make_final_constraint(self):
        base = self.final_state.base
        h = self.spline_holder
        T = self.params.get_total_time()
        return [
            BaseBoundaryConstraint(h.get_base_linear(), T, base.lin.p, base.lin.v, "final-base-lin"),
            BaseBoundaryConstraint(h.get_base_angular(), T, base.ang.p, base.ang.v, "final-base-ang"),
        ]

    def _make_junction_constraint(self):
        h = self.spline_holder
        return [
            SplineAccConstraint(h.get_base_linear(), "junction-base-lin"),
            SplineAccConstraint(h.get_base_angular(), "junction-base-ang"),
        ]

    def _make_dynamic_constraint(self):
        times = self.params.get_eval_times(self.params.dt_constraint_dynamic)
        return [DynamicConstraint(self.model.dynamic_model, times, self.spline_holder)]

    def _make_range_of_motion_constraint(self):
        times = self.params.get_eval_times(self.params.dt_constraint_range_of_motion)
        return [RangeOfMotionConstraint(self.model.kinematic_model, times, self.spline_holder, ee)
                for ee in range(self.model.get_ee_count())]

    def _make_terrain_constraint(self):
        return [TerrainConstraint(self.terrain, nodes) for nodes in self.ee_motion_nodes]

    def _make_force_constraint(self):
        times = self.params.get_eval_times(self.params.dt_constraint_force)
        return [ForceConstraint(self.terrain, self.params.friction_coeff, self.params.max_normal_force,
                                times, self.spline_holder, ee)
                for ee in range(self.model.get_ee_count())]

    def _make_obstacle_constraint(self):
        times = self.params.get_eval_times(self.params.dt_constraint_dynamic)
        return [ObstacleConstraint(self.spline_holder, times, center, radius, f"obstacle_{i}")
                for i, (center, radius) in enumerate(self.params.obstacles)]

    def _make_total_time_constraint(self):
        if not self.params.optimize_phase_durations:
            return []
        return [TotalDurationConstraint(d) for d in self.phase_durations if d.n_vars > 0]

    # -------- costs --------
    def _make_forces_cost(self, weight):
        times = self.params.get_eval_times(self.params.dt_cost)
        return [EffortCost(self.spline_holder.get_ee_force(ee), times, kPos, weight, f"force-effort_{ee}")
                for ee in range(self.model.get_ee_count())]

    def _make_base_acc_cost(self, weight):
        times = self.params.get_eval_times(self.params.dt_cost)
        h = self.spline_holder
        return [EffortCost(h.get_base_linear(), times, kAcc, weight, "base-lin-acc"),
                EffortCost(h.get_base_angular(), times, kAcc, weight, "base-ang-acc")]

    def _make_ee_motion_cost(self, weight):
        return [NodeCost(nodes, VEL, dim, weight, f"ee-motion-{'xy'[dim]}_{nodes.id.ee}")
                for nodes in self.ee_motion_nodes for dim in (0, 1)]

    def _make_final_state_cost(self, weight):
        return [SoftConstraint(c, weight) for c in self._make_final_constraint()]
