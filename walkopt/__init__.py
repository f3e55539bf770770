# Re-export selected symbols
from .errors import ConfigurationError
# enables jax float64 globally on import
from . import cost_parts
from .walkopt_dataclasses import *

from .nlp import VarKind, VarId, VariableSet, ConstraintSet, CostTerm
from .variables import (
    NodesVariablesAll,
    NodesVariablesEEMotion,
    NodesVariablesEEForce,
    PhaseDurations,
)
from .node_spline import NodeSpline, PhaseDurationSpline
from .euler_converter import EulerConverter
from .spline_holder import SplineHolder
from .dynamic_model import (
    DynamicModel,
    SingleRigidBodyDynamics,
    MonopedDynamicModel,
    BipedDynamicModel,
    HyqDynamicModel,
    AnymalDynamicModel,
)
from .robot_model import KinematicModel, RobotModel, get_robot_model
from .height_map import (
    HeightMap,
    FlatGround,
    GridHeightMap,
    get_flat_heightmap,
    get_stairs_heightmap,
    get_heightmap_ramp
)
from .dynamic_constraint import DynamicConstraint
from .cost_constraint_factory import CostConstraintFactory, ConstraintName, CostName
from .problem_class import NlpProblem
from .trajectory import get_trajectory_function

__all__ = [
    'ConfigurationError',
    'StateLin3d', 'BaseState', 'RobotState', 'MotionParameters',
    'VarKind', 'VarId', 'VariableSet', 'ConstraintSet', 'CostTerm',
    'NodesVariablesAll', 'NodesVariablesEEMotion', 'NodesVariablesEEForce', 'PhaseDurations',
    'NodeSpline', 'PhaseDurationSpline', 'EulerConverter', 'SplineHolder',
    'DynamicModel', 'SingleRigidBodyDynamics', 'MonopedDynamicModel', 'BipedDynamicModel',
    'HyqDynamicModel', 'AnymalDynamicModel',
    'KinematicModel', 'RobotModel', 'get_robot_model',
    'HeightMap', 'FlatGround', 'GridHeightMap',
    'get_flat_heightmap', 'get_stairs_heightmap', 'get_heightmap_ramp',
    'DynamicConstraint', 'CostConstraintFactory', 'ConstraintName', 'CostName',
    'NlpProblem', 'get_trajectory_function',
]
