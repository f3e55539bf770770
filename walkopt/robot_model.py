from dataclasses import dataclass
from logging import getLogger
from typing import List
import numpy as np

from .dynamic_model import (
    DynamicModel,
    MonopedDynamicModel,
    BipedDynamicModel,
    HyqDynamicModel,
    AnymalDynamicModel,
)
from .errors import ConfigurationError

logger = getLogger(__name__)


@dataclass
class KinematicModel:
    nominal_stance: List[np.ndarray]  # Default foot position per end-effector in base frame
    max_deviation: np.ndarray          # Half-size of the reachable box around it

    def __post_init__(self):
        self.nominal_stance = [np.asarray(p, dtype=float) for p in self.nominal_stance]
        self.max_deviation = np.asarray(self.max_deviation, dtype=float)

    def get_ee_count(self) -> int:
        return len(self.nominal_stance)


@dataclass
class RobotModel:
    dynamic_model: DynamicModel
    kinematic_model: KinematicModel

    def __post_init__(self):
        if self.dynamic_model.get_ee_count() != self.kinematic_model.get_ee_count():
            raise ConfigurationError(
                f"dynamic model has {self.dynamic_model.get_ee_count()} end-effectors, "
                f"kinematic model {self.kinematic_model.get_ee_count()}")

    def get_ee_count(self) -> int:
        return self.dynamic_model.get_ee_count()


def _quadruped_stance(x, y, z):
    # LF, RF, LH, RH
    return [(x, y, z), (x, -y, z), (-x, y, z), (-x, -y, z)]


def get_robot_model(name: str) -> RobotModel:
    """
    Built-in robots: "monoped", "biped", "hyq", "anymal".
    """
    if name == "monoped":
        return RobotModel(MonopedDynamicModel(),
                          KinematicModel([(0.0, 0.0, -0.58)], (0.25, 0.15, 0.2)))
    if name == "biped":
        return RobotModel(BipedDynamicModel(),
                          KinematicModel([(0.0, 0.2, -0.65), (0.0, -0.2, -0.65)], (0.25, 0.1, 0.1)))
    if name == "hyq":
        return RobotModel(HyqDynamicModel(),
                          KinematicModel(_quadruped_stance(0.31, 0.29, -0.58), (0.25, 0.2, 0.1)))
    if name == "anymal":
        return RobotModel(AnymalDynamicModel(),
                          KinematicModel(_quadruped_stance(0.34, 0.19, -0.42), (0.15, 0.1, 0.1)))
    logger.error("unknown robot %r", name)
    raise ConfigurationError(f"unknown robot '{name}'")
