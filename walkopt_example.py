import logging
import numpy as np
from walkopt.walkopt_dataclasses import StateLin3d, BaseState, RobotState, MotionParameters
from walkopt import CostConstraintFactory, get_robot_model, get_trajectory_function
from walkopt.height_map import GridHeightMap, get_flat_heightmap, get_stairs_heightmap

logging.basicConfig(level=logging.INFO)

robot = get_robot_model("anymal")
z_nominal = 0.42

params = MotionParameters(
    ee_phase_durations=[ # Stance/swing durations of LF, RF, LH, RH [s]
        [0.4, 0.3, 0.5],
        [0.6, 0.3, 0.3],
        [0.6, 0.3, 0.3],
        [0.4, 0.3, 0.5],
    ],
    ee_in_contact_at_start=[True, True, True, True],
    duration_base_polynomial=0.1,
    costs=[("forces", 1e-4), ("ee_motion", 1e-2)],
)

# h = get_flat_heightmap(a=100, b=100, height=0.0)
h = get_stairs_heightmap(a=100, b=200, start_col=110, step_depth=10, step_height=0.05)
terrain = GridHeightMap(h, grid_cell_length=0.04, smooth_sigma=1.0)

feet = [StateLin3d(p=p + np.array([0.0, 0.0, z_nominal])) for p in robot.kinematic_model.nominal_stance]

initial_state = RobotState(
    base=BaseState(lin=StateLin3d(p=[0.0, 0.0, z_nominal])),
    ee=feet,
)
final_state = RobotState(
    base=BaseState(lin=StateLin3d(p=[0.5, 0.0, z_nominal])),
)

factory = CostConstraintFactory(robot, params, initial_state, final_state, terrain)
problem = factory.build_problem()

x_sol, info = problem.solve({"max_iter": 200})
print("status:", info["status_msg"])
print("constraint violation:", problem.get_constraint_violation())

trajectory_fn = get_trajectory_function(factory.spline_holder)

times, base_pos, base_rot, feet_pos, feet_force, contact = trajectory_fn(0.02)  # feet_pos shape: (N, 4, 3)
print("final base position:", base_pos[-1])
